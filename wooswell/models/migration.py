"""Migration execution models."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from enum import Enum


class MigrationStatus(str, Enum):
    """Phase of a batched migration run."""
    PENDING = "pending"
    FETCHING = "fetching"
    TRANSFORMING = "transforming"
    WRITING = "writing"
    TALLYING = "tallying"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class PageRange:
    """
    Inclusive range of source pages.

    ``last=None`` means "through the last page the platform reports".
    """
    first: int = 1
    last: Optional[int] = None

    def __post_init__(self):
        if self.first < 1:
            raise ValueError(f"First page must be >= 1, got {self.first}")
        if self.last is not None and self.last < self.first:
            raise ValueError(f"Last page {self.last} is before first page {self.first}")

    def resolve(self, total_pages: int) -> Tuple[int, int]:
        """Get concrete (first, last) bounds given the reported page count."""
        last = self.last if self.last is not None else total_pages
        return self.first, last

    def split(self, total_pages: int, pages_per_batch: int = 1) -> List["PageRange"]:
        """
        Split into consecutive sub-ranges of at most ``pages_per_batch`` pages.

        Args:
            total_pages: Page count reported by the platform
            pages_per_batch: Pages per sub-range

        Returns:
            Sub-ranges in ascending order
        """
        if pages_per_batch < 1:
            raise ValueError(f"Pages per batch must be >= 1, got {pages_per_batch}")

        first, last = self.resolve(total_pages)
        ranges = []
        for start in range(first, last + 1, pages_per_batch):
            ranges.append(PageRange(start, min(start + pages_per_batch - 1, last)))
        return ranges

    def to_dict(self) -> Dict[str, Any]:
        return {"first": self.first, "last": self.last}


@dataclass
class FieldMap:
    """Copy the source field ``source`` into the target field ``target``."""
    source: str
    target: str

    @classmethod
    def parse(cls, pattern: str) -> "FieldMap":
        """Parse a ``source:target`` pattern (``name`` alone maps to itself)."""
        if ":" in pattern:
            source, target = pattern.split(":", 1)
        else:
            source = target = pattern
        source, target = source.strip(), target.strip()
        if not source or not target:
            raise ValueError(f"Invalid field mapping: {pattern}")
        return cls(source=source, target=target)

    @classmethod
    def from_dict(cls, data: Dict[str, str]) -> "FieldMap":
        """Create from ``{"woo": ..., "swell": ...}`` or ``{"source": ..., "target": ...}``."""
        source = data.get("source") or data.get("woo")
        target = data.get("target") or data.get("swell")
        if not source or not target:
            raise ValueError(f"Invalid field mapping: {data}")
        return cls(source=source, target=target)


@dataclass
class MigrationContext:
    """
    Collections fetched for one migration call.

    Built fresh per operation and passed explicitly to the helpers that need
    it; nothing here outlives the call that created it.
    """
    woo_categories: List[Dict[str, Any]] = field(default_factory=list)
    swell_categories: List[Dict[str, Any]] = field(default_factory=list)
    woo_products: List[Dict[str, Any]] = field(default_factory=list)
    swell_products: List[Dict[str, Any]] = field(default_factory=list)
    woo_customers: List[Dict[str, Any]] = field(default_factory=list)
    swell_accounts: List[Dict[str, Any]] = field(default_factory=list)
    swell_files: List[Dict[str, Any]] = field(default_factory=list)
