"""Record models for migration data."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from enum import Enum


class RecordAction(str, Enum):
    """Outcome of writing a single record to the target."""
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"
    DELETED = "deleted"


@dataclass
class BatchWriteItem:
    """One operation of a multi-operation batch request."""
    url: str
    method: str = "post"
    data: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the wire representation expected by the batch endpoint."""
        item: Dict[str, Any] = {"url": self.url, "method": self.method}
        if self.data is not None:
            item["data"] = self.data
        return item


@dataclass
class ImageDetail:
    """An image attached to a source product."""
    filename: str
    caption: str = ""
    name: str = ""
    product_slug: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "filename": self.filename,
            "caption": self.caption,
            "name": self.name,
            "productSlug": self.product_slug,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImageDetail":
        """Create from dictionary representation."""
        return cls(
            filename=data.get("filename", ""),
            caption=data.get("caption") or "",
            name=data.get("name") or "",
            product_slug=data.get("productSlug") or data.get("product_slug") or "",
        )


@dataclass
class LocalFile:
    """A file found while walking the local image directory."""
    filename: str
    path: str


@dataclass
class UpsertResult:
    """Result of a single create-or-update call."""
    action: RecordAction
    record: Dict[str, Any] = field(default_factory=dict)
    slug: Optional[str] = None


def is_created_record(element: Any) -> bool:
    """
    Check whether a batch response element is a written record.

    Records carry a target-assigned ``id``; error or duplicate responses
    do not.
    """
    return isinstance(element, dict) and element.get("id") is not None


def error_message(response: Any) -> Optional[str]:
    """Extract an error message from an error-shaped response, if any."""
    if not isinstance(response, dict) or not response.get("error"):
        return None
    error = response["error"]
    if isinstance(error, dict):
        return error.get("message") or str(error)
    return str(error)
