"""Base loader interface for target services."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from datetime import datetime
import logging

from ..models.record import BatchWriteItem, RecordAction, is_created_record, error_message

logger = logging.getLogger(__name__)


@dataclass
class LoadResult:
    """
    Running tally of a migration operation.

    Accumulated across every batch of a run and never reset mid-run.
    """
    entity: str
    created: int = 0
    updated: int = 0
    skipped: int = 0
    deleted: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    @property
    def total(self) -> int:
        return self.created + self.updated + self.skipped + self.deleted

    def record(self, action: RecordAction) -> None:
        """Count one record outcome."""
        if action == RecordAction.CREATED:
            self.created += 1
        elif action == RecordAction.UPDATED:
            self.updated += 1
        elif action == RecordAction.DELETED:
            self.deleted += 1
        else:
            self.skipped += 1

    def add_batch_outcomes(self, responses: List[Any]) -> Dict[str, int]:
        """
        Classify batch response elements and add them to the tally.

        Elements carrying a target ID count as created; anything else
        (duplicates, validation errors) counts as skipped.

        Returns:
            Created/skipped counts for this batch only
        """
        created = skipped = 0
        for element in responses:
            if is_created_record(element):
                created += 1
            else:
                skipped += 1
                message = error_message(element)
                if message:
                    self.errors.append({"error": message})

        self.created += created
        self.skipped += skipped
        return {"created": created, "skipped": skipped}

    def counts(self, *fields: str) -> Dict[str, int]:
        """Get the tally as a plain dict, optionally limited to some fields."""
        all_counts = {
            "created": self.created,
            "updated": self.updated,
            "skipped": self.skipped,
            "deleted": self.deleted,
        }
        if not fields:
            return all_counts
        return {name: all_counts[name] for name in fields}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entity": self.entity,
            **self.counts(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "errors": self.errors,
        }


class BaseLoader(ABC):
    """
    Base class for target platform clients.

    Loaders are responsible for reading target collections and writing
    transformed records into the target service.
    """

    def __init__(self, target_service: str):
        self.target_service = target_service

    @abstractmethod
    def get(self, endpoint: str, query: Optional[Dict[str, Any]] = None) -> Any:
        """Read a record or a collection page."""
        pass

    @abstractmethod
    def post(self, endpoint: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Create a record. Returns the record or an error-shaped dict."""
        pass

    @abstractmethod
    def put(self, endpoint: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Update a record. Returns the record or an error-shaped dict."""
        pass

    @abstractmethod
    def delete(self, endpoint: str) -> Dict[str, Any]:
        """Delete a record."""
        pass

    @abstractmethod
    def batch(self, items: List[BatchWriteItem]) -> List[Any]:
        """
        Submit a multi-operation batch.

        Returns:
            One response element per input item, in order
        """
        pass
