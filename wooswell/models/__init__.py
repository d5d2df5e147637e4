"""Data models for the migration application."""

from .migration import (
    FieldMap,
    MigrationContext,
    MigrationStatus,
    PageRange,
)
from .record import (
    BatchWriteItem,
    ImageDetail,
    LocalFile,
    RecordAction,
    UpsertResult,
)

__all__ = [
    "FieldMap",
    "MigrationContext",
    "MigrationStatus",
    "PageRange",
    "BatchWriteItem",
    "ImageDetail",
    "LocalFile",
    "RecordAction",
    "UpsertResult",
]
