"""Service layer for the migration toolkit."""

from .batch import BatchMigrator
from .images import ImageLinker, LocalImageStore, build_image_index
from .snapshots import SnapshotStore
from .translation import build_lookup, build_translation_map

__all__ = [
    "BatchMigrator",
    "ImageLinker",
    "LocalImageStore",
    "build_image_index",
    "SnapshotStore",
    "build_lookup",
    "build_translation_map",
]
