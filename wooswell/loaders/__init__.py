"""Loaders for the target service."""

from .base import BaseLoader, LoadResult
from .swell_loader import SwellLoader

__all__ = [
    "BaseLoader",
    "LoadResult",
    "SwellLoader",
]
