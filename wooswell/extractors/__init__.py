"""Paginated record extractors for the source and target services."""

from .base import BaseExtractor, Page
from .api_extractor import SwellExtractor, WooCommerceExtractor

__all__ = [
    "BaseExtractor",
    "Page",
    "SwellExtractor",
    "WooCommerceExtractor",
]
