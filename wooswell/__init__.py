"""
WooCommerce to Swell Store Migration

A toolkit for migrating store data from a WooCommerce REST API to a Swell
store, translating identifiers between the two platforms.

Supports:
- Categories (create/update, parent wiring, pruning unmatched categories)
- Products (idempotent upsert by slug, custom field mapping)
- Product images (upload from a WordPress uploads backup, attach by slug)
- Customers and orders (batched migration with created/skipped tallies)
- JSON snapshots of fetched collections for fast reruns
"""

__version__ = "0.1.0"
