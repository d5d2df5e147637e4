"""JSON snapshots of fetched entity collections."""

import json
import logging
from pathlib import Path
from typing import Any, Callable, Optional

from ..exceptions import ConfigurationError
from ..models.migration import PageRange

logger = logging.getLogger(__name__)


SNAPSHOT_FILES = {
    "woo_products": "woo-products.json",
    "woo_customers": "woo-customers.json",
    "woo_categories": "woo-categories.json",
    "woo_images": "woo-images.json",
    "swell_products": "swell-products.json",
    "swell_categories": "swell-categories.json",
    "swell_accounts": "swell-accounts.json",
    "swell_files": "swell-files.json",
}


class SnapshotStore:
    """
    Read-through cache of full entity collections on disk.

    Each kind has a fixed file under the data directory. Files are
    overwritten on every fresh fetch and never merged.
    """

    def __init__(self, data_dir: str):
        self.data_dir = Path(data_dir)

    def path(self, kind: str) -> Path:
        """Get the snapshot file path for a kind."""
        filename = SNAPSHOT_FILES.get(kind)
        if not filename:
            raise ConfigurationError(f"Unknown snapshot kind: {kind}")
        return self.data_dir / filename

    def exists(self, kind: str) -> bool:
        return self.path(kind).is_file()

    def read(self, kind: str) -> Any:
        path = self.path(kind)
        with open(path, encoding="utf-8") as f:
            return json.load(f)

    def write(self, kind: str, data: Any) -> None:
        path = self.path(kind)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=1)

    def load_or_fetch(
        self,
        kind: str,
        fetch: Callable[[], Any],
        use_cache: bool = False,
        pages: Optional[PageRange] = None
    ) -> Any:
        """
        Load a collection from its snapshot or fetch and persist it.

        A page range always bypasses the snapshot: a partial collection is
        neither served from nor written over a full one.

        Args:
            kind: Snapshot kind, e.g. ``woo_products``
            fetch: Callable returning the full (or page-restricted) collection
            use_cache: Read the snapshot if it exists
            pages: Page range the fetch is restricted to, if any

        Returns:
            The collection
        """
        partial = pages is not None

        if use_cache and not partial and self.exists(kind):
            data = self.read(kind)
            logger.info(f"{len(data)} {kind} records loaded from {self.path(kind)}")
            return data

        data = fetch()

        if not partial:
            self.write(kind, data)
            logger.debug(f"{kind} snapshot written to {self.path(kind)}")

        return data
