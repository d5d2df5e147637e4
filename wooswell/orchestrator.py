"""Migration orchestrator - coordinates WooCommerce to Swell migrations."""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from .config import MigrationSettings
from .exceptions import ConfigurationError, MigrationAbortedError, MigrationError
from .extractors.api_extractor import SwellExtractor, WooCommerceExtractor
from .extractors.base import BaseExtractor
from .loaders.base import BaseLoader, LoadResult
from .loaders.swell_loader import SwellLoader
from .models.migration import FieldMap, MigrationContext, PageRange
from .models.record import BatchWriteItem, ImageDetail, RecordAction, UpsertResult, error_message
from .services.batch import BatchMigrator
from .services.images import (
    ImageLinker,
    LocalImageStore,
    build_image_index,
    deserialize_image_index,
    serialize_image_index,
)
from .services.snapshots import SnapshotStore
from .services.transformer import (
    transform_category,
    transform_customer,
    transform_order,
    transform_product,
)
from .services.translation import build_lookup, build_translation_map

logger = logging.getLogger(__name__)


class WooSwellMigrator:
    """
    Orchestrates WooCommerce to Swell migrations.

    Each public method is one operator-invoked operation. Collections
    needed by an operation are fetched (or loaded from snapshots) for that
    call only and passed around in a MigrationContext; nothing fetched is
    kept on the instance between calls.

    Recommended order: categories, category parents, products, images,
    customers, orders.
    """

    WOO_CATEGORIES = "products/categories"

    def __init__(
        self,
        woo: BaseExtractor,
        swell: BaseLoader,
        snapshots: SnapshotStore,
        swell_reader: Optional[BaseExtractor] = None,
        images_dir: Optional[str] = None
    ):
        """
        Initialize the migrator.

        Args:
            woo: WooCommerce page fetcher
            swell: Swell client used for reads and writes
            snapshots: Snapshot store for fetched collections
            swell_reader: Swell page fetcher (defaults to one over ``swell``)
            images_dir: Local image backup directory
        """
        self.woo = woo
        self.swell = swell
        self.snapshots = snapshots
        self.swell_reader = swell_reader or SwellExtractor(swell)
        self.images_dir = images_dir

    @classmethod
    def from_settings(cls, settings: MigrationSettings) -> "WooSwellMigrator":
        """Build a migrator with real API clients from validated settings."""
        woo = WooCommerceExtractor(
            url=settings.woo.url,
            consumer_key=settings.woo.consumer_key,
            consumer_secret=settings.woo.consumer_secret,
            version=settings.woo.version,
            timeout=settings.woo.timeout,
            per_page=settings.per_page,
            rate_limit=settings.rate_limit,
            max_retries=settings.max_retries,
        )
        swell = SwellLoader(
            store_id=settings.swell.store_id,
            secret_key=settings.swell.secret_key,
            base_url=settings.swell.base_url,
            timeout=settings.swell.timeout,
            max_retries=settings.max_retries,
        )
        swell_reader = SwellExtractor(swell, per_page=settings.per_page, rate_limit=settings.rate_limit)

        return cls(
            woo=woo,
            swell=swell,
            snapshots=SnapshotStore(settings.paths.data),
            swell_reader=swell_reader,
            images_dir=settings.paths.images,
        )

    # Collection retrieval

    def get_total_pages(self, endpoint: str, per_page: Optional[int] = None) -> int:
        """Get the total number of WooCommerce pages for an endpoint."""
        return self.woo.get_total_pages(endpoint, per_page)

    def get_woo_products(self, use_cache: bool = False, pages: Optional[PageRange] = None) -> List[Dict[str, Any]]:
        return self.snapshots.load_or_fetch(
            "woo_products", lambda: self.woo.get_all_pages("products", pages=pages), use_cache, pages
        )

    def get_woo_customers(self, use_cache: bool = False, pages: Optional[PageRange] = None) -> List[Dict[str, Any]]:
        return self.snapshots.load_or_fetch(
            "woo_customers", lambda: self.woo.get_all_pages("customers", pages=pages), use_cache, pages
        )

    def get_woo_categories(self, use_cache: bool = False) -> List[Dict[str, Any]]:
        return self.snapshots.load_or_fetch(
            "woo_categories", lambda: self.woo.get_all_pages(self.WOO_CATEGORIES), use_cache
        )

    def get_swell_products(self, use_cache: bool = False) -> List[Dict[str, Any]]:
        return self.snapshots.load_or_fetch(
            "swell_products", lambda: self.swell_reader.get_all_pages("/products"), use_cache
        )

    def get_swell_categories(self, use_cache: bool = False) -> List[Dict[str, Any]]:
        return self.snapshots.load_or_fetch(
            "swell_categories", lambda: self.swell_reader.get_all_pages("/categories"), use_cache
        )

    def get_swell_accounts(self, use_cache: bool = False) -> List[Dict[str, Any]]:
        return self.snapshots.load_or_fetch(
            "swell_accounts", lambda: self.swell_reader.get_all_pages("/accounts"), use_cache
        )

    def get_swell_files(self, use_cache: bool = False) -> List[Dict[str, Any]]:
        return self.snapshots.load_or_fetch(
            "swell_files", lambda: self.swell_reader.get_all_pages("/:files"), use_cache
        )

    def get_image_index(self, use_cache: bool = True) -> Dict[str, List[ImageDetail]]:
        """
        Get the product slug -> images index of WooCommerce products.

        Built from the WooCommerce products and saved so the attach phase
        can run later without calling WooCommerce again.
        """
        data = self.snapshots.load_or_fetch(
            "woo_images",
            lambda: serialize_image_index(build_image_index(self.get_woo_products(use_cache))),
            use_cache,
        )
        logger.info(f"Image details for {len(data)} products")
        return deserialize_image_index(data)

    def _aborted(self, result: LoadResult, error: MigrationError) -> MigrationAbortedError:
        """Close a partial tally and wrap the failure that stopped it."""
        result.completed_at = datetime.utcnow()
        result.errors.append({"error": str(error)})
        logger.error(f"{result.entity} aborted: {error}")
        return MigrationAbortedError(
            f"{result.entity} aborted after {result.total} records: {error}", result, error
        )

    # Categories

    def create_or_update_categories(self, use_cache: bool = False) -> Dict[str, int]:
        """
        Create every WooCommerce category in Swell, or update it if a Swell
        category with the same slug exists. Never deletes.

        Returns:
            Counts of created and updated categories

        Raises:
            MigrationAbortedError: If a write fails outright; carries the
                tally so far
        """
        result = LoadResult(entity="categories", started_at=datetime.utcnow())
        context = MigrationContext(
            woo_categories=self.get_woo_categories(use_cache),
            swell_categories=self.get_swell_categories(use_cache),
        )
        swell_ids = build_lookup(context.swell_categories, "slug", "id")

        try:
            for category in context.woo_categories:
                payload = transform_category(category)
                slug = category.get("slug")

                if slug in swell_ids:
                    response = self.swell.put(f"/categories/{swell_ids[slug]}", payload)
                    action = RecordAction.UPDATED
                else:
                    response = self.swell.post("/categories", payload)
                    action = RecordAction.CREATED

                message = error_message(response)
                if message:
                    result.errors.append({"slug": slug, "error": message})
                    logger.error(f"Category {slug} rejected: {message}")
                    continue

                result.record(action)
                logger.debug(f"Category {slug} {action.value}")
        except MigrationError as e:
            raise self._aborted(result, e) from e

        result.completed_at = datetime.utcnow()
        logger.info(f"Categories: {result.created} created, {result.updated} updated")
        return result.counts("created", "updated")

    def add_category_parents(self, use_cache: bool = False) -> Dict[str, int]:
        """
        Link Swell categories to their parents.

        Run only after every category exists in Swell. The Swell categories
        are always fetched fresh since they must include the ones just
        created. Categories whose parent cannot be resolved stay unlinked.

        Returns:
            Count of categories given a parent
        """
        result = LoadResult(entity="category parents", started_at=datetime.utcnow())

        logger.info("Building category lists")
        context = MigrationContext(
            woo_categories=self.get_woo_categories(use_cache),
            swell_categories=self.get_swell_categories(use_cache=False),
        )

        woo_slug_by_id = build_lookup(context.woo_categories, "id", "slug")
        swell_id_by_slug = build_lookup(context.swell_categories, "slug", "id")

        logger.info("Adding parents to categories")
        try:
            for category in context.woo_categories:
                parent_id = category.get("parent")
                if not parent_id:
                    continue

                slug = category.get("slug")
                swell_parent_id = swell_id_by_slug.get(woo_slug_by_id.get(parent_id))
                swell_id = swell_id_by_slug.get(slug)
                if not swell_parent_id or not swell_id:
                    continue

                response = self.swell.put(f"/categories/{swell_id}", {"parent_id": swell_parent_id})
                message = error_message(response)
                if message:
                    result.errors.append({"slug": slug, "error": message})
                    logger.error(f"Parent of category {slug} rejected: {message}")
                    continue

                result.record(RecordAction.UPDATED)
                logger.debug(f"Parent added to {slug}")
        except MigrationError as e:
            raise self._aborted(result, e) from e

        result.completed_at = datetime.utcnow()
        logger.info(f"{result.updated} category parents added")
        return {"parents": result.updated}

    def delete_unmatched_categories(self, use_cache: bool = False) -> Dict[str, int]:
        """
        Delete Swell categories whose slug doesn't exist in WooCommerce.

        Useful for clearing out demo categories. Matching is by slug only.
        This is destructive. Deletions Swell refuses are logged and not
        counted.

        Returns:
            Count of deleted categories
        """
        logger.info("Deleting categories that don't match WooCommerce")
        result = LoadResult(entity="category deletions", started_at=datetime.utcnow())

        context = MigrationContext(
            woo_categories=self.get_woo_categories(use_cache),
            swell_categories=self.get_swell_categories(use_cache=False),
        )
        woo_slugs = {category.get("slug") for category in context.woo_categories}

        try:
            for category in context.swell_categories:
                slug = category.get("slug")
                if slug in woo_slugs:
                    continue

                response = self.swell.delete(f"/categories/{category['id']}")
                message = error_message(response)
                if message:
                    result.errors.append({"slug": slug, "error": message})
                    logger.error(f"Category {slug} not deleted: {message}")
                    continue

                result.record(RecordAction.DELETED)
                logger.debug(f"Category {slug} deleted")
        except MigrationError as e:
            raise self._aborted(result, e) from e

        result.completed_at = datetime.utcnow()
        logger.info(f"{result.deleted} categories deleted")
        return result.counts("deleted")

    # Products

    def create_or_update_product(
        self,
        product: Dict[str, Any],
        category_ids: Dict[str, str],
        custom_fields: Iterable[FieldMap] = ()
    ) -> UpsertResult:
        """
        Create a Swell product, or overwrite the one with the same slug.

        Products without a slug cannot be matched and are skipped.
        """
        slug = product.get("slug")
        if not slug:
            logger.warning(f"Woo product {product.get('name')!r} doesn't contain a slug, cannot sync")
            return UpsertResult(action=RecordAction.SKIPPED)

        payload = transform_product(product, category_ids, custom_fields)
        existing = self.swell.get("/products", {"where": {"slug": slug}, "limit": 1}) or {}

        if not existing.get("count"):
            response = self.swell.post("/products", payload)
            action = RecordAction.CREATED
        else:
            response = self.swell.put(f"/products/{existing['results'][0]['id']}", {"$set": payload})
            action = RecordAction.UPDATED

        message = error_message(response)
        if message:
            logger.error(f"Product {slug} rejected: {message}")
            return UpsertResult(action=RecordAction.SKIPPED, record=response, slug=slug)

        return UpsertResult(action=action, record=response, slug=slug)

    def create_or_update_products(
        self,
        use_cache: bool = False,
        custom_fields: Iterable[FieldMap] = (),
        pages: Optional[PageRange] = None
    ) -> Dict[str, int]:
        """
        Create or update every WooCommerce product in Swell.

        Import categories first so products can be assigned to them.

        Args:
            use_cache: Load products and categories from snapshots when
                present; ignored for the products when ``pages`` is given
            custom_fields: Extra WooCommerce -> Swell field copies
            pages: Optional WooCommerce page range

        Returns:
            Counts of created, updated and skipped products

        Raises:
            MigrationAbortedError: If a lookup or write fails outright;
                carries the tally so far
        """
        result = LoadResult(entity="products", started_at=datetime.utcnow())
        custom_fields = list(custom_fields)

        context = MigrationContext(
            woo_products=self.get_woo_products(use_cache, pages),
            swell_categories=self.get_swell_categories(use_cache),
        )
        category_ids = build_lookup(context.swell_categories, "slug", "id")

        total = len(context.woo_products)
        try:
            for index, product in enumerate(context.woo_products, 1):
                upsert = self.create_or_update_product(product, category_ids, custom_fields)
                result.record(upsert.action)
                logger.debug(f"Product {index}/{total} {product.get('name')} {upsert.action.value}")
        except MigrationError as e:
            raise self._aborted(result, e) from e

        result.completed_at = datetime.utcnow()
        logger.info(
            f"Products: {result.created} created, {result.updated} updated, {result.skipped} skipped"
        )
        return result.counts("created", "updated", "skipped")

    def delete_all_products(self, batch_size: int = 100) -> Dict[str, int]:
        """Delete every Swell product using batch requests."""
        result = LoadResult(entity="product deletions", started_at=datetime.utcnow())
        products = self.swell_reader.get_all_pages("/products")

        try:
            for start in range(0, len(products), batch_size):
                chunk = products[start:start + batch_size]
                items = [BatchWriteItem(url=f"/products/{p['id']}", method="delete") for p in chunk]
                for response in self.swell.batch(items):
                    message = error_message(response)
                    if message:
                        result.errors.append({"error": message})
                        continue
                    result.record(RecordAction.DELETED)
        except MigrationError as e:
            raise self._aborted(result, e) from e

        result.completed_at = datetime.utcnow()
        logger.info(f"Deleted {result.deleted} products")
        return result.counts("deleted")

    # Images

    def _image_linker(self, use_cache: bool, with_store: bool) -> ImageLinker:
        store = None
        if with_store:
            if not self.images_dir:
                raise ConfigurationError("Image directory is required (paths.images / IMAGES_DIR)")
            store = LocalImageStore(self.images_dir)

        return ImageLinker(
            loader=self.swell,
            store=store,
            get_image_index=lambda: self.get_image_index(use_cache),
            get_swell_files=lambda: self.get_swell_files(use_cache=False),
        )

    def upload_images_from_folder(self, use_cache: bool = True, skip_duplicates: bool = True) -> Dict[str, int]:
        """
        Upload local image files that belong to WooCommerce products.

        Args:
            use_cache: Use the saved image index / products if present
            skip_duplicates: Skip filenames already uploaded to Swell
        """
        linker = self._image_linker(use_cache, with_store=True)
        return linker.upload_images_from_folder(skip_duplicates=skip_duplicates)

    def attach_images_to_products(self, use_cache: bool = True) -> Dict[str, int]:
        """
        Attach uploaded files to Swell products with matching slugs.

        Run after upload_images_from_folder(). Swell files are always
        fetched fresh so newly uploaded files are seen.
        """
        return self._image_linker(use_cache, with_store=False).attach_images_to_products()

    # Customers and orders

    def migrate_customers(self, pages: Optional[PageRange] = None, pages_per_batch: int = 1) -> LoadResult:
        """
        Migrate customers in batches.

        Duplicates (by email) are rejected by Swell and counted as skipped.

        Args:
            pages: Optional WooCommerce page range; ``PageRange(first=10)``
                starts at page 10 and continues to the end
            pages_per_batch: WooCommerce pages per batch request. Swell
                recommends fewer than 1,000 records per batch.
        """
        migrator = BatchMigrator(self.woo, self.swell)
        return migrator.run(
            entity="customers",
            endpoint="customers",
            target_url="/accounts",
            transform=transform_customer,
            pages=pages,
            pages_per_batch=pages_per_batch,
        )

    def migrate_orders(
        self,
        pages: Optional[PageRange] = None,
        pages_per_batch: int = 1,
        use_cache: bool = False
    ) -> LoadResult:
        """
        Migrate orders in batches.

        Migrate products and customers first: line items and order
        ownership are resolved through product and account translation
        tables built before any order is written.

        Args:
            pages: Optional WooCommerce page range
            pages_per_batch: WooCommerce pages per batch request
            use_cache: Build the translation tables from snapshots
        """
        logger.info("Building customer and product translation tables")
        context = MigrationContext(
            woo_products=self.get_woo_products(use_cache),
            swell_products=self.get_swell_products(use_cache),
            woo_customers=self.get_woo_customers(use_cache),
            swell_accounts=self.get_swell_accounts(use_cache),
        )
        product_ids = build_translation_map(context.woo_products, context.swell_products, "slug")
        account_ids = build_translation_map(context.woo_customers, context.swell_accounts, "email")
        logger.info(f"Resolved {len(product_ids)} products and {len(account_ids)} accounts")

        migrator = BatchMigrator(self.woo, self.swell)
        return migrator.run(
            entity="orders",
            endpoint="orders",
            target_url="/orders",
            transform=lambda order: transform_order(order, product_ids, account_ids),
            pages=pages,
            pages_per_batch=pages_per_batch,
        )
