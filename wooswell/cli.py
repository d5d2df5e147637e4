"""Command line interface for WooCommerce to Swell migrations."""

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from .config import MigrationSettings, load_settings
from .exceptions import MigrationAbortedError, MigrationError
from .loaders.base import LoadResult
from .models.migration import FieldMap, PageRange
from .orchestrator import WooSwellMigrator

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _add_page_arguments(parser: argparse.ArgumentParser, batches: bool = False):
    parser.add_argument("--first", type=int, help="First WooCommerce page (default 1)")
    parser.add_argument("--last", type=int, help="Last WooCommerce page (default: last reported page)")
    if batches:
        parser.add_argument(
            "--pages-per-batch", type=int, default=1, help="WooCommerce pages per batch request"
        )


def _add_cache_argument(parser: argparse.ArgumentParser):
    parser.add_argument(
        "--use-cache", action="store_true", help="Load collections from saved snapshots when present"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wooswell",
        description="Migrate a WooCommerce store to Swell"
    )
    parser.add_argument("--config", help="Path to a JSON settings file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--log-file", help="Also write log output to this file")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    categories_parser = subparsers.add_parser("categories", help="Create or update categories")
    _add_cache_argument(categories_parser)

    parents_parser = subparsers.add_parser("category-parents", help="Link categories to their parents")
    _add_cache_argument(parents_parser)

    prune_parser = subparsers.add_parser(
        "prune-categories", help="Delete Swell categories with no WooCommerce counterpart"
    )
    _add_cache_argument(prune_parser)

    products_parser = subparsers.add_parser("products", help="Create or update products")
    _add_cache_argument(products_parser)
    _add_page_arguments(products_parser)
    products_parser.add_argument(
        "--custom-field",
        action="append",
        default=[],
        metavar="SOURCE:TARGET",
        help="Copy an extra WooCommerce field into a Swell field (repeatable)",
    )

    subparsers.add_parser("delete-products", help="Delete every Swell product")

    upload_parser = subparsers.add_parser("upload-images", help="Upload local product images")
    upload_parser.add_argument(
        "--no-cache", dest="use_cache", action="store_false", help="Rebuild the image index from WooCommerce"
    )
    upload_parser.add_argument(
        "--no-skip-duplicates",
        dest="skip_duplicates",
        action="store_false",
        help="Upload files even if the filename already exists in Swell",
    )

    attach_parser = subparsers.add_parser("attach-images", help="Attach uploaded images to products")
    attach_parser.add_argument(
        "--no-cache", dest="use_cache", action="store_false", help="Rebuild the image index from WooCommerce"
    )

    customers_parser = subparsers.add_parser("customers", help="Migrate customers in batches")
    _add_page_arguments(customers_parser, batches=True)

    orders_parser = subparsers.add_parser("orders", help="Migrate orders in batches")
    _add_page_arguments(orders_parser, batches=True)
    _add_cache_argument(orders_parser)

    pages_parser = subparsers.add_parser("pages", help="Show the WooCommerce page count of an endpoint")
    pages_parser.add_argument("endpoint", help="WooCommerce endpoint, e.g. customers")
    pages_parser.add_argument("--per-page", type=int, help="Records per page")

    return parser


def setup_logging(verbose: bool = False, log_file: Optional[str] = None):
    """Configure root logging for a CLI run."""
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        handlers=handlers,
    )


def _page_range(args) -> Optional[PageRange]:
    first = getattr(args, "first", None)
    last = getattr(args, "last", None)
    if first is None and last is None:
        return None
    return PageRange(first=first or 1, last=last)


def _custom_fields(settings: MigrationSettings, patterns: List[str]) -> List[FieldMap]:
    field_maps = [FieldMap.from_dict(item) for item in settings.custom_fields]
    field_maps.extend(FieldMap.parse(pattern) for pattern in patterns)
    return field_maps


def run_command(args, migrator: WooSwellMigrator, settings: MigrationSettings) -> Dict[str, Any]:
    """Run one subcommand and return its summary."""
    command = args.command

    if command == "categories":
        return migrator.create_or_update_categories(use_cache=args.use_cache)
    if command == "category-parents":
        return migrator.add_category_parents(use_cache=args.use_cache)
    if command == "prune-categories":
        return migrator.delete_unmatched_categories(use_cache=args.use_cache)
    if command == "products":
        return migrator.create_or_update_products(
            use_cache=args.use_cache,
            custom_fields=_custom_fields(settings, args.custom_field),
            pages=_page_range(args),
        )
    if command == "delete-products":
        return migrator.delete_all_products()
    if command == "upload-images":
        return migrator.upload_images_from_folder(
            use_cache=args.use_cache, skip_duplicates=args.skip_duplicates
        )
    if command == "attach-images":
        return migrator.attach_images_to_products(use_cache=args.use_cache)
    if command == "customers":
        result = migrator.migrate_customers(pages=_page_range(args), pages_per_batch=args.pages_per_batch)
        return result.to_dict()
    if command == "orders":
        result = migrator.migrate_orders(
            pages=_page_range(args), pages_per_batch=args.pages_per_batch, use_cache=args.use_cache
        )
        return result.to_dict()
    if command == "pages":
        return {"endpoint": args.endpoint, "pages": migrator.get_total_pages(args.endpoint, args.per_page)}

    raise ValueError(f"Unknown command: {command}")


def _print_summary(summary: Dict[str, Any]):
    print(json.dumps(summary, indent=2, default=str))


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    setup_logging(args.verbose, args.log_file)

    try:
        _page_range(args)
        for pattern in getattr(args, "custom_field", []):
            FieldMap.parse(pattern)
    except ValueError as e:
        parser.error(str(e))
    if getattr(args, "pages_per_batch", 1) < 1:
        parser.error("--pages-per-batch must be >= 1")

    try:
        settings = load_settings(args.config)
        migrator = WooSwellMigrator.from_settings(settings)
        summary = run_command(args, migrator, settings)
    except MigrationAbortedError as e:
        logger.error(str(e))
        if isinstance(e.result, LoadResult):
            _print_summary(e.result.to_dict())
        return 1
    except MigrationError as e:
        logger.error(str(e))
        return 1

    _print_summary(summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
