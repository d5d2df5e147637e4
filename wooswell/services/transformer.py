"""Transformation rules for converting WooCommerce records to Swell records."""

import re
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional
from datetime import timezone
from dateutil import parser as date_parser

from ..exceptions import UnmappedStatusError
from ..models.migration import FieldMap

logger = logging.getLogger(__name__)


# WooCommerce order status -> Swell order status
ORDER_STATUS_MAP = {
    "pending": "pending",
    "processing": "pending",
    "on-hold": "hold",
    "completed": "complete",
    "cancelled": "canceled",
    "refunded": "canceled",
    "failed": "canceled",
    "trash": "canceled",
}

PAID_STATUSES = frozenset({"completed", "processing"})

# Marks records created by this tool so Swell can tell them from organic ones
MIGRATE_FLAG = "$migrate"

_LEADING_NUMBER = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)")
_LEADING_INT = re.compile(r"^\s*[+-]?\d+")


def parse_float(value: Any) -> Optional[float]:
    """
    Parse a numeric string into a float.

    Leading numbers are accepted (``"12.5 kg"`` -> 12.5). Empty, missing
    and non-numeric values give None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(value)
    except (TypeError, ValueError):
        match = _LEADING_NUMBER.match(str(value))
        return float(match.group(0)) if match else None


def parse_int(value: Any) -> Optional[int]:
    """Parse the leading integer of a string (``"12345-6789"`` -> 12345)."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    match = _LEADING_INT.match(str(value))
    return int(match.group(0)) if match else None


def parse_date(value: Any, assume_utc: bool = False) -> Optional[str]:
    """Normalise a date string to ISO 8601."""
    if not value:
        return None
    try:
        dt = date_parser.parse(str(value))
    except (ValueError, OverflowError):
        logger.warning(f"Unparseable date: {value!r}")
        return None
    if assume_utc and dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()


def map_order_status(status: str) -> str:
    """
    Translate a WooCommerce order status to a Swell status.

    Raises:
        UnmappedStatusError: If the status is not one of the known statuses
    """
    try:
        return ORDER_STATUS_MAP[status]
    except KeyError:
        raise UnmappedStatusError(status) from None


def _compact(data: Dict[str, Any]) -> Dict[str, Any]:
    """Drop None values, mirroring fields left undefined."""
    return {k: v for k, v in data.items() if v is not None}


def _get_nested_value(data: Mapping[str, Any], path: str) -> Any:
    """Get a nested value using dot notation."""
    value: Any = data
    for part in path.split("."):
        if value is None:
            return None
        if isinstance(value, Mapping):
            value = value.get(part)
        elif isinstance(value, list) and part.isdigit():
            idx = int(part)
            value = value[idx] if idx < len(value) else None
        else:
            return None
    return value


def _set_nested_value(data: Dict[str, Any], path: str, value: Any) -> None:
    """Set a nested value using dot notation."""
    parts = path.split(".")
    current = data
    for part in parts[:-1]:
        if not isinstance(current.get(part), dict):
            current[part] = {}
        current = current[part]
    current[parts[-1]] = value


def get_field(record: Mapping[str, Any], name: str) -> Any:
    """
    Read a field by name from a record.

    Looks at the record itself first (dot paths allowed), then at the
    ``meta_data`` key/value list WooCommerce uses for custom fields.
    """
    value = _get_nested_value(record, name)
    if value is not None:
        return value

    for meta in record.get("meta_data") or []:
        if isinstance(meta, Mapping) and meta.get("key") == name:
            return meta.get("value")
    return None


def apply_custom_fields(
    source: Mapping[str, Any],
    target: Dict[str, Any],
    field_maps: Iterable[FieldMap]
) -> Dict[str, Any]:
    """Copy each mapped source field into the target, overriding existing values."""
    for field_map in field_maps:
        _set_nested_value(target, field_map.target, get_field(source, field_map.source))
    return target


def transform_address(address: Optional[Mapping[str, Any]], include_phone: bool = False) -> Dict[str, Any]:
    """Map a WooCommerce address to a Swell address."""
    address = address or {}
    result = {
        "first_name": address.get("first_name"),
        "last_name": address.get("last_name"),
        "company": address.get("company"),
        "address1": address.get("address_1"),
        "address2": address.get("address_2"),
        "city": address.get("city"),
        "state": address.get("state"),
        "zip": parse_int(address.get("postcode")),
        "country": address.get("country"),
    }
    if include_phone:
        result["phone"] = address.get("phone")
    return _compact(result)


def transform_category(category: Mapping[str, Any]) -> Dict[str, Any]:
    """Map a WooCommerce product category to a Swell category."""
    return {
        "name": category.get("name"),
        "slug": category.get("slug"),
        "description": category.get("description"),
        "active": True,
    }


def _transform_options(attributes: Optional[List[Mapping[str, Any]]]) -> Optional[List[Dict[str, Any]]]:
    if attributes is None:
        return None
    return [
        {
            "name": attribute.get("name"),
            "input_type": "select",
            "values": [{"name": option} for option in attribute.get("options") or []],
        }
        for attribute in attributes
    ]


def transform_product(
    product: Mapping[str, Any],
    category_ids: Mapping[str, str],
    custom_fields: Iterable[FieldMap] = ()
) -> Dict[str, Any]:
    """
    Map a WooCommerce product to a Swell product.

    Args:
        product: WooCommerce product
        category_ids: Swell category ID by category slug
        custom_fields: Extra fields copied verbatim after the built-in ones

    Returns:
        Swell product payload
    """
    categories = product.get("categories") or []
    category_id = category_ids.get(categories[0].get("slug")) if categories else None

    tags = [tag.get("name") for tag in product.get("tags") or []] or None

    new_product = _compact({
        MIGRATE_FLAG: True,
        "name": product.get("name"),
        "sku": product.get("sku"),
        "description": product.get("description"),
        "price": parse_float(product.get("price")) or 0.0,
        "sale_price": parse_float(product.get("sale_price")),
        "category_id": category_id,
        "slug": product.get("slug"),
        "tags": tags,
        "shipment_weight": parse_float(product.get("weight")),
        "active": product.get("status") == "publish",
        "options": _transform_options(product.get("attributes")),
    })

    dimensions = product.get("dimensions") or {}
    if dimensions.get("height"):
        new_product["shipment_dimensions"] = {
            "length": parse_float(dimensions.get("length")),
            "width": parse_float(dimensions.get("width")),
            "height": parse_float(dimensions.get("height")),
        }

    if product.get("stock_quantity") is not None:
        new_product["stock_tracking"] = True
        new_product["stock_level"] = product["stock_quantity"]

    return apply_custom_fields(product, new_product, custom_fields)


def transform_customer(customer: Mapping[str, Any]) -> Dict[str, Any]:
    """Map a WooCommerce customer to a Swell account."""
    billing = customer.get("billing") or {}
    company = billing.get("company")
    account_type = "business" if company else "individual"

    return _compact({
        "email": customer.get("email"),
        "first_name": customer.get("first_name"),
        "last_name": customer.get("last_name"),
        "name": company if account_type == "business" else None,
        "phone": billing.get("phone"),
        "type": account_type,
        "billing": transform_address(billing, include_phone=True),
        "shipping": transform_address(customer.get("shipping")),
    })


def transform_line_item(line_item: Mapping[str, Any], product_ids: Mapping[Any, str]) -> Dict[str, Any]:
    """Map an order line item, resolving the product to its Swell ID (None if unknown)."""
    return {
        "product_id": product_ids.get(line_item.get("product_id")),
        "price": parse_float(line_item.get("price")),
        "quantity": line_item.get("quantity"),
        "price_total": parse_float(line_item.get("total")) or 0.0,
        "tax_total": parse_float(line_item.get("total_tax")) or 0.0,
    }


def transform_order(
    order: Mapping[str, Any],
    product_ids: Mapping[Any, str],
    account_ids: Mapping[Any, str]
) -> Dict[str, Any]:
    """
    Map a WooCommerce order to a Swell order.

    The subtotal is derived as grand total minus tax and shipping. Unpaid
    orders carry a negative payment balance equal to the grand total (the
    customer owes that amount).

    Args:
        order: WooCommerce order
        product_ids: Swell product ID by WooCommerce product ID
        account_ids: Swell account ID by WooCommerce customer ID

    Returns:
        Swell order payload

    Raises:
        UnmappedStatusError: If the order status is unknown
    """
    status = order.get("status")
    swell_status = map_order_status(status)

    grand_total = parse_float(order.get("total")) or 0.0
    tax_total = parse_float(order.get("total_tax")) or 0.0
    shipping_total = parse_float(order.get("shipping_total")) or 0.0
    shipping_tax = parse_float(order.get("shipping_tax")) or 0.0

    paid = status in PAID_STATUSES
    completed = status == "completed"

    date_created = parse_date(order.get("date_created_gmt"), assume_utc=True) or parse_date(
        order.get("date_created")
    )

    return _compact({
        MIGRATE_FLAG: True,
        "number": parse_int(order.get("number")),
        "date_created": date_created,
        "status": swell_status,
        "account_id": account_ids.get(order.get("customer_id")),
        "items": [transform_line_item(item, product_ids) for item in order.get("line_items") or []],
        "billing": transform_address(order.get("billing"), include_phone=True),
        "shipping": transform_address(order.get("shipping")),
        "tax_total": tax_total,
        "sub_total": grand_total - tax_total - shipping_total,
        "grand_total": grand_total,
        "shipment_total": shipping_total,
        "shipment_price": shipping_total - shipping_tax,
        "shipment_tax_included_total": shipping_total,
        "shipment_delivery": bool(order.get("shipping_lines")),
        "paid": paid,
        "payment_marked": paid,
        "payment_total": grand_total if paid else 0,
        "payment_balance": 0 if paid else -grand_total,
        "delivery_marked": completed,
        "delivered": completed,
    })
