"""
Pytest configuration and fixtures.

Provides in-memory stand-ins for both platforms so migrations can run end to
end without network access:
- FakeWooExtractor: paged WooCommerce reads over plain lists
- FakeSwell: a Swell store with collections, where-filters, $set updates
  and a /:batch endpoint
"""

import copy
import math
from typing import Any, Dict, List, Optional

import pytest

from wooswell.extractors.base import BaseExtractor, Page
from wooswell.loaders.base import BaseLoader
from wooswell.models.record import BatchWriteItem
from wooswell.services.snapshots import SnapshotStore


class FakeWooExtractor(BaseExtractor):
    """Serves fixed collections page by page, recording every page request."""

    service = "woo"

    def __init__(self, collections: Dict[str, List[Dict[str, Any]]], per_page: int = 2):
        super().__init__(per_page=per_page)
        self.collections = collections
        self.calls: List[tuple] = []
        self.fail_pages: set = set()

    def fetch_page(
        self,
        endpoint: str,
        page: int,
        per_page: int,
        query: Optional[Dict[str, Any]] = None
    ) -> Page:
        self.calls.append((endpoint, page))
        if (endpoint, page) in self.fail_pages:
            raise RuntimeError(f"connection reset on {endpoint} page {page}")

        records = self.collections.get(endpoint, [])
        start = (page - 1) * per_page
        return Page(
            records=copy.deepcopy(records[start:start + per_page]),
            total_pages=math.ceil(len(records) / per_page),
        )


class FakeSwell(BaseLoader):
    """In-memory Swell store."""

    def __init__(self, unique: Optional[Dict[str, str]] = None):
        super().__init__("swell")
        self.collections: Dict[str, List[Dict[str, Any]]] = {}
        self.unique = unique or {}
        self.requests: List[tuple] = []
        self._next_id = 0

    def _split(self, endpoint: str):
        parts = endpoint.strip("/").split("/")
        return parts[0], parts[1] if len(parts) > 1 else None

    def _find(self, collection: str, record_id: str) -> Optional[Dict[str, Any]]:
        for record in self.collections.get(collection, []):
            if record["id"] == record_id:
                return record
        return None

    def seed(self, collection: str, *records: Dict[str, Any]) -> List[Dict[str, Any]]:
        created = [self.post(f"/{collection}", record) for record in records]
        self.requests.clear()
        return created

    def get(self, endpoint: str, query: Optional[Dict[str, Any]] = None) -> Any:
        self.requests.append(("get", endpoint, query))
        collection, record_id = self._split(endpoint)
        if record_id:
            return copy.deepcopy(self._find(collection, record_id))

        query = query or {}
        where = query.get("where") or {}
        results = [
            record for record in self.collections.get(collection, [])
            if all(record.get(key) == value for key, value in where.items())
        ]
        limit = query.get("limit", 25)
        page = query.get("page", 1)
        start = (page - 1) * limit
        return {"count": len(results), "results": copy.deepcopy(results[start:start + limit])}

    def post(self, endpoint: str, data: Dict[str, Any]) -> Dict[str, Any]:
        self.requests.append(("post", endpoint, data))
        collection, _ = self._split(endpoint)
        records = self.collections.setdefault(collection, [])

        unique_field = self.unique.get(collection)
        if unique_field and any(r.get(unique_field) == data.get(unique_field) for r in records):
            return {"error": {"message": f"{unique_field} already exists"}}

        self._next_id += 1
        record = dict(copy.deepcopy(data), id=f"{collection}-{self._next_id}")
        records.append(record)
        return copy.deepcopy(record)

    def put(self, endpoint: str, data: Dict[str, Any]) -> Dict[str, Any]:
        self.requests.append(("put", endpoint, data))
        collection, record_id = self._split(endpoint)
        record = self._find(collection, record_id)
        if record is None:
            return {"error": {"message": "Record not found"}}
        record.update(copy.deepcopy(data.get("$set", data)))
        return copy.deepcopy(record)

    def delete(self, endpoint: str) -> Dict[str, Any]:
        self.requests.append(("delete", endpoint, None))
        collection, record_id = self._split(endpoint)
        record = self._find(collection, record_id)
        if record is None:
            return {"error": {"message": "Record not found"}}
        self.collections[collection].remove(record)
        return record

    def batch(self, items: List[BatchWriteItem]) -> List[Any]:
        self.requests.append(("batch", "/:batch", [item.to_dict() for item in items]))
        responses = []
        for item in items:
            if item.method == "post":
                responses.append(self.post(item.url, item.data))
            elif item.method == "put":
                responses.append(self.put(item.url, item.data))
            elif item.method == "delete":
                responses.append(self.delete(item.url))
        return responses

    def records(self, collection: str) -> List[Dict[str, Any]]:
        return self.collections.get(collection, [])


@pytest.fixture
def swell() -> FakeSwell:
    return FakeSwell(unique={"accounts": "email"})


@pytest.fixture
def snapshots(tmp_path) -> SnapshotStore:
    return SnapshotStore(str(tmp_path / "data"))


def make_customer(index: int, company: str = "") -> Dict[str, Any]:
    return {
        "id": index,
        "email": f"customer{index}@example.com",
        "first_name": f"First{index}",
        "last_name": f"Last{index}",
        "billing": {
            "first_name": f"First{index}",
            "last_name": f"Last{index}",
            "company": company,
            "address_1": f"{index} Main St",
            "city": "Springfield",
            "postcode": "12345",
            "country": "US",
            "phone": "555-0100",
        },
        "shipping": {
            "address_1": f"{index} Main St",
            "city": "Springfield",
            "postcode": "12345",
            "country": "US",
        },
    }


def make_product(index: int, slug: Optional[str] = None, **fields: Any) -> Dict[str, Any]:
    product = {
        "id": 100 + index,
        "name": f"Product {index}",
        "slug": slug if slug is not None else f"product-{index}",
        "sku": f"SKU-{index}",
        "description": f"Description {index}",
        "price": "10.00",
        "sale_price": "",
        "status": "publish",
        "weight": "1.5",
        "categories": [],
        "tags": [],
        "attributes": [],
        "dimensions": {"length": "", "width": "", "height": ""},
        "stock_quantity": None,
        "images": [],
    }
    product.update(fields)
    return product


def make_order(index: int, status: str = "completed", **fields: Any) -> Dict[str, Any]:
    order = {
        "id": 1000 + index,
        "number": str(1000 + index),
        "status": status,
        "customer_id": 0,
        "date_created": "2021-03-04T05:06:07",
        "date_created_gmt": "2021-03-04T10:06:07",
        "total": "115.00",
        "total_tax": "10.00",
        "shipping_total": "5.00",
        "shipping_tax": "0.50",
        "billing": {"first_name": "Ann", "address_1": "1 Main St", "postcode": "12345", "phone": "555"},
        "shipping": {"first_name": "Ann", "address_1": "1 Main St", "postcode": "12345"},
        "line_items": [],
        "shipping_lines": [{"method_id": "flat_rate"}],
    }
    order.update(fields)
    return order
