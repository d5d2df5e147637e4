"""Tests for the Swell REST client."""

import json
from unittest.mock import Mock

import pytest
import requests

from wooswell.exceptions import RetrievalError, WriteError
from wooswell.loaders.swell_loader import SwellLoader, encode_query
from wooswell.models.record import BatchWriteItem


def _response(status_code=200, body=None):
    response = Mock()
    response.status_code = status_code
    response.text = json.dumps(body) if body is not None else ""
    response.json.return_value = body
    return response


@pytest.mark.unit
class TestEncodeQuery:
    def test_nested_where(self) -> None:
        assert encode_query({"where": {"slug": "shirt"}, "limit": 1}) == {"where[slug]": "shirt", "limit": 1}

    def test_booleans_lists_and_none(self) -> None:
        params = encode_query({"active": True, "fields": ["id", "slug"], "search": None})

        assert params == {"active": "true", "fields": "id,slug"}

    def test_empty(self) -> None:
        assert encode_query(None) == {}


@pytest.mark.unit
class TestSwellLoader:
    def setup_method(self) -> None:
        self.session: Mock = Mock()
        self.session.headers = {}
        self.loader = SwellLoader("store-id", "sk_secret", session=self.session)

    def test_auth_and_headers(self) -> None:
        assert self.session.auth == ("store-id", "sk_secret")
        assert self.session.headers["Content-Type"] == "application/json"

    def test_get_encodes_query(self) -> None:
        self.session.get.return_value = _response(body={"count": 0, "results": []})

        result = self.loader.get("/products", {"where": {"slug": "shirt"}, "limit": 1})

        assert result == {"count": 0, "results": []}
        self.session.get.assert_called_once_with(
            "https://api.swell.store/products",
            params={"where[slug]": "shirt", "limit": 1},
            timeout=60.0,
        )

    def test_get_http_error(self) -> None:
        response = _response(status_code=404)
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(
            response=Mock(status_code=404, text="Not found")
        )
        self.session.get.return_value = response

        with pytest.raises(RetrievalError, match="404"):
            self.loader.get("/products/missing")

    def test_post_returns_record(self) -> None:
        self.session.request.return_value = _response(body={"id": "abc", "name": "Shirt"})

        assert self.loader.post("/products", {"name": "Shirt"}) == {"id": "abc", "name": "Shirt"}
        self.session.request.assert_called_once_with(
            "POST", "https://api.swell.store/products", json={"name": "Shirt"}, timeout=60.0
        )

    def test_rejected_write_returns_error_shape(self) -> None:
        self.session.request.return_value = _response(400, {"error": {"message": "Invalid"}})

        assert self.loader.put("/products/abc", {"price": "x"}) == {"error": {"message": "Invalid"}}

    def test_rejected_write_without_error_key_is_wrapped(self) -> None:
        self.session.request.return_value = _response(422, {"errors": {"email": "exists"}})

        response = self.loader.post("/accounts", {"email": "a@example.com"})

        assert response == {"error": {"errors": {"email": "exists"}}}

    def test_server_error_raises(self) -> None:
        self.session.request.return_value = _response(502, {"message": "Bad gateway"})

        with pytest.raises(WriteError, match="502"):
            self.loader.delete("/categories/abc")

    def test_transport_error_raises(self) -> None:
        self.session.request.side_effect = requests.exceptions.Timeout("timed out")

        with pytest.raises(WriteError, match="timed out"):
            self.loader.post("/products", {})


@pytest.mark.unit
class TestSwellBatch:
    def setup_method(self) -> None:
        self.session: Mock = Mock()
        self.session.headers = {}
        self.loader = SwellLoader("store-id", "sk_secret", session=self.session)
        self.items = [
            BatchWriteItem(url="/accounts", data={"email": "a@example.com"}),
            BatchWriteItem(url="/accounts", data={"email": "b@example.com"}),
        ]

    def test_empty_batch_sends_nothing(self) -> None:
        assert self.loader.batch([]) == []
        self.session.request.assert_not_called()

    def test_batch_payload(self) -> None:
        self.session.request.return_value = _response(body=[{"id": "1"}, {"error": "duplicate"}])

        responses = self.loader.batch(self.items)

        assert responses == [{"id": "1"}, {"error": "duplicate"}]
        _, kwargs = self.session.request.call_args
        assert kwargs["json"] == [
            {"url": "/accounts", "method": "post", "data": {"email": "a@example.com"}},
            {"url": "/accounts", "method": "post", "data": {"email": "b@example.com"}},
        ]

    def test_length_mismatch_raises(self) -> None:
        self.session.request.return_value = _response(body=[{"id": "1"}])

        with pytest.raises(WriteError, match="1 elements for 2"):
            self.loader.batch(self.items)

    def test_rejected_batch_raises(self) -> None:
        self.session.request.return_value = _response(400, {"error": {"message": "Invalid batch"}})

        with pytest.raises(WriteError):
            self.loader.batch(self.items)
