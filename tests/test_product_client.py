from decimal import Decimal

import pytest
import requests

from app.services import product_client
from app.services.catalog import DbCatalog, build_catalog
from app.services.product_client import ProductClient


class FakeResponse:
    def __init__(self, payload, status=200):
        self.payload = payload
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload


def test_batched_lookup(monkeypatch):
    seen = {}

    def fake_get(url, params=None, timeout=None):
        seen["url"] = url
        seen["params"] = params
        return FakeResponse([{"id": 1, "name": "Keyboard", "price": "19.99"}])

    monkeypatch.setattr(product_client.requests, "get", fake_get)

    products = ProductClient(base_url="http://catalog:8001/").get_products_by_ids([3, 1, 1])

    assert seen["url"] == "http://catalog:8001/products"
    assert seen["params"] == {"ids": "1,3"}
    #unknown id 3 is simply missing
    assert list(products) == [1]
    assert products[1].price == Decimal("19.99")


def test_empty_lookup_skips_http(monkeypatch):
    def fail(*args, **kwargs):
        raise AssertionError("no request expected")

    monkeypatch.setattr(product_client.requests, "get", fail)

    assert ProductClient(base_url="http://catalog").get_products_by_ids([]) == {}


def test_transient_failure_is_retried(monkeypatch):
    attempts = []

    def flaky(url, params=None, timeout=None):
        attempts.append(url)
        if len(attempts) < 2:
            raise requests.ConnectionError("refused")
        return FakeResponse([])

    monkeypatch.setattr(product_client.requests, "get", flaky)

    assert ProductClient(base_url="http://catalog").get_products_by_ids([1]) == {}
    assert len(attempts) == 2


def test_build_catalog(db):
    assert isinstance(build_catalog(db, "db"), DbCatalog)
    assert isinstance(build_catalog(db, "http"), ProductClient)
    with pytest.raises(ValueError):
        build_catalog(db, "ftp")
