"""
Tests for the FastAPI surface in `api/`.

The ledger service is replaced through a dependency override with one backed by
the in-memory remote store and tmp-path files.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from api.main import app
from services.ledger_service import get_ledger_service


@pytest.fixture
def client(service, seeded):
    app.dependency_overrides[get_ledger_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_replace_and_unreplace_round_trip(client, store) -> None:
    response = client.post("/api/v1/products/10/variants/1/replace", json={"count": 2})
    assert response.status_code == 200
    body = response.json()
    assert body["removed_items"] == ["A", "B"]
    assert body["new_stock"] == 2
    assert body["cache_updated"] is True

    response = client.post("/api/v1/unreplace", json={})
    assert response.status_code == 200
    body = response.json()
    assert body["total_restored"] == 2
    assert body["restored"][0]["variant_name"] == "Standard"
    assert store.pool("10", "1") == ["A", "B", "C", "D"]


def test_replace_errors(client, store) -> None:
    assert client.post("/api/v1/products/10/variants/1/replace", json={"count": 0}).status_code == 422
    assert client.post("/api/v1/products/10/variants/1/replace", json={"count": 9}).status_code == 409
    assert client.post("/api/v1/products/99/variants/1/replace", json={"count": 1}).status_code == 404

    store.fail_writes.add(("10", "1"))
    assert client.post("/api/v1/products/10/variants/1/replace", json={"count": 1}).status_code == 502


def test_unreplace_without_history(client) -> None:
    response = client.post("/api/v1/unreplace", json={"count": 1})
    assert response.status_code == 409


def test_drift_and_refresh(client, store) -> None:
    store.set_pool("10", "1", ["A", "B"])

    drift = client.get("/api/v1/products/10/variants/1/drift").json()
    assert drift == {"product_id": "10", "variant_id": "1", "cached": 4, "real": 2, "match": False}

    refreshed = client.post("/api/v1/products/10/variants/1/refresh")
    assert refreshed.status_code == 200
    assert refreshed.json()["stock"] == 2

    assert client.get("/api/v1/products/10/variants/1/drift").json()["match"] is True


def test_stock_listing(client) -> None:
    body = client.get("/api/v1/stock").json()
    assert body["total_count"] == 1
    assert body["products"][0]["total_stock"] == 4

    assert client.get("/api/v1/stock/10").json()["product_name"] == "Game Key"
    assert client.get("/api/v1/stock/404").status_code == 404


def test_stock_sync(client, store) -> None:
    from conftest import make_product

    store.catalog = [make_product("10", "Game Key", {"1": ("Standard", 0)})]

    body = client.post("/api/v1/stock/sync").json()

    assert body == {"product_count": 1, "variant_count": 1, "total_stock": 4, "failed": []}
