from __future__ import annotations

from unittest.mock import AsyncMock

from fastapi.testclient import TestClient

from coordination.adapters.store.base import AbstractSharedStore
from coordination.core.errors import StoreUnavailableError
from coordination.core.store import get_shared_store


def test_liveness(client: TestClient):
    assert client.get("/health").json() == {"status": "ok"}


def test_readiness_with_reachable_store(client: TestClient):
    resp = client.get("/health/ready")

    assert resp.status_code == 200
    assert resp.json()["store"] == "reachable"


def test_readiness_with_unreachable_store(app, client: TestClient):
    store = AsyncMock(spec=AbstractSharedStore)
    store.get_ttl.side_effect = StoreUnavailableError(code="store_unavailable", message="down")
    app.dependency_overrides[get_shared_store] = lambda: store

    resp = client.get("/health/ready")

    assert resp.status_code == 503
    assert resp.json()["error"]["code"] == "store_unavailable"
