"""Pytest configuration and fixtures shared across all test modules.

Redis is replaced by fakeredis, which executes the real Lua scripts in an
in-memory server. Each test gets its own ``FakeServer`` so no state leaks
between tests.
"""

import os

# Set before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("LOG_FORMAT", "plain")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import fakeredis
import fakeredis.aioredis
import pytest
import pytest_asyncio
from fastapi import FastAPI
from fastapi.testclient import TestClient

from coordination.adapters.store.redis_store import RedisSharedStore
from coordination.core.app_factory import create_app
from coordination.core.store import get_shared_store
from coordination.services.lock_service import LockManager


@pytest.fixture
def fake_server() -> fakeredis.FakeServer:
    return fakeredis.FakeServer()


@pytest_asyncio.fixture
async def redis_client(fake_server):
    client = fakeredis.aioredis.FakeRedis(server=fake_server, decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture
def store(redis_client) -> RedisSharedStore:
    return RedisSharedStore(redis_client)


@pytest.fixture
def lock_manager(store) -> LockManager:
    return LockManager(store)


@pytest.fixture
def app(fake_server) -> FastAPI:
    """App wired to the per-test fake Redis server.

    A client is built per request so it always belongs to the event loop
    TestClient runs the request on; the data lives in the shared server.
    """
    application = create_app()

    def _fake_store() -> RedisSharedStore:
        return RedisSharedStore(
            fakeredis.aioredis.FakeRedis(server=fake_server, decode_responses=True)
        )

    application.dependency_overrides[get_shared_store] = _fake_store
    return application


@pytest.fixture
def client(app: FastAPI):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def sync_redis(fake_server):
    """Synchronous view of the fake server for arranging and inspecting state."""
    return fakeredis.FakeRedis(server=fake_server, decode_responses=True)
