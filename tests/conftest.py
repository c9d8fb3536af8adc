"""Shared pytest fixtures: a dict-backed Redis double, core components and an API client."""

import fnmatch
import logging
import os
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
import redis.asyncio as redis  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from shortlinks.click_counter import ClickCounter  # noqa: E402
from shortlinks.config import get_settings  # noqa: E402
from shortlinks.enums import Namespace  # noqa: E402
from shortlinks.index_manager import IndexManager  # noqa: E402
from shortlinks.main import app  # noqa: E402
from shortlinks.redis import get_redis, get_redis_read  # noqa: E402
from shortlinks.repository import RedirectRepository  # noqa: E402
from shortlinks.resolver import RedirectResolver, drain_pending_increments  # noqa: E402
from shortlinks.store import KeyValueNamespace, namespaces_for  # noqa: E402

settings = get_settings()


@pytest.fixture
def redis_data() -> dict[str, str]:
    """Raw contents of the fake Redis database, keyed by full Redis key."""
    return {}


@pytest.fixture
def mock_redis(redis_data: dict[str, str]) -> AsyncMock:
    """Redis client double backed by ``redis_data``.

    Tests inject failures by swapping a method's ``side_effect``.
    """

    async def _get(key):
        return redis_data.get(key)

    async def _set(key, value, *args, **kwargs):
        redis_data[key] = value
        return True

    async def _delete(*keys):
        return sum(1 for key in keys if redis_data.pop(key, None) is not None)

    async def _scan_iter(match=None, count=None, **kwargs):
        for key in list(redis_data):
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key

    client = AsyncMock(spec=redis.Redis)
    client.get = AsyncMock(side_effect=_get)
    client.set = AsyncMock(side_effect=_set)
    client.delete = AsyncMock(side_effect=_delete)
    client.scan_iter = MagicMock(side_effect=_scan_iter)
    client.ping = AsyncMock(return_value=True)
    client.aclose = AsyncMock()
    return client


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("shortlinks.tests")


@pytest.fixture
def namespaces(mock_redis: AsyncMock) -> dict[Namespace, KeyValueNamespace]:
    return namespaces_for(mock_redis)


@pytest.fixture
def index_manager(namespaces, logger) -> IndexManager:
    return IndexManager(namespaces[Namespace.INDEXES], logger)


@pytest.fixture
def click_counter(namespaces, logger) -> ClickCounter:
    return ClickCounter(namespaces[Namespace.COUNTERS], logger)


@pytest.fixture
def repository(namespaces, index_manager, click_counter, logger) -> RedirectRepository:
    return RedirectRepository(
        records=namespaces[Namespace.RECORDS],
        counters=click_counter,
        indexes=index_manager,
        logger=logger,
    )


@pytest.fixture
def resolver(namespaces, click_counter, logger) -> RedirectResolver:
    return RedirectResolver(records=namespaces[Namespace.RECORDS], counter=click_counter, logger=logger)


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {settings.ADMIN_API_KEY_HEADER: settings.ADMIN_API_KEY}


@pytest_asyncio.fixture(scope="function")
async def client(mock_redis: AsyncMock, admin_headers: dict[str, str]) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_redis() -> redis.Redis:
        return mock_redis

    app.dependency_overrides[get_redis] = override_get_redis
    app.dependency_overrides[get_redis_read] = override_get_redis

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test", headers=admin_headers) as ac:
        yield ac

    await drain_pending_increments()
    app.dependency_overrides.clear()
