"""Fixtures for HTTP tests.

The application runs in-process through ``httpx.ASGITransport`` with the
database dependency pointed at the seeded SQLite fixture.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from httpx import ASGITransport, AsyncClient

from erp_regions.database import get_db
from erp_regions.main import app

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator


@pytest.fixture
async def test_client(session_factory, seeded_engine) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with the seeded database."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()
