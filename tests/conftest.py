"""Shared fixtures.

Tests run against an in-memory SQLite database seeded with a small slice of
the Indonesian region tree:

- Jawa Timur / Pasuruan / Gondangwetan / Wonosari
- Jawa Timur / Malang / Wonosari / Kebobang
- DI Yogyakarta / Gunungkidul / Wonosari / Kepek
- DKI Jakarta / Jakarta Pusat / Menteng / five villages
"""

from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("APP_ENV", "testing")

from typing import TYPE_CHECKING, Any, Optional

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from erp_regions.database import Base
from erp_regions.models import Region, RegionLevel

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


def _region(
    id: str,
    name: str,
    level: RegionLevel,
    parent_id: Optional[str] = None,
    **extra: Any,
) -> dict[str, Any]:
    return {"id": id, "name": name, "level": level, "parent_id": parent_id, **extra}


SEED_REGIONS: list[dict[str, Any]] = [
    # Provinces
    _region("35", "Jawa Timur", RegionLevel.PROVINCE),
    _region("34", "DI Yogyakarta", RegionLevel.PROVINCE),
    _region("31", "DKI Jakarta", RegionLevel.PROVINCE),
    # Cities
    _region("35.14", "Pasuruan", RegionLevel.CITY, "35"),
    _region("35.07", "Malang", RegionLevel.CITY, "35"),
    _region("34.03", "Gunungkidul", RegionLevel.CITY, "34"),
    _region("31.71", "Jakarta Pusat", RegionLevel.CITY, "31"),
    # Districts
    _region("35.14.18", "Gondangwetan", RegionLevel.DISTRICT, "35.14"),
    _region("35.07.10", "Wonosari", RegionLevel.DISTRICT, "35.07"),
    _region("34.03.01", "Wonosari", RegionLevel.DISTRICT, "34.03"),
    _region("31.71.06", "Menteng", RegionLevel.DISTRICT, "31.71"),
    # Villages
    _region(
        "35.14.18.2007",
        "Wonosari",
        RegionLevel.VILLAGE,
        "35.14.18",
        postal_code="67174",
        latitude=-7.6512,
        longitude=112.8247,
    ),
    _region("35.07.10.2001", "Kebobang", RegionLevel.VILLAGE, "35.07.10"),
    _region("34.03.01.2001", "Kepek", RegionLevel.VILLAGE, "34.03.01", postal_code="55813"),
    _region("31.71.06.1001", "Menteng", RegionLevel.VILLAGE, "31.71.06", postal_code="10310"),
    _region("31.71.06.1002", "Pegangsaan", RegionLevel.VILLAGE, "31.71.06", postal_code="10320"),
    _region("31.71.06.1003", "Cikini", RegionLevel.VILLAGE, "31.71.06", postal_code="10330"),
    _region("31.71.06.1004", "Gondangdia", RegionLevel.VILLAGE, "31.71.06", postal_code="10350"),
    _region("31.71.06.1005", "Kebon Sirih", RegionLevel.VILLAGE, "31.71.06", postal_code="10340"),
]


@pytest.fixture
async def test_engine():
    """In-memory database shared by every connection of one test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def seeded_engine(test_engine, session_factory):
    """Engine whose database holds ``SEED_REGIONS``."""
    async with session_factory() as session:
        session.add_all(Region(**row) for row in SEED_REGIONS)
        await session.commit()
    return test_engine


@pytest.fixture
async def db_session(seeded_engine, session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Fresh session over the seeded database."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def empty_session(test_engine, session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session over a database with no regions."""
    async with session_factory() as session:
        yield session
