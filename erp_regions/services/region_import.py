"""Bulk import of the region tree from code/name CSV datasets.

The dataset uses dotted hierarchical codes::

    35              Jawa Timur        (province)
    35.14           Pasuruan          (city / regency)
    35.14.18        Gondangwetan      (district)
    35.14.18.2007   Wonosari          (village)

Level and parent are derived from the code alone. An import is a destructive
full reload of the ``regions`` table.
"""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

import httpx
from sqlalchemy import delete, insert

from erp_regions.config import get_settings
from erp_regions.logging_config import get_logger, log_execution_time
from erp_regions.models import Region, RegionLevel

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.ext.asyncio import AsyncSession

settings = get_settings()
logger = get_logger(__name__)

# Files published by the cahyadsn/wilayah dataset, root level first
DEFAULT_SOURCE_FILES = ("provinces.csv", "regencies.csv", "districts.csv", "villages.csv")


@dataclass(frozen=True)
class RegionRecord:
    """One row of the source dataset."""

    code: str
    name: str

    @property
    def level(self) -> RegionLevel:
        return derive_level(self.code)

    @property
    def parent_id(self) -> Optional[str]:
        return derive_parent_id(self.code)


def derive_level(code: str) -> RegionLevel:
    """Level from the number of dot-separated segments in the code."""
    return RegionLevel.from_depth(len(code.split(".")))


def derive_parent_id(code: str) -> Optional[str]:
    """Parent code, i.e. the code without its last segment."""
    parts = code.split(".")
    if len(parts) <= 1:
        return None
    return ".".join(parts[:-1])


def parse_region_csv(text: str) -> list[RegionRecord]:
    """Parse ``code,name`` rows, skipping the header and blank lines.

    Unquoted names containing commas are re-joined.
    """
    records: list[RegionRecord] = []
    reader = csv.reader(io.StringIO(text))
    next(reader, None)

    for row in reader:
        if len(row) < 2:
            continue
        code = row[0].strip().strip('"')
        name = ",".join(row[1:]).strip().strip('"')
        if not code or not name:
            continue
        records.append(RegionRecord(code=code, name=name))

    return records


def default_source_urls(base_url: Optional[str] = None) -> list[str]:
    """URLs of the four dataset files."""
    base = (base_url or settings.region_import_base_url).rstrip("/")
    return [f"{base}/{filename}" for filename in DEFAULT_SOURCE_FILES]


async def fetch_region_csv(url: str, client: Optional[httpx.AsyncClient] = None) -> str:
    """Download one CSV file, following redirects."""
    if client is None:
        async with httpx.AsyncClient(
            follow_redirects=True, timeout=settings.region_import_timeout_seconds
        ) as owned_client:
            return await fetch_region_csv(url, owned_client)

    logger.info("region_csv_downloading", url=url)
    response = await client.get(url, follow_redirects=True)
    response.raise_for_status()
    return response.text


def _ordered_unique(records: Iterable[RegionRecord]) -> list[RegionRecord]:
    """Drop duplicate codes (first wins) and put parents before children."""
    seen: dict[str, RegionRecord] = {}
    for record in records:
        if record.code in seen:
            logger.debug("region_duplicate_skipped", code=record.code)
            continue
        seen[record.code] = record
    return sorted(seen.values(), key=lambda record: record.level.depth)


@log_execution_time("region_import")
async def import_regions(
    session: AsyncSession,
    records: Iterable[RegionRecord],
    batch_size: Optional[int] = None,
) -> dict[str, int]:
    """Replace the whole region table with ``records``.

    Args:
        session: Database session; committed on success
        records: Parsed dataset rows, in any order
        batch_size: Rows per INSERT. Defaults to settings.

    Returns:
        Inserted row counts keyed by lower-case level name, plus ``total``
    """
    batch_size = batch_size or settings.region_import_batch_size
    rows = _ordered_unique(records)

    logger.info("region_import_clearing")
    await session.execute(delete(Region))

    counts = {level.value.lower(): 0 for level in RegionLevel}
    for start in range(0, len(rows), batch_size):
        batch = rows[start : start + batch_size]
        await session.execute(
            insert(Region),
            [
                {
                    "id": record.code,
                    "name": record.name,
                    "level": record.level,
                    "parent_id": record.parent_id,
                }
                for record in batch
            ],
        )
        for record in batch:
            counts[record.level.value.lower()] += 1
        logger.info("region_import_progress", inserted=start + len(batch), total=len(rows))

    await session.commit()

    counts["total"] = len(rows)
    logger.info("region_import_finished", **counts)
    return counts
