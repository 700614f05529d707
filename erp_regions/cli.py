"""Command line entry point for reloading the region table.

Usage:
    erp-regions-import                       # download the default dataset
    erp-regions-import --file provinces.csv --file regencies.csv
    erp-regions-import --source-url https://example.org/villages.csv
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

import httpx
from sqlalchemy.exc import SQLAlchemyError

from erp_regions.config import get_settings
from erp_regions.database import Base, async_session, close_db, engine
from erp_regions.logging_config import get_logger, setup_logging
from erp_regions.services.region_import import (
    RegionRecord,
    default_source_urls,
    fetch_region_csv,
    import_regions,
    parse_region_csv,
)

settings = get_settings()
logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="erp-regions-import",
        description="Replace the region table with a code,name CSV dataset",
    )
    parser.add_argument(
        "--file",
        dest="files",
        action="append",
        default=[],
        type=Path,
        help="Local CSV file (repeatable)",
    )
    parser.add_argument(
        "--source-url",
        dest="urls",
        action="append",
        default=[],
        help="CSV URL to download (repeatable)",
    )
    parser.add_argument(
        "--base-url",
        default=None,
        help="Base URL of the dataset when no --file/--source-url is given",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=settings.region_import_batch_size,
        help="Rows per INSERT statement",
    )
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create missing tables before importing",
    )
    return parser


async def collect_records(
    files: list[Path], urls: list[str], base_url: Optional[str] = None
) -> list[RegionRecord]:
    """Read local files and download URLs; defaults to the public dataset."""
    records: list[RegionRecord] = []

    for path in files:
        parsed = parse_region_csv(path.read_text(encoding="utf-8"))
        logger.info("region_csv_parsed", source=str(path), records=len(parsed))
        records.extend(parsed)

    if not files and not urls:
        urls = default_source_urls(base_url)

    if urls:
        async with httpx.AsyncClient(
            follow_redirects=True, timeout=settings.region_import_timeout_seconds
        ) as client:
            for url in urls:
                parsed = parse_region_csv(await fetch_region_csv(url, client))
                logger.info("region_csv_parsed", source=url, records=len(parsed))
                records.extend(parsed)

    return records


async def run(args: argparse.Namespace) -> dict[str, int]:
    records = await collect_records(args.files, args.urls, args.base_url)

    try:
        if args.create_tables:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

        async with async_session() as session:
            return await import_regions(session, records, batch_size=args.batch_size)
    finally:
        await close_db()


def main(argv: Optional[list[str]] = None) -> int:
    setup_logging()
    args = build_parser().parse_args(argv)

    try:
        counts = asyncio.run(run(args))
    except (OSError, httpx.HTTPError, SQLAlchemyError) as e:
        logger.error("region_import_aborted", error=str(e))
        return 1

    logger.info("region_import_summary", **counts)
    return 0


if __name__ == "__main__":
    sys.exit(main())
