"""Tests for the region dataset import."""

from __future__ import annotations

import httpx
import pytest
from sqlalchemy import select

from erp_regions.models import Region, RegionLevel
from erp_regions.services.region_import import (
    RegionRecord,
    default_source_urls,
    derive_level,
    derive_parent_id,
    fetch_region_csv,
    import_regions,
    parse_region_csv,
)
from erp_regions.services.regions import RegionService

SAMPLE_CSV = """kode,nama
35.14.18.2007,Wonosari
35,Jawa Timur
35.14.18,Gondangwetan

35.14,"Kab. Pasuruan"
"""


class TestCodeDerivation:
    """Tests for level and parent derivation from codes."""

    @pytest.mark.parametrize(
        ("code", "level"),
        [
            ("35", RegionLevel.PROVINCE),
            ("35.14", RegionLevel.CITY),
            ("35.14.18", RegionLevel.DISTRICT),
            ("35.14.18.2007", RegionLevel.VILLAGE),
            ("35.14.18.2007.1", RegionLevel.VILLAGE),
        ],
    )
    def test_derive_level(self, code: str, level: RegionLevel):
        assert derive_level(code) == level

    @pytest.mark.parametrize(
        ("code", "parent_id"),
        [
            ("35", None),
            ("35.14", "35"),
            ("35.14.18", "35.14"),
            ("35.14.18.2007", "35.14.18"),
        ],
    )
    def test_derive_parent_id(self, code: str, parent_id: str | None):
        assert derive_parent_id(code) == parent_id

    def test_record_properties(self):
        record = RegionRecord(code="35.14.18", name="Gondangwetan")

        assert record.level == RegionLevel.DISTRICT
        assert record.parent_id == "35.14"


class TestParseCsv:
    """Tests for CSV parsing."""

    def test_skips_header_and_blank_lines(self):
        records = parse_region_csv(SAMPLE_CSV)

        assert [r.code for r in records] == ["35.14.18.2007", "35", "35.14.18", "35.14"]

    def test_strips_quotes(self):
        records = parse_region_csv(SAMPLE_CSV)

        assert records[-1].name == "Kab. Pasuruan"

    def test_rejoins_unquoted_commas(self):
        records = parse_region_csv("kode,nama\n11.01,Simeulue, Kab.\n")

        assert records == [RegionRecord(code="11.01", name="Simeulue, Kab.")]

    def test_quoted_comma(self):
        records = parse_region_csv('kode,nama\n11.01,"Simeulue, Kab."\n')

        assert records[0].name == "Simeulue, Kab."

    def test_ignores_incomplete_rows(self):
        assert parse_region_csv("kode,nama\n35\n,Nameless\n") == []

    def test_empty_input(self):
        assert parse_region_csv("") == []


class TestFetch:
    """Tests for dataset download."""

    def test_default_source_urls(self):
        urls = default_source_urls("https://example.org/csv/")

        assert urls == [
            "https://example.org/csv/provinces.csv",
            "https://example.org/csv/regencies.csv",
            "https://example.org/csv/districts.csv",
            "https://example.org/csv/villages.csv",
        ]

    @pytest.mark.asyncio
    async def test_fetch_follows_redirects(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/old.csv":
                return httpx.Response(302, headers={"location": "https://example.org/new.csv"})
            return httpx.Response(200, text=SAMPLE_CSV)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            text = await fetch_region_csv("https://example.org/old.csv", client)

        assert text == SAMPLE_CSV

    @pytest.mark.asyncio
    async def test_fetch_raises_on_error_status(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(404))

        async with httpx.AsyncClient(transport=transport) as client:
            with pytest.raises(httpx.HTTPStatusError):
                await fetch_region_csv("https://example.org/missing.csv", client)


class TestImportRegions:
    """Tests for the destructive reload."""

    @pytest.mark.asyncio
    async def test_import_into_empty_table(self, empty_session):
        counts = await import_regions(empty_session, parse_region_csv(SAMPLE_CSV), batch_size=2)

        assert counts == {
            "province": 1,
            "city": 1,
            "district": 1,
            "village": 1,
            "total": 4,
        }

        village = await empty_session.get(Region, "35.14.18.2007")
        assert village is not None
        assert village.level == RegionLevel.VILLAGE
        assert village.parent_id == "35.14.18"

    @pytest.mark.asyncio
    async def test_imported_tree_is_searchable(self, empty_session):
        await import_regions(empty_session, parse_region_csv(SAMPLE_CSV))

        results = await RegionService(empty_session).search("wonosari gond")

        assert [r.full_name for r in results] == [
            "Wonosari, Gondangwetan, Kab. Pasuruan, Jawa Timur"
        ]

    @pytest.mark.asyncio
    async def test_reload_replaces_existing_rows(self, db_session):
        counts = await import_regions(db_session, parse_region_csv(SAMPLE_CSV))

        ids = (await db_session.execute(select(Region.id))).scalars().all()
        assert sorted(ids) == ["35", "35.14", "35.14.18", "35.14.18.2007"]
        assert counts["total"] == 4

    @pytest.mark.asyncio
    async def test_duplicate_codes_are_skipped(self, empty_session):
        records = [
            RegionRecord(code="35", name="Jawa Timur"),
            RegionRecord(code="35", name="Duplicate"),
        ]

        counts = await import_regions(empty_session, records)

        assert counts["total"] == 1
        province = await empty_session.get(Region, "35")
        assert province.name == "Jawa Timur"
