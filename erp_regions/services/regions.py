"""Region hierarchy lookups and multi-keyword autocomplete."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import aliased, selectinload

from erp_regions.config import get_settings
from erp_regions.logging_config import get_logger, log_execution_time
from erp_regions.models import MAX_ANCESTOR_HOPS, Region, RegionLevel
from erp_regions.schemas.regions import RegionSearchResult, RegionStatsResponse

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlalchemy.sql.elements import ColumnElement

settings = get_settings()
logger = get_logger(__name__)

MIN_KEYWORD_LENGTH = 2

SEARCHABLE_LEVELS = (RegionLevel.VILLAGE, RegionLevel.DISTRICT)


class RegionNotFoundError(Exception):
    """Raised when a region code does not exist."""

    def __init__(self, region_id: str):
        self.region_id = region_id
        super().__init__(f"Region '{region_id}' not found")


def region_hierarchy_options() -> list[Any]:
    """Loader options that eager-load a region's parent chain.

    Other modules holding a ``region_id`` (companies, employees, users) pass
    these to their own queries to get the same shape the lookups here use:
    region -> parent -> parent.parent -> parent.parent.parent.
    """
    return [selectinload(Region.parent).selectinload(Region.parent).selectinload(Region.parent)]


def extract_keywords(query: str) -> list[str]:
    """Lower-case the query and split it into keywords of at least two characters."""
    return [word for word in query.lower().split() if len(word) >= MIN_KEYWORD_LENGTH]


def ancestor_chain(region: Region) -> list[Region]:
    """Return the region followed by its loaded ancestors, nearest first."""
    chain = [region]
    current = region
    for _ in range(MAX_ANCESTOR_HOPS):
        if current.parent_id is None:
            break
        parent = current.parent
        if parent is None:
            break
        chain.append(parent)
        current = parent
    return chain


def build_searchable_text(region: Region) -> str:
    """Own name and ancestor names joined by spaces."""
    return " ".join(node.name for node in ancestor_chain(region))


def matches_all_keywords(region: Region, keywords: Sequence[str]) -> bool:
    """True when every keyword occurs somewhere in the region's hierarchy names."""
    text = build_searchable_text(region).lower()
    return all(keyword in text for keyword in keywords)


def describe_region(region: Region) -> RegionSearchResult:
    """Flatten a region and its ancestors into a search result."""
    chain = ancestor_chain(region)
    hierarchy = {node.level.value.lower(): node.name for node in chain}
    return RegionSearchResult(
        id=region.id,
        full_name=", ".join(node.name for node in chain),
        postal_code=region.postal_code,
        latitude=region.latitude,
        longitude=region.longitude,
        **hierarchy,
    )


class RegionService:
    """Read-only service over the region tree."""

    def __init__(self, session: AsyncSession, candidate_limit: Optional[int] = None):
        """Initialize the service.

        Args:
            session: Database session for this request
            candidate_limit: Rows fetched before in-memory filtering. Defaults to settings.
        """
        self.session = session
        if candidate_limit is None:
            candidate_limit = settings.region_search_candidate_limit
        if candidate_limit < 1:
            raise ValueError(f"candidate_limit must be positive, got {candidate_limit}")
        self.candidate_limit = candidate_limit

    @log_execution_time("region_search")
    async def search(self, query: str, limit: Optional[int] = None) -> list[RegionSearchResult]:
        """Search villages and districts by one or more keywords.

        Every keyword has to appear in the region's own name or in one of its
        ancestors' names, so "wonosari pasuruan" finds the Wonosari villages
        inside Pasuruan. Queries shorter than two characters return nothing.

        Args:
            query: Free text typed by the user
            limit: Maximum number of results. Defaults to settings.

        Returns:
            Matching regions ordered by name
        """
        if limit is None:
            limit = settings.region_search_default_limit
        if limit < 1:
            return []
        if not query or len(query) < MIN_KEYWORD_LENGTH:
            return []

        keywords = extract_keywords(query)
        if not keywords:
            return []

        candidates = await self._fetch_candidates(keywords)
        matches = [region for region in candidates if matches_all_keywords(region, keywords)]

        return [describe_region(region) for region in matches[:limit]]

    async def _fetch_candidates(self, keywords: Sequence[str]) -> Sequence[Region]:
        """Fetch up to ``candidate_limit`` villages/districts matching the keywords."""
        parent = aliased(Region)
        grandparent = aliased(Region)
        great_grandparent = aliased(Region)
        hierarchy = (Region, parent, grandparent, great_grandparent)

        query = (
            select(Region)
            .outerjoin(parent, Region.parent_id == parent.id)
            .outerjoin(grandparent, parent.parent_id == grandparent.id)
            .outerjoin(great_grandparent, grandparent.parent_id == great_grandparent.id)
            .where(Region.level.in_(SEARCHABLE_LEVELS))
            .where(*(_name_in_hierarchy(keyword, hierarchy) for keyword in keywords))
            .options(*region_hierarchy_options())
            .order_by(Region.name, Region.id)
            .limit(self.candidate_limit)
        )

        result = await self.session.execute(query)
        candidates = result.scalars().all()

        if len(candidates) >= self.candidate_limit:
            logger.warning(
                "region_search_candidates_truncated",
                primary_keyword=keywords[0],
                keywords=len(keywords),
                candidate_limit=self.candidate_limit,
            )
        return candidates

    async def load_region(self, region_id: str) -> Optional[Region]:
        """Load a region with its ancestor chain, or None if unknown."""
        query = select(Region).where(Region.id == region_id).options(*region_hierarchy_options())
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def find_by_id(self, region_id: str) -> Optional[RegionSearchResult]:
        """Get a region flattened with its full hierarchy."""
        region = await self.load_region(region_id)
        if region is None:
            return None
        return describe_region(region)

    async def get_region(self, region_id: str) -> RegionSearchResult:
        """Like ``find_by_id`` but raises ``RegionNotFoundError`` for unknown codes."""
        result = await self.find_by_id(region_id)
        if result is None:
            raise RegionNotFoundError(region_id)
        return result

    async def get_provinces(self) -> Sequence[Region]:
        """All provinces ordered by name."""
        query = (
            select(Region)
            .where(Region.level == RegionLevel.PROVINCE)
            .order_by(Region.name, Region.id)
        )
        result = await self.session.execute(query)
        return result.scalars().all()

    async def get_children(self, parent_id: str) -> Sequence[Region]:
        """Direct children of a region ordered by name."""
        query = select(Region).where(Region.parent_id == parent_id).order_by(Region.name, Region.id)
        result = await self.session.execute(query)
        return result.scalars().all()

    async def get_stats(self) -> RegionStatsResponse:
        """Count regions per level."""
        query = select(Region.level, func.count(Region.id)).group_by(Region.level)
        result = await self.session.execute(query)
        counts = {RegionLevel(level): count for level, count in result.all()}

        provinces = counts.get(RegionLevel.PROVINCE, 0)
        cities = counts.get(RegionLevel.CITY, 0)
        districts = counts.get(RegionLevel.DISTRICT, 0)
        villages = counts.get(RegionLevel.VILLAGE, 0)

        return RegionStatsResponse(
            provinces=provinces,
            cities=cities,
            districts=districts,
            villages=villages,
            total=provinces + cities + districts + villages,
        )


def _name_in_hierarchy(keyword: str, hierarchy: Sequence[Any]) -> ColumnElement[bool]:
    """Case-insensitive substring match on any name along the joined chain."""
    return or_(*(entity.name.icontains(keyword, autoescape=True) for entity in hierarchy))
