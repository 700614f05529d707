"""API endpoints for the region hierarchy."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from erp_regions.config import get_settings
from erp_regions.database import get_db
from erp_regions.schemas.regions import (
    MessageResponse,
    RegionResponse,
    RegionSearchResult,
    RegionStatsResponse,
)
from erp_regions.services.regions import RegionService

settings = get_settings()

router = APIRouter(prefix="/regions", tags=["Regions"])


def get_region_service(session: AsyncSession = Depends(get_db)) -> RegionService:
    """Get region service bound to the request session."""
    return RegionService(session)


@router.get(
    "/search",
    response_model=list[RegionSearchResult],
    response_model_exclude_none=True,
)
async def search_regions(
    q: Optional[str] = Query(default=None, description="Keywords, e.g. 'wonosari pasuruan'"),
    limit: int = Query(
        default=settings.region_search_default_limit,
        ge=1,
        le=settings.region_search_max_limit,
        description="Maximum number of results",
    ),
    service: RegionService = Depends(get_region_service),
) -> list[RegionSearchResult]:
    """Autocomplete villages and districts with their full hierarchy.

    GET /regions/search?q=gondangwetan+pasuruan&limit=10
    """
    return await service.search(q or "", limit)


@router.get("/list/provinces", response_model=list[RegionResponse])
async def list_provinces(
    service: RegionService = Depends(get_region_service),
) -> list[RegionResponse]:
    """All provinces, the roots for hierarchical browsing."""
    provinces = await service.get_provinces()
    return [RegionResponse.model_validate(region) for region in provinces]


@router.get("/list/stats", response_model=RegionStatsResponse)
async def region_stats(
    service: RegionService = Depends(get_region_service),
) -> RegionStatsResponse:
    """Region counts per level."""
    return await service.get_stats()


@router.get("/children/{parent_id}", response_model=list[RegionResponse])
async def list_children(
    parent_id: str,
    service: RegionService = Depends(get_region_service),
) -> list[RegionResponse]:
    """Direct children of a region, for drill-down."""
    children = await service.get_children(parent_id)
    return [RegionResponse.model_validate(region) for region in children]


@router.get(
    "/{region_id}",
    response_model=RegionSearchResult,
    response_model_exclude_none=True,
    responses={404: {"model": MessageResponse}},
)
async def get_region(
    region_id: str,
    service: RegionService = Depends(get_region_service),
) -> RegionSearchResult:
    """Single region with its ancestor chain.

    Unknown ids raise ``RegionNotFoundError``, answered with 404 and
    ``{"message": "Region not found"}``.
    """
    return await service.get_region(region_id)
