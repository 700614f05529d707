"""Pydantic schemas."""

from erp_regions.schemas.regions import (
    MessageResponse,
    RegionResponse,
    RegionSearchResult,
    RegionStatsResponse,
)

__all__ = [
    "MessageResponse",
    "RegionResponse",
    "RegionSearchResult",
    "RegionStatsResponse",
]
