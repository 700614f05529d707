"""Pydantic schemas for region endpoints."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from erp_regions.models.region import RegionLevel


class CamelModel(BaseModel):
    """Base schema serialized with camelCase field names."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class RegionResponse(CamelModel):
    """A single region row without its ancestors."""

    id: str
    name: str
    level: RegionLevel
    parent_id: Optional[str] = None
    postal_code: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class RegionSearchResult(CamelModel):
    """Region flattened with the names of its ancestors.

    ``full_name`` runs from the region itself up to its province, e.g.
    "Wonosari, Gondangwetan, Pasuruan, Jawa Timur". Only the hierarchy fields
    at or above the region's own level are set.
    """

    id: str
    full_name: str
    village: Optional[str] = None
    district: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    postal_code: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "35.14.18.2007",
                "fullName": "Wonosari, Gondangwetan, Pasuruan, Jawa Timur",
                "village": "Wonosari",
                "district": "Gondangwetan",
                "city": "Pasuruan",
                "province": "Jawa Timur",
            }
        }
    )


class RegionStatsResponse(CamelModel):
    """Region counts per level."""

    provinces: int = 0
    cities: int = 0
    districts: int = 0
    villages: int = 0
    total: int = 0


class MessageResponse(BaseModel):
    """Plain message payload, used for not-found answers."""

    message: str = Field(description="Human-readable message")
