"""SQLAlchemy models."""

from erp_regions.models.base import TimestampedBase
from erp_regions.models.region import MAX_ANCESTOR_HOPS, Region, RegionLevel

__all__ = [
    "MAX_ANCESTOR_HOPS",
    "TimestampedBase",
    "Region",
    "RegionLevel",
]
