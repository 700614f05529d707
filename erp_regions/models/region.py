"""Region model for the administrative geography tree."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from sqlalchemy import Enum as SAEnum
from sqlalchemy import Float, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from erp_regions.models.base import TimestampedBase


class RegionLevel(str, Enum):
    """Tier of a region, ordered from root to leaf."""

    PROVINCE = "PROVINCE"
    CITY = "CITY"
    DISTRICT = "DISTRICT"
    VILLAGE = "VILLAGE"

    @property
    def depth(self) -> int:
        """1 for provinces up to 4 for villages."""
        return _LEVEL_ORDER.index(self) + 1

    @classmethod
    def from_depth(cls, depth: int) -> RegionLevel:
        """Level for a code with ``depth`` segments; deeper codes are villages."""
        if depth < 1:
            raise ValueError(f"Region depth must be positive, got {depth}")
        return _LEVEL_ORDER[min(depth, len(_LEVEL_ORDER)) - 1]


_LEVEL_ORDER = [
    RegionLevel.PROVINCE,
    RegionLevel.CITY,
    RegionLevel.DISTRICT,
    RegionLevel.VILLAGE,
]

# Longest possible parent chain (village -> district -> city -> province)
MAX_ANCESTOR_HOPS = len(_LEVEL_ORDER) - 1


class Region(TimestampedBase):
    """Model representing one node of the province/city/district/village tree."""

    __tablename__ = "regions"

    # Hierarchical code, e.g. "35", "35.14", "35.14.18", "35.14.18.2007"
    id: Mapped[str] = mapped_column(String(32), primary_key=True)

    name: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    level: Mapped[RegionLevel] = mapped_column(
        SAEnum(RegionLevel, name="region_level"), index=True, nullable=False
    )

    # Null iff level is PROVINCE
    parent_id: Mapped[Optional[str]] = mapped_column(
        String(32), ForeignKey("regions.id"), index=True, nullable=True
    )

    # Descriptive attributes, populated on villages in practice
    postal_code: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Relationships
    parent: Mapped[Optional[Region]] = relationship("Region", remote_side=[id])

    def __repr__(self) -> str:
        return f"<Region(id={self.id}, name={self.name}, level={self.level.value})>"
