"""Application services."""

from erp_regions.services.regions import RegionNotFoundError, RegionService

__all__ = ["RegionNotFoundError", "RegionService"]
