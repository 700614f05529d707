"""API routers."""

from erp_regions.routers.regions import router as regions_router

__all__ = ["regions_router"]
