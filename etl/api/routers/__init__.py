"""
etl/api/routers package marker.
"""

from etl.api.routers.etl_router import router as etl_router

__all__ = ["etl_router"]
