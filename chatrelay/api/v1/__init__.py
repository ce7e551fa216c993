"""API v1 package."""

from .configurations import router as configurations_router
from .threads import router as threads_router

__all__ = ["configurations_router", "threads_router"]
