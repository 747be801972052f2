"""API routers."""
from .checks import router as checks_router

__all__ = ["checks_router"]
