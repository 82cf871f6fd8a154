"""API routers for relay endpoints."""

from .ping import router as ping_router
from .vms import router as vms_router

__all__ = ["ping_router", "vms_router"]
