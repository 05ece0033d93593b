"""HTTP routes for the admin console."""

from draftdesk.routes.queue import router as queue_router
from draftdesk.routes.health import router as health_router

__all__ = ["queue_router", "health_router"]
