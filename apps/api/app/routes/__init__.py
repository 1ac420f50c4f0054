"""Route modules."""

from .media import router as media_router
from .uploads import router as uploads_router
from .webhooks import router as webhooks_router

__all__ = ["media_router", "uploads_router", "webhooks_router"]
