"""API routes package."""

from server.routes.session_routes import router as session_router
from server.routes.bookmark_routes import router as bookmark_router
from server.routes.realtime_routes import router as realtime_router

__all__ = ["session_router", "bookmark_router", "realtime_router"]
