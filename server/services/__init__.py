"""Service layer for business logic."""

from server.services.bookmark_service import BookmarkService
from server.services.session_service import SessionService

__all__ = [
    "BookmarkService",
    "SessionService",
]
