"""Repository layer for data access."""

from server.repositories.bookmark_repository import BookmarkRepository
from server.repositories.session_repository import SessionRepository

__all__ = [
    "BookmarkRepository",
    "SessionRepository",
]
