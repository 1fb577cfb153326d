"""Pydantic schemas for API requests and responses."""

from server.schemas.bookmarks import (
    CreateBookmarkRequest,
    BookmarkResponse,
    ListBookmarksResponse,
    DeleteBookmarkResponse
)
from server.schemas.sessions import CreateSessionRequest, CreateSessionResponse, RevokeSessionResponse
from server.schemas.common import ErrorResponse

__all__ = [
    "CreateBookmarkRequest",
    "BookmarkResponse",
    "ListBookmarksResponse",
    "DeleteBookmarkResponse",
    "CreateSessionRequest",
    "CreateSessionResponse",
    "RevokeSessionResponse",
    "ErrorResponse"
]
