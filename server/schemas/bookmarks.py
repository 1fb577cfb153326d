"""Pydantic schemas for bookmark endpoints."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from common.types import Record
from server.config import MAX_TITLE_LENGTH, MAX_URL_LENGTH


class CreateBookmarkRequest(BaseModel):
    """
    Request model for inserting a bookmark.

    `id` and `created_at` may be chosen by the client so an optimistic
    local copy and the persisted row share the same identity.
    """
    owner_id: str
    title: str = Field(..., min_length=1, max_length=MAX_TITLE_LENGTH)
    url: str = Field(..., min_length=1, max_length=MAX_URL_LENGTH)
    favicon: Optional[str] = Field(None, max_length=MAX_URL_LENGTH)
    id: Optional[str] = Field(None, min_length=1, max_length=100)
    created_at: Optional[datetime] = None


class BookmarkResponse(BaseModel):
    """Response model for a single bookmark."""
    id: str
    owner_id: str
    title: str
    url: str
    favicon: Optional[str] = None
    created_at: str

    @classmethod
    def from_record(cls, record: Record) -> "BookmarkResponse":
        return cls(
            id=record.id,
            owner_id=record.owner_id,
            title=record.title,
            url=record.url,
            favicon=record.favicon,
            created_at=record.created_at.isoformat(),
        )


class ListBookmarksResponse(BaseModel):
    """Response model for an owner's bookmarks, newest first."""
    bookmarks: List[BookmarkResponse]


class DeleteBookmarkResponse(BaseModel):
    """Response model for bookmark deletion."""
    id: str
    deleted: bool
