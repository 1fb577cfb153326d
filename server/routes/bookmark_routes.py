"""Bookmark API routes."""

from fastapi import APIRouter, Depends, Query, status

from server.auth import get_current_owner
from server.schemas.bookmarks import (
    BookmarkResponse,
    CreateBookmarkRequest,
    DeleteBookmarkResponse,
    ListBookmarksResponse,
)
from server.service_locator import get_channel_broker
from server.services.bookmark_service import BookmarkService

router = APIRouter(prefix="/bookmarks", tags=["Bookmarks"])


@router.post("", response_model=BookmarkResponse, status_code=status.HTTP_201_CREATED)
async def create_bookmark(
    request: CreateBookmarkRequest,
    current_owner: str = Depends(get_current_owner)
):
    """
    Insert a bookmark for the session owner.

    Parameters:
        - owner_id: Must equal the session owner
        - title, url, favicon: Bookmark fields
        - id, created_at: Optional client-chosen identity and timestamp
        - Authorization header: Bearer <session_key> (required)

    Raises:
        - 401: Invalid or missing session key
        - 403: owner_id is not the session owner
        - 409: A bookmark with this id already exists
        - 422: Invalid fields
    """
    bookmark_service = BookmarkService(get_channel_broker())

    record = await bookmark_service.create_bookmark(
        session_owner=current_owner,
        owner_id=request.owner_id,
        title=request.title,
        url=request.url,
        favicon=request.favicon,
        bookmark_id=request.id,
        created_at=request.created_at,
    )

    return BookmarkResponse.from_record(record)


@router.get("", response_model=ListBookmarksResponse)
async def list_bookmarks(
    owner_id: str = Query(..., description="Owner whose bookmarks to list"),
    current_owner: str = Depends(get_current_owner)
):
    """
    List the owner's bookmarks, newest first.

    Raises:
        - 401: Invalid or missing session key
        - 403: owner_id is not the session owner
    """
    bookmark_service = BookmarkService(get_channel_broker())

    records = bookmark_service.list_bookmarks(current_owner, owner_id)

    return ListBookmarksResponse(
        bookmarks=[BookmarkResponse.from_record(record) for record in records]
    )


@router.delete("/{bookmark_id}", response_model=DeleteBookmarkResponse)
async def delete_bookmark(
    bookmark_id: str,
    owner_id: str = Query(..., description="Owner of the bookmark"),
    current_owner: str = Depends(get_current_owner)
):
    """
    Delete one of the owner's bookmarks. Deleting an absent id succeeds
    with deleted=false.

    Raises:
        - 401: Invalid or missing session key
        - 403: owner_id is not the session owner
    """
    bookmark_service = BookmarkService(get_channel_broker())

    deleted = await bookmark_service.delete_bookmark(current_owner, owner_id, bookmark_id)

    return DeleteBookmarkResponse(id=bookmark_id, deleted=deleted)
