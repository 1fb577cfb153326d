"""Bookmark repository for database operations."""

import sqlite3
from datetime import datetime, timezone
from typing import List, Optional

from common.logging_config import get_logger
from common.types import Record, parse_timestamp
from server.database import get_db_connection
from server.exceptions import DuplicateBookmarkError

logger = get_logger(__name__)


def _to_storage_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _row_to_record(row: sqlite3.Row) -> Record:
    return Record(
        id=row["id"],
        owner_id=row["owner_id"],
        title=row["title"],
        url=row["url"],
        favicon=row["favicon"],
        created_at=parse_timestamp(row["created_at"]),
    )


class BookmarkRepository:
    @staticmethod
    def create_bookmark(
        bookmark_id: str,
        owner_id: str,
        title: str,
        url: str,
        favicon: Optional[str],
        created_at: datetime,
    ) -> Record:
        logger.debug(f"Creating bookmark {bookmark_id} [owner_id={owner_id}]")

        stored_at = _to_storage_timestamp(created_at)

        with get_db_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(
                    """
                    INSERT INTO bookmarks (id, owner_id, title, url, favicon, created_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (bookmark_id, owner_id, title, url, favicon, stored_at)
                )
                conn.commit()
            except sqlite3.IntegrityError:
                logger.warning(f"Bookmark {bookmark_id} already exists")
                raise DuplicateBookmarkError(f"Bookmark '{bookmark_id}' already exists")

        return Record(
            id=bookmark_id,
            owner_id=owner_id,
            title=title,
            url=url,
            favicon=favicon,
            created_at=parse_timestamp(stored_at),
        )

    @staticmethod
    def list_by_owner(owner_id: str) -> List[Record]:
        """
        List an owner's bookmarks, newest first.

        Ties on created_at are broken by insertion order, latest first.
        """
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT id, owner_id, title, url, favicon, created_at
                FROM bookmarks
                WHERE owner_id = ?
                ORDER BY created_at DESC, rowid DESC
                """,
                (owner_id,)
            )
            return [_row_to_record(row) for row in cursor.fetchall()]

    @staticmethod
    def delete_bookmark(bookmark_id: str, owner_id: str) -> bool:
        """
        Delete one of the owner's bookmarks.

        Returns:
            True if a row was deleted, False if it was already absent
        """
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "DELETE FROM bookmarks WHERE id = ? AND owner_id = ?",
                (bookmark_id, owner_id)
            )
            conn.commit()
            deleted = cursor.rowcount > 0

        if deleted:
            logger.debug(f"Deleted bookmark {bookmark_id} [owner_id={owner_id}]")
        return deleted
