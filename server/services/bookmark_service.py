"""Bookmark service: owner-scoped persistence plus the storage change feed."""

import uuid
from datetime import datetime
from typing import List, Optional
from urllib.parse import urlparse

from common.logging_config import get_logger
from common.protocol import (
    DeleteHint,
    RedactedInsertHint,
    RemoteInsertBroadcast,
    encode_notification,
)
from common.types import Record, utc_now
from server.exceptions import InvalidBookmarkError, OwnerMismatchError
from server.realtime.broker import ChannelBroker
from server.repositories.bookmark_repository import BookmarkRepository

logger = get_logger(__name__)


class BookmarkService:
    def __init__(self, broker: ChannelBroker):
        self.bookmark_repo = BookmarkRepository()
        self.broker = broker

    @staticmethod
    def _check_owner(requested_owner: str, session_owner: str) -> None:
        if requested_owner != session_owner:
            logger.warning(
                f"Owner mismatch: session owner {session_owner} requested {requested_owner}"
            )
            raise OwnerMismatchError("owner_id does not match the session owner")

    async def create_bookmark(
        self,
        session_owner: str,
        owner_id: str,
        title: str,
        url: str,
        favicon: Optional[str] = None,
        bookmark_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> Record:
        self._check_owner(owner_id, session_owner)

        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise InvalidBookmarkError("url must be an absolute http(s) URL")
        if not title.strip():
            raise InvalidBookmarkError("title must not be blank")

        record = self.bookmark_repo.create_bookmark(
            bookmark_id=bookmark_id or str(uuid.uuid4()),
            owner_id=owner_id,
            title=title.strip(),
            url=url,
            favicon=favicon or None,
            created_at=created_at or utc_now(),
        )
        logger.info(f"Created bookmark {record.id} [owner_id={owner_id}]")

        # The change feed never carries row contents
        await self.broker.emit_change(encode_notification(RedactedInsertHint()))

        return record

    async def delete_bookmark(self, session_owner: str, owner_id: str, bookmark_id: str) -> bool:
        self._check_owner(owner_id, session_owner)

        deleted = self.bookmark_repo.delete_bookmark(bookmark_id, owner_id)
        if deleted:
            logger.info(f"Deleted bookmark {bookmark_id} [owner_id={owner_id}]")
            await self.broker.emit_change(encode_notification(DeleteHint(id=bookmark_id)))
        else:
            logger.debug(f"Bookmark {bookmark_id} already absent [owner_id={owner_id}]")

        return deleted

    def list_bookmarks(self, session_owner: str, owner_id: str) -> List[Record]:
        self._check_owner(owner_id, session_owner)
        return self.bookmark_repo.list_by_owner(owner_id)

    async def relay_broadcast(self, topic: str, record: Record) -> int:
        """
        Relay a replica's insert broadcast to every connection on its topic.

        Raises:
            OwnerMismatchError: If the record belongs to another owner
        """
        if record.owner_id != topic:
            raise OwnerMismatchError("Broadcast record does not belong to the topic owner")
        return await self.broker.publish(topic, encode_notification(RemoteInsertBroadcast(record=record)))
