"""Session service issuing owner-scoped session keys."""

from datetime import datetime, timezone

from common.logging_config import get_logger
from server.auth import generate_session_key
from server.repositories.session_repository import SessionRepository

logger = get_logger(__name__)


class SessionService:
    def __init__(self):
        self.session_repo = SessionRepository()

    def open_session(self, owner_id: str) -> str:
        """
        Issue a session key bound to `owner_id`.

        Identity proofing happens upstream; the owner id is taken as given.
        """
        session_key = generate_session_key()
        self.session_repo.create_session(
            session_key=session_key,
            owner_id=owner_id,
            created_at=datetime.now(timezone.utc),
        )
        logger.info(f"Opened session for owner {owner_id}")
        return session_key

    def close_session(self, session_key: str) -> bool:
        revoked = self.session_repo.delete_session(session_key)
        if revoked:
            logger.info("Closed session")
        return revoked
