"""Session repository mapping session keys to owner identities."""

from datetime import datetime
from typing import Optional

from common.logging_config import get_logger
from server.database import get_db_connection

logger = get_logger(__name__)


class SessionRepository:
    @staticmethod
    def create_session(session_key: str, owner_id: str, created_at: datetime) -> None:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "INSERT INTO sessions (session_key, owner_id, created_at) VALUES (?, ?, ?)",
                (session_key, owner_id, created_at.isoformat())
            )
            conn.commit()
        logger.info(f"Session created [owner_id={owner_id}]")

    @staticmethod
    def get_owner(session_key: str) -> Optional[str]:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT owner_id FROM sessions WHERE session_key = ?",
                (session_key,)
            )
            row = cursor.fetchone()
            return row["owner_id"] if row else None

    @staticmethod
    def delete_session(session_key: str) -> bool:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM sessions WHERE session_key = ?", (session_key,))
            conn.commit()
            return cursor.rowcount > 0
