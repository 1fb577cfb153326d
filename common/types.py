"""Shared data type definitions (Record, CandidateFields, ConnectionStatus)."""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class ConnectionStatus(str, Enum):
    """Link state of a channel subscription. Observational only."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    LIVE = "live"


class ChangeKind(str, Enum):
    """Kind of a storage change hint."""
    INSERT = "insert"
    DELETE = "delete"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO-8601 timestamp, treating naive values as UTC.

    Args:
        value: ISO-8601 string (a trailing 'Z' is accepted)

    Returns:
        Timezone-aware datetime
    """
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class Record:
    """
    A saved bookmark. Immutable once created; identity is `id`.
    """
    id: str
    owner_id: str
    title: str
    url: str
    created_at: datetime
    favicon: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "title": self.title,
            "url": self.url,
            "favicon": self.favicon,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Record":
        created_at = data["created_at"]
        if isinstance(created_at, str):
            created_at = parse_timestamp(created_at)
        return cls(
            id=data["id"],
            owner_id=data["owner_id"],
            title=data["title"],
            url=data["url"],
            favicon=data.get("favicon") or None,
            created_at=created_at,
        )


@dataclass(frozen=True)
class CandidateFields:
    """
    Well-formed input for a new record, before an id is assigned.
    """
    title: str
    url: str
    favicon: Optional[str] = None
