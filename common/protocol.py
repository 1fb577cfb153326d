"""Notification types and their wire serialization for the realtime channel."""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, Union

from common.types import ChangeKind, Record


class ProtocolError(Exception):
    """Raised when a frame cannot be encoded or decoded as a notification."""
    pass


MSG_INSERT_BROADCAST = "insert_broadcast"
MSG_CHANGE_HINT = "change_hint"
MSG_SUBSCRIBED = "subscribed"
MSG_ERROR = "error"


@dataclass(frozen=True)
class LocalInsertAck:
    """This replica's own insert was persisted. Authoritative, full payload."""
    record: Record


@dataclass(frozen=True)
class RemoteInsertBroadcast:
    """An insert published deliberately by some replica of the same owner."""
    record: Record


@dataclass(frozen=True)
class RemoteChangeHint:
    """
    Low-trust hint from the storage change feed.

    Never instantiated directly: use RedactedInsertHint or DeleteHint so that
    the redacted case is a type of its own instead of a missing field.
    """
    kind: ChangeKind
    id: Optional[str] = None


@dataclass(frozen=True)
class RedactedInsertHint(RemoteChangeHint):
    """A row was inserted somewhere; its contents were redacted."""
    kind: ChangeKind = field(default=ChangeKind.INSERT, init=False)
    id: Optional[str] = field(default=None, init=False)


@dataclass(frozen=True)
class DeleteHint(RemoteChangeHint):
    """A row was deleted. The id survives redaction."""
    kind: ChangeKind = field(default=ChangeKind.DELETE, init=False)
    id: str = ""

    def __post_init__(self):
        if not self.id:
            raise ValueError("DeleteHint requires an id")


@dataclass(frozen=True)
class ReconciliationResult:
    """Authoritative snapshot produced by fetch number `sequence`."""
    snapshot: Tuple[Record, ...]
    sequence: int


Notification = Union[
    LocalInsertAck,
    RemoteInsertBroadcast,
    RedactedInsertHint,
    DeleteHint,
    ReconciliationResult,
]

NOTIFICATION_TYPES = (
    LocalInsertAck,
    RemoteInsertBroadcast,
    RedactedInsertHint,
    DeleteHint,
    ReconciliationResult,
)


def encode_notification(notification: Notification) -> Dict[str, Any]:
    """
    Encode a channel notification as a JSON-compatible dict.

    Only the variants that travel over the channel can be encoded;
    LocalInsertAck and ReconciliationResult are local events.

    Raises:
        ProtocolError: If the notification is local-only or unknown
    """
    if isinstance(notification, RemoteInsertBroadcast):
        return {"type": MSG_INSERT_BROADCAST, "record": notification.record.to_dict()}
    if isinstance(notification, RedactedInsertHint):
        return {"type": MSG_CHANGE_HINT, "kind": ChangeKind.INSERT.value}
    if isinstance(notification, DeleteHint):
        return {"type": MSG_CHANGE_HINT, "kind": ChangeKind.DELETE.value, "id": notification.id}
    raise ProtocolError(f"{type(notification).__name__} is not sent over the channel")


def decode_notification(payload: Dict[str, Any]) -> Notification:
    """
    Decode a channel frame into a notification.

    An insert hint is always decoded as RedactedInsertHint, even if the
    frame happens to carry an id.

    Raises:
        ProtocolError: If the frame is malformed or not a notification
    """
    if not isinstance(payload, dict):
        raise ProtocolError("Frame must be a JSON object")

    msg_type = payload.get("type")

    if msg_type == MSG_INSERT_BROADCAST:
        try:
            return RemoteInsertBroadcast(record=Record.from_dict(payload["record"]))
        except (KeyError, TypeError, ValueError) as e:
            raise ProtocolError(f"Invalid insert broadcast: {e}") from e

    if msg_type == MSG_CHANGE_HINT:
        kind = payload.get("kind")
        if kind == ChangeKind.INSERT.value:
            return RedactedInsertHint()
        if kind == ChangeKind.DELETE.value:
            record_id = payload.get("id")
            if not record_id:
                raise ProtocolError("Delete hint without id")
            return DeleteHint(id=record_id)
        raise ProtocolError(f"Unknown change kind: {kind!r}")

    raise ProtocolError(f"Unknown notification type: {msg_type!r}")


def decode_frame(data: Union[str, bytes]) -> Dict[str, Any]:
    """Parse a text frame into a dict."""
    try:
        obj = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ProtocolError(f"Invalid JSON frame: {e}") from e
    if not isinstance(obj, dict):
        raise ProtocolError("Frame must be a JSON object")
    return obj
