"""Formatting helpers for CLI output."""

from datetime import datetime
from typing import Optional, Sequence

from cli.constants import DIM, GREEN, RESET
from common.types import ConnectionStatus, Record, utc_now


def format_age(created_at: datetime, now: Optional[datetime] = None) -> str:
    """
    Format a timestamp as a short relative age ("just now", "5m ago", ...).
    """
    now = now or utc_now()
    seconds = max(0, int((now - created_at).total_seconds()))

    if seconds < 60:
        return "just now"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    return f"{seconds // 86400}d ago"


def format_record(index: int, record: Record, now: Optional[datetime] = None) -> str:
    return (
        f"{index:>3}. {record.title}\n"
        f"     {record.url} {DIM}({format_age(record.created_at, now)}, id={record.id}){RESET}"
    )


def format_snapshot(records: Sequence[Record], now: Optional[datetime] = None) -> str:
    if not records:
        return "No bookmarks yet. Add your first one with 'add <url> <title>'."

    count = len(records)
    header = f"You have {count} bookmark{'' if count == 1 else 's'} saved."
    lines = [format_record(i, record, now) for i, record in enumerate(records, start=1)]
    return "\n".join([header] + lines)


def format_status(status: ConnectionStatus) -> str:
    if status is ConnectionStatus.LIVE:
        return f"{GREEN}● Live{RESET}"
    if status is ConnectionStatus.CONNECTING:
        return "○ Connecting..."
    return "○ Disconnected"
