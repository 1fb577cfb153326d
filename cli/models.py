"""Command request data types for the CLI."""

from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True)
class LoginCommand:
    """Open a session as an owner."""

    owner_id: str
    command: Literal["login"] = "login"


@dataclass(frozen=True)
class LogoutCommand:
    """Drop the session and the local snapshot."""

    command: Literal["logout"] = "logout"


@dataclass(frozen=True)
class AddCommand:
    """Save a bookmark."""

    url: str
    title: str
    command: Literal["add"] = "add"


@dataclass(frozen=True)
class DeleteCommand:
    """Delete a bookmark by list position (1-based) or id."""

    target: str
    command: Literal["delete"] = "delete"


@dataclass(frozen=True)
class ListCommand:
    """Show the current snapshot."""

    command: Literal["list"] = "list"


@dataclass(frozen=True)
class StatusCommand:
    """Show owner and connection status."""

    command: Literal["status"] = "status"


@dataclass(frozen=True)
class SyncCommand:
    """Force a reconciliation fetch."""

    command: Literal["sync"] = "sync"


CommandRequest = (
    LoginCommand
    | LogoutCommand
    | AddCommand
    | DeleteCommand
    | ListCommand
    | StatusCommand
    | SyncCommand
)
