"""Command handler functions for CLI operations."""

from pathlib import Path
from typing import Optional

from common.logging_config import get_logger
from cli.bookmark_client import BookmarkClient
from cli.config import Config
from cli.models import (
    AddCommand,
    DeleteCommand,
    ListCommand,
    LoginCommand,
    LogoutCommand,
    StatusCommand,
    SyncCommand,
)

logger = get_logger(__name__)


DEFAULT_CONFIG_PATH = Path.home() / '.markd' / 'config.json'

_client: Optional[BookmarkClient] = None


def get_client() -> BookmarkClient:
    """
    Get or create global BookmarkClient instance.

    Returns:
        BookmarkClient instance
    """
    global _client
    if _client is None:
        logger.debug("Creating new BookmarkClient instance")
        config = Config(DEFAULT_CONFIG_PATH)
        _client = BookmarkClient(config)
    return _client


def set_client(client: BookmarkClient) -> None:
    """Install the client used by handlers that are not given one."""
    global _client
    _client = client


async def handle_login(cmd: LoginCommand, client: Optional[BookmarkClient] = None) -> str:
    """
    Handle 'login' command.

    Args:
        cmd: LoginCommand with owner_id
        client: Optional BookmarkClient for dependency injection (testing)

    Returns:
        Success or error message
    """
    if client is None:
        client = get_client()
    return await client.login(cmd.owner_id)


async def handle_logout(cmd: LogoutCommand, client: Optional[BookmarkClient] = None) -> str:
    if client is None:
        client = get_client()
    return await client.logout()


async def handle_add(cmd: AddCommand, client: Optional[BookmarkClient] = None) -> str:
    """
    Handle 'add' command.

    Args:
        cmd: AddCommand with url and title
        client: Optional BookmarkClient for dependency injection (testing)

    Returns:
        Success or error message
    """
    if client is None:
        client = get_client()
    return await client.add(cmd.url, cmd.title)


async def handle_delete(cmd: DeleteCommand, client: Optional[BookmarkClient] = None) -> str:
    """
    Handle 'delete' command.

    Args:
        cmd: DeleteCommand with a 1-based list index or a bookmark id
        client: Optional BookmarkClient for dependency injection (testing)

    Returns:
        Success or error message
    """
    if client is None:
        client = get_client()
    return await client.delete(cmd.target)


async def handle_list(cmd: ListCommand, client: Optional[BookmarkClient] = None) -> str:
    if client is None:
        client = get_client()
    return client.list_bookmarks()


async def handle_status(cmd: StatusCommand, client: Optional[BookmarkClient] = None) -> str:
    if client is None:
        client = get_client()
    return client.status()


async def handle_sync(cmd: SyncCommand, client: Optional[BookmarkClient] = None) -> str:
    if client is None:
        client = get_client()
    return await client.sync()
