"""Tests for the CLI bookmark client and command handlers."""

from unittest.mock import AsyncMock, Mock

import pytest

from cli.bookmark_client import BookmarkClient
from cli.commands import handle_add, handle_delete, handle_list, handle_login, handle_status, handle_sync
from cli.constants import NOT_LOGGED_IN
from cli.models import AddCommand, DeleteCommand, ListCommand, LoginCommand, StatusCommand, SyncCommand
from common.types import CandidateFields, ConnectionStatus
from replica.replica import Replica
from replica.session import establish_session

from conftest import HubTransport, InMemoryServer, wait_for


def make_client(server, config, messages=None):
    def factory(session):
        return Replica(session, transport=HubTransport(server), http_client=server.client(), reconnect_delay=0.01)

    return BookmarkClient(
        config,
        replica_factory=factory,
        notify=(messages.append if messages is not None else lambda message: None),
        http_client=server.client(),
    )


@pytest.mark.asyncio
async def test_commands_require_login(temp_config):
    client = make_client(InMemoryServer(), temp_config)

    assert await client.add("example.com", "Example") == NOT_LOGGED_IN
    assert await client.delete("1") == NOT_LOGGED_IN
    assert client.list_bookmarks() == NOT_LOGGED_IN
    assert client.status() == NOT_LOGGED_IN
    assert await client.logout() == NOT_LOGGED_IN
    assert await client.resume() is None


@pytest.mark.asyncio
async def test_login_add_list_delete_logout(temp_config):
    server = InMemoryServer()
    client = make_client(server, temp_config)

    assert await client.login("alice") == "Logged in as alice (0 bookmarks)"
    assert temp_config.get_session()[0] == "alice"

    assert await client.add("example.com", "  Example ") == "Saved 'Example' (https://example.com)"
    await client.replica.store.wait_idle()
    assert "Example" in client.list_bookmarks()
    assert len(server.rows) == 1

    assert await client.delete("1") == "Deleted 'Example'"
    assert server.rows == {}

    await wait_for(lambda: client.replica.store.connection_status() is ConnectionStatus.LIVE)
    assert "Owner:   alice" in client.status()

    assert await client.logout() == "Logged out alice"
    assert temp_config.get_session() is None
    assert server.sessions == {}


@pytest.mark.asyncio
async def test_invalid_input_is_reported(temp_config):
    client = make_client(InMemoryServer(), temp_config)
    await client.login("alice")

    assert await client.add("https://", "Broken") == "Error: Please enter a valid URL."
    assert await client.add("example.com", " ") == "Error: Please enter a title."
    assert await client.delete("3") == "Error: no bookmark matches '3'"
    assert await client.delete("no-such-id") == "Error: no bookmark matches 'no-such-id'"

    await client.close()


@pytest.mark.asyncio
async def test_delete_by_id_and_sync(temp_config):
    server = InMemoryServer()
    client = make_client(server, temp_config)
    await client.login("alice")
    await client.add("a.test", "A")
    await client.replica.store.wait_idle()
    record = client.replica.store.current_snapshot()[0]

    assert await client.delete(record.id) == "Deleted 'A'"
    assert "No bookmarks yet" in await client.sync()

    await client.close()


@pytest.mark.asyncio
async def test_remote_changes_are_announced(temp_config):
    server = InMemoryServer()
    messages = []
    client = make_client(server, temp_config, messages)
    await client.login("alice")
    await wait_for(lambda: client.replica.store.connection_status() is ConnectionStatus.LIVE)

    session = await establish_session("http://markd.test", "alice", client=server.client())
    other = Replica(session, transport=HubTransport(server), http_client=server.client())
    await other.start()
    await wait_for(lambda: other.store.connection_status() is ConnectionStatus.LIVE)
    await other.store.request_insert(CandidateFields(title="Remote", url="https://remote.test"))

    await wait_for(lambda: "[sync] 1 bookmark" in messages)
    assert any("Live" in message for message in messages)

    await other.stop()
    await client.close()


@pytest.mark.asyncio
async def test_resume_uses_stored_session(temp_config):
    server = InMemoryServer()
    first = make_client(server, temp_config)
    await first.login("alice")
    await first.add("a.test", "A")
    await first.close()

    second = make_client(server, temp_config)
    assert await second.resume() == "Resumed session for alice"
    assert "You have 1 bookmark saved." in second.list_bookmarks()

    await second.close()


@pytest.mark.asyncio
async def test_handlers_delegate_to_client():
    mock_client = Mock(spec=BookmarkClient)
    mock_client.login = AsyncMock(return_value="Logged in as alice (0 bookmarks)")
    mock_client.add = AsyncMock(return_value="Saved")
    mock_client.delete = AsyncMock(return_value="Deleted")
    mock_client.sync = AsyncMock(return_value="synced")
    mock_client.list_bookmarks.return_value = "list"
    mock_client.status.return_value = "status"

    assert "Logged in" in await handle_login(LoginCommand(owner_id="alice"), client=mock_client)
    assert await handle_add(AddCommand(url="a.test", title="A"), client=mock_client) == "Saved"
    assert await handle_delete(DeleteCommand(target="1"), client=mock_client) == "Deleted"
    assert await handle_list(ListCommand(), client=mock_client) == "list"
    assert await handle_status(StatusCommand(), client=mock_client) == "status"
    assert await handle_sync(SyncCommand(), client=mock_client) == "synced"

    mock_client.login.assert_awaited_once_with("alice")
    mock_client.add.assert_awaited_once_with("a.test", "A")
    mock_client.delete.assert_awaited_once_with("1")
