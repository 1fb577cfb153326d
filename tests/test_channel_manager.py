"""Tests for the channel subscription manager."""

import pytest

from common.protocol import DeleteHint, RedactedInsertHint, RemoteInsertBroadcast, encode_notification
from common.types import ConnectionStatus
from replica.channel import ChannelSubscriptionManager, ChannelTransport
from replica.exceptions import OwnerMismatchError

from conftest import FakeChannelTransport, FakeLink, make_record, wait_for


def make_manager(transport=None):
    return ChannelSubscriptionManager(
        transport or FakeChannelTransport(),
        reconnect_delay=0.01,
        max_reconnect_delay=0.05,
    )


@pytest.mark.asyncio
async def test_subscribe_goes_live_and_delivers_notifications():
    transport = FakeChannelTransport()
    manager = make_manager(transport)
    received = []

    handle = await manager.subscribe("alice", received.append)
    await wait_for(lambda: manager.status("alice") is ConnectionStatus.LIVE)

    transport.links[0].push({"type": "change_hint", "kind": "delete", "id": "r1"})
    await wait_for(lambda: len(received) == 1)

    assert received == [DeleteHint(id="r1")]
    assert handle.owner_id == "alice"
    await manager.close()


@pytest.mark.asyncio
async def test_subscribe_twice_reuses_link_and_replaces_handler():
    transport = FakeChannelTransport()
    manager = make_manager(transport)
    first, second = [], []

    handle = await manager.subscribe("alice", first.append)
    await wait_for(lambda: manager.status("alice") is ConnectionStatus.LIVE)
    again = await manager.subscribe("alice", second.append)

    assert again is handle
    transport.links[0].push({"type": "change_hint", "kind": "insert"})
    await wait_for(lambda: len(second) == 1)

    assert first == []
    assert second == [RedactedInsertHint()]
    assert transport.connects == ["alice"]
    assert manager.connect_count("alice") == 1
    await manager.close()


@pytest.mark.asyncio
async def test_handler_swap_keeps_the_subscription():
    transport = FakeChannelTransport()
    manager = make_manager(transport)
    first, second = [], []

    handle = await manager.subscribe("alice", first.append)
    await wait_for(lambda: manager.status("alice") is ConnectionStatus.LIVE)

    transport.links[0].push({"type": "change_hint", "kind": "insert"})
    await wait_for(lambda: len(first) == 1)

    manager.set_handler(handle, second.append)
    transport.links[0].push({"type": "change_hint", "kind": "insert"})
    await wait_for(lambda: len(second) == 1)

    assert len(first) == 1
    assert manager.connect_count("alice") == 1
    assert len(transport.connects) == 1
    await manager.close()


@pytest.mark.asyncio
async def test_async_handler_is_awaited():
    transport = FakeChannelTransport()
    manager = make_manager(transport)
    received = []

    async def handler(notification):
        received.append(notification)

    await manager.subscribe("alice", handler)
    await wait_for(lambda: manager.status("alice") is ConnectionStatus.LIVE)
    transport.links[0].push({"type": "change_hint", "kind": "insert"})
    await wait_for(lambda: len(received) == 1)

    await manager.close()


@pytest.mark.asyncio
async def test_status_listener_sees_transitions():
    manager = make_manager()
    seen = []
    manager.add_status_listener(lambda owner_id, status: seen.append((owner_id, status)))

    handle = await manager.subscribe("alice", lambda n: None)
    await wait_for(lambda: manager.status("alice") is ConnectionStatus.LIVE)
    await manager.unsubscribe(handle)

    assert seen == [
        ("alice", ConnectionStatus.CONNECTING),
        ("alice", ConnectionStatus.LIVE),
        ("alice", ConnectionStatus.DISCONNECTED),
    ]


@pytest.mark.asyncio
async def test_publish_requires_live_link():
    transport = FakeChannelTransport()
    manager = make_manager(transport)
    broadcast = RemoteInsertBroadcast(record=make_record())

    assert await manager.publish("alice", broadcast) is False

    await manager.subscribe("alice", lambda n: None)
    await wait_for(lambda: manager.status("alice") is ConnectionStatus.LIVE)

    assert await manager.publish("alice", broadcast) is True
    assert transport.links[0].sent == [encode_notification(broadcast)]
    await manager.close()


@pytest.mark.asyncio
async def test_reconnects_after_link_drop():
    transport = FakeChannelTransport()
    manager = make_manager(transport)
    seen = []
    manager.add_status_listener(lambda owner_id, status: seen.append(status))

    await manager.subscribe("alice", lambda n: None)
    await wait_for(lambda: manager.status("alice") is ConnectionStatus.LIVE)

    transport.links[0].drop()
    await wait_for(lambda: manager.connect_count("alice") == 2)
    await wait_for(lambda: manager.status("alice") is ConnectionStatus.LIVE)

    assert seen == [
        ConnectionStatus.CONNECTING,
        ConnectionStatus.LIVE,
        ConnectionStatus.DISCONNECTED,
        ConnectionStatus.CONNECTING,
        ConnectionStatus.LIVE,
    ]
    assert transport.links[0].closed
    await manager.close()


@pytest.mark.asyncio
async def test_retries_failed_connects():
    transport = FakeChannelTransport(failures=2)
    manager = make_manager(transport)

    await manager.subscribe("alice", lambda n: None)
    await wait_for(lambda: manager.status("alice") is ConnectionStatus.LIVE)

    assert len(transport.connects) == 3
    assert manager.connect_count("alice") == 1
    await manager.close()


@pytest.mark.asyncio
async def test_owner_mismatch_stops_connecting():
    class RefusingTransport(ChannelTransport):
        def __init__(self):
            self.attempts = 0

        async def connect(self, owner_id):
            self.attempts += 1
            raise OwnerMismatchError("wrong owner")

    transport = RefusingTransport()
    manager = make_manager(transport)

    handle = await manager.subscribe("alice", lambda n: None)
    await wait_for(lambda: transport.attempts == 1)
    await wait_for(lambda: manager.status("alice") is ConnectionStatus.DISCONNECTED)

    assert transport.attempts == 1
    await manager.unsubscribe(handle)


@pytest.mark.asyncio
async def test_bad_frames_and_failing_handlers_do_not_stop_the_link():
    transport = FakeChannelTransport()
    manager = make_manager(transport)
    received = []

    def handler(notification):
        if isinstance(notification, RedactedInsertHint):
            raise RuntimeError("boom")
        received.append(notification)

    await manager.subscribe("alice", handler)
    await wait_for(lambda: manager.status("alice") is ConnectionStatus.LIVE)

    link = transport.links[0]
    link.push({"type": "nonsense"})
    link.push({"type": "change_hint", "kind": "delete"})
    link.push({"type": "error", "detail": "rejected", "code": "REJECTED"})
    link.push({"type": "change_hint", "kind": "insert"})
    link.push({"type": "change_hint", "kind": "delete", "id": "r9"})
    await wait_for(lambda: len(received) == 1)

    assert received == [DeleteHint(id="r9")]
    assert manager.connect_count("alice") == 1
    await manager.close()


@pytest.mark.asyncio
async def test_unsubscribe_is_idempotent():
    transport = FakeChannelTransport()
    manager = make_manager(transport)

    handle = await manager.subscribe("alice", lambda n: None)
    await wait_for(lambda: manager.status("alice") is ConnectionStatus.LIVE)

    await manager.unsubscribe(handle)
    await manager.unsubscribe(handle)

    assert handle.released
    assert manager.status("alice") is ConnectionStatus.DISCONNECTED
    assert await manager.publish("alice", RemoteInsertBroadcast(record=make_record())) is False

    await manager.close()
    assert transport.closed


@pytest.mark.asyncio
async def test_reconnects_after_receive_raises():
    class RaisingLink(FakeLink):
        async def receive(self):
            item = await super().receive()
            if isinstance(item, Exception):
                raise item
            return item

    class RaisingTransport(FakeChannelTransport):
        async def connect(self, owner_id):
            self.connects.append(owner_id)
            link = RaisingLink()
            self.links.append(link)
            return link

    transport = RaisingTransport()
    manager = make_manager(transport)
    received = []

    await manager.subscribe("alice", received.append)
    await wait_for(lambda: manager.status("alice") is ConnectionStatus.LIVE)

    transport.links[0].push(ConnectionResetError("reset by peer"))
    await wait_for(lambda: manager.connect_count("alice") == 2)
    await wait_for(lambda: manager.status("alice") is ConnectionStatus.LIVE)

    assert transport.links[0].closed
    transport.links[1].push({"type": "change_hint", "kind": "delete", "id": "r1"})
    await wait_for(lambda: len(received) == 1)

    assert received == [DeleteHint(id="r1")]
    await manager.close()
