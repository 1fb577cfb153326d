"""Shared pytest fixtures for all tests."""

import asyncio
import json
import tempfile
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Optional

import httpx
import pytest

from cli.config import Config
from common.types import CandidateFields, Record, parse_timestamp
from replica.channel import ChannelLink, ChannelTransport
from replica.exceptions import ChannelUnavailableError, TransientNetworkFailure
from server.database import init_database

BASE_TIME = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def temp_config_dir(tmp_path):
    """
    Create temporary config directory.

    Returns:
        Path to temporary .markd directory
    """
    config_dir = tmp_path / '.markd'
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def temp_config(temp_config_dir):
    """
    Create temporary config instance.

    Returns:
        Config instance with temp config file
    """
    return Config(temp_config_dir / 'config.json')


@pytest.fixture
def test_db(monkeypatch):
    """
    Create a temporary test database for each test.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        monkeypatch.setattr("server.database.DATABASE_PATH", str(db_path))
        monkeypatch.setattr("server.config.DATABASE_PATH", str(db_path))
        init_database()
        yield db_path


def make_record(
    owner_id: str = "alice",
    title: str = "Example",
    url: str = "https://example.com",
    minutes: int = 0,
    record_id: Optional[str] = None,
) -> Record:
    """Build a record created `minutes` after a fixed base time."""
    return Record(
        id=record_id or str(uuid.uuid4()),
        owner_id=owner_id,
        title=title,
        url=url,
        created_at=BASE_TIME + timedelta(minutes=minutes),
    )


class FakeFetcher:
    """
    Fetcher whose results are released by the test.

    Each fetch() call appends a future to `pending`; resolve it with a
    tuple of records or an exception.
    """

    def __init__(self, auto: Optional[tuple] = None):
        self.pending: List[asyncio.Future] = []
        self.calls = 0
        self.auto = auto

    async def fetch(self, owner_id: str):
        self.calls += 1
        if self.auto is not None:
            return self.auto
        future = asyncio.get_running_loop().create_future()
        self.pending.append(future)
        return await future

    def resolve(self, index: int, records) -> None:
        self.pending[index].set_result(tuple(records))

    def fail(self, index: int) -> None:
        self.pending[index].set_exception(TransientNetworkFailure("fetch failed"))


class FakePersistence:
    """
    In-memory persistence. Set `fail_inserts` / `fail_deletes` to make
    calls raise TransientNetworkFailure, or `gate` to hold inserts and deletes
    until the test sets the event.
    Fetch-style queries are answered from `rows`.
    """

    def __init__(self):
        self.rows: Dict[str, Record] = {}
        self.fail_inserts = False
        self.fail_deletes = False
        self.gate: Optional[asyncio.Event] = None
        self.inserted: List[Record] = []
        self.deleted: List[str] = []

    async def insert(self, owner_id: str, fields: CandidateFields, record: Optional[Record] = None) -> Record:
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_inserts:
            raise TransientNetworkFailure("insert failed")
        self.rows[record.id] = record
        self.inserted.append(record)
        return record

    async def delete(self, owner_id: str, record_id: str) -> bool:
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_deletes:
            raise TransientNetworkFailure("delete failed")
        self.deleted.append(record_id)
        return self.rows.pop(record_id, None) is not None

    async def query(self, owner_id: str):
        return tuple(
            sorted(
                (r for r in self.rows.values() if r.owner_id == owner_id),
                key=lambda r: r.created_at,
                reverse=True,
            )
        )


class FakeLink(ChannelLink):
    """Channel link fed from an asyncio.Queue; a None item closes it."""

    def __init__(self):
        self.incoming: asyncio.Queue = asyncio.Queue()
        self.sent: List[dict] = []
        self.closed = False

    async def send(self, payload):
        if self.closed:
            raise ConnectionError("link closed")
        self.sent.append(payload)

    async def receive(self):
        if self.closed:
            return None
        item = await self.incoming.get()
        if item is None:
            self.closed = True
        return item

    async def close(self):
        self.closed = True

    def push(self, payload) -> None:
        self.incoming.put_nowait(payload)

    def drop(self) -> None:
        self.incoming.put_nowait(None)


class FakeChannelTransport(ChannelTransport):
    """Transport handing out FakeLinks; `failures` connects fail first."""

    def __init__(self, failures: int = 0):
        self.links: List[FakeLink] = []
        self.connects: List[str] = []
        self.failures = failures
        self.closed = False

    async def connect(self, owner_id: str) -> FakeLink:
        self.connects.append(owner_id)
        if self.failures > 0:
            self.failures -= 1
            raise ChannelUnavailableError("channel down")
        link = FakeLink()
        self.links.append(link)
        return link

    async def close(self):
        self.closed = True


async def wait_for(predicate, timeout: float = 2.0) -> None:
    """Poll `predicate` until it is true or fail after `timeout` seconds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


class InMemoryServer:
    """
    Stand-in for the bookmark server: answers the HTTP API through an
    httpx.MockTransport and relays channel frames between HubLinks.
    """

    def __init__(self):
        self.rows: Dict[str, dict] = {}
        self.sessions: Dict[str, str] = {}
        self.links: List["HubLink"] = []

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url="http://markd.test", transport=httpx.MockTransport(self.handle))

    def _owner(self, request: httpx.Request) -> Optional[str]:
        key = request.headers.get("authorization", "")[len("Bearer "):]
        return self.sessions.get(key)

    def emit_change(self, payload: dict) -> None:
        for link in list(self.links):
            link.incoming.put_nowait(payload)

    def publish(self, topic: str, payload: dict) -> None:
        for link in list(self.links):
            if link.topic == topic:
                link.incoming.put_nowait(payload)

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path

        if path == "/auth/session":
            if request.method == "POST":
                owner_id = json.loads(request.content)["owner_id"]
                key = f"mk_{uuid.uuid4()}"
                self.sessions[key] = owner_id
                return httpx.Response(201, json={"session_key": key, "owner_id": owner_id})
            key = request.headers.get("authorization", "")[len("Bearer "):]
            return httpx.Response(200, json={"revoked": self.sessions.pop(key, None) is not None})

        owner_id = self._owner(request)
        if owner_id is None:
            return httpx.Response(401, json={"detail": "Invalid session", "code": "INVALID_SESSION"})

        if path == "/bookmarks" and request.method == "POST":
            body = json.loads(request.content)
            if body["id"] in self.rows:
                return httpx.Response(409, json={"detail": "exists", "code": "DUPLICATE_BOOKMARK"})
            row = {key: body.get(key) for key in ("id", "owner_id", "title", "url", "favicon", "created_at")}
            self.rows[row["id"]] = row
            self.emit_change({"type": "change_hint", "kind": "insert"})
            return httpx.Response(201, json=row)

        if path == "/bookmarks" and request.method == "GET":
            requested = request.url.params["owner_id"]
            rows = sorted(
                (row for row in self.rows.values() if row["owner_id"] == requested),
                key=lambda row: parse_timestamp(row["created_at"]),
                reverse=True,
            )
            return httpx.Response(200, json={"bookmarks": rows})

        if path.startswith("/bookmarks/") and request.method == "DELETE":
            record_id = path[len("/bookmarks/"):]
            row = self.rows.get(record_id)
            deleted = row is not None and row["owner_id"] == owner_id
            if deleted:
                del self.rows[record_id]
                self.emit_change({"type": "change_hint", "kind": "delete", "id": record_id})
            return httpx.Response(200, json={"id": record_id, "deleted": deleted})

        return httpx.Response(404, json={"detail": "Not found"})


class HubLink(FakeLink):
    def __init__(self, server: InMemoryServer, topic: str):
        super().__init__()
        self.server = server
        self.topic = topic

    async def send(self, payload):
        await super().send(payload)
        self.server.publish(self.topic, payload)

    async def close(self):
        await super().close()
        if self in self.server.links:
            self.server.links.remove(self)


class HubTransport(ChannelTransport):
    def __init__(self, server: InMemoryServer):
        self.server = server

    async def connect(self, owner_id: str) -> HubLink:
        link = HubLink(self.server, owner_id)
        self.server.links.append(link)
        return link
