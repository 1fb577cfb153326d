"""Replica-backed client behind the CLI commands."""

from typing import Callable, Optional

import httpx

from common.logging_config import get_logger
from common.types import ConnectionStatus, Record
from common.urls import InvalidCandidateError, prepare_candidate
from cli.config import Config
from cli.constants import NOT_LOGGED_IN
from cli.utils import format_snapshot, format_status
from replica.exceptions import OwnerMismatchError, TransientNetworkFailure
from replica.replica import Replica
from replica.replica_store import StoreChange
from replica.session import ReplicaSession, establish_session, revoke_session

logger = get_logger(__name__)

REMOTE_REASONS = {"RemoteInsertBroadcast", "DeleteHint", "ReconciliationResult"}

ReplicaFactory = Callable[[ReplicaSession], Replica]


class BookmarkClient:
    """Owns the running replica for the logged-in owner."""

    def __init__(
        self,
        config: Config,
        replica_factory: Optional[ReplicaFactory] = None,
        notify: Optional[Callable[[str], None]] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize bookmark client.

        Args:
            config: Configuration instance
            replica_factory: Builds a Replica for a session (tests inject fakes)
            notify: Receives one-line messages about remote changes
            http_client: Optional AsyncClient for session requests
        """
        self.config = config
        self.http_client = http_client
        self.replica: Optional[Replica] = None
        self._replica_factory = replica_factory or self._default_replica
        self._notify = notify or print
        self._remove_listener = None
        self._last_status = ConnectionStatus.DISCONNECTED

    def _default_replica(self, session: ReplicaSession) -> Replica:
        return Replica(
            session,
            reconcile_interval=self.config.get_reconcile_interval(),
            **self.config.get_reconnect_config(),
        )

    async def _start(self, session: ReplicaSession) -> None:
        replica = self._replica_factory(session)
        await replica.start()
        self._remove_listener = replica.store.add_listener(self._on_change)
        self.replica = replica

    async def _stop(self) -> None:
        if self._remove_listener is not None:
            self._remove_listener()
            self._remove_listener = None
        if self.replica is not None:
            await self.replica.stop()
            self.replica = None
        self._last_status = ConnectionStatus.DISCONNECTED

    def _on_change(self, change: StoreChange) -> None:
        if change.status is not self._last_status:
            self._last_status = change.status
            self._notify(f"[realtime] {format_status(change.status)}")
        elif change.reason in REMOTE_REASONS:
            count = len(change.snapshot)
            self._notify(f"[sync] {count} bookmark{'' if count == 1 else 's'}")

    async def resume(self) -> Optional[str]:
        """
        Restart the replica for a session saved in the config.

        Returns:
            Message to show, or None if no session is saved
        """
        stored = self.config.get_session()
        if stored is None:
            return None

        owner_id, session_key = stored
        session = ReplicaSession(
            owner_id=owner_id,
            session_key=session_key,
            server_url=self.config.get_base_url(),
            timeout=self.config.get_timeout(),
        )
        await self._start(session)
        return f"Resumed session for {owner_id}"

    async def login(self, owner_id: str) -> str:
        try:
            session = await establish_session(
                self.config.get_base_url(),
                owner_id,
                client=self.http_client,
                timeout=self.config.get_timeout(),
            )
        except TransientNetworkFailure as e:
            return f"Error: {e}"

        await self._stop()
        self.config.set_session(session.owner_id, session.session_key)
        await self._start(session)

        count = len(self.replica.store.current_snapshot())
        return f"Logged in as {session.owner_id} ({count} bookmark{'' if count == 1 else 's'})"

    async def logout(self) -> str:
        if self.replica is None:
            return NOT_LOGGED_IN
        session = self.replica.session
        await self._stop()
        self.config.clear_session()

        try:
            await revoke_session(session, client=self.http_client)
        except TransientNetworkFailure as e:
            logger.warning(f"Could not revoke session on the server: {e}")

        return f"Logged out {session.owner_id}"

    async def add(self, url: str, title: str) -> str:
        if self.replica is None:
            return NOT_LOGGED_IN

        try:
            candidate = prepare_candidate(url, title)
        except InvalidCandidateError as e:
            return f"Error: {e}"

        try:
            record = await self.replica.store.request_insert(candidate)
        except (TransientNetworkFailure, OwnerMismatchError) as e:
            return f"Error: could not save bookmark: {e}"

        return f"Saved '{record.title}' ({record.url})"

    def _resolve_target(self, target: str) -> Optional[Record]:
        records = self.replica.store.current_snapshot()
        if target.isdigit():
            index = int(target)
            if 1 <= index <= len(records):
                return records[index - 1]
            return None
        for record in records:
            if record.id == target:
                return record
        return None

    async def delete(self, target: str) -> str:
        if self.replica is None:
            return NOT_LOGGED_IN

        record = self._resolve_target(target)
        if record is None:
            return f"Error: no bookmark matches '{target}'"

        if await self.replica.store.request_delete(record.id):
            return f"Deleted '{record.title}'"
        return f"Error: could not delete '{record.title}'; bookmarks were resynchronized"

    def list_bookmarks(self) -> str:
        if self.replica is None:
            return NOT_LOGGED_IN
        return format_snapshot(self.replica.store.current_snapshot())

    def status(self) -> str:
        if self.replica is None:
            return NOT_LOGGED_IN
        store = self.replica.store
        return (
            f"Owner:   {self.replica.owner_id}\n"
            f"Server:  {self.config.get_base_url()}\n"
            f"Channel: {format_status(store.connection_status())}\n"
            f"Saved:   {len(store.current_snapshot())}"
        )

    async def sync(self) -> str:
        if self.replica is None:
            return NOT_LOGGED_IN
        await self.replica.store.reconcile()
        await self.replica.store.wait_idle()
        return self.list_bookmarks()

    async def close(self) -> None:
        await self._stop()
