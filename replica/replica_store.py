"""
Replica store.

Holds one replica's ordered collection and applies every change to it,
local or remote, through a single queue consumed by one worker task. Merge
handlers never await, so events take effect in the order they arrived;
persistence calls and reconciliation fetches run outside the worker and
report back by enqueueing events.
"""

import asyncio
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Iterable, List, Optional, Set, Tuple

from common.logging_config import get_logger
from common.protocol import (
    NOTIFICATION_TYPES,
    DeleteHint,
    LocalInsertAck,
    Notification,
    ReconciliationResult,
    RedactedInsertHint,
    RemoteInsertBroadcast,
)
from common.types import CandidateFields, ConnectionStatus, Record, utc_now
from replica.exceptions import NotInitializedError, OwnerMismatchError, TransientNetworkFailure
from replica.fetcher import ReconciliationFetcher
from replica.persistence import PersistenceClient

logger = get_logger(__name__)


class ReplicaState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"


@dataclass(frozen=True)
class StoreChange:
    """Emitted to listeners whenever the snapshot or the status changes."""
    snapshot: Tuple[Record, ...]
    status: ConnectionStatus
    reason: str


@dataclass(frozen=True)
class _OptimisticInsert:
    record: Record


@dataclass(frozen=True)
class _OptimisticDelete:
    record_id: str


@dataclass(frozen=True)
class _InsertRolledBack:
    record_id: str


@dataclass(frozen=True)
class _LocalSettled:
    """A local insert or delete finished persisting, successfully or not."""
    resync: bool = False


@dataclass(frozen=True)
class _StatusChanged:
    status: ConnectionStatus


Publisher = Callable[[Notification], Awaitable[bool]]
ChangeListener = Callable[[StoreChange], None]


class ReplicaStore:
    """
    In-memory snapshot of one owner's records, newest first.

    Invariants:
        - no two records share an id
        - records are ordered by created_at descending; ties keep the most
          recently observed record first
        - a reconciliation result is applied only if it answers the latest
          fetch issued (issue order, not arrival order)
        - a fetch still unanswered when a local mutation, a full-payload
          insert or a delete hint is applied is stale; a fresh fetch is
          issued once no local mutation is pending
    """

    def __init__(
        self,
        owner_id: str,
        fetcher: ReconciliationFetcher,
        persistence: PersistenceClient,
        publish: Optional[Publisher] = None,
        reconcile_interval: float = 0.0,
    ):
        """
        Args:
            owner_id: Owner whose records this replica holds
            fetcher: Source of authoritative snapshots
            persistence: Persistence boundary for local mutations
            publish: Best-effort broadcast of successful local inserts
            reconcile_interval: Seconds between periodic reconciliation
                fetches; 0 disables them
        """
        self.owner_id = owner_id
        self._fetcher = fetcher
        self._persistence = persistence
        self._publish = publish
        self.reconcile_interval = reconcile_interval

        self._records: List[Record] = []
        self._ids: Set[str] = set()
        self._optimistic_ids: Set[str] = set()
        self._status = ConnectionStatus.DISCONNECTED
        self._was_live = False
        self._state = ReplicaState.UNINITIALIZED

        self._queue: asyncio.Queue = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None
        self._reconcile_task: Optional[asyncio.Task] = None

        self._fetch_sequence = 0
        self._fetches: Set[asyncio.Task] = set()
        self._unanswered: Set[int] = set()
        self._pending_local = 0
        self._refetch_pending = False
        self._listeners: List[ChangeListener] = []

    @property
    def state(self) -> ReplicaState:
        return self._state

    @property
    def fetch_sequence(self) -> int:
        """Sequence number of the latest fetch issued."""
        return self._fetch_sequence

    def initialize(self, seed: Iterable[Record]) -> None:
        """
        Set the initial snapshot from a seed supplied by the caller.

        No network round trip happens here.
        """
        records = []
        ids = set()
        for record in seed:
            if record.owner_id != self.owner_id:
                logger.warning(f"Ignoring seed record {record.id} of another owner")
                continue
            if record.id in ids:
                continue
            ids.add(record.id)
            records.append(record)

        self._records = records
        self._ids = ids
        self._state = ReplicaState.READY

        logger.info(f"Replica initialized with {len(records)} record(s) [owner_id={self.owner_id}]")
        self._emit("initialized")

    async def start(self) -> None:
        """
        Start applying queued events.

        Raises:
            NotInitializedError: If initialize() was not called first
        """
        if self._state is ReplicaState.UNINITIALIZED:
            raise NotInitializedError("Replica store must be initialized before it starts")

        if self._worker is not None:
            logger.warning("Replica store already running")
            return

        self._worker = asyncio.create_task(self._run())

        if self.reconcile_interval > 0:
            self._reconcile_task = asyncio.create_task(self._reconcile_loop())

        logger.debug(f"Replica store started [reconcile_interval={self.reconcile_interval}s]")

    async def stop(self) -> None:
        tasks = [task for task in (self._worker, self._reconcile_task) if task is not None]
        tasks.extend(self._fetches)

        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass

        self._worker = None
        self._reconcile_task = None
        self._fetches.clear()
        logger.debug("Replica store stopped")

    def current_snapshot(self) -> Tuple[Record, ...]:
        return tuple(self._records)

    def connection_status(self) -> ConnectionStatus:
        return self._status

    def add_listener(self, listener: ChangeListener) -> Callable[[], None]:
        """
        Register a change listener.

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    async def request_insert(self, candidate: CandidateFields) -> Record:
        """
        Insert a new record built from validated candidate fields.

        Raises:
            TransientNetworkFailure: If persistence failed; the optimistic
                record has already been rolled back
        """
        record = Record(
            id=str(uuid.uuid4()),
            owner_id=self.owner_id,
            title=candidate.title,
            url=candidate.url,
            favicon=candidate.favicon,
            created_at=utc_now(),
        )
        return await self.apply_local_insert(record)

    async def request_delete(self, record_id: str) -> bool:
        return await self.apply_local_delete(record_id)

    async def apply_local_insert(self, record: Record) -> Record:
        """
        Show `record` immediately, then persist it.

        On success the acknowledgement goes through the merge (a no-op for
        the already present record) and the record is broadcast to the
        owner's other replicas. On failure the record is removed again.

        Returns:
            The persisted record

        Raises:
            OwnerMismatchError: If the record belongs to another owner
            TransientNetworkFailure: If persistence failed
        """
        if record.owner_id != self.owner_id:
            raise OwnerMismatchError(f"Record {record.id} belongs to {record.owner_id!r}")

        self._enqueue(_OptimisticInsert(record))

        fields = CandidateFields(title=record.title, url=record.url, favicon=record.favicon)
        try:
            persisted = await self._persistence.insert(self.owner_id, fields, record=record)
        except TransientNetworkFailure as e:
            logger.warning(f"Insert of {record.id} failed, rolling back: {e}")
            self._enqueue(_InsertRolledBack(record.id))
            self._enqueue(_LocalSettled())
            raise

        self.on_notification(LocalInsertAck(record=persisted))
        self._enqueue(_LocalSettled())

        if self._publish is not None:
            sent = await self._publish(RemoteInsertBroadcast(record=persisted))
            if not sent:
                logger.info(f"Broadcast of {persisted.id} not sent; other replicas will use the change feed")

        return persisted

    async def apply_local_delete(self, record_id: str) -> bool:
        """
        Remove the record immediately, then persist the deletion.

        On failure the snapshot is restored by a reconciliation fetch rather
        than by re-inserting, since the prior position is not kept.

        Returns:
            True if the deletion was persisted
        """
        self._enqueue(_OptimisticDelete(record_id))

        try:
            await self._persistence.delete(self.owner_id, record_id)
        except TransientNetworkFailure as e:
            logger.warning(f"Delete of {record_id} failed, resynchronizing: {e}")
            self._enqueue(_LocalSettled(resync=True))
            return False

        self._enqueue(_LocalSettled())
        return True

    def on_notification(self, notification: Notification) -> None:
        """Queue a notification for the merge. Never blocks."""
        if not isinstance(notification, NOTIFICATION_TYPES):
            raise TypeError(f"Not a notification: {notification!r}")
        self._enqueue(notification)

    def set_connection_status(self, status: ConnectionStatus) -> None:
        self._enqueue(_StatusChanged(status))

    def reconcile(self) -> asyncio.Task:
        """
        Issue a reconciliation fetch.

        Each fetch gets the next sequence number; only the result of the
        latest one issued is applied.
        """
        self._fetch_sequence += 1
        sequence = self._fetch_sequence
        self._unanswered.add(sequence)

        task = asyncio.create_task(self._fetch(sequence))
        self._fetches.add(task)
        task.add_done_callback(self._fetches.discard)

        logger.debug(f"Issued reconciliation fetch #{sequence}")
        return task

    async def wait_idle(self) -> None:
        """Wait until no fetch is in flight and every queued event is applied."""
        if self._worker is None:
            raise NotInitializedError("Replica store is not running")

        while True:
            if self._fetches:
                await asyncio.gather(*list(self._fetches), return_exceptions=True)
                continue
            await self._queue.join()
            if not self._fetches and self._queue.empty():
                return

    def _enqueue(self, event) -> None:
        self._queue.put_nowait(event)

    async def _fetch(self, sequence: int) -> None:
        try:
            snapshot = await self._fetcher.fetch(self.owner_id)
        except TransientNetworkFailure as e:
            logger.warning(f"Reconciliation fetch #{sequence} failed, keeping current snapshot: {e}")
            self._unanswered.discard(sequence)
            return

        self._enqueue(ReconciliationResult(snapshot=tuple(snapshot), sequence=sequence))

    async def _run(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                self._apply(event)
            except Exception as e:
                logger.error(f"Failed to apply {type(event).__name__}: {e}", exc_info=True)
            finally:
                self._queue.task_done()

    async def _reconcile_loop(self) -> None:
        while True:
            await asyncio.sleep(self.reconcile_interval)
            try:
                self.reconcile()
            except Exception as e:
                logger.error(f"Error scheduling periodic reconciliation: {e}", exc_info=True)

    def _apply(self, event) -> None:
        changed = False
        reason = type(event).__name__

        if isinstance(event, (LocalInsertAck, RemoteInsertBroadcast)):
            self._supersede_fetches()
            self._optimistic_ids.discard(event.record.id)
            changed = self._insert(event.record)
        elif isinstance(event, _OptimisticInsert):
            self._pending_local += 1
            self._supersede_fetches()
            changed = self._insert(event.record)
            if changed:
                self._optimistic_ids.add(event.record.id)
        elif isinstance(event, _InsertRolledBack):
            if event.record_id in self._optimistic_ids:
                self._optimistic_ids.discard(event.record_id)
                changed = self._remove(event.record_id)
        elif isinstance(event, DeleteHint):
            self._supersede_fetches()
            changed = self._remove(event.id)
        elif isinstance(event, _OptimisticDelete):
            self._pending_local += 1
            self._supersede_fetches()
            changed = self._remove(event.record_id)
        elif isinstance(event, _LocalSettled):
            self._pending_local = max(0, self._pending_local - 1)
            self._supersede_fetches()
            if event.resync:
                self._refetch_pending = True
        elif isinstance(event, RedactedInsertHint):
            self.reconcile()
        elif isinstance(event, ReconciliationResult):
            changed = self._replace(event)
        elif isinstance(event, _StatusChanged):
            changed = self._set_status(event.status)
        else:
            logger.warning(f"Ignoring unknown event {event!r}")

        if self._refetch_pending and self._pending_local == 0:
            self._refetch_pending = False
            self.reconcile()

        if changed:
            self._emit(reason)

    def _supersede_fetches(self) -> None:
        """Make every unanswered fetch stale and schedule a fresh one."""
        if not self._unanswered:
            return
        self._fetch_sequence += 1
        self._refetch_pending = True
        logger.debug(f"Fetches {sorted(self._unanswered)} predate a newer change; refetching")

    def _insert(self, record: Record) -> bool:
        if record.owner_id != self.owner_id:
            logger.warning(f"Ignoring record {record.id} of another owner")
            return False
        if record.id in self._ids:
            return False

        position = len(self._records)
        for index, existing in enumerate(self._records):
            if existing.created_at <= record.created_at:
                position = index
                break

        self._records.insert(position, record)
        self._ids.add(record.id)
        return True

    def _remove(self, record_id: str) -> bool:
        if record_id not in self._ids:
            return False
        self._records = [record for record in self._records if record.id != record_id]
        self._ids.discard(record_id)
        return True

    def _replace(self, result: ReconciliationResult) -> bool:
        self._unanswered.discard(result.sequence)

        if result.sequence != self._fetch_sequence:
            logger.debug(
                f"Discarding stale fetch #{result.sequence} (latest issued #{self._fetch_sequence})"
            )
            return False

        if self._pending_local:
            logger.debug(f"Deferring fetch #{result.sequence} until local changes settle")
            self._refetch_pending = True
            return False

        records = []
        ids = set()
        for record in result.snapshot:
            if record.id in ids or record.owner_id != self.owner_id:
                continue
            ids.add(record.id)
            records.append(record)

        changed = records != self._records
        self._records = records
        self._ids = ids
        self._optimistic_ids.intersection_update(ids)

        logger.debug(f"Applied fetch #{result.sequence}: {len(records)} record(s)")
        return changed

    def _set_status(self, status: ConnectionStatus) -> bool:
        if status is self._status:
            return False
        self._status = status

        if status is ConnectionStatus.LIVE:
            if self._was_live:
                logger.info("Channel re-established, reconciling")
                self.reconcile()
            self._was_live = True

        return True

    def _emit(self, reason: str) -> None:
        change = StoreChange(snapshot=tuple(self._records), status=self._status, reason=reason)
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception as e:
                logger.error(f"Change listener failed: {e}", exc_info=True)
