"""One running replica: persistence, fetcher, channel and store for a session."""

from typing import Iterable, Optional

import httpx

from common.constants import MAX_RECONNECT_DELAY_SECONDS, RECONNECT_DELAY_SECONDS
from common.logging_config import get_logger
from common.protocol import Notification
from common.types import ConnectionStatus, Record
from replica.channel import ChannelSubscriptionManager, ChannelTransport, NotificationHandler, SubscriptionHandle
from replica.exceptions import TransientNetworkFailure
from replica.fetcher import ReconciliationFetcher
from replica.persistence import PersistenceClient
from replica.replica_store import ReplicaStore
from replica.session import ReplicaSession
from replica.transport import WebSocketChannelTransport

logger = get_logger(__name__)


class Replica:
    """
    Wires the components of one replica together.

    The channel subscription is created once in start() and released in
    stop(); replace_handler() only swaps the logic behind it.
    """

    def __init__(
        self,
        session: ReplicaSession,
        transport: Optional[ChannelTransport] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        reconnect_delay: float = RECONNECT_DELAY_SECONDS,
        max_reconnect_delay: float = MAX_RECONNECT_DELAY_SECONDS,
        reconcile_interval: float = 0.0,
    ):
        self.session = session
        self.persistence = PersistenceClient(session, client=http_client)
        self.fetcher = ReconciliationFetcher(self.persistence)
        self.channel = ChannelSubscriptionManager(
            transport or WebSocketChannelTransport(session),
            reconnect_delay=reconnect_delay,
            max_reconnect_delay=max_reconnect_delay,
        )
        self.store = ReplicaStore(
            session.owner_id,
            self.fetcher,
            self.persistence,
            publish=self._publish,
            reconcile_interval=reconcile_interval,
        )
        self._handle: Optional[SubscriptionHandle] = None
        self._remove_status_listener = None

    @property
    def owner_id(self) -> str:
        return self.session.owner_id

    async def start(self, seed: Optional[Iterable[Record]] = None) -> None:
        """
        Initialize the store and subscribe to the channel.

        Args:
            seed: Snapshot rendered elsewhere; when omitted one fetch is made.
                If that fetch fails the replica starts empty and reconciles
                in the background.
        """
        needs_reconcile = False
        if seed is None:
            try:
                seed = await self.fetcher.fetch(self.owner_id)
            except TransientNetworkFailure as e:
                logger.warning(f"Initial fetch failed, starting empty: {e}")
                seed = ()
                needs_reconcile = True

        self.store.initialize(seed)
        await self.store.start()

        self._remove_status_listener = self.channel.add_status_listener(self._on_status)
        self._handle = await self.channel.subscribe(self.owner_id, self.store.on_notification)

        if needs_reconcile:
            self.store.reconcile()

        logger.info(f"Replica started [owner_id={self.owner_id}]")

    def replace_handler(self, handler: NotificationHandler) -> None:
        """Route notifications through `handler` without resubscribing."""
        if self._handle is None:
            raise RuntimeError("Replica is not started")
        self.channel.set_handler(self._handle, handler)

    async def stop(self) -> None:
        if self._handle is not None:
            await self.channel.unsubscribe(self._handle)
            self._handle = None

        if self._remove_status_listener is not None:
            self._remove_status_listener()
            self._remove_status_listener = None

        await self.channel.close()
        await self.store.stop()
        await self.persistence.close()

        logger.info(f"Replica stopped [owner_id={self.owner_id}]")

    async def _publish(self, notification: Notification) -> bool:
        return await self.channel.publish(self.owner_id, notification)

    def _on_status(self, owner_id: str, status: ConnectionStatus) -> None:
        if owner_id == self.owner_id:
            self.store.set_connection_status(status)
