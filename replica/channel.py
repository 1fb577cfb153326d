"""
Channel subscription manager.

Holds exactly one realtime link per owner identity and delivers decoded
notifications to a handler. The handler sits in a HandlerCell so the logic
can be swapped at any time while the link itself depends only on the owner:
replacing the handler never tears down or re-creates the subscription.
"""

import asyncio
import inspect
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from common.constants import MAX_RECONNECT_DELAY_SECONDS, RECONNECT_DELAY_SECONDS
from common.logging_config import get_logger
from common.protocol import (
    MSG_ERROR,
    Notification,
    ProtocolError,
    decode_notification,
    encode_notification,
)
from common.types import ConnectionStatus
from replica.exceptions import OwnerMismatchError

logger = get_logger(__name__)

NotificationHandler = Callable[[Notification], Optional[Awaitable[None]]]
StatusListener = Callable[[str, ConnectionStatus], None]


class ChannelLink(ABC):
    """One open, subscribed connection to the realtime channel."""

    @abstractmethod
    async def send(self, payload: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    async def receive(self) -> Optional[Dict[str, Any]]:
        """Return the next frame, or None once the link is closed."""

    @abstractmethod
    async def close(self) -> None:
        """Close the link. Safe to call more than once."""


class ChannelTransport(ABC):
    """Factory for channel links."""

    @abstractmethod
    async def connect(self, owner_id: str) -> ChannelLink:
        """
        Open a link subscribed to the owner's topic and to the unscoped
        change feed. Returns only after the server acknowledged the
        subscription.

        Raises:
            ChannelUnavailableError: If the link cannot be established
        """

    async def close(self) -> None:
        pass


class HandlerCell:
    """Mutable slot holding the current notification handler."""

    def __init__(self, handler: Optional[NotificationHandler] = None):
        self._handler = handler

    def set(self, handler: Optional[NotificationHandler]) -> None:
        self._handler = handler

    def get(self) -> Optional[NotificationHandler]:
        return self._handler

    async def dispatch(self, notification: Notification) -> None:
        handler = self._handler
        if handler is None:
            return
        result = handler(notification)
        if inspect.isawaitable(result):
            await result


@dataclass(eq=False)
class SubscriptionHandle:
    owner_id: str
    cell: HandlerCell = field(repr=False)
    released: bool = False


class _Subscription:
    def __init__(self, handle: SubscriptionHandle):
        self.handle = handle
        self.status = ConnectionStatus.DISCONNECTED
        self.link: Optional[ChannelLink] = None
        self.task: Optional[asyncio.Task] = None
        self.connect_count = 0


class ChannelSubscriptionManager:
    """
    Owns the lifecycle of one realtime link per owner.

    `publish` is best-effort: nothing is queued or retried when the link is
    not live. Replicas that miss a broadcast still converge through the
    storage change feed and reconciliation fetches.
    """

    def __init__(
        self,
        transport: ChannelTransport,
        reconnect_delay: float = RECONNECT_DELAY_SECONDS,
        max_reconnect_delay: float = MAX_RECONNECT_DELAY_SECONDS,
    ):
        self.transport = transport
        self.reconnect_delay = reconnect_delay
        self.max_reconnect_delay = max_reconnect_delay
        self._subscriptions: Dict[str, _Subscription] = {}
        self._status_listeners: List[StatusListener] = []

    async def subscribe(self, owner_id: str, on_notification: NotificationHandler) -> SubscriptionHandle:
        """
        Subscribe to the owner's notifications.

        Idempotent per owner: if a subscription already exists its handler
        is replaced in place and the existing handle is returned.
        """
        existing = self._subscriptions.get(owner_id)
        if existing is not None:
            existing.handle.cell.set(on_notification)
            logger.debug(f"Reusing subscription for owner {owner_id}")
            return existing.handle

        handle = SubscriptionHandle(owner_id=owner_id, cell=HandlerCell(on_notification))
        subscription = _Subscription(handle)
        self._subscriptions[owner_id] = subscription
        subscription.task = asyncio.create_task(self._link_loop(subscription))

        logger.info(f"Subscribed to channel for owner {owner_id}")
        return handle

    def set_handler(self, handle: SubscriptionHandle, handler: NotificationHandler) -> None:
        """Swap the handler behind a subscription without touching the link."""
        if handle.released:
            logger.warning(f"Ignoring handler update on released subscription for {handle.owner_id}")
            return
        handle.cell.set(handler)

    async def unsubscribe(self, handle: SubscriptionHandle) -> None:
        """Release the link. Safe to call multiple times."""
        if handle.released:
            return
        handle.released = True

        subscription = self._subscriptions.get(handle.owner_id)
        if subscription is None or subscription.handle is not handle:
            return
        del self._subscriptions[handle.owner_id]

        if subscription.task is not None:
            subscription.task.cancel()
            try:
                await subscription.task
            except asyncio.CancelledError:
                pass

        self._set_status(subscription, ConnectionStatus.DISCONNECTED)
        logger.info(f"Unsubscribed from channel for owner {handle.owner_id}")

    async def publish(self, owner_id: str, notification: Notification) -> bool:
        """
        Best-effort send on the owner's topic.

        Returns:
            True if the frame was handed to a live link, False otherwise
        """
        payload = encode_notification(notification)

        subscription = self._subscriptions.get(owner_id)
        if subscription is None or subscription.status is not ConnectionStatus.LIVE or subscription.link is None:
            logger.debug(f"Not publishing {payload['type']} for {owner_id}: link not live")
            return False

        try:
            await subscription.link.send(payload)
        except Exception as e:
            logger.warning(f"Publish on channel for {owner_id} failed: {e}")
            return False

        return True

    def status(self, owner_id: str) -> ConnectionStatus:
        subscription = self._subscriptions.get(owner_id)
        if subscription is None:
            return ConnectionStatus.DISCONNECTED
        return subscription.status

    def connect_count(self, owner_id: str) -> int:
        """Number of times the owner's link was (re)established."""
        subscription = self._subscriptions.get(owner_id)
        return subscription.connect_count if subscription else 0

    def add_status_listener(self, listener: StatusListener) -> Callable[[], None]:
        self._status_listeners.append(listener)

        def remove() -> None:
            if listener in self._status_listeners:
                self._status_listeners.remove(listener)

        return remove

    async def close(self) -> None:
        """Release every subscription and the transport."""
        for subscription in list(self._subscriptions.values()):
            await self.unsubscribe(subscription.handle)
        await self.transport.close()

    async def _link_loop(self, subscription: _Subscription) -> None:
        owner_id = subscription.handle.owner_id
        delay = self.reconnect_delay

        while True:
            self._set_status(subscription, ConnectionStatus.CONNECTING)

            try:
                link = await self.transport.connect(owner_id)
            except OwnerMismatchError as e:
                logger.error(f"Refusing to connect channel: {e}")
                self._set_status(subscription, ConnectionStatus.DISCONNECTED)
                return
            except Exception as e:
                logger.warning(f"Channel connect failed for {owner_id}: {e}; retrying in {delay:.1f}s")
                self._set_status(subscription, ConnectionStatus.DISCONNECTED)
                await asyncio.sleep(delay)
                delay = min(delay * 2, self.max_reconnect_delay)
                continue

            subscription.link = link
            subscription.connect_count += 1
            delay = self.reconnect_delay
            self._set_status(subscription, ConnectionStatus.LIVE)

            try:
                await self._pump(subscription, link)
            except Exception as e:
                logger.error(f"Channel link for {owner_id} failed: {e}", exc_info=True)
            finally:
                subscription.link = None
                await link.close()

            logger.warning(f"Channel link for {owner_id} dropped; reconnecting in {delay:.1f}s")
            self._set_status(subscription, ConnectionStatus.DISCONNECTED)
            await asyncio.sleep(delay)
            delay = min(delay * 2, self.max_reconnect_delay)

    async def _pump(self, subscription: _Subscription, link: ChannelLink) -> None:
        while True:
            payload = await link.receive()
            if payload is None:
                return

            if payload.get("type") == MSG_ERROR:
                logger.warning(f"Channel reported error: {payload.get('detail')}")
                continue

            try:
                notification = decode_notification(payload)
            except ProtocolError as e:
                logger.warning(f"Skipping malformed channel frame: {e}")
                continue

            try:
                await subscription.handle.cell.dispatch(notification)
            except Exception as e:
                logger.error(f"Notification handler failed: {e}", exc_info=True)

    def _set_status(self, subscription: _Subscription, status: ConnectionStatus) -> None:
        if subscription.status is status:
            return
        subscription.status = status
        owner_id = subscription.handle.owner_id
        logger.info(f"Channel status for {owner_id}: {status.value}")

        for listener in list(self._status_listeners):
            try:
                listener(owner_id, status)
            except Exception as e:
                logger.error(f"Status listener failed: {e}", exc_info=True)
