"""Topic broker for realtime WebSocket connections."""

import asyncio
from typing import Any, Dict, List, Protocol, Set

from common.logging_config import get_logger

logger = get_logger(__name__)


class Connection(Protocol):
    async def send_json(self, data: Any) -> None:
        ...


class ChannelBroker:
    """
    Tracks realtime connections per topic (one topic per owner).

    Broadcasts go only to connections of the publishing topic, the sender
    included. Change hints go to every connection regardless of topic:
    a redacted insert hint carries nothing an owner filter could match.
    """

    def __init__(self):
        self._topics: Dict[str, Set[Connection]] = {}
        self.lock = asyncio.Lock()

    async def join(self, topic: str, connection: Connection) -> None:
        async with self.lock:
            self._topics.setdefault(topic, set()).add(connection)
        logger.info(f"Connection joined topic {topic} [topic_size={self.connection_count(topic)}]")

    async def leave(self, topic: str, connection: Connection) -> None:
        async with self.lock:
            members = self._topics.get(topic)
            if members is None:
                return
            members.discard(connection)
            if not members:
                del self._topics[topic]
        logger.info(f"Connection left topic {topic}")

    async def publish(self, topic: str, payload: Dict[str, Any]) -> int:
        """
        Send a payload to every connection subscribed to `topic`.

        Returns:
            Number of connections the payload was delivered to
        """
        async with self.lock:
            targets = [(topic, conn) for conn in self._topics.get(topic, ())]
        return await self._deliver(targets, payload)

    async def emit_change(self, payload: Dict[str, Any]) -> int:
        """
        Send a storage change hint to every connection, unscoped.

        Returns:
            Number of connections the payload was delivered to
        """
        async with self.lock:
            targets = [
                (topic, conn)
                for topic, members in self._topics.items()
                for conn in members
            ]
        return await self._deliver(targets, payload)

    def connection_count(self, topic: str = None) -> int:
        if topic is not None:
            return len(self._topics.get(topic, ()))
        return sum(len(members) for members in self._topics.values())

    async def _deliver(self, targets: List[tuple], payload: Dict[str, Any]) -> int:
        delivered = 0
        dead = []

        for topic, conn in targets:
            try:
                await conn.send_json(payload)
                delivered += 1
            except Exception as e:
                logger.warning(f"Dropping realtime connection on topic {topic}: {e}")
                dead.append((topic, conn))

        for topic, conn in dead:
            await self.leave(topic, conn)

        logger.debug(f"Delivered {payload.get('type')} to {delivered} connection(s)")
        return delivered
