"""aiohttp WebSocket transport for the realtime channel."""

import asyncio
from typing import Any, Dict, Optional

import aiohttp

from common.constants import SUBSCRIBE_ACK_TIMEOUT_SECONDS
from common.logging_config import get_logger
from common.protocol import MSG_SUBSCRIBED, ProtocolError, decode_frame
from replica.channel import ChannelLink, ChannelTransport
from replica.exceptions import ChannelUnavailableError
from replica.session import ReplicaSession

logger = get_logger(__name__)


class WebSocketLink(ChannelLink):
    def __init__(self, ws: aiohttp.ClientWebSocketResponse):
        self.ws = ws

    async def send(self, payload: Dict[str, Any]) -> None:
        await self.ws.send_json(payload)

    async def receive(self) -> Optional[Dict[str, Any]]:
        while True:
            msg = await self.ws.receive()

            if msg.type == aiohttp.WSMsgType.TEXT:
                try:
                    return decode_frame(msg.data)
                except ProtocolError as e:
                    logger.warning(f"Ignoring undecodable frame: {e}")
                    continue

            if msg.type in (
                aiohttp.WSMsgType.CLOSE,
                aiohttp.WSMsgType.CLOSING,
                aiohttp.WSMsgType.CLOSED,
                aiohttp.WSMsgType.ERROR,
            ):
                return None

    async def close(self) -> None:
        if not self.ws.closed:
            await self.ws.close()


class WebSocketChannelTransport(ChannelTransport):
    """
    Connects to the server's realtime endpoint for one session.

    The link joins the owner's topic (insert broadcasts) and always receives
    the server's change feed, which is never filtered by owner.
    """

    def __init__(
        self,
        session: ReplicaSession,
        http: Optional[aiohttp.ClientSession] = None,
        heartbeat: float = 30.0,
        ack_timeout: float = SUBSCRIBE_ACK_TIMEOUT_SECONDS,
    ):
        self.session = session
        self.heartbeat = heartbeat
        self.ack_timeout = ack_timeout
        self._http = http
        self._owns_http = http is None

    def _get_http(self) -> aiohttp.ClientSession:
        if self._http is None:
            self._http = aiohttp.ClientSession()
        return self._http

    async def connect(self, owner_id: str) -> ChannelLink:
        self.session.check_owner(owner_id)

        url = self.session.realtime_url
        try:
            ws = await self._get_http().ws_connect(
                url,
                params={"topic": owner_id},
                headers=self.session.auth_headers(),
                heartbeat=self.heartbeat,
            )
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            raise ChannelUnavailableError(f"Cannot connect to {url}: {e}") from e

        link = WebSocketLink(ws)

        try:
            first = await asyncio.wait_for(link.receive(), timeout=self.ack_timeout)
        except asyncio.TimeoutError:
            await link.close()
            raise ChannelUnavailableError("No subscription acknowledgement from server")

        if first is None or first.get("type") != MSG_SUBSCRIBED:
            await link.close()
            detail = (first or {}).get("detail", "connection closed")
            raise ChannelUnavailableError(f"Subscription refused: {detail}")

        logger.debug(f"Realtime link open for topic {owner_id}")
        return link

    async def close(self) -> None:
        if self._http is not None and self._owns_http:
            await self._http.close()
            self._http = None
