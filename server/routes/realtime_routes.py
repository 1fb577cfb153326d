"""Realtime WebSocket route: per-owner topic plus the unscoped change feed."""

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from common.constants import (
    INVALID_SESSION_CLOSE_CODE,
    REALTIME_PATH,
    TOPIC_FORBIDDEN_CLOSE_CODE,
)
from common.logging_config import get_logger
from common.protocol import (
    MSG_ERROR,
    MSG_SUBSCRIBED,
    ProtocolError,
    RemoteInsertBroadcast,
    decode_frame,
    decode_notification,
)
from server.auth import resolve_owner
from server.exceptions import InvalidSessionError, OwnerMismatchError
from server.service_locator import get_channel_broker
from server.services.bookmark_service import BookmarkService

logger = get_logger(__name__)

router = APIRouter(tags=["Realtime"])


@router.websocket(REALTIME_PATH)
async def realtime(websocket: WebSocket, topic: str = Query(...)):
    """
    Subscribe to an owner's topic.

    The session owner must equal `topic`. After the 'subscribed' frame the
    connection receives insert broadcasts for the topic and every storage
    change hint. Frames sent by the client must be insert broadcasts for
    records of the topic owner.
    """
    await websocket.accept()

    try:
        owner_id = resolve_owner(websocket.headers.get("authorization"))
    except InvalidSessionError as e:
        await websocket.send_json({"type": MSG_ERROR, "detail": str(e), "code": "INVALID_SESSION"})
        await websocket.close(code=INVALID_SESSION_CLOSE_CODE)
        return

    if owner_id != topic:
        logger.warning(f"Owner {owner_id} attempted to subscribe to topic {topic}")
        await websocket.send_json({
            "type": MSG_ERROR,
            "detail": "Topic does not match the session owner",
            "code": "OWNER_MISMATCH",
        })
        await websocket.close(code=TOPIC_FORBIDDEN_CLOSE_CODE)
        return

    broker = get_channel_broker()
    bookmark_service = BookmarkService(broker)

    await broker.join(topic, websocket)
    await websocket.send_json({"type": MSG_SUBSCRIBED, "topic": topic})

    try:
        while True:
            text = await websocket.receive_text()
            try:
                notification = decode_notification(decode_frame(text))
                if not isinstance(notification, RemoteInsertBroadcast):
                    raise ProtocolError("Only insert broadcasts may be published")
                await bookmark_service.relay_broadcast(topic, notification.record)
            except (ProtocolError, OwnerMismatchError) as e:
                logger.warning(f"Rejected frame on topic {topic}: {e}")
                await websocket.send_json({"type": MSG_ERROR, "detail": str(e), "code": "REJECTED"})
    except WebSocketDisconnect:
        logger.debug(f"Realtime client disconnected from topic {topic}")
    finally:
        await broker.leave(topic, websocket)
