import asyncio
import contextlib
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from events import decode_frame, parse_event
from exceptions import InvalidMessageError, SignalingError
from streams import StreamSignalingRelay

logger = logging.getLogger(__name__)

router = APIRouter()


async def receive_text_frame(websocket: WebSocket) -> str:
    message = await websocket.receive()
    if message["type"] == "websocket.disconnect":
        raise WebSocketDisconnect(message.get("code", 1000))
    text = message.get("text")
    if text is None:
        raise InvalidMessageError("Binary frames are not supported")
    return text


@router.websocket("/live")
async def signaling_endpoint(websocket: WebSocket):
    relay: StreamSignalingRelay = websocket.app.state.relay
    await websocket.accept()

    connection = relay.rooms.connect(websocket)
    connection_id = connection.connection_id
    writer = asyncio.create_task(connection.pump())
    logger.info("Client connected: %s", connection_id)
    connection.push({"type": "connected", "connectionId": connection_id})

    try:
        while True:
            try:
                frame = decode_frame(await receive_text_frame(websocket))
                event_type, payload = parse_event(frame)
            except SignalingError as exc:
                logger.warning("Bad frame from %s: %s", connection_id, exc.message)
                connection.push(exc.to_frame())
                continue
            relay.dispatch(connection_id, event_type, payload)

    except WebSocketDisconnect:
        pass
    finally:
        logger.info("Client disconnected: %s", connection_id)
        relay.disconnect(connection_id)
        writer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await writer
