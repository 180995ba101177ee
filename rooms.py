# rooms.py
import asyncio
import logging
import uuid
from typing import Any, Dict, Hashable, List, Optional, Set

from starlette.websockets import WebSocketDisconnect, WebSocketState

logger = logging.getLogger(__name__)

Message = Dict[str, Any]


class Connection:
    """A connected client and its outbound frame queue.

    ``push`` never waits: frames are queued and written by ``pump``, which runs
    as one task per connection, so a slow client only delays its own frames.
    """

    def __init__(self, websocket: Any, connection_id: Optional[str] = None, max_queue_size: int = 256):
        self.connection_id = connection_id or uuid.uuid4().hex
        self.websocket = websocket
        self.max_queue_size = max_queue_size
        self.outbox: "asyncio.Queue[Optional[Message]]" = asyncio.Queue()
        self.closed = False

    def push(self, message: Message) -> bool:
        if self.closed:
            return False
        if self.outbox.qsize() >= self.max_queue_size:
            logger.warning(
                "Outbound queue full for %s (%d/%d), dropping %s",
                self.connection_id,
                self.outbox.qsize(),
                self.max_queue_size,
                message.get("type"),
            )
            return False
        self.outbox.put_nowait(message)
        return True

    def close(self):
        if not self.closed:
            self.closed = True
            # wakes pump so it can exit
            self.outbox.put_nowait(None)

    async def pump(self):
        try:
            while True:
                message = await self.outbox.get()
                if message is None:
                    break
                if self.websocket.client_state != WebSocketState.CONNECTED:
                    break
                try:
                    await self.websocket.send_json(message)
                except (WebSocketDisconnect, RuntimeError, OSError) as exc:
                    logger.debug("Send to %s failed: %r", self.connection_id, exc)
                    break
        finally:
            # nothing will drain the queue any more
            self.closed = True


class RoomManager:
    def __init__(self, max_queue_size: int = 256):
        self.max_queue_size = max_queue_size
        self.connections: Dict[str, Connection] = {}
        # { room_id: {connection_id, ...} }
        self.rooms: Dict[Hashable, Set[str]] = {}

    def connect(self, websocket: Any, connection_id: Optional[str] = None) -> Connection:
        connection = Connection(websocket, connection_id, max_queue_size=self.max_queue_size)
        self.connections[connection.connection_id] = connection
        return connection

    def disconnect(self, connection_id: str) -> bool:
        """Forget a connection and drop it from every room. Returns False if it was unknown."""
        connection = self.connections.pop(connection_id, None)
        for room_id in [r for r, members in self.rooms.items() if connection_id in members]:
            self.leave_room(room_id, connection_id)
        if connection is None:
            return False
        connection.close()
        return True

    def join_room(self, room_id: Hashable, connection_id: str):
        self.rooms.setdefault(room_id, set()).add(connection_id)

    def leave_room(self, room_id: Hashable, connection_id: str):
        members = self.rooms.get(room_id)
        if members is None:
            return
        members.discard(connection_id)
        if not members:
            del self.rooms[room_id]

    def get_participants(self, room_id: Hashable) -> List[str]:
        return list(self.rooms.get(room_id, ()))

    def delete_room(self, room_id: Hashable):
        self.rooms.pop(room_id, None)

    def send(self, connection_id: str, message: Message) -> bool:
        connection = self.connections.get(connection_id)
        if connection is None:
            return False
        return connection.push(message)

    def send_to_room(self, room_id: Hashable, message: Message) -> int:
        return sum(1 for cid in self.get_participants(room_id) if self.send(cid, message))

    def send_to_all(self, message: Message) -> int:
        return sum(1 for connection in list(self.connections.values()) if connection.push(message))
