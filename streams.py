# streams.py
"""
Live-stream signaling relay.

Keeps the registry of live streams (one broadcaster, any number of viewers)
and routes WebRTC offer/answer/ICE frames, chat and likes between them.
Offer, answer and candidate payloads are forwarded without inspection.

Every method here is synchronous. Registry changes happen without an await
point, so on the event loop each operation is atomic with respect to the
others; sends only enqueue frames on the recipients' connections.
"""
import logging
import time
from typing import Any, Callable, Dict, List, Optional

from events import EventType, Payload, StreamId
from exceptions import DuplicateStreamError, SignalingError, StreamNotFoundError
from rooms import RoomManager

logger = logging.getLogger(__name__)


class StreamSession:
    def __init__(self, stream_id: StreamId, broadcaster: str, user_id: Any, user_name: Any, start_time: float):
        self.stream_id = stream_id
        self.broadcaster = broadcaster
        self.user_id = user_id
        self.user_name = user_name
        self.viewers = set()
        self.start_time = start_time

    @property
    def viewer_count(self) -> int:
        return len(self.viewers)

    def to_listing(self, now: float) -> Dict[str, Any]:
        return {
            "streamId": self.stream_id,
            "userId": self.user_id,
            "userName": self.user_name,
            "viewerCount": self.viewer_count,
            "duration": int((now - self.start_time) * 1000),
        }


class StreamSignalingRelay:
    def __init__(
        self,
        rooms: RoomManager,
        clock: Callable[[], float] = time.time,
        reject_duplicates: bool = False,
    ):
        self.rooms = rooms
        self.clock = clock
        self.reject_duplicates = reject_duplicates
        self.sessions: Dict[StreamId, StreamSession] = {}
        self._handlers: Dict[EventType, Callable[[str, Any], None]] = {
            EventType.START_STREAM: lambda cid, p: self.start_stream(cid, p.stream_id, p.user_id, p.user_name),
            EventType.JOIN_STREAM: lambda cid, p: self.join_stream(cid, p.stream_id, p.user_id, p.user_name),
            EventType.OFFER: lambda cid, p: self.relay_offer(cid, p.offer, p.viewer_id),
            EventType.ANSWER: lambda cid, p: self.relay_answer(cid, p.answer, p.broadcaster),
            EventType.ICE_CANDIDATE: lambda cid, p: self.relay_ice_candidate(cid, p.candidate, p.target_id),
            EventType.STREAM_MESSAGE: lambda cid, p: self.stream_message(p.stream_id, p.message, p.user_id, p.user_name),
            EventType.STREAM_LIKE: lambda cid, p: self.stream_like(p.stream_id, p.user_id),
            EventType.END_STREAM: lambda cid, p: self.end_stream(cid, p.stream_id),
            EventType.GET_ACTIVE_STREAMS: lambda cid, p: self.list_active_streams(cid),
        }

    def dispatch(self, connection_id: str, event_type: EventType, payload: Payload):
        logger.debug("%s from %s", event_type.value, connection_id)
        try:
            self._handlers[event_type](connection_id, payload)
        except SignalingError as exc:
            logger.info("%s from %s rejected: %s %s", event_type.value, connection_id, exc.message, exc.context)
            self.rooms.send(connection_id, exc.to_frame())

    def get_session(self, stream_id: StreamId) -> Optional[StreamSession]:
        return self.sessions.get(stream_id)

    def active_streams(self) -> List[Dict[str, Any]]:
        now = self.clock()
        return [session.to_listing(now) for session in self.sessions.values()]

    # ----------------------
    # Session lifecycle
    # ----------------------
    def start_stream(self, connection_id: str, stream_id: StreamId, user_id: Any = None, user_name: Any = None):
        existing = self.sessions.get(stream_id)
        if existing is not None:
            if self.reject_duplicates:
                raise DuplicateStreamError(stream_id)
            logger.warning(
                "Stream %s restarted by %s, replacing session of %s", stream_id, connection_id, existing.broadcaster
            )

        self.sessions[stream_id] = StreamSession(stream_id, connection_id, user_id, user_name, self.clock())
        self.rooms.join_room(stream_id, connection_id)
        logger.info("%s started stream %s", user_name, stream_id)

        self.rooms.send(connection_id, {"type": "stream-started", "streamId": stream_id})
        self._broadcast_stream_list()

    def join_stream(self, connection_id: str, stream_id: StreamId, user_id: Any = None, user_name: Any = None):
        session = self.sessions.get(stream_id)
        if session is None:
            raise StreamNotFoundError(stream_id)

        session.viewers.add(connection_id)
        self.rooms.join_room(stream_id, connection_id)
        logger.info("%s joined stream %s", user_name, stream_id)

        self.rooms.send(session.broadcaster, {
            "type": "viewer-joined",
            "viewerId": connection_id,
            "userId": user_id,
            "userName": user_name,
            "viewerCount": session.viewer_count,
        })
        self.rooms.send(connection_id, {
            "type": "stream-ready",
            "streamId": stream_id,
            "broadcaster": session.broadcaster,
        })
        self._send_viewer_count(session)

    def end_stream(self, connection_id: str, stream_id: StreamId):
        session = self.sessions.get(stream_id)
        # only the broadcaster may end a stream; anything else is ignored without a reply
        if session is None or session.broadcaster != connection_id:
            return
        self._terminate(session)
        self._broadcast_stream_list()

    def disconnect(self, connection_id: str):
        """Clean up after a closed connection. Safe to call more than once."""
        self.rooms.disconnect(connection_id)

        ended = 0
        for session in list(self.sessions.values()):
            if session.broadcaster == connection_id:
                logger.info("Broadcaster %s disconnected, ending stream %s", connection_id, session.stream_id)
                self._terminate(session)
                ended += 1
            elif connection_id in session.viewers:
                session.viewers.discard(connection_id)
                self._send_viewer_count(session)

        if ended:
            self._broadcast_stream_list()

    def list_active_streams(self, connection_id: str):
        self.rooms.send(connection_id, {"type": "stream-list", "streams": self.active_streams()})

    # ----------------------
    # Signaling forwards
    # ----------------------
    def relay_offer(self, sender_id: str, offer: Any, viewer_id: str):
        logger.debug("Offer %s -> %s", sender_id, viewer_id)
        self.rooms.send(viewer_id, {"type": "offer", "offer": offer, "broadcaster": sender_id})

    def relay_answer(self, sender_id: str, answer: Any, broadcaster_id: str):
        logger.debug("Answer %s -> %s", sender_id, broadcaster_id)
        self.rooms.send(broadcaster_id, {"type": "answer", "answer": answer, "viewer": sender_id})

    def relay_ice_candidate(self, sender_id: str, candidate: Any, target_id: str):
        logger.debug("ICE candidate %s -> %s", sender_id, target_id)
        self.rooms.send(target_id, {"type": "ice-candidate", "candidate": candidate, "sender": sender_id})

    # ----------------------
    # In-stream chat and likes
    # ----------------------
    def stream_message(self, stream_id: StreamId, message: Any, user_id: Any = None, user_name: Any = None):
        if stream_id not in self.sessions:
            return
        self.rooms.send_to_room(stream_id, {
            "type": "stream-message",
            "message": message,
            "userId": user_id,
            "userName": user_name,
            "timestamp": self._timestamp(),
        })

    def stream_like(self, stream_id: StreamId, user_id: Any = None):
        if stream_id not in self.sessions:
            return
        self.rooms.send_to_room(stream_id, {"type": "stream-like", "userId": user_id, "timestamp": self._timestamp()})

    # ----------------------
    # Helpers
    # ----------------------
    def _terminate(self, session: StreamSession):
        logger.info("Stream ended: %s", session.stream_id)
        self.rooms.send_to_room(session.stream_id, {"type": "stream-ended"})
        del self.sessions[session.stream_id]
        self.rooms.delete_room(session.stream_id)

    def _send_viewer_count(self, session: StreamSession):
        self.rooms.send_to_room(session.stream_id, {"type": "viewer-count-updated", "count": session.viewer_count})

    def _broadcast_stream_list(self):
        self.rooms.send_to_all({"type": "stream-list-updated", "streams": self.active_streams()})

    def _timestamp(self) -> int:
        return int(self.clock() * 1000)
