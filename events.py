# events.py
"""Inbound signaling frames: event names, payload models and decoding."""
import json
from enum import Enum
from typing import Any, Dict, Tuple, Type, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from exceptions import InvalidMessageError

# stream ids and display metadata are caller-supplied and passed through as sent
StreamId = Union[str, int]


class EventType(str, Enum):
    START_STREAM = "start-stream"
    JOIN_STREAM = "join-stream"
    OFFER = "offer"
    ANSWER = "answer"
    ICE_CANDIDATE = "ice-candidate"
    STREAM_MESSAGE = "stream-message"
    STREAM_LIKE = "stream-like"
    END_STREAM = "end-stream"
    GET_ACTIVE_STREAMS = "get-active-streams"


class Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class StreamMember(Payload):
    stream_id: StreamId = Field(alias="streamId")
    user_id: Any = Field(default=None, alias="userId")
    user_name: Any = Field(default=None, alias="userName")


class StartStream(StreamMember):
    pass


class JoinStream(StreamMember):
    pass


class Offer(Payload):
    offer: Any
    viewer_id: str = Field(alias="viewerId")


class Answer(Payload):
    answer: Any
    broadcaster: str


class IceCandidate(Payload):
    candidate: Any
    target_id: str = Field(alias="targetId")


class StreamMessage(StreamMember):
    message: Any


class StreamLike(Payload):
    stream_id: StreamId = Field(alias="streamId")
    user_id: Any = Field(default=None, alias="userId")


class EndStream(Payload):
    stream_id: StreamId = Field(alias="streamId")


class GetActiveStreams(Payload):
    pass


PAYLOAD_MODELS: Dict[EventType, Type[Payload]] = {
    EventType.START_STREAM: StartStream,
    EventType.JOIN_STREAM: JoinStream,
    EventType.OFFER: Offer,
    EventType.ANSWER: Answer,
    EventType.ICE_CANDIDATE: IceCandidate,
    EventType.STREAM_MESSAGE: StreamMessage,
    EventType.STREAM_LIKE: StreamLike,
    EventType.END_STREAM: EndStream,
    EventType.GET_ACTIVE_STREAMS: GetActiveStreams,
}


def decode_frame(raw: str) -> Dict[str, Any]:
    try:
        frame = json.loads(raw)
    except ValueError as exc:
        raise InvalidMessageError("Message is not valid JSON", context={"error": str(exc)}) from exc
    if not isinstance(frame, dict):
        raise InvalidMessageError("Message must be a JSON object")
    return frame


def parse_event(frame: Dict[str, Any]) -> Tuple[EventType, Payload]:
    """Resolve the frame's ``type`` and validate the rest as that event's payload."""
    name = frame.get("type")
    try:
        event_type = EventType(name)
    except ValueError:
        raise InvalidMessageError(f"Unknown event type: {name!r}", context={"type": name})

    data = {k: v for k, v in frame.items() if k != "type"}
    try:
        payload = PAYLOAD_MODELS[event_type].model_validate(data)
    except ValidationError as exc:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in exc.errors()})
        raise InvalidMessageError(
            f"Invalid payload for {event_type.value}: {', '.join(fields)}",
            context={"errors": exc.errors(include_url=False)},
        ) from exc
    return event_type, payload
