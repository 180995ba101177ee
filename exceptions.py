"""
Signaling errors.

Every error carries a client-safe ``message`` and an optional ``context``
dict that is logged but never sent back over the socket. The WebSocket loop
catches ``SignalingError`` and turns it into a reply frame addressed to the
sender only, so a bad frame never affects other participants.
"""

from typing import Any, Dict, Optional


class SignalingError(Exception):
    """Base class for errors reported back to the sending connection."""

    reply_type = "error"

    def __init__(
        self,
        message: str = "Signaling error",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)

    def to_frame(self) -> Dict[str, Any]:
        return {"type": self.reply_type, "message": self.message}


class InvalidMessageError(SignalingError):
    """The frame could not be decoded or failed payload validation."""

    def __init__(
        self,
        message: str = "Invalid message",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class StreamNotFoundError(SignalingError):
    reply_type = "stream-error"

    def __init__(self, stream_id: Any = None):
        super().__init__(message="Stream not found", context={"stream_id": stream_id})
        self.stream_id = stream_id


class DuplicateStreamError(SignalingError):
    """A start-stream reused the id of a stream that is still live."""

    reply_type = "stream-error"

    def __init__(self, stream_id: Any = None):
        super().__init__(message="Stream already exists", context={"stream_id": stream_id})
        self.stream_id = stream_id
