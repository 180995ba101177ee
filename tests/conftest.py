"""
Shared fixtures for the signaling tests.

The relay is exercised against a real ``RoomManager`` whose connections have
no writer task running, so every frame a client would receive stays in its
outbound queue and can be read back with ``drain``.
"""

import os

os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest

from rooms import Connection, RoomManager
from streams import StreamSignalingRelay


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def drain(connection: Connection):
    """Pop every queued frame for a connection, in order."""
    frames = []
    while not connection.outbox.empty():
        frame = connection.outbox.get_nowait()
        if frame is not None:
            frames.append(frame)
    return frames


def frame_types(connection: Connection):
    return [f["type"] for f in drain(connection)]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rooms():
    return RoomManager(max_queue_size=64)


@pytest.fixture
def relay(rooms, clock):
    return StreamSignalingRelay(rooms, clock=clock)


@pytest.fixture
def connect(rooms):
    """Register a fake client: ``connect("c1")`` returns its Connection."""

    def _connect(connection_id: str) -> Connection:
        return rooms.connect(websocket=None, connection_id=connection_id)

    return _connect
