import json

import pytest
from fastapi.testclient import TestClient

from app import create_app
from backend import RoomRegistry

T0 = 1_700_000_000_000


class FakeClock:
    """Controllable millisecond clock."""

    def __init__(self, now: int = T0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int):
        self.now += ms


def parse_frame(frame: str):
    """Split an SSE frame into (event name, decoded data)."""
    event = None
    data = None
    for line in frame.strip().split("\n"):
        if line.startswith("event: "):
            event = line[len("event: "):]
        elif line.startswith("data: "):
            data = json.loads(line[len("data: "):])
    return event, data


def drain(subscriber):
    """Return every queued frame of ``subscriber`` as parsed (event, data) pairs."""
    frames = []
    while not subscriber.queue.empty():
        frame = subscriber.queue.get_nowait()
        frames.append(None if frame is None else parse_frame(frame))
    return frames


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry(clock):
    return RoomRegistry(clock=clock)


@pytest.fixture
def client(registry):
    return TestClient(create_app(registry))
