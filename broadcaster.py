import asyncio
import json
from typing import Any, Optional

from constants import SUBSCRIBER_QUEUE_SIZE
from errors import SubscriberWriteError
from logging_config import get_logger

logger = get_logger(__name__)

EVENT_INIT = "init"
EVENT_MEMBER_JOINED = "member-joined"
EVENT_MEMBER_LEFT = "member-left"
EVENT_TIMER_UPDATE = "timer-update"


def format_sse(event: str, payload: Any) -> str:
    """Encode one server-sent event frame."""
    return f"event: {event}\ndata: {json.dumps(payload)}\n\n"


class Subscriber:
    """One open event stream bound to a room and, optionally, a member.

    Frames are queued as already-encoded text. A ``None`` in the queue ends the stream.
    """

    def __init__(self, room_code: str, member_id: Optional[str] = None, maxsize: int = SUBSCRIBER_QUEUE_SIZE):
        self.room_code = room_code
        self.member_id = member_id
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self.closed = False

    def send(self, frame: str):
        if self.closed:
            raise SubscriberWriteError("subscriber is closed")
        try:
            self.queue.put_nowait(frame)
        except asyncio.QueueFull:
            raise SubscriberWriteError(f"subscriber queue full ({self.queue.maxsize} frames)")

    def close(self):
        if self.closed:
            return
        self.closed = True
        # The sentinel must get in even if the reader fell behind.
        while True:
            try:
                self.queue.put_nowait(None)
                return
            except asyncio.QueueFull:
                self.queue.get_nowait()

    def __repr__(self):
        return f"<Subscriber room={self.room_code} member={self.member_id} closed={self.closed}>"


def attach(room, subscriber: Subscriber):
    room.subscribers.add(subscriber)
    logger.debug(f"Attached {subscriber!r} (subscribers: {len(room.subscribers)})")


def detach(room, subscriber: Subscriber):
    """Remove ``subscriber`` from ``room``. Caller must then try ``remove_if_empty``."""
    room.subscribers.discard(subscriber)
    logger.debug(f"Detached {subscriber!r} (subscribers: {len(room.subscribers)})")


def send_to(subscriber: Subscriber, event: str, payload: Any) -> bool:
    try:
        subscriber.send(format_sse(event, payload))
        return True
    except SubscriberWriteError as e:
        logger.warning(f"Failed to send {event} to {subscriber!r}: {e}")
        return False


def broadcast(room, event: str, payload: Any) -> int:
    """Push ``event`` to every current subscriber of ``room``.

    A failed push is logged and skipped; it never reaches the caller. Dead handles
    stay attached until their own stream closes. Returns the number of deliveries.
    """
    frame = format_sse(event, payload)
    subscribers = list(room.subscribers)
    logger.debug(f"[ROOM {room.code}] Broadcasting {event} to {len(subscribers)} subscribers")

    delivered = 0
    for subscriber in subscribers:
        try:
            subscriber.send(frame)
            delivered += 1
        except SubscriberWriteError as e:
            logger.warning(f"[ROOM {room.code}] Failed to deliver {event} to {subscriber!r}: {e}")
        except Exception as e:
            logger.error(f"[ROOM {room.code}] Unexpected error delivering {event} to {subscriber!r}: {e}", exc_info=True)
    return delivered
