import asyncio
from typing import AsyncIterator, Optional

from fastapi.responses import StreamingResponse

from backend import Room, RoomRegistry
from broadcaster import EVENT_INIT, Subscriber, attach, detach, send_to
from constants import SSE_KEEPALIVE_SECONDS, SUBSCRIBER_QUEUE_SIZE
from logging_config import get_logger
from membership import remove_on_disconnect

logger = get_logger(__name__)

KEEPALIVE_FRAME = ": keep-alive\n\n"


class EventStream:
    """Lifecycle of one ``GET /events`` connection.

    Opening attaches a subscriber to the room and queues the ``init`` snapshot.
    ``events()`` yields SSE frames until the subscriber is closed, and its
    ``finally`` runs ``close()``, which is the only automatic cleanup of members
    and rooms.
    """

    def __init__(
        self,
        registry: RoomRegistry,
        room: Room,
        member_id: Optional[str] = None,
        keepalive: float = SSE_KEEPALIVE_SECONDS,
        queue_size: int = SUBSCRIBER_QUEUE_SIZE,
    ):
        self.registry = registry
        self.room = room
        self.member_id = member_id or None
        self.keepalive = keepalive
        self.subscriber = Subscriber(room.code, self.member_id, maxsize=queue_size)
        self._closed = False

    @classmethod
    def open(cls, registry: RoomRegistry, room: Room, member_id: Optional[str] = None, **kwargs) -> "EventStream":
        stream = cls(registry, room, member_id, **kwargs)
        attach(room, stream.subscriber)
        send_to(stream.subscriber, EVENT_INIT, room.snapshot().model_dump(by_alias=True))
        logger.info(f"[SSE] Client connected to room {room.code} (Member: {stream.member_id or 'Unknown'})")
        return stream

    async def events(self) -> AsyncIterator[str]:
        try:
            while True:
                try:
                    if self.keepalive > 0:
                        frame = await asyncio.wait_for(self.subscriber.queue.get(), timeout=self.keepalive)
                    else:
                        frame = await self.subscriber.queue.get()
                except asyncio.TimeoutError:
                    yield KEEPALIVE_FRAME
                    continue
                if frame is None:
                    logger.debug(f"[SSE] Stream for room {self.room.code} closed by server")
                    break
                yield frame
        finally:
            self.close()

    def close(self):
        if self._closed:
            return
        self._closed = True
        room = self.room
        logger.info(f"[SSE] Client disconnected from room {room.code}")

        self.subscriber.close()
        detach(room, self.subscriber)
        if self.member_id:
            remove_on_disconnect(room, self.member_id)
        self.registry.remove_if_empty(room.code)


class EventStreamResponse(StreamingResponse):
    """SSE response that always closes its ``EventStream``.

    The body generator's ``finally`` only runs once the body has started, so a
    transport that fails while sending headers would otherwise leave the
    subscriber attached.
    """

    media_type = "text/event-stream"

    def __init__(self, stream: EventStream, headers: Optional[dict] = None):
        super().__init__(stream.events(), headers=headers)
        self.stream = stream

    async def __call__(self, scope, receive, send):
        try:
            await super().__call__(scope, receive, send)
        finally:
            self.stream.close()
