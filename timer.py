"""Shared stopwatch state of a room.

A room only stores ``start_time`` and ``previous_start_time``. Whether the timer
is counting down or running is derived by comparing ``start_time`` with now.
"""
from typing import Optional

from broadcaster import EVENT_TIMER_UPDATE, broadcast
from logging_config import get_logger
from schemas.rooms import TimerUpdateEvent

logger = get_logger(__name__)


def is_expired(room, now: int) -> bool:
    # A start time equal to now counts as already started.
    return room.start_time <= now


def reset(room, requested_start_time: Optional[int], now: int) -> int:
    """Restart the room timer at ``requested_start_time`` or now.

    When the current timer has already started, its start time is kept as
    ``previous_start_time`` so the previous interval can still be shown. A
    countdown that never reached its start leaves ``previous_start_time`` alone.
    """
    if is_expired(room, now):
        room.previous_start_time = room.start_time

    room.start_time = requested_start_time if requested_start_time is not None else now
    logger.info(
        f"[ROOM {room.code}] Timer reset to {room.start_time} "
        f"(previous start {room.previous_start_time})"
    )

    broadcast(
        room,
        EVENT_TIMER_UPDATE,
        TimerUpdateEvent(
            start_time=room.start_time,
            previous_start_time=room.previous_start_time,
        ).model_dump(by_alias=True),
    )
    return room.start_time
