import time
from typing import Callable, Dict, Optional, Set

from fastapi import Request

from constants import ROOM_CODE_MAX_ATTEMPTS, ROOM_CODE_STRICT
from errors import RoomCodeConflict
from logging_config import get_logger
from room_codes import allocate_room_code, normalize_room_code
from schemas.rooms import Member, RoomState

logger = get_logger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


class Room:
    """State of one shared stopwatch session.

    Mutated only by synchronous code on the event loop, so each change is atomic
    with respect to the others and to snapshots.
    """

    def __init__(self, code: str, created_at: int):
        self.code = code
        self.created_at = created_at
        self.start_time = created_at
        self.previous_start_time = created_at
        self.members: Dict[str, Member] = {}
        self.subscribers: Set = set()

    def is_empty(self) -> bool:
        return not self.members and not self.subscribers

    def snapshot(self) -> RoomState:
        return RoomState(
            code=self.code,
            created_at=self.created_at,
            start_time=self.start_time,
            previous_start_time=self.previous_start_time,
            members=list(self.members.values()),
        )

    def __repr__(self):
        return f"<Room {self.code} members={len(self.members)} subscribers={len(self.subscribers)}>"


class RoomRegistry:
    def __init__(
        self,
        clock: Callable[[], int] = now_ms,
        strict_codes: bool = ROOM_CODE_STRICT,
        max_code_attempts: int = ROOM_CODE_MAX_ATTEMPTS,
    ):
        self.rooms: Dict[str, Room] = {}
        self.clock = clock
        self.strict_codes = strict_codes
        self.max_code_attempts = max_code_attempts
        logger.info("Initializing in-memory RoomRegistry")

    def __len__(self):
        return len(self.rooms)

    def __contains__(self, code: str):
        return code in self.rooms

    def create_room(self, requested_code: Optional[str] = None) -> Room:
        code = normalize_room_code(requested_code)
        if code and code in self.rooms:
            if self.strict_codes:
                logger.warning(f"[CREATE FAILED] Room code already exists: {code}")
                raise RoomCodeConflict(code)
            logger.info(f"Requested room code {code} is taken, generating a new one")
            code = ""
        if not code:
            code = allocate_room_code(self.rooms, self.max_code_attempts)

        room = Room(code, created_at=self.clock())
        self.rooms[code] = room
        logger.info(f"[ROOM CREATED] {code}")
        return room

    def get_room(self, code: str) -> Optional[Room]:
        room = self.rooms.get(code)
        if room is None:
            logger.debug(f"Room {code} not found")
        return room

    def remove_if_empty(self, code: str) -> bool:
        room = self.rooms.get(code)
        if room is None or not room.is_empty():
            return False
        del self.rooms[code]
        logger.info(f"[CLEANUP] Deleting empty room {code}")
        return True

    def shutdown(self):
        """Close every open stream and forget all rooms."""
        subscriber_count = 0
        for room in list(self.rooms.values()):
            for subscriber in list(room.subscribers):
                subscriber.close()
                subscriber_count += 1
        logger.info(f"Shutting down registry: {len(self.rooms)} rooms, {subscriber_count} open streams")
        self.rooms.clear()


def get_registry(request: Request) -> RoomRegistry:
    return request.app.state.registry
