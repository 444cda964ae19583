"""Member lifecycle within a room: join, reconnect, leave and disconnect."""
import uuid
from typing import Optional, Tuple

from broadcaster import EVENT_MEMBER_JOINED, EVENT_MEMBER_LEFT, broadcast
from logging_config import get_logger
from schemas.rooms import Member, MemberLeftEvent

logger = get_logger(__name__)


def join(room, member_id: Optional[str], name: str, timezone: str, locale: str, now: int) -> Tuple[Member, bool]:
    """Add a member to ``room`` or reconnect an existing one.

    If ``member_id`` names a member already in this room, that member is returned
    unchanged and nothing is broadcast. Otherwise a new member with a fresh id is
    created and ``member-joined`` goes out to every subscriber.

    Returns the member and whether it was newly created.
    """
    if member_id and member_id in room.members:
        member = room.members[member_id]
        logger.info(f"[ROOM {room.code}] Reconnected member {member.name} ({member.id})")
        return member, False

    member = Member(
        id=str(uuid.uuid4()),
        name=name,
        timezone=timezone,
        locale=locale,
        joined_at=now,
    )
    room.members[member.id] = member
    logger.info(f"[ROOM {room.code}] New member joined: {name} ({member.id})")

    broadcast(room, EVENT_MEMBER_JOINED, member.model_dump(by_alias=True))
    return member, True


def _remove(room, member_id: Optional[str], reason: str) -> bool:
    if not member_id or member_id not in room.members:
        return False
    member = room.members.pop(member_id)
    logger.info(f"[ROOM {room.code}] Member {reason}: {member.name} ({member_id})")
    broadcast(room, EVENT_MEMBER_LEFT, MemberLeftEvent(member_id=member_id).model_dump(by_alias=True))
    return True


def leave(room, member_id: Optional[str]) -> bool:
    """Remove a member on request. Absent members are ignored.

    The caller is responsible for ``RoomRegistry.remove_if_empty`` afterwards.
    """
    return _remove(room, member_id, "left")


def remove_on_disconnect(room, member_id: Optional[str]) -> bool:
    return _remove(room, member_id, "removed due to disconnect")
