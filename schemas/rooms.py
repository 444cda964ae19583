from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Optional


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Member(CamelModel):
    id: str
    name: str
    timezone: str
    locale: str
    joined_at: int


class RoomState(CamelModel):
    code: str
    created_at: int
    start_time: int
    previous_start_time: int
    members: list[Member]


class CreateRoomRequest(CamelModel):
    room_code: Optional[str] = None

class CreateRoomResponse(CamelModel):
    code: str
    created_at: int

class JoinRoomRequest(CamelModel):
    member_id: Optional[str] = None
    name: str
    timezone: str
    locale: str

class JoinRoomResponse(CamelModel):
    member: Member
    room_state: RoomState

class ResetTimerRequest(CamelModel):
    start_time: Optional[int] = None

class ResetTimerResponse(CamelModel):
    start_time: int

class LeaveRoomRequest(CamelModel):
    member_id: Optional[str] = None


class MemberLeftEvent(CamelModel):
    member_id: str

class TimerUpdateEvent(CamelModel):
    start_time: int
    previous_start_time: int
