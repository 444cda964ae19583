from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from typing import Optional

import membership
import timer
from backend import RoomRegistry, get_registry
from errors import RoomCodeConflict
from logging_config import get_logger
from schemas.rooms import (
    CreateRoomRequest,
    CreateRoomResponse,
    JoinRoomRequest,
    JoinRoomResponse,
    LeaveRoomRequest,
    ResetTimerRequest,
    ResetTimerResponse,
    RoomState,
)

logger = get_logger(__name__)

rooms_router = APIRouter(prefix="/rooms", tags=["rooms"])


def _client_host(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _require_room(registry: RoomRegistry, code: str):
    room = registry.get_room(code)
    if room is None:
        raise HTTPException(status_code=404, detail="Room not found")
    return room


@rooms_router.post("", response_model=CreateRoomResponse)
async def create_room(
    request: Request,
    body: Optional[CreateRoomRequest] = None,
    registry: RoomRegistry = Depends(get_registry),
):
    # POST /rooms  Body: { "roomCode": "optional" }
    # Response 200: { "code": "4F0A9C", "createdAt": 1700000000000 }
    requested_code = body.room_code if body else None
    logger.info(f"Room creation request from {_client_host(request)}, requested code: {requested_code}")
    try:
        room = registry.create_room(requested_code)
    except RoomCodeConflict as e:
        return JSONResponse(status_code=400, content={"error": str(e)})

    return CreateRoomResponse(code=room.code, created_at=room.created_at)


@rooms_router.get("/{code}", response_model=RoomState)
async def get_room_state(code: str, registry: RoomRegistry = Depends(get_registry)):
    return _require_room(registry, code).snapshot()


@rooms_router.post("/{code}/join", response_model=JoinRoomResponse)
async def join_room(code: str, join_request: JoinRoomRequest, registry: RoomRegistry = Depends(get_registry)):
    # POST /rooms/{code}/join  Body: { "memberId": "optional", "name", "timezone", "locale" }
    room = registry.get_room(code)
    if room is None:
        logger.warning(f"[JOIN FAILED] Room not found: {code}")
        raise HTTPException(status_code=404, detail="Room not found")

    member, _ = membership.join(
        room,
        join_request.member_id,
        join_request.name,
        join_request.timezone,
        join_request.locale,
        now=registry.clock(),
    )
    return JoinRoomResponse(member=member, room_state=room.snapshot())


@rooms_router.post("/{code}/reset", response_model=ResetTimerResponse)
async def reset_timer(
    code: str,
    reset_request: Optional[ResetTimerRequest] = None,
    registry: RoomRegistry = Depends(get_registry),
):
    # POST /rooms/{code}/reset  Body: { "startTime": optional epoch ms, may be in the future }
    room = _require_room(registry, code)
    requested = reset_request.start_time if reset_request else None
    start_time = timer.reset(room, requested, now=registry.clock())
    return ResetTimerResponse(start_time=start_time)


@rooms_router.post("/{code}/leave", status_code=204)
async def leave_room(
    code: str,
    leave_request: Optional[LeaveRoomRequest] = None,
    registry: RoomRegistry = Depends(get_registry),
):
    # Always 204, whether or not the room or member exists.
    room = registry.get_room(code)
    if room is not None and leave_request is not None:
        membership.leave(room, leave_request.member_id)
        registry.remove_if_empty(code)
    return Response(status_code=204)
