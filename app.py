from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from backend import RoomRegistry, get_registry
from constants import CORS_ORIGINS, LOG_FILE, LOG_LEVEL, SSE_KEEPALIVE_SECONDS
from logging_config import get_logger, setup_logging
from routers.rooms import rooms_router
from streams import EventStream, EventStreamResponse

# Setup logging
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def create_app(registry: Optional[RoomRegistry] = None, keepalive: float = SSE_KEEPALIVE_SECONDS) -> FastAPI:
    """Build the application around ``registry`` (a fresh one by default)."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Room registry ready ({len(app.state.registry)} rooms)")
        try:
            yield
        finally:
            app.state.registry.shutdown()

    app = FastAPI(lifespan=lifespan)
    app.state.registry = registry if registry is not None else RoomRegistry()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(rooms_router)

    @app.get("/health")
    async def health(registry: RoomRegistry = Depends(get_registry)):
        return {"ok": True, "rooms": len(registry)}

    @app.get("/events")
    async def events(
        code: str = Query(..., description="Room code"),
        member_id: Optional[str] = Query(None, alias="memberId", description="Member bound to this stream"),
        registry: RoomRegistry = Depends(get_registry),
    ):
        """Server-sent event stream for one room.

        Emits ``init`` immediately, then ``member-joined``, ``member-left`` and
        ``timer-update`` as they happen. Closing the connection removes the bound
        member and deletes the room once nobody is left.
        """
        room = registry.get_room(code)
        if room is None:
            logger.info(f"[SSE] Room not found: {code}")
            raise HTTPException(status_code=404, detail="Room not found")

        stream = EventStream.open(registry, room, member_id, keepalive=keepalive)
        return EventStreamResponse(stream, headers=SSE_HEADERS)

    logger.info("FastAPI application initialized")
    return app


app = create_app()
