import os

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 8000))
RELOAD = os.getenv("RELOAD", "").lower() in ("1", "true", "yes", "on")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", None)

ROOM_CODE_BYTES = int(os.getenv("ROOM_CODE_BYTES", 3))
ROOM_CODE_MAX_ATTEMPTS = int(os.getenv("ROOM_CODE_MAX_ATTEMPTS", 32))
ROOM_CODE_STRICT = os.getenv("ROOM_CODE_STRICT", "").lower() in ("1", "true", "yes", "on")

SUBSCRIBER_QUEUE_SIZE = int(os.getenv("SUBSCRIBER_QUEUE_SIZE", 256))
SSE_KEEPALIVE_SECONDS = float(os.getenv("SSE_KEEPALIVE_SECONDS", 15))

CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]
