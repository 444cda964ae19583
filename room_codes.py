import re
import secrets
from typing import Callable, Container, Optional

from constants import ROOM_CODE_BYTES, ROOM_CODE_MAX_ATTEMPTS
from errors import RoomCodeExhausted

_NOT_ALNUM = re.compile(r"[^A-Z0-9]")


def normalize_room_code(raw: Optional[str]) -> str:
    """Uppercase ``raw`` and drop everything that is not A-Z or 0-9."""
    if not raw:
        return ""
    return _NOT_ALNUM.sub("", raw.upper())


def generate_room_code(nbytes: int = ROOM_CODE_BYTES) -> str:
    # 3 bytes -> 6 hex characters, e.g. "4F0A9C"
    return secrets.token_hex(nbytes).upper()


def allocate_room_code(
    taken: Container[str],
    max_attempts: int = ROOM_CODE_MAX_ATTEMPTS,
    generator: Optional[Callable[[], str]] = None,
) -> str:
    """Return a random code that is not in ``taken``."""
    generate = generator or generate_room_code
    for _ in range(max_attempts):
        code = generate()
        if code not in taken:
            return code
    raise RoomCodeExhausted(max_attempts)
