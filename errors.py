class RoomError(Exception):
    """Base class for room engine errors."""


class RoomCodeConflict(RoomError):
    """A requested room code is already taken."""

    def __init__(self, code: str, message: str = "Room code already exists"):
        super().__init__(message)
        self.code = code


class RoomCodeExhausted(RoomCodeConflict):
    """No unused random room code could be found."""

    def __init__(self, attempts: int):
        super().__init__("", f"Could not allocate a room code after {attempts} attempts")
        self.attempts = attempts


class SubscriberWriteError(RoomError):
    """Pushing an event to one subscriber failed."""
