"""
Errors raised by the match-3 engine.

Every error carries a stable ``code`` that the HTTP layer puts on the wire.
"""
from typing import Any, Dict, Optional


class MatchEngineError(Exception):
    """Base class for all engine errors."""

    code = "ENGINE_ERROR"
    status_code = 400

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code, "message": str(self)}


class InsufficientResource(MatchEngineError):
    """Not enough energy to start a mode. Nothing was mutated."""

    code = "NOT_ENOUGH_ENERGY"

    def __init__(self, required: int, current: int):
        super().__init__(f"Need {required} energy, have {current}")
        self.required = required
        self.current = current

    @property
    def deficit(self) -> int:
        return max(0, self.required - self.current)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.code,
            "required": self.required,
            "current": self.current,
        }


class InvalidMove(MatchEngineError):
    """Swap rejected before touching the session (bounds, adjacency, drop tokens, time)."""

    code = "INVALID_MOVE"


class NoActiveSession(MatchEngineError):
    """Move or end called with no session for that mode.

    Clients should re-fetch canonical state instead of retrying.
    """

    code = "NO_ACTIVE_SESSION"
    status_code = 409

    def __init__(self, mode: Optional[str] = None):
        message = f"No active session for mode '{mode}'" if mode else "No active session"
        super().__init__(message)
        self.mode = mode


class MoveInProgress(MatchEngineError):
    """A move arrived while the previous one was still resolving."""

    code = "MOVE_IN_PROGRESS"
    status_code = 409


class UnknownMode(MatchEngineError, ValueError):
    code = "UNKNOWN_MODE"

    def __init__(self, mode: str):
        super().__init__(f"Unknown mode: {mode}")
        self.mode = mode


def error_from_payload(payload: Dict[str, Any], status_code: int = 400) -> MatchEngineError:
    """Rebuild the engine error a server response describes."""
    code = payload.get("error")
    if code == InsufficientResource.code:
        return InsufficientResource(int(payload.get("required", 0)), int(payload.get("current", 0)))
    if code == NoActiveSession.code:
        return NoActiveSession()
    for cls in (InvalidMove, MoveInProgress):
        if code == cls.code:
            return cls(payload.get("message", code))
    error = MatchEngineError(payload.get("message") or payload.get("detail") or f"HTTP {status_code}")
    error.status_code = status_code
    return error
