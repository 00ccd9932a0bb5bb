from .cache import SessionCache
from .client import ClientMoveResult, MatchClient
from .timer import CountdownTimer
from .transport import DirectTransport, HttpTransport, Transport

__all__ = [
    "ClientMoveResult",
    "CountdownTimer",
    "DirectTransport",
    "HttpTransport",
    "MatchClient",
    "SessionCache",
    "Transport",
]
