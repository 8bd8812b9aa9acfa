"""UCI engine sessions — async request/response over a line protocol.

An engine runs as a child process. A single reader task frames its
output into lines; callers send commands and wait for the first line
matching a predicate, receiving everything the engine said up to it.
"""

from chesscli.engine.errors import (
    EngineError,
    EngineTerminated,
    EngineUnavailable,
    HandshakeFailed,
)
from chesscli.engine.framer import LineFramer
from chesscli.engine.session import EngineSession, EngineStatus, open_session
from chesscli.engine.waiters import PendingRequest, WaiterQueue

__all__ = [
    "EngineError",
    "EngineSession",
    "EngineStatus",
    "EngineTerminated",
    "EngineUnavailable",
    "HandshakeFailed",
    "LineFramer",
    "PendingRequest",
    "WaiterQueue",
    "open_session",
]
