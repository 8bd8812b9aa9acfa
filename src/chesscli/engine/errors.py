"""Engine session errors."""

from __future__ import annotations


class EngineError(Exception):
    """Base class for failures talking to an engine process."""


class EngineUnavailable(EngineError):
    """The engine executable could not be spawned."""

    def __init__(self, command: list[str], reason: str = "") -> None:
        self.command = list(command)
        self.reason = reason
        detail = f": {reason}" if reason else ""
        super().__init__(f"Cannot start engine {' '.join(command)!r}{detail}")


class EngineTerminated(EngineError):
    """The engine process exited, or the session was stopped."""


class HandshakeFailed(EngineError):
    """The engine never answered a readiness command."""

    def __init__(self, token: str, timeout: float | None) -> None:
        self.token = token
        self.timeout = timeout
        super().__init__(f"Engine did not reply {token!r} within {timeout}s")
