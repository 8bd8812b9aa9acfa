"""Line buffer plus FIFO of predicate-matched waits."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)

Predicate = Callable[[str], bool]


@dataclass(eq=False)
class PendingRequest:
    """A caller waiting for the first line that satisfies ``predicate``.

    ``outcome`` resolves with every buffered line up to and including the
    matching one.
    """

    predicate: Predicate
    outcome: asyncio.Future[list[str]]

    @property
    def done(self) -> bool:
        return self.outcome.done()


class WaiterQueue:
    """Buffered engine lines and the requests waiting on them.

    Requests are served strictly in registration order: only the head of
    the queue is matched against lines. When the head matches, it takes
    the buffered prefix through the matching line; whatever follows stays
    buffered for the next request.

    All methods must be called from the event loop thread. Each call runs
    to completion without awaiting, so the read loop and callers never
    observe a half-applied update.
    """

    def __init__(self) -> None:
        self._lines: list[str] = []
        self._pending: deque[PendingRequest] = deque()
        self._scanned: int = 0  # buffered lines already tested against the head
        self._error: BaseException | None = None

    def register(self, predicate: Predicate) -> PendingRequest:
        """Queue a wait and match it against lines that already arrived.

        After ``fail_all()`` the returned request is already failed.
        """
        outcome: asyncio.Future[list[str]] = asyncio.get_running_loop().create_future()
        request = PendingRequest(predicate=predicate, outcome=outcome)
        if self._error is not None:
            outcome.set_exception(self._error)
            return request

        outcome.add_done_callback(lambda _f: self._discard(request))
        self._pending.append(request)
        self._dispatch()
        return request

    def push_line(self, line: str) -> None:
        """Buffer one complete line and serve the head request if it matches."""
        self._lines.append(line)
        self._dispatch()

    def clear(self) -> int:
        """Drop all buffered lines. Returns how many were dropped."""
        dropped = len(self._lines)
        self._lines.clear()
        self._scanned = 0
        return dropped

    def fail_all(self, exc: BaseException) -> None:
        """Fail every outstanding request and refuse new ones."""
        self._error = exc
        while self._pending:
            request = self._pending.popleft()
            if not request.done:
                request.outcome.set_exception(exc)
        self._scanned = 0

    @property
    def lines(self) -> list[str]:
        """Buffered lines not yet delivered to any request."""
        return list(self._lines)

    @property
    def pending_count(self) -> int:
        return sum(1 for r in self._pending if not r.done)

    @property
    def closed(self) -> bool:
        return self._error is not None

    def _dispatch(self) -> None:
        while self._pending:
            head = self._pending[0]
            if head.done:
                # Cancelled or timed out before its done-callback ran.
                self._pending.popleft()
                self._scanned = 0
                continue

            index = None
            try:
                for i in range(self._scanned, len(self._lines)):
                    if head.predicate(self._lines[i]):
                        index = i
                        break
            except Exception as e:
                logger.warning("Wait predicate raised: %s", e)
                self._pending.popleft()
                self._scanned = 0
                head.outcome.set_exception(e)
                continue

            if index is None:
                self._scanned = len(self._lines)
                return

            delivered = self._lines[: index + 1]
            del self._lines[: index + 1]
            self._pending.popleft()
            self._scanned = 0
            head.outcome.set_result(delivered)

    def _discard(self, request: PendingRequest) -> None:
        if not self._pending or request not in self._pending:
            return
        was_head = self._pending[0] is request
        self._pending.remove(request)
        if was_head:
            # The next request has not seen the buffer yet.
            self._scanned = 0
            self._dispatch()
