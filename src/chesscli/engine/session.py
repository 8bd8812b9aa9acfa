"""Engine session — a UCI engine process driven as async request/response calls."""

from __future__ import annotations

import asyncio
import enum
import logging
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from chesscli.engine.errors import EngineTerminated, EngineUnavailable, HandshakeFailed
from chesscli.engine.framer import LineFramer
from chesscli.engine.waiters import Predicate, WaiterQueue

if TYPE_CHECKING:
    from chesscli.config import EngineConfig

logger = logging.getLogger(__name__)

_READ_CHUNK = 4096
_REAP_TIMEOUT = 2.0


class EngineStatus(enum.Enum):
    """Lifecycle states for an engine session."""

    NEW = "new"
    RUNNING = "running"
    STOPPING = "stopping"  # stop() in progress
    STOPPED = "stopped"  # Stopped by us
    EXITED = "exited"  # Process exited on its own


def line_equals(token: str) -> Predicate:
    return lambda line: line == token


def is_bestmove(line: str) -> bool:
    return line.startswith("bestmove")


def position_command(fen: str) -> str:
    """Build the ``position`` command for a FEN (or the literal ``startpos``)."""
    if fen.strip() == "startpos":
        return "position startpos"
    return f"position fen {fen}"


@dataclass
class EngineSession:
    """A managed UCI engine process.

    One background task reads the engine's stdout for the lifetime of the
    process and feeds complete lines into ``waiters``. Callers send
    commands and wait for a line matching a predicate; the reply is every
    line buffered since the last match, ending with the matching one.

    Command/reply exchanges are serialized by a lock: UCI replies carry no
    request id, so only one exchange may be in flight at a time.
    """

    command: list[str] = field(default_factory=lambda: ["stockfish"])
    handshake_timeout: float | None = 10.0
    search_timeout: float | None = None
    stop_grace: float = 2.0
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])

    # Internal state
    waiters: WaiterQueue = field(default_factory=WaiterQueue)
    engine_name: str = field(default="", init=False)
    _framer: LineFramer = field(default_factory=LineFramer, init=False)
    _proc: asyncio.subprocess.Process | None = field(default=None, init=False)
    _reader_task: asyncio.Task | None = field(default=None, init=False)
    _stderr_task: asyncio.Task | None = field(default=None, init=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False)
    _status: EngineStatus = field(default=EngineStatus.NEW, init=False)
    # Set from "go" until its bestmove is read; a search that ends any other
    # way leaves it set so the next exchange drains that bestmove first.
    _bestmove_owed: bool = field(default=False, init=False)
    _on_exit: Callable[[EngineSession, int | None], None] | None = field(
        default=None, init=False
    )

    @classmethod
    def from_config(cls, config: EngineConfig) -> EngineSession:
        return cls(
            command=list(config.command),
            handshake_timeout=config.handshake_timeout,
            search_timeout=config.search_timeout,
            stop_grace=config.stop_grace,
        )

    def set_on_exit(self, callback: Callable[[EngineSession, int | None], None]) -> None:
        """Set a callback for when the engine exits on its own.

        Receives (session, exit_code). Not called when the session is
        stopped via stop().
        """
        self._on_exit = callback

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> EngineSession:
        """Spawn the engine and complete the uci/isready handshake."""
        if self._status != EngineStatus.NEW:
            raise RuntimeError(f"Engine session {self.id} was already started")
        if not self.command:
            self._status = EngineStatus.STOPPED
            raise EngineUnavailable(self.command, "empty command")

        try:
            self._proc = await asyncio.create_subprocess_exec(
                *self.command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            self._status = EngineStatus.STOPPED
            raise EngineUnavailable(self.command, str(e)) from e

        self._status = EngineStatus.RUNNING
        self._reader_task = asyncio.create_task(self._read_loop())
        self._stderr_task = asyncio.create_task(self._drain_stderr())
        logger.info(
            "Engine session %s started: pid=%d cmd=%s",
            self.id,
            self._proc.pid,
            " ".join(self.command),
        )

        try:
            await self._handshake()
        except BaseException:
            await self.stop()
            raise
        return self

    async def _handshake(self) -> None:
        async with self._lock:
            await self.send("uci")
            lines = await self._wait_token("uciok")
            self.waiters.clear()
            for line in lines:
                if line.startswith("id name "):
                    self.engine_name = line[len("id name ") :]

            await self.send("isready")
            await self._wait_token("readyok")
            self.waiters.clear()
        logger.info("Engine session %s ready (%s)", self.id, self.engine_name or "?")

    async def stop(self) -> None:
        """Quit and kill the engine. Safe to call any number of times."""
        if self._status in (EngineStatus.STOPPING, EngineStatus.STOPPED):
            return
        previous = self._status
        self._status = EngineStatus.STOPPING

        if not self.waiters.closed:
            self.waiters.fail_all(EngineTerminated(f"Engine session {self.id} stopped"))

        proc = self._proc
        if proc is not None:
            if previous == EngineStatus.RUNNING:
                self._write_quit(proc)
            if proc.returncode is None:
                try:
                    proc.kill()
                except ProcessLookupError:
                    logger.debug("Engine process already gone: %d", proc.pid)
            try:
                await asyncio.wait_for(proc.wait(), timeout=_REAP_TIMEOUT)
            except asyncio.TimeoutError:
                logger.warning("Engine session %s did not exit after kill", self.id)

        tasks = [t for t in (self._reader_task, self._stderr_task) if t is not None]
        if tasks:
            _done, still_running = await asyncio.wait(tasks, timeout=_REAP_TIMEOUT)
            for task in still_running:
                task.cancel()

        self._status = EngineStatus.STOPPED
        logger.info("Engine session %s stopped", self.id)

    def _write_quit(self, proc: asyncio.subprocess.Process) -> None:
        if proc.stdin is None or proc.stdin.is_closing():
            return
        try:
            proc.stdin.write(b"quit\n")
            proc.stdin.close()
        except (OSError, RuntimeError) as e:
            logger.debug("Engine session %s: quit not delivered: %s", self.id, e)

    async def __aenter__(self) -> EngineSession:
        return await self.start()

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    async def _read_loop(self) -> None:
        """Sole consumer of the engine's stdout."""
        assert self._proc is not None and self._proc.stdout is not None
        stdout = self._proc.stdout
        try:
            while True:
                data = await stdout.read(_READ_CHUNK)
                if not data:
                    break
                for line in self._framer.feed(data):
                    self._deliver(line)
            for line in self._framer.flush():
                self._deliver(line)
        except Exception as e:
            logger.debug("Engine reader %s ended: %s", self.id, e)
        finally:
            if not self.waiters.closed:
                self.waiters.fail_all(
                    EngineTerminated(f"Engine session {self.id} output closed")
                )
            if self._status == EngineStatus.RUNNING:
                exit_code = self._proc.returncode
                self._status = EngineStatus.EXITED
                logger.info("Engine session %s exited (code=%s)", self.id, exit_code)
                if self._on_exit:
                    try:
                        self._on_exit(self, exit_code)
                    except Exception:
                        logger.exception(
                            "Error in on_exit callback for session %s", self.id
                        )

    def _deliver(self, line: str) -> None:
        logger.debug("%s >> %s", self.id, line)
        self.waiters.push_line(line)

    async def _drain_stderr(self) -> None:
        assert self._proc is not None and self._proc.stderr is not None
        stderr = self._proc.stderr
        try:
            while True:
                data = await stderr.read(_READ_CHUNK)
                if not data:
                    break
                text = data.decode("utf-8", errors="replace").rstrip()
                if text:
                    logger.debug("%s stderr: %s", self.id, text)
        except Exception as e:
            logger.debug("Engine stderr reader %s ended: %s", self.id, e)

    # ------------------------------------------------------------------
    # Send / wait primitives
    # ------------------------------------------------------------------

    async def send(self, command: str) -> None:
        """Write one command line to the engine."""
        if "\n" in command or "\r" in command:
            raise ValueError(f"Engine command must be a single line: {command!r}")
        self._ensure_running()
        assert self._proc is not None and self._proc.stdin is not None
        logger.debug("%s << %s", self.id, command)
        try:
            self._proc.stdin.write((command + "\n").encode())
            await self._proc.stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as e:
            raise EngineTerminated(f"Engine session {self.id} input closed") from e

    async def wait_for(
        self, predicate: Predicate, timeout: float | None = None
    ) -> list[str]:
        """Wait for the first line matching ``predicate``.

        Returns every line buffered since the previous match (or clear),
        through the matching line. Raises ``asyncio.TimeoutError`` when the
        deadline passes; the wait is withdrawn and buffered lines are kept.
        """
        self._ensure_running()
        request = self.waiters.register(predicate)
        if timeout is None:
            return await request.outcome
        return await asyncio.wait_for(request.outcome, timeout)

    async def _wait_token(self, token: str) -> list[str]:
        try:
            return await self.wait_for(line_equals(token), self.handshake_timeout)
        except asyncio.TimeoutError:
            raise HandshakeFailed(token, self.handshake_timeout) from None

    def _ensure_running(self) -> None:
        if self._status != EngineStatus.RUNNING:
            raise EngineTerminated(
                f"Engine session {self.id} is {self._status.value}"
            )

    # ------------------------------------------------------------------
    # Engine commands
    # ------------------------------------------------------------------

    async def evaluate(
        self, fen: str, depth: int, timeout: float | None = None
    ) -> list[str]:
        """Search ``fen`` to ``depth``; return the search output ending in bestmove."""
        return await self._search(position_command(fen), depth, timeout)

    async def evaluate_incremental(
        self, position_cmd: str, depth: int, timeout: float | None = None
    ) -> list[str]:
        """Like evaluate(), with a caller-built ``position ...`` command."""
        return await self._search(position_cmd, depth, timeout)

    async def _search(
        self, position_cmd: str, depth: int, timeout: float | None
    ) -> list[str]:
        if depth < 1:
            raise ValueError(f"Search depth must be positive, got {depth}")
        deadline = timeout if timeout is not None else self.search_timeout
        async with self._lock:
            await self._drain_owed_bestmove(deadline)
            self.waiters.clear()
            await self.send(position_cmd)
            await self.send(f"go depth {depth}")
            self._bestmove_owed = True
            try:
                lines = await self.wait_for(is_bestmove, deadline)
            except asyncio.TimeoutError:
                logger.warning(
                    "Engine session %s: no bestmove within %ss, stopping search",
                    self.id,
                    deadline,
                )
                await self._abort_search()
                raise
            self._bestmove_owed = False
            return lines

    async def _abort_search(self) -> None:
        await self.send("stop")
        try:
            await self.wait_for(is_bestmove, self.stop_grace)
        except asyncio.TimeoutError:
            # Still owed; the next exchange drains it.
            logger.warning("Engine session %s ignored stop", self.id)
            return
        self._bestmove_owed = False
        self.waiters.clear()

    async def _drain_owed_bestmove(self, timeout: float | None) -> None:
        """Consume the bestmove of an earlier search that was abandoned.

        A search that timed out or was cancelled leaves its bestmove in
        flight. It must be read and discarded here, or it would answer the
        next search. Raises TimeoutError if it does not arrive within
        ``timeout``; the debt then carries over to the next exchange.
        """
        if not self._bestmove_owed:
            return
        logger.debug("Engine session %s: draining bestmove of abandoned search", self.id)
        await self.send("stop")
        await self.wait_for(is_bestmove, timeout)
        self._bestmove_owed = False

    async def reset_for_new_game(self) -> None:
        """Send ucinewgame and wait until the engine is ready again."""
        async with self._lock:
            try:
                await self._drain_owed_bestmove(self.handshake_timeout)
            except asyncio.TimeoutError:
                raise HandshakeFailed("bestmove", self.handshake_timeout) from None
            self.waiters.clear()
            await self.send("ucinewgame")
            await self.send("isready")
            await self._wait_token("readyok")
            self.waiters.clear()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def alive(self) -> bool:
        return self._status == EngineStatus.RUNNING

    @property
    def status(self) -> EngineStatus:
        return self._status

    @property
    def buffered_lines(self) -> list[str]:
        return self.waiters.lines

    @property
    def pid(self) -> int | None:
        return self._proc.pid if self._proc is not None else None


async def open_session(config: EngineConfig) -> EngineSession:
    """Start a session, retrying engines that fail the handshake.

    A missing executable (``EngineUnavailable``) is not retried.
    """
    retrying = AsyncRetrying(
        retry=retry_if_exception_type(HandshakeFailed),
        stop=stop_after_attempt(config.start_attempts),
        wait=wait_exponential(multiplier=0.5, max=5),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async for attempt in retrying:
        with attempt:
            session = EngineSession.from_config(config)
            await session.start()
    return session
