"""Move sounds, played by an external audio player on a best-effort basis."""

from __future__ import annotations

import enum
import logging
import shutil
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DEV_SOUND_SUBDIR = Path("priv") / "sound" / "lisp"


class SoundEvent(enum.StrEnum):
    MOVE = "move"
    CAPTURE = "capture"
    CHECK = "check"
    CASTLE = "castle"


# No castle recording is bundled yet; castling reuses the move sound.
SOUND_FILES: dict[SoundEvent, str] = {
    SoundEvent.MOVE: "Move.mp3",
    SoundEvent.CAPTURE: "Capture.mp3",
    SoundEvent.CHECK: "Check.mp3",
    SoundEvent.CASTLE: "Move.mp3",
}


@dataclass(frozen=True)
class SoundPaths:
    """Resolved audio file for each sound event.

    Built once at startup and handed to the SoundPlayer.
    """

    move: Path
    capture: Path
    check: Path
    castle: Path
    # Temp directory created by extract_sounds, removed by cleanup_sounds.
    temp_dir: Path | None = None

    def for_event(self, event: SoundEvent) -> Path:
        return getattr(self, event.value)


def extract_sounds(source_dir: Path, target_dir: Path | None = None) -> SoundPaths | None:
    """Copy bundled sounds somewhere an external player can read them.

    Copies into a fresh ``chesscli-sounds-*`` temp directory unless
    ``target_dir`` is given; that temp directory is recorded on the result
    so cleanup_sounds() can remove it. Returns None if any file cannot be
    copied.
    """
    temp_dir: Path | None = None
    try:
        if target_dir is None:
            temp_dir = Path(tempfile.mkdtemp(prefix="chesscli-sounds-"))
        dest = target_dir or temp_dir
        dest.mkdir(parents=True, exist_ok=True)
        extracted: dict[str, Path] = {}
        for name in sorted(set(SOUND_FILES.values())):
            extracted[name] = Path(shutil.copy(source_dir / name, dest / name))
    except OSError as e:
        logger.debug("Sound extraction from %s failed: %s", source_dir, e)
        _remove_dir(temp_dir)
        return None
    return _paths_from(extracted, temp_dir)


def cleanup_sounds(paths: SoundPaths) -> None:
    """Remove the temp directory extract_sounds() created, if any."""
    _remove_dir(paths.temp_dir)


def _remove_dir(path: Path | None) -> None:
    if path is None:
        return
    try:
        shutil.rmtree(path)
    except OSError as e:
        logger.debug("Cannot remove %s: %s", path, e)


def dev_sound_paths(root: Path | None = None) -> SoundPaths:
    """Sound files in a source checkout, under ``priv/sound/lisp``."""
    sound_dir = (root or Path.cwd()) / DEV_SOUND_SUBDIR
    return _paths_from({name: sound_dir / name for name in SOUND_FILES.values()})


def resolve_sound_paths(
    bundle_dir: Path | None = None, dev_root: Path | None = None
) -> SoundPaths:
    """Prefer extracted bundled sounds; fall back to the development tree."""
    if bundle_dir is not None and bundle_dir.is_dir():
        paths = extract_sounds(bundle_dir)
        if paths is not None:
            return paths
    return dev_sound_paths(dev_root)


def _paths_from(files: dict[str, Path], temp_dir: Path | None = None) -> SoundPaths:
    return SoundPaths(
        **{event.value: files[name] for event, name in SOUND_FILES.items()},
        temp_dir=temp_dir,
    )


class SoundPlayer:
    """Playback through an external player command.

    play() does not block. Player processes are kept until they finish:
    each play() reaps the ones already done, and wait() reaps the rest.
    """

    def __init__(self, paths: SoundPaths, player: tuple[str, ...] = ("afplay",)) -> None:
        self.paths = paths
        self.player = player
        self._procs: list[subprocess.Popen] = []

    @property
    def playing(self) -> int:
        """Number of player processes not yet reaped."""
        self._reap()
        return len(self._procs)

    def _reap(self) -> None:
        self._procs = [proc for proc in self._procs if proc.poll() is None]

    def wait(self, timeout: float | None = None) -> None:
        """Wait for every started sound to finish; kill players still running after ``timeout``."""
        for proc in self._procs:
            try:
                proc.wait(timeout=timeout)
            except subprocess.TimeoutExpired:
                logger.debug("Sound player %s still running, killing it", proc.pid)
                proc.kill()
                proc.wait()
        self._procs = []

    def play(self, event: SoundEvent | str) -> bool:
        """Start playing the sound for ``event``. Returns False if it could not start.

        Unknown events play the move sound.
        """
        try:
            event = SoundEvent(event)
        except ValueError:
            event = SoundEvent.MOVE
        path = self.paths.for_event(event)
        self._reap()
        try:
            proc = subprocess.Popen(
                [*self.player, str(path)],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as e:
            logger.debug("Cannot play %s: %s", path, e)
            return False
        self._procs.append(proc)
        return True
