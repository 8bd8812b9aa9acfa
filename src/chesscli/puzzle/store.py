"""Puzzle store — a JSON array file of saved puzzles."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

import aiofiles

from chesscli.puzzle.model import Puzzle, dict_to_puzzle, puzzle_to_dict

logger = logging.getLogger(__name__)

DEFAULT_PUZZLE_PATH = Path("~/.chesscli/puzzles.json")


class PuzzleStore:
    """Reads and writes the saved puzzle list.

    Failures never raise: a missing or corrupt file reads as ``None`` and a
    failed write returns ``False``.
    """

    def __init__(self, path: Path | str | None = None) -> None:
        self.path = Path(os.path.expanduser(path or DEFAULT_PUZZLE_PATH))

    async def read_puzzles(self) -> list[Puzzle] | None:
        """Load all puzzles, or None if the file is missing or unusable."""
        try:
            if not self.path.exists():
                return None
            async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
                data = json.loads(await f.read())
        except (OSError, ValueError) as e:
            logger.debug("Cannot read puzzles from %s: %s", self.path, e)
            return None

        if not isinstance(data, list):
            logger.debug("Puzzle file %s does not hold a JSON array", self.path)
            return None
        try:
            return [dict_to_puzzle(entry) for entry in data]
        except (AttributeError, TypeError, ValueError) as e:
            logger.debug("Malformed puzzle entry in %s: %s", self.path, e)
            return None

    async def write_puzzles(self, puzzles: list[Puzzle]) -> bool:
        """Replace the stored puzzle list. Returns False if it could not be written."""
        payload = json.dumps([puzzle_to_dict(p) for p in puzzles], indent=2)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(self.path, "w", encoding="utf-8") as f:
                await f.write(payload)
        except OSError as e:
            logger.debug("Cannot write puzzles to %s: %s", self.path, e)
            return False
        return True
