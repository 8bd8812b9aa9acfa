"""Puzzle records and their JSON encoding."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any


class Color(enum.StrEnum):
    WHITE = "White"
    BLACK = "Black"


class Classification(enum.StrEnum):
    """Quality of a played move, best to worst."""

    BEST = "Best"
    EXCELLENT = "Excellent"
    GOOD = "Good"
    MISS = "Miss"
    INACCURACY = "Inaccuracy"
    MISTAKE = "Mistake"
    BLUNDER = "Blunder"

    @classmethod
    def parse(cls, value: Any) -> Classification:
        """Decode stored text. Unknown or missing values become GOOD."""
        try:
            return cls(value)
        except ValueError:
            return cls.GOOD


@dataclass
class Puzzle:
    """A position where the player missed a better move."""

    fen: str
    player_color: Color
    solution_uci: str
    played_uci: str
    continuation: list[str] = field(default_factory=list)
    eval_before: int = 0  # centipawns, from the engine
    eval_after: int = 0
    source_label: str = ""
    classification: Classification = Classification.GOOD
    white_name: str = "?"
    black_name: str = "?"
    solve_count: int = 0


def puzzle_to_dict(puzzle: Puzzle) -> dict[str, Any]:
    """Serialize a Puzzle for the JSON store."""
    return {
        "fen": puzzle.fen,
        "player_color": str(puzzle.player_color),
        "solution_uci": puzzle.solution_uci,
        "played_uci": puzzle.played_uci,
        "continuation": list(puzzle.continuation),
        "eval_before": puzzle.eval_before,
        "eval_after": puzzle.eval_after,
        "source_label": puzzle.source_label,
        "classification": str(puzzle.classification),
        "white_name": puzzle.white_name,
        "black_name": puzzle.black_name,
        "solve_count": puzzle.solve_count,
    }


def dict_to_puzzle(data: dict[str, Any]) -> Puzzle:
    """Deserialize a stored puzzle, filling defaults for missing fields.

    Any color other than "White" reads as Black.
    """
    color = Color.WHITE if data.get("player_color") == "White" else Color.BLACK
    return Puzzle(
        fen=data.get("fen", ""),
        player_color=color,
        solution_uci=data.get("solution_uci", ""),
        played_uci=data.get("played_uci", ""),
        continuation=list(data.get("continuation") or []),
        eval_before=data.get("eval_before", 0),
        eval_after=data.get("eval_after", 0),
        source_label=data.get("source_label", ""),
        classification=Classification.parse(data.get("classification")),
        white_name=data.get("white_name") or "?",
        black_name=data.get("black_name") or "?",
        solve_count=data.get("solve_count") or 0,
    )
