"""Saved puzzles — records, JSON persistence, ordering."""

from chesscli.puzzle.model import (
    Classification,
    Color,
    Puzzle,
    dict_to_puzzle,
    puzzle_to_dict,
)
from chesscli.puzzle.shuffle import shuffle_puzzles
from chesscli.puzzle.store import PuzzleStore

__all__ = [
    "Classification",
    "Color",
    "Puzzle",
    "PuzzleStore",
    "dict_to_puzzle",
    "puzzle_to_dict",
    "shuffle_puzzles",
]
