"""Configuration — Pydantic models for chesscli settings."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field


class EngineConfig(BaseModel):
    """How to launch and talk to the UCI engine."""

    command: list[str] = Field(
        default_factory=lambda: ["stockfish"],
        description="Engine executable and arguments, resolved on PATH",
    )
    handshake_timeout: float | None = Field(
        default=10.0, description="Seconds to wait for uciok/readyok"
    )
    search_timeout: float | None = Field(
        default=None, description="Seconds to wait for bestmove (None = no limit)"
    )
    stop_grace: float = Field(
        default=2.0,
        description="Seconds to wait for bestmove after sending stop on a timed-out search",
    )
    default_depth: int = Field(default=15, ge=1)
    start_attempts: int = Field(
        default=3, ge=1, description="Engine launches to try when the handshake fails"
    )


class StorageConfig(BaseModel):
    """Where local data lives."""

    config_path: str = Field(
        default="~/.chesscli.json", description="User config file (username)"
    )
    puzzle_path: str = Field(
        default="~/.chesscli/puzzles.json", description="Saved puzzles (JSON array)"
    )
    sound_dir: str | None = Field(
        default=None, description="Bundled sound assets to extract at startup"
    )
    dev_root: str = Field(
        default=".", description="Project root holding priv/sound/lisp during development"
    )


class ChessCliConfig(BaseModel):
    """Top-level chesscli configuration."""

    engine: EngineConfig = Field(default_factory=EngineConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)

    @classmethod
    def load(cls, config_path: str | None = None) -> ChessCliConfig:
        """Load config from file, env vars, or defaults.

        Priority: env vars > config file > defaults.

        Env vars:
            CHESSCLI_ENGINE             - Engine command line (split on whitespace)
            CHESSCLI_DEPTH              - Default search depth
            CHESSCLI_HANDSHAKE_TIMEOUT  - Seconds to wait for uciok/readyok
            CHESSCLI_SEARCH_TIMEOUT     - Seconds to wait for bestmove
            CHESSCLI_PUZZLES            - Puzzle file path
        """
        load_dotenv(override=True)

        config_data: dict[str, Any] = {}

        if config_path and os.path.exists(config_path):
            with open(config_path) as f:
                config_data = json.load(f)

        engine = config_data.get("engine", {})

        env_engine = os.environ.get("CHESSCLI_ENGINE")
        if env_engine:
            engine["command"] = env_engine.split()

        env_depth = os.environ.get("CHESSCLI_DEPTH")
        if env_depth:
            engine["default_depth"] = int(env_depth)

        env_handshake = os.environ.get("CHESSCLI_HANDSHAKE_TIMEOUT")
        if env_handshake:
            engine["handshake_timeout"] = float(env_handshake)

        env_search = os.environ.get("CHESSCLI_SEARCH_TIMEOUT")
        if env_search:
            engine["search_timeout"] = float(env_search)

        if engine:
            config_data["engine"] = engine

        env_puzzles = os.environ.get("CHESSCLI_PUZZLES")
        if env_puzzles:
            config_data.setdefault("storage", {})["puzzle_path"] = env_puzzles

        return cls.model_validate(config_data)

    def resolve(self, path: str) -> Path:
        """Expand ``~`` in a configured path."""
        return Path(os.path.expanduser(path))
