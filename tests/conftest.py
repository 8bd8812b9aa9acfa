"""Shared fixtures."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable

import pytest

STUB_ENGINE = Path(__file__).parent / "stub_engine.py"


@pytest.fixture
def stub_command() -> Callable[..., list[str]]:
    """Build the command line for the scripted UCI engine."""

    def _make(*flags: str) -> list[str]:
        return [sys.executable, "-u", str(STUB_ENGINE), *flags]

    return _make
