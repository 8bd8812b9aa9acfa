"""User config store — remembers the player's username."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

import aiofiles

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("~/.chesscli.json")


class UserConfigStore:
    """A small JSON file in the user's home directory.

    Read failures look like an unset username; write failures return False.
    """

    def __init__(self, path: Path | str | None = None) -> None:
        self.path = Path(os.path.expanduser(path or DEFAULT_CONFIG_PATH))

    async def read_username(self) -> str | None:
        try:
            if not self.path.exists():
                return None
            async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
                data = json.loads(await f.read())
        except (OSError, ValueError) as e:
            logger.debug("Cannot read config %s: %s", self.path, e)
            return None

        if not isinstance(data, dict):
            return None
        username = data.get("username")
        if not username or not isinstance(username, str):
            return None
        return username

    async def write_username(self, username: str) -> bool:
        try:
            async with aiofiles.open(self.path, "w", encoding="utf-8") as f:
                await f.write(json.dumps({"username": username}))
        except OSError as e:
            logger.debug("Cannot write config %s: %s", self.path, e)
            return False
        return True
