"""Local user settings."""

from chesscli.store.config import UserConfigStore

__all__ = ["UserConfigStore"]
