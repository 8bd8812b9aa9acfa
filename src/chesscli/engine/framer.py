"""Line framing for engine output streams."""

from __future__ import annotations

import codecs


class LineFramer:
    """Split a byte stream into complete, non-empty text lines.

    Bytes are decoded incrementally, so a multi-byte character split
    across two reads decodes the same as if it arrived in one piece.
    Malformed bytes become U+FFFD instead of raising.

    The trailing piece after the last newline is kept as ``pending``
    until a later chunk completes it.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._carry: str = ""

    def feed(self, data: bytes) -> list[str]:
        """Consume a chunk and return the lines it completed."""
        self._carry += self._decoder.decode(data)
        parts = self._carry.split("\n")
        self._carry = parts.pop()
        return _clean(parts)

    def flush(self) -> list[str]:
        """End of stream: return the unterminated remainder, if any."""
        self._carry += self._decoder.decode(b"", final=True)
        rest, self._carry = self._carry, ""
        return _clean([rest])

    @property
    def pending(self) -> str:
        """The incomplete fragment waiting for its newline."""
        return self._carry


def _clean(parts: list[str]) -> list[str]:
    lines = []
    for part in parts:
        line = part.strip()
        if line:
            lines.append(line)
    return lines
