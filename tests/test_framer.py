"""Tests for chesscli.engine.framer.LineFramer."""

from __future__ import annotations

from chesscli.engine.framer import LineFramer

SAMPLE = (
    b"id name Stub\r\n"
    b"uciok\n"
    b"\n"
    b"   \n"
    b"info depth 1 score cp 20 pv e2e4\n"
    b"info string caf\xc3\xa9 \xe2\x99\x9e\n"
    b"bestmove e2e4 ponder e7e5\n"
)

EXPECTED = [
    "id name Stub",
    "uciok",
    "info depth 1 score cp 20 pv e2e4",
    "info string café ♞",
    "bestmove e2e4 ponder e7e5",
]


def _frame(chunks: list[bytes]) -> list[str]:
    framer = LineFramer()
    lines: list[str] = []
    for chunk in chunks:
        lines.extend(framer.feed(chunk))
    lines.extend(framer.flush())
    return lines


class TestLineFramerBasics:
    def test_single_line(self) -> None:
        framer = LineFramer()
        assert framer.feed(b"uciok\n") == ["uciok"]
        assert framer.pending == ""

    def test_multiple_lines_in_one_chunk(self) -> None:
        framer = LineFramer()
        assert framer.feed(b"a\nb\nc\n") == ["a", "b", "c"]

    def test_partial_line_is_carried(self) -> None:
        framer = LineFramer()
        assert framer.feed(b"best") == []
        assert framer.pending == "best"
        assert framer.feed(b"move e2e4\nrea") == ["bestmove e2e4"]
        assert framer.pending == "rea"
        assert framer.feed(b"dyok\n") == ["readyok"]

    def test_empty_and_blank_lines_dropped(self) -> None:
        framer = LineFramer()
        assert framer.feed(b"\n\n  \t \nuciok\n\n") == ["uciok"]

    def test_surrounding_whitespace_trimmed(self) -> None:
        framer = LineFramer()
        assert framer.feed(b"  readyok \r\n") == ["readyok"]

    def test_flush_returns_unterminated_tail(self) -> None:
        framer = LineFramer()
        framer.feed(b"info depth 3\nbestmove a2a3")
        assert framer.flush() == ["bestmove a2a3"]
        assert framer.pending == ""

    def test_flush_with_nothing_pending(self) -> None:
        framer = LineFramer()
        framer.feed(b"uciok\n")
        assert framer.flush() == []


class TestLineFramerDecoding:
    def test_utf8_split_across_chunks(self) -> None:
        knight = "♞".encode()
        framer = LineFramer()
        assert framer.feed(b"info " + knight[:1]) == []
        assert framer.feed(knight[1:2]) == []
        assert framer.feed(knight[2:] + b"\n") == ["info ♞"]

    def test_malformed_bytes_replaced(self) -> None:
        framer = LineFramer()
        lines = framer.feed(b"info \xff\xfe junk\nreadyok\n")
        assert lines[0] == "info \ufffd\ufffd junk"
        assert lines[1] == "readyok"


class TestChunkBoundaryIndependence:
    def test_whole_stream(self) -> None:
        assert _frame([SAMPLE]) == EXPECTED

    def test_byte_by_byte(self) -> None:
        chunks = [SAMPLE[i : i + 1] for i in range(len(SAMPLE))]
        assert _frame(chunks) == EXPECTED

    def test_every_two_way_split(self) -> None:
        for cut in range(len(SAMPLE) + 1):
            assert _frame([SAMPLE[:cut], SAMPLE[cut:]]) == EXPECTED, cut

    def test_fixed_size_chunks(self) -> None:
        for size in (2, 3, 5, 7, 16):
            chunks = [SAMPLE[i : i + size] for i in range(0, len(SAMPLE), size)]
            assert _frame(chunks) == EXPECTED, size
