"""Tests for chesscli.cli (typer commands)."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from chesscli.cli import app
from chesscli.puzzle import Color, Puzzle, puzzle_to_dict

runner = CliRunner()


@pytest.fixture
def config_file(tmp_path: Path, stub_command, monkeypatch: pytest.MonkeyPatch) -> Path:
    for name in ("CHESSCLI_ENGINE", "CHESSCLI_DEPTH", "CHESSCLI_PUZZLES"):
        monkeypatch.delenv(name, raising=False)
    path = tmp_path / "chesscli.json"
    path.write_text(
        json.dumps(
            {
                "engine": {"command": stub_command(), "default_depth": 3},
                "storage": {
                    "config_path": str(tmp_path / "user.json"),
                    "puzzle_path": str(tmp_path / "puzzles.json"),
                },
            }
        )
    )
    return path


class TestEval:
    def test_prints_engine_output(self, config_file: Path) -> None:
        result = runner.invoke(app, ["eval", "startpos", "--config", str(config_file)])
        assert result.exit_code == 0, result.output
        assert "info depth 3 score cp 20 pv e2e4" in result.output
        assert "bestmove e2e4 ponder e7e5" in result.output

    def test_depth_option(self, config_file: Path) -> None:
        result = runner.invoke(
            app, ["eval", "startpos", "-d", "1", "--config", str(config_file)]
        )
        assert result.exit_code == 0, result.output
        assert "info depth 1 " in result.output

    @pytest.mark.parametrize("depth", ["0", "-1"])
    def test_non_positive_depth_is_usage_error(self, config_file: Path, depth: str) -> None:
        result = runner.invoke(
            app, ["eval", "startpos", f"--depth={depth}", "--config", str(config_file)]
        )
        assert result.exit_code == 2
        assert isinstance(result.exception, SystemExit)

    def test_missing_engine(self, config_file: Path) -> None:
        result = runner.invoke(
            app,
            ["eval", "startpos", "--engine", "/nonexistent/engine-xyz", "--config", str(config_file)],
        )
        assert result.exit_code == 1


class TestLine:
    def test_moves(self, config_file: Path) -> None:
        result = runner.invoke(app, ["line", "e2e4", "e7e5", "--config", str(config_file)])
        assert result.exit_code == 0, result.output
        assert "bestmove" in result.output

    def test_zero_depth_is_usage_error(self, config_file: Path) -> None:
        result = runner.invoke(app, ["line", "e2e4", "-d", "0", "--config", str(config_file)])
        assert result.exit_code == 2
        assert isinstance(result.exception, SystemExit)


class TestUsername:
    def test_unset(self, config_file: Path) -> None:
        result = runner.invoke(app, ["username", "--config", str(config_file)])
        assert result.exit_code == 0
        assert "(not set)" in result.output

    def test_set_then_show(self, config_file: Path) -> None:
        runner.invoke(app, ["username", "hikaru", "--config", str(config_file)])
        result = runner.invoke(app, ["username", "--config", str(config_file)])
        assert result.output.strip() == "hikaru"


class TestPuzzles:
    def test_no_puzzles(self, config_file: Path) -> None:
        result = runner.invoke(app, ["puzzles", "--config", str(config_file)])
        assert result.exit_code == 0
        assert "No saved puzzles." in result.output

    def test_lists_puzzles(self, config_file: Path, tmp_path: Path) -> None:
        puzzle = Puzzle(
            fen="startpos",
            player_color=Color.BLACK,
            solution_uci="e7e5",
            played_uci="a7a6",
            white_name="ann",
            black_name="ben",
        )
        (tmp_path / "puzzles.json").write_text(json.dumps([puzzle_to_dict(puzzle)]))
        result = runner.invoke(app, ["puzzles", "--shuffle", "--config", str(config_file)])
        assert result.exit_code == 0, result.output
        assert "ann - ben" in result.output
        assert "a7a6" in result.output


class TestSound:
    def test_waits_for_player_and_removes_temp_dir(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        bundle = tmp_path / "bundle"
        bundle.mkdir()
        for name in ("Move.mp3", "Capture.mp3", "Check.mp3"):
            (bundle / name).write_bytes(b"")
        scratch = tmp_path / "scratch"
        scratch.mkdir()
        monkeypatch.setattr("tempfile.tempdir", str(scratch))
        path = tmp_path / "chesscli.json"
        path.write_text(json.dumps({"storage": {"sound_dir": str(bundle)}}))

        proc = MagicMock()
        with patch("chesscli.sound.subprocess.Popen", return_value=proc) as popen:
            result = runner.invoke(app, ["sound", "capture", "--config", str(path)])
        assert result.exit_code == 0, result.output
        assert popen.call_args.args[0][-1].endswith("Capture.mp3")
        proc.wait.assert_called_once()
        assert list(scratch.iterdir()) == []
