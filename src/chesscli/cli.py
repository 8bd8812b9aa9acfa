"""CLI entry point for chesscli."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from chesscli.config import ChessCliConfig
from chesscli.engine import EngineError, EngineSession, open_session
from chesscli.puzzle import PuzzleStore, shuffle_puzzles
from chesscli.sound import SoundEvent, SoundPlayer, cleanup_sounds, resolve_sound_paths
from chesscli.store import UserConfigStore

app = typer.Typer(
    name="chesscli",
    help="Terminal chess trainer backed by a UCI engine.",
    no_args_is_help=True,
)

console = Console()

# Longest a single sound may play before the player is killed.
SOUND_WAIT_TIMEOUT = 10.0


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _load_config(config_file: str | None, engine: str | None) -> ChessCliConfig:
    config = ChessCliConfig.load(config_file)
    if engine:
        config.engine.command = engine.split()
    return config


async def _run_search(
    config: ChessCliConfig, position_cmd: str, depth: int
) -> list[str]:
    session: EngineSession = await open_session(config.engine)
    try:
        return await session.evaluate_incremental(position_cmd, depth)
    finally:
        await session.stop()


def _print_search(lines: list[str]) -> None:
    for line in lines[:-1]:
        console.print(line, style="dim", markup=False, highlight=False)
    if lines:
        console.print(lines[-1], style="bold green", markup=False, highlight=False)


def _search_or_exit(config: ChessCliConfig, position_cmd: str, depth: int) -> None:
    try:
        lines = asyncio.run(_run_search(config, position_cmd, depth))
    except EngineError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    except TimeoutError:
        typer.echo("Error: engine search timed out", err=True)
        raise typer.Exit(1)
    _print_search(lines)


@app.command(name="eval")
def evaluate(
    fen: str = typer.Argument(help="Position in FEN, or 'startpos'."),
    depth: int | None = typer.Option(
        None, "--depth", "-d", min=1, help="Search depth (default: from config)."
    ),
    engine: str | None = typer.Option(
        None, "--engine", "-e", help="Engine command (default: stockfish)."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
    config_file: str | None = typer.Option(None, "--config", "-c", help="Config file path."),
) -> None:
    """Search a position and print the engine output."""
    from chesscli.engine.session import position_command

    setup_logging(verbose)
    config = _load_config(config_file, engine)
    if depth is None:
        depth = config.engine.default_depth
    _search_or_exit(config, position_command(fen), depth)


@app.command()
def line(
    moves: list[str] = typer.Argument(None, help="Moves from the start position, in UCI."),
    depth: int | None = typer.Option(None, "--depth", "-d", min=1, help="Search depth."),
    engine: str | None = typer.Option(None, "--engine", "-e", help="Engine command."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
    config_file: str | None = typer.Option(None, "--config", "-c", help="Config file path."),
) -> None:
    """Search the position reached by a move sequence from the start."""
    setup_logging(verbose)
    config = _load_config(config_file, engine)
    position_cmd = "position startpos"
    if moves:
        position_cmd += " moves " + " ".join(moves)
    if depth is None:
        depth = config.engine.default_depth
    _search_or_exit(config, position_cmd, depth)


@app.command()
def puzzles(
    shuffle: bool = typer.Option(False, "--shuffle", "-s", help="Random order."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
    config_file: str | None = typer.Option(None, "--config", "-c", help="Config file path."),
) -> None:
    """List saved puzzles."""
    setup_logging(verbose)
    config = ChessCliConfig.load(config_file)
    store = PuzzleStore(config.storage.puzzle_path)
    saved = asyncio.run(store.read_puzzles())
    if not saved:
        typer.echo("No saved puzzles.")
        return
    if shuffle:
        saved = shuffle_puzzles(saved)

    table = Table(title=f"Puzzles ({len(saved)})")
    table.add_column("#", justify="right")
    table.add_column("Game")
    table.add_column("To move")
    table.add_column("Played")
    table.add_column("Best")
    table.add_column("Class")
    table.add_column("Solved", justify="right")
    for i, p in enumerate(saved, 1):
        table.add_row(
            str(i),
            f"{p.white_name} - {p.black_name}",
            str(p.player_color),
            p.played_uci,
            p.solution_uci,
            str(p.classification),
            str(p.solve_count),
        )
    console.print(table)


@app.command()
def username(
    name: str | None = typer.Argument(None, help="New username to remember."),
    config_file: str | None = typer.Option(None, "--config", "-c", help="Config file path."),
) -> None:
    """Show or set the remembered username."""
    config = ChessCliConfig.load(config_file)
    store = UserConfigStore(config.storage.config_path)
    if name is None:
        current = asyncio.run(store.read_username())
        typer.echo(current or "(not set)")
        return
    if not asyncio.run(store.write_username(name)):
        typer.echo(f"Warning: could not save username to {store.path}", err=True)


@app.command()
def sound(
    event: SoundEvent = typer.Argument(SoundEvent.MOVE, help="Sound to play."),
    config_file: str | None = typer.Option(None, "--config", "-c", help="Config file path."),
) -> None:
    """Play a move sound."""
    config = ChessCliConfig.load(config_file)
    bundle = config.storage.sound_dir
    paths = resolve_sound_paths(
        bundle_dir=config.resolve(bundle) if bundle else None,
        dev_root=Path(config.storage.dev_root),
    )
    player = SoundPlayer(paths)
    try:
        if player.play(event):
            player.wait(timeout=SOUND_WAIT_TIMEOUT)
    finally:
        cleanup_sounds(paths)


if __name__ == "__main__":
    app()
