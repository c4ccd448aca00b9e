"""Typer CLI entry point for playing and inspecting trivia games."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import structlog
import typer
from dotenv import load_dotenv

from ..core.config import DEFAULT_CONFIG_PATH, load_game_config
from ..core.errors import GameError, LoadError, ReportError
from ..core.fsm import GameEngine
from ..core.loaders import DEFAULT_REGISTRY
from ..core.reports import SINK_REGISTRY
from .console import ConsolePrompter, GameNarrator, QuitGame, play_game

LOGGER = structlog.get_logger(__name__)

app = typer.Typer(help="Play multiple-choice trivia games.", invoke_without_command=False)
_configured_logging = False


def configure_logging(*, verbose: bool = False, interactive: bool = False) -> None:
    """Configure structlog once per process.

    Interactive play only surfaces warnings so log lines do not interleave
    with prompts, unless ``verbose`` is set.
    """
    global _configured_logging
    if _configured_logging:
        return
    if verbose:
        level = logging.DEBUG
    elif interactive:
        level = logging.WARNING
    else:
        level = logging.INFO
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
    )
    _configured_logging = True


@app.command("play")
def play(
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, help="Path to game configuration JSON"),
    fmt: Optional[str] = typer.Option(None, "--format", help="Question format (csv, json, xml)"),
    file: Optional[Path] = typer.Option(None, "--file", help="Question file; format inferred from extension"),
    report: Optional[List[str]] = typer.Option(None, "--report", help="Report format to write (repeatable)"),
    player: Optional[List[str]] = typer.Option(None, "--player", "-p", help="Player name (repeatable)"),
    verbose: bool = typer.Option(False, "--verbose", help="Show debug logging"),
) -> None:
    """Play an interactive game and write reports to the output directory."""

    load_dotenv()
    configure_logging(verbose=verbose, interactive=True)

    try:
        game_config = load_game_config(config)
    except ValueError as exc:
        typer.echo(f"Error: invalid config {config}: {exc}")
        raise typer.Exit(code=1) from exc
    if fmt:
        game_config.question_format = fmt.lower()
    report_names = list(report) if report else list(game_config.report_formats)

    try:
        sinks = [
            SINK_REGISTRY.create(name, output_dir=game_config.output_dir, case_id=game_config.case_id)
            for name in report_names
        ]
    except ReportError as exc:
        typer.echo(f"Error: {exc}")
        raise typer.Exit(code=1) from exc

    engine = GameEngine(config=game_config, sinks=sinks)
    narrator = GameNarrator()
    prompter = ConsolePrompter(engine, narrator)
    narrator.banner(game_config.case_id)
    LOGGER.info("game.start", case_id=game_config.case_id, config=str(config), reports=report_names)

    try:
        names = list(player) if player else prompter.ask_player_names(prompter.ask_player_count())
        source = fmt
        if source is None and file is None:
            source = prompter.ask_format(engine.registry.names(), game_config.question_format)
        result = engine.start(names, source, file, announce_players=True)
    except QuitGame:
        typer.echo("Goodbye.")
        raise typer.Exit(code=0)
    except (GameError, ValueError) as exc:
        typer.echo(f"Error: {exc}")
        raise typer.Exit(code=1) from exc

    narrator.load_result(result, engine.bank)
    if not result.accepted:
        raise typer.Exit(code=1)

    flushed = play_game(engine, prompter, narrator)
    LOGGER.info("game.complete", case_id=game_config.case_id, scores=engine.scores())
    if flushed is not None and not flushed.ok:
        raise typer.Exit(code=1)


@app.command("formats")
def formats() -> None:
    """List the registered question formats and report sinks."""

    typer.echo(f"Question formats: {', '.join(DEFAULT_REGISTRY.names())}")
    typer.echo(f"Report formats: {', '.join(SINK_REGISTRY.names())}")


@app.command("inspect")
def inspect(
    path: Path = typer.Argument(..., help="Question file to load"),
    fmt: Optional[str] = typer.Option(None, "--format", help="Question format; inferred from extension if omitted"),
    strict: bool = typer.Option(False, "--strict", help="Fail on the first invalid record"),
) -> None:
    """Load a question bank and print its category/value summary."""

    load_dotenv()
    configure_logging()

    try:
        loader = DEFAULT_REGISTRY.create(fmt, strict=strict) if fmt else DEFAULT_REGISTRY.for_path(path, strict=strict)
        bank = loader.load(path)
    except LoadError as exc:
        LOGGER.error("inspect.failed", path=str(path), error=str(exc))
        typer.echo(f"Error: {exc}")
        raise typer.Exit(code=1) from exc

    categories = bank.unanswered_categories()
    typer.echo(f"{len(bank)} questions in {len(categories)} categories ({loader.format_name})")
    for category in categories:
        values = ", ".join(str(value) for value in bank.values_for(category))
        typer.echo(f"{category}: {values}")


if __name__ == "__main__":  # pragma: no cover
    app()
