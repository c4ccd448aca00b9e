"""Interactive console front end: rich narration and typer prompt loops."""

from __future__ import annotations

from typing import Callable, Iterable, List, Optional, Sequence

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..core.fsm import (
    AnswerOutcome,
    FSMError,
    GameEngine,
    TransitionResult,
    is_valid_player_count,
    is_valid_player_name,
)
from ..core.players import Player
from ..core.questions import Question, QuestionBank
from ..core.reports import FlushResult

console = Console()

QUIT_WORDS = frozenset({"q", "quit", "exit"})

Prompt = Callable[..., str]


class QuitGame(Exception):
    """The player typed a quit word at a prompt."""


class GameNarrator:
    """Provides human-friendly game progress updates."""

    def __init__(self, output: Optional[Console] = None) -> None:
        self.console = output or console

    def divider(self, title: str = "") -> None:
        if title:
            self.console.print(f"\n{'=' * 60}")
            self.console.print(title.center(60))
            self.console.print("=" * 60)
        else:
            self.console.print("-" * 60)

    def banner(self, case_id: str) -> None:
        self.divider("JEOPARDY")
        self.console.print(f"[dim]Case ID: {case_id}[/dim]")
        self.console.print("[dim]Type 'q' at any prompt to quit.[/dim]")
        self.console.print()

    def load_result(self, result: TransitionResult, bank: Optional[QuestionBank]) -> None:
        if result.accepted and bank is not None:
            self.console.print(
                f"[green]Loaded {len(bank)} questions in {len(bank.unanswered_categories())} categories.[/green]"
            )
        else:
            self.console.print(f"[red]Could not load questions:[/red] {result.reason}")
        self.console.print()

    def turn_header(self, turn: int, player: Player) -> None:
        self.divider(f"TURN {turn}")
        self.console.print(f"[bold blue]Player:[/bold blue] {player.player_id} ({player.score} pts)")
        self.console.print()

    def categories(self, bank: QuestionBank) -> None:
        table = Table(show_header=True, header_style="bold cyan", title="Categories")
        table.add_column("Category")
        table.add_column("Open values")
        for category in bank.unanswered_categories():
            table.add_row(category, ", ".join(str(value) for value in bank.values_for(category)))
        self.console.print(table)

    def values(self, category: str, values: Sequence[int]) -> None:
        self.console.print(f"[bold green]{category}:[/bold green] {', '.join(str(value) for value in values)}")

    def question(self, question: Question) -> None:
        body = "\n".join(
            [question.prompt, ""] + [f"{label}) {text}" for label, text in question.options.items()]
        )
        self.console.print(
            Panel(Text(body), title=f"{question.category} for {question.value}", border_style="magenta")
        )

    def answer_feedback(self, outcome: AnswerOutcome) -> None:
        if outcome.correct:
            self.console.print(f"[green]That is correct![/green] +{outcome.points_awarded} pts")
        else:
            self.console.print(
                f"[red]Incorrect.[/red] The correct answer is {outcome.correct_label}) {outcome.correct_text}"
            )
        self.console.print(f"Score: {outcome.score_after}")
        self.console.print()

    def rejected(self, reason: str) -> None:
        self.console.print(f"[red]{reason}[/red]")

    def scoreboard(self, players: Iterable[Player]) -> None:
        self.divider("GAME OVER")
        table = Table(show_header=True, header_style="bold cyan", title="Final Scores")
        table.add_column("Player")
        table.add_column("Score", justify="right")
        ranked = sorted(players, key=lambda player: player.score, reverse=True)
        for player in ranked:
            table.add_row(player.player_id, str(player.score))
        self.console.print(table)

    def reports(self, result: Optional[FlushResult]) -> None:
        if result is None:
            return
        for path in result.paths:
            self.console.print(f"[dim]Report written: {path}[/dim]")
        for name, exc in result.failures:
            self.console.print(f"[red]Report {name} failed:[/red] {exc}")


class ConsolePrompter:
    """Prompt loops that re-ask until the engine would accept the input."""

    def __init__(
        self,
        engine: GameEngine,
        narrator: Optional[GameNarrator] = None,
        *,
        prompt: Prompt = typer.prompt,
    ) -> None:
        self.engine = engine
        self.narrator = narrator or GameNarrator()
        self._prompt = prompt

    def _ask(self, text: str, **kwargs: object) -> str:
        value = str(self._prompt(text, **kwargs)).strip()
        if value.lower() in QUIT_WORDS:
            raise QuitGame()
        return value

    def ask_player_count(self) -> int:
        config = self.engine.config
        while True:
            raw = self._ask(f"Number of players ({config.min_players}-{config.max_players})")
            count = _parse_count(raw)
            if count is not None and is_valid_player_count(
                count, minimum=config.min_players, maximum=config.max_players
            ):
                return count
            self.narrator.rejected(
                f"Please enter a number between {config.min_players} and {config.max_players}."
            )

    def ask_player_names(self, count: int) -> List[str]:
        names: List[str] = []
        for index in range(1, count + 1):
            while True:
                name = self._ask(f"Name for player {index}")
                if is_valid_player_name(name):
                    names.append(name)
                    break
                self.narrator.rejected("Name must be at least 1 character long.")
        return names

    def ask_format(self, names: Sequence[str], default: str) -> str:
        available = [name.lower() for name in names]
        while True:
            choice = self._ask(f"Question format ({'/'.join(available)})", default=default).lower()
            if choice in available:
                return choice
            self.narrator.rejected(f"Please choose one of: {', '.join(available)}.")

    def ask_category(self) -> str:
        while True:
            choice = self._ask("Choose a category")
            if self.engine.is_valid_category(choice):
                return choice
            self.narrator.rejected("Invalid category. Please choose from the list.")

    def ask_question_value(self) -> str:
        while True:
            choice = self._ask("Choose a value")
            if self.engine.is_valid_question_value(choice):
                return choice
            self.narrator.rejected("Invalid value. Please choose an open value.")

    def ask_answer(self) -> str:
        while True:
            choice = self._ask("Your answer")
            if self.engine.is_valid_answer_label(choice):
                return choice
            self.narrator.rejected("Invalid option. Please enter one of the listed letters.")


def play_game(engine: GameEngine, prompter: ConsolePrompter, narrator: GameNarrator) -> Optional[FlushResult]:
    """Run turns until the bank is exhausted or a player quits."""

    try:
        while not engine.is_over:
            player = engine.current_player
            bank = engine.bank
            if player is None or bank is None:
                raise FSMError("Game has not been started")
            narrator.turn_header(engine.game.display_turn, player)
            narrator.categories(bank)

            _require(engine.select_category(prompter.ask_category()))
            category = engine.game.current_category
            if category is None:
                raise FSMError("Category selection did not stick")
            narrator.values(category, bank.values_for(category))

            _require(engine.select_question(prompter.ask_question_value()))
            question = engine.game.current_question
            if question is None:
                raise FSMError("Question selection did not stick")
            narrator.question(question)

            result = _require(engine.answer(prompter.ask_answer()))
            if result.outcome is None:
                raise FSMError("Answer produced no outcome")
            narrator.answer_feedback(result.outcome)
            engine.end_turn()
    except QuitGame:
        engine.exit_game()

    narrator.scoreboard(engine.players)
    narrator.reports(engine.flush_result)
    return engine.flush_result


def _require(result: TransitionResult) -> TransitionResult:
    if not result.accepted:
        raise FSMError(f"Validated input was rejected: {result.reason}")
    return result


def _parse_count(raw: str) -> Optional[int]:
    if not raw.isdecimal():
        return None
    try:
        return int(raw)
    except ValueError:
        return None
