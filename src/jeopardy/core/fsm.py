"""Finite state machine orchestrating turn-based trivia play."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

import structlog

from .activity import (
    ENGINE_SOURCE,
    SYSTEM_PLAYER_ID,
    ActivityLog,
    ActivityPublisher,
    ActivityRecord,
)
from .config import MAX_PLAYERS, MIN_PLAYERS, GameConfig
from .errors import InvalidPlayerCountError, InvalidQuestionStateError, LoadError
from .loaders import DEFAULT_REGISTRY, QuestionSourceRegistry, default_locator
from .players import Player
from .questions import Question, QuestionBank
from .reports import FlushResult, ReportSink, flush_reports
from .schemas import ActivityKind, ActivityResult

LOGGER = structlog.get_logger(__name__)

GAME_OVER_REASON = "game is over"


class EngineState(str, Enum):
    """Engine states."""

    NOT_STARTED = "NOT_STARTED"
    AWAITING_CATEGORY = "AWAITING_CATEGORY"
    AWAITING_QUESTION = "AWAITING_QUESTION"
    AWAITING_ANSWER = "AWAITING_ANSWER"
    TURN_COMPLETE = "TURN_COMPLETE"
    GAME_OVER = "GAME_OVER"


@dataclass(slots=True)
class AnswerOutcome:
    """Result of evaluating one answer."""

    correct: bool
    points_awarded: int
    correct_label: str
    correct_text: str
    score_after: int


@dataclass(slots=True)
class TransitionResult:
    """Whether a transition was accepted, and what it produced."""

    accepted: bool
    state: EngineState
    reason: str = ""
    record: Optional[ActivityRecord] = None
    outcome: Optional[AnswerOutcome] = None
    reports: Optional[FlushResult] = None

    def __bool__(self) -> bool:
        return self.accepted


@dataclass
class GameState:
    """Container for tracking game state."""

    players: List[Player] = field(default_factory=list)
    bank: Optional[QuestionBank] = None
    turn: int = 0
    current_category: Optional[str] = None
    current_question: Optional[Question] = None
    state: EngineState = EngineState.NOT_STARTED

    @property
    def current_player(self) -> Optional[Player]:
        if not self.players:
            return None
        return self.players[self.turn % len(self.players)]

    @property
    def display_turn(self) -> int:
        return self.turn + 1

    def next_turn(self) -> None:
        self.turn += 1
        self.current_category = None
        self.current_question = None


class FSMError(RuntimeError):
    """Raised when the FSM cannot make progress."""


def is_valid_player_count(count: int, *, minimum: int = MIN_PLAYERS, maximum: int = MAX_PLAYERS) -> bool:
    return isinstance(count, int) and not isinstance(count, bool) and minimum <= count <= maximum


def is_valid_player_name(name: Optional[str]) -> bool:
    return name is not None and bool(str(name).strip())


def _coerce_value(value: int | str) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    text = str(value).strip()
    # Superscripts pass isdigit() but not int().
    if not text.isdecimal():
        return None
    try:
        return int(text)
    except ValueError:
        return None


class GameEngine:
    """Drives category, question and answer selection for each turn.

    The engine owns the game state, the activity bus and the audit log. Every
    transition returns a :class:`TransitionResult`; invalid user selections
    are rejected without emitting a record, while caller bugs (answering with
    no open question, ending a turn early) raise.
    """

    def __init__(
        self,
        *,
        config: Optional[GameConfig] = None,
        registry: Optional[QuestionSourceRegistry] = None,
        publisher: Optional[ActivityPublisher] = None,
        sinks: Iterable[ReportSink] = (),
    ) -> None:
        self.config = config or GameConfig()
        self.registry = registry or DEFAULT_REGISTRY
        self.bus = publisher or ActivityPublisher()
        self.log = ActivityLog()
        self.bus.subscribe(self.log)
        self.sinks: List[ReportSink] = list(sinks)
        self.game = GameState()
        self.flush_result: Optional[FlushResult] = None

    # Introspection --------------------------------------------------------------

    @property
    def state(self) -> EngineState:
        return self.game.state

    @property
    def is_over(self) -> bool:
        return self.game.state is EngineState.GAME_OVER

    @property
    def players(self) -> List[Player]:
        return list(self.game.players)

    @property
    def current_player(self) -> Optional[Player]:
        return self.game.current_player

    @property
    def bank(self) -> Optional[QuestionBank]:
        return self.game.bank

    def add_sink(self, sink: ReportSink) -> None:
        self.sinks.append(sink)

    def scores(self) -> Dict[str, int]:
        return {player.player_id: player.score for player in self.game.players}

    def leaders(self) -> List[Player]:
        """Players sharing the highest score, in seating order."""
        if not self.game.players:
            return []
        best = max(player.score for player in self.game.players)
        return [player for player in self.game.players if player.score == best]

    # Validation predicates ------------------------------------------------------

    def is_valid_category(self, choice: Optional[str]) -> bool:
        return self._match_category(choice) is not None

    def is_valid_question_value(self, value: int | str) -> bool:
        if self.game.bank is None or self.game.current_category is None:
            return False
        coerced = _coerce_value(value)
        return coerced is not None and coerced in self.game.bank.values_for(self.game.current_category)

    def is_valid_answer_label(self, label: Optional[str]) -> bool:
        question = self.game.current_question
        return question is not None and label is not None and question.has_option(label)

    # Transitions ----------------------------------------------------------------

    def start(
        self,
        players: Sequence[str | Player],
        source: Optional[str] = None,
        locator: Optional[str | Path] = None,
        *,
        announce_players: bool = False,
    ) -> TransitionResult:
        """Seat the players, load the question bank and open the first turn.

        ``source`` names a registered question format; when omitted the format
        is picked from the extension of ``locator``. With neither, the
        configured format and its sample file under the data directory are used.
        """
        if self.is_over:
            return self._reject(GAME_OVER_REASON)
        if self.game.state is not EngineState.NOT_STARTED:
            return self._reject("game already started")

        count = len(players)
        if not self.config.allows_player_count(count):
            raise InvalidPlayerCountError(count, self.config.min_players, self.config.max_players)
        seated = [entry if isinstance(entry, Player) else Player(entry) for entry in players]
        for player in seated:
            player.attach(self.bus)

        self.game = GameState(players=seated)
        self._emit(ActivityKind.START_GAME, turn=0)

        if announce_players:
            self._emit(
                ActivityKind.SELECT_PLAYER_COUNT,
                turn=0,
                answer=str(count),
                result=ActivityResult.SUCCESS,
            )
            for player in seated:
                player.announce(
                    ActivityKind.ENTER_PLAYER_NAME,
                    case_id=self.config.case_id,
                    answer=player.player_id,
                    result=ActivityResult.SUCCESS,
                )

        if source is None and locator is None:
            source = self.config.question_format
            locator = default_locator(self.config.data_dir, source)

        try:
            if source is not None:
                loader = self.registry.create(source)
            else:
                loader = self.registry.for_path(locator)
            if locator is None:
                locator = default_locator(self.config.data_dir, loader.format_name)
            bank = loader.load(locator)
        except LoadError as exc:
            LOGGER.warning("engine.load_failed", source=source, locator=str(locator), error=str(exc))
            self._emit(
                ActivityKind.LOAD_FILE,
                turn=0,
                answer=str(locator or ""),
                result=ActivityResult.FAILED,
            )
            return self._reject(str(exc))

        self.game.bank = bank
        record = self._emit(
            ActivityKind.LOAD_FILE,
            turn=0,
            answer=str(locator),
            result=ActivityResult.SUCCESS,
        )
        self.game.state = EngineState.AWAITING_CATEGORY
        LOGGER.info(
            "engine.started",
            case_id=self.config.case_id,
            players=[player.player_id for player in seated],
            questions=len(bank),
        )
        self._open_turn()
        return self._accept(record)

    def select_category(self, choice: str) -> TransitionResult:
        rejected = self._guard(EngineState.AWAITING_CATEGORY, "select a category")
        if rejected is not None:
            return rejected
        category = self._match_category(choice)
        if category is None:
            return self._reject(f"invalid category: {choice!r}")

        self.game.current_category = category
        self.game.state = EngineState.AWAITING_QUESTION
        record = self._emit(ActivityKind.SELECT_CATEGORY, player=self.current_player, category=category)
        return self._accept(record)

    def select_question(self, value: int | str) -> TransitionResult:
        rejected = self._guard(EngineState.AWAITING_QUESTION, "select a question")
        if rejected is not None:
            return rejected
        if self.game.bank is None or self.game.current_category is None:
            raise FSMError("No category is selected")
        coerced = _coerce_value(value)
        question = self.game.bank.find(self.game.current_category, coerced) if coerced is not None else None
        if question is None:
            return self._reject(f"invalid question value: {value!r}")

        self.game.current_question = question
        self.game.state = EngineState.AWAITING_ANSWER
        record = self._emit(
            ActivityKind.SELECT_QUESTION,
            player=self.current_player,
            category=question.category,
            question_value=question.value,
            question=question,
        )
        return self._accept(record)

    def answer(self, choice: str) -> TransitionResult:
        if self.is_over:
            return self._reject(GAME_OVER_REASON)
        question = self.game.current_question
        if question is None:
            raise InvalidQuestionStateError("No question is awaiting an answer")
        if question.answered:
            raise InvalidQuestionStateError(
                f"Question {question.category}/{question.value} has already been answered"
            )
        if self.game.state is not EngineState.AWAITING_ANSWER:
            return self._reject(f"cannot answer while {self.game.state.value}")
        if not question.has_option(choice):
            return self._reject(f"invalid answer label: {choice!r}")

        player = self.current_player
        if player is None:
            raise FSMError("No player is seated")
        correct = question.evaluate(choice)
        points = question.value if correct else 0
        if points:
            player.update_score(points)
        question.mark_answered()

        outcome = AnswerOutcome(
            correct=correct,
            points_awarded=points,
            correct_label=question.correct_label,
            correct_text=question.correct_text,
            score_after=player.score,
        )
        self.game.state = EngineState.TURN_COMPLETE
        record = self._emit(
            ActivityKind.ANSWER_QUESTION,
            player=player,
            category=question.category,
            question_value=question.value,
            answer=str(choice).strip().upper(),
            result=ActivityResult.CORRECT if correct else ActivityResult.INCORRECT,
            question=question,
        )
        if correct and self.config.record_turn_events:
            self._emit(
                ActivityKind.SCORE_UPDATE,
                player=player,
                category=question.category,
                question_value=points,
                result=ActivityResult.SUCCESS,
            )
        LOGGER.debug(
            "engine.answered",
            player=player.player_id,
            category=question.category,
            value=question.value,
            correct=correct,
        )
        result = self._accept(record)
        result.outcome = outcome
        return result

    def end_turn(self) -> TransitionResult:
        """Advance to the next player, or end the game once the bank is empty."""
        if self.is_over:
            return self._reject(GAME_OVER_REASON)
        if self.game.state is not EngineState.TURN_COMPLETE:
            raise FSMError(f"Cannot end turn while {self.game.state.value}")

        record = None
        if self.config.record_turn_events:
            record = self._emit(ActivityKind.TURN_END, player=self.current_player)
        self.game.next_turn()

        if self.game.bank is None:
            raise FSMError("No question bank is loaded")
        if self.game.bank.is_exhausted:
            reports = self.game_over()
            result = self._accept(self.log.last())
            result.reports = reports
            return result

        self.game.state = EngineState.AWAITING_CATEGORY
        opened = self._open_turn()
        return self._accept(opened or record)

    def game_over(self) -> FlushResult:
        """Emit GAME_OVER and hand the audit trail to every report sink.

        Reports are flushed exactly once, even when a subscriber raises while
        GAME_OVER is being published; that error still propagates afterwards.
        """
        if self.is_over:
            return self._flushed()

        self.game.state = EngineState.GAME_OVER
        self.game.current_category = None
        self.game.current_question = None
        try:
            self._emit(ActivityKind.GAME_OVER, turn=self.game.turn)
            LOGGER.info(
                "engine.game_over", case_id=self.config.case_id, turns=self.game.turn, scores=self.scores()
            )
        finally:
            self.flush_result = flush_reports(self.log.records, self.sinks, roster=self.scores())
        return self.flush_result

    def exit_game(self) -> FlushResult:
        """Record a player quitting, then end the game."""
        if self.is_over:
            return self._flushed()
        self._emit(ActivityKind.EXIT_GAME, player=self.current_player)
        return self.game_over()

    # Internals ------------------------------------------------------------------

    def _match_category(self, choice: Optional[str]) -> Optional[str]:
        if self.game.bank is None or choice is None:
            return None
        text = str(choice).strip()
        if not text:
            return None
        categories = self.game.bank.unanswered_categories()
        if text in categories:
            return text
        lowered = text.lower()
        return next((category for category in categories if category.lower() == lowered), None)

    def _open_turn(self) -> Optional[ActivityRecord]:
        if not self.config.record_turn_events:
            return None
        return self._emit(ActivityKind.TURN_START, player=self.current_player)

    def _flushed(self) -> FlushResult:
        if self.flush_result is None:
            self.flush_result = FlushResult()
        return self.flush_result

    def _guard(self, expected: EngineState, action: str) -> Optional[TransitionResult]:
        if self.is_over:
            return self._reject(GAME_OVER_REASON)
        if self.game.state is not expected:
            return self._reject(f"cannot {action} while {self.game.state.value}")
        return None

    def _emit(
        self,
        kind: ActivityKind,
        *,
        player: Optional[Player] = None,
        turn: Optional[int] = None,
        **fields: object,
    ) -> ActivityRecord:
        builder = (
            self.bus.compose()
            .with_case_id(self.config.case_id)
            .with_player(player.player_id if player is not None else SYSTEM_PLAYER_ID)
            .with_kind(kind)
            .with_turn(self.game.display_turn if turn is None else turn)
            .stamp()
        )
        if player is not None:
            builder.with_score_after(player.score)
        for name, value in fields.items():
            getattr(builder, f"with_{name}")(value)
        return self.bus.publish(builder.build(), source=ENGINE_SOURCE)

    def _accept(self, record: Optional[ActivityRecord]) -> TransitionResult:
        return TransitionResult(accepted=True, state=self.game.state, record=record)

    def _reject(self, reason: str) -> TransitionResult:
        LOGGER.debug("engine.transition_rejected", state=self.game.state.value, reason=reason)
        return TransitionResult(accepted=False, state=self.game.state, reason=reason)
