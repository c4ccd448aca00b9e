"""Activity records and the publish/subscribe bus that carries them."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Any, Dict, List, Optional, Protocol, Tuple

import structlog

from .errors import PublishError
from .questions import Question
from .schemas import ActivityKind, ActivityResult

LOGGER = structlog.get_logger(__name__)

ENGINE_SOURCE = "engine"
SYSTEM_PLAYER_ID = "System"

CSV_HEADER: Tuple[str, ...] = (
    "Case_ID",
    "Player_ID",
    "Activity",
    "Timestamp",
    "Category",
    "Question_Value",
    "Answer_Given",
    "Result",
    "Score_After_Play",
)


@dataclass(frozen=True, slots=True)
class ActivityRecord:
    """Immutable snapshot of one state transition."""

    case_id: str = ""
    player_id: str = ""
    kind: Optional[ActivityKind] = None
    timestamp: Optional[datetime] = None
    category: str = ""
    question_value: int = 0
    answer_given: str = ""
    result: str = ""
    score_after: int = 0
    turn: int = 0
    question: Optional[Question] = None
    source: str = ""

    @property
    def is_correct(self) -> bool:
        return self.result == ActivityResult.CORRECT.value

    def answer_text(self) -> str:
        """Option text for the given answer, falling back to the raw label."""
        if self.question is not None:
            text = self.question.option_text(self.answer_given)
            if text is not None:
                return text
        return self.answer_given

    def summary_text(self) -> Optional[str]:
        """Human-readable turn narrative; ``None`` when no question is attached."""
        if self.question is None:
            return None
        lines = [
            f"Turn {self.turn}: {self.player_id} selected {self.category} for {self.question_value} pts",
            f"Question: {self.question.prompt}",
        ]
        if self.kind == ActivityKind.ANSWER_QUESTION:
            if self.is_correct:
                lines.append(f"Answer: {self.answer_text()} - Correct (+{self.question_value} pts)")
            else:
                lines.append(f"Answer: {self.answer_text()} - Incorrect (0 pts)")
                lines.append(f"Correct answer: {self.question.correct_label}) {self.question.correct_text}")
            lines.append(f"Score after turn: {self.player_id} = {self.score_after}")
        return "\n".join(lines)

    def as_row(self) -> Tuple[str, ...]:
        return (
            self.case_id,
            self.player_id,
            self.kind.value if self.kind is not None else "",
            self.timestamp.isoformat() if self.timestamp is not None else "",
            self.category,
            str(self.question_value),
            self.answer_given,
            self.result,
            str(self.score_after),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "case_id": self.case_id,
            "player_id": self.player_id,
            "activity": self.kind.value if self.kind is not None else None,
            "timestamp": self.timestamp.isoformat() if self.timestamp is not None else None,
            "category": self.category,
            "question_value": self.question_value,
            "answer_given": self.answer_given,
            "result": self.result,
            "score_after": self.score_after,
            "turn": self.turn,
            "question": self.question.prompt if self.question is not None else None,
            "source": self.source,
        }


def make_record(**values: Any) -> ActivityRecord:
    """Build a record in one call; unknown field names raise TypeError."""
    return ActivityRecord(**values)


def now() -> datetime:
    return datetime.now(UTC)


class ActivityRecordBuilder:
    """Fluent, resettable builder for :class:`ActivityRecord`.

    ``build()`` snapshots the current values without clearing them, so callers
    reusing one builder must ``reset()`` between records.
    """

    def __init__(self) -> None:
        self._values: Dict[str, Any] = {}

    def reset(self) -> "ActivityRecordBuilder":
        self._values = {}
        return self

    def _set(self, name: str, value: Any) -> "ActivityRecordBuilder":
        self._values[name] = value
        return self

    def with_case_id(self, case_id: str) -> "ActivityRecordBuilder":
        return self._set("case_id", case_id)

    def with_player(self, player_id: str) -> "ActivityRecordBuilder":
        return self._set("player_id", player_id)

    def with_kind(self, kind: ActivityKind) -> "ActivityRecordBuilder":
        return self._set("kind", kind)

    def stamp(self, timestamp: Optional[datetime] = None) -> "ActivityRecordBuilder":
        return self._set("timestamp", timestamp or now())

    def with_category(self, category: str) -> "ActivityRecordBuilder":
        return self._set("category", category)

    def with_question_value(self, value: int) -> "ActivityRecordBuilder":
        return self._set("question_value", value)

    def with_answer(self, answer: str) -> "ActivityRecordBuilder":
        return self._set("answer_given", answer)

    def with_result(self, result: ActivityResult | str) -> "ActivityRecordBuilder":
        return self._set("result", getattr(result, "value", result))

    def with_score_after(self, score: int) -> "ActivityRecordBuilder":
        return self._set("score_after", score)

    def with_turn(self, turn: int) -> "ActivityRecordBuilder":
        return self._set("turn", turn)

    def with_question(self, question: Optional[Question]) -> "ActivityRecordBuilder":
        return self._set("question", question)

    def with_source(self, source: str) -> "ActivityRecordBuilder":
        return self._set("source", source)

    def build(self) -> ActivityRecord:
        return make_record(**self._values)


class ActivitySubscriber(Protocol):
    """Anything that wants to receive published activity records."""

    def update(self, record: ActivityRecord) -> None:
        """Receive one record."""


class ActivityPublisher:
    """Synchronous fan-out of activity records to subscribers.

    One bus carries both engine and player records; each record is tagged with
    the id of the entity that published it.
    """

    def __init__(self) -> None:
        self._subscribers: List[ActivitySubscriber] = []
        self._builder = ActivityRecordBuilder()

    @property
    def subscribers(self) -> Tuple[ActivitySubscriber, ...]:
        return tuple(self._subscribers)

    def subscribe(self, subscriber: ActivitySubscriber) -> None:
        if subscriber is None or subscriber in self._subscribers:
            return
        self._subscribers.append(subscriber)

    def unsubscribe(self, subscriber: ActivitySubscriber) -> None:
        if subscriber in self._subscribers:
            self._subscribers.remove(subscriber)

    def compose(self) -> ActivityRecordBuilder:
        """Return the bus builder, already reset for a new record."""
        return self._builder.reset()

    def publish(self, record: ActivityRecord, *, source: Optional[str] = None) -> ActivityRecord:
        """Deliver ``record`` to every subscriber in subscription order.

        A raising subscriber aborts this publish call with PublishError.
        """
        if source is not None and record.source != source:
            record = replace(record, source=source)
        for subscriber in tuple(self._subscribers):
            try:
                subscriber.update(record)
            except Exception as exc:
                LOGGER.error(
                    "activity.publish_failed",
                    subscriber=type(subscriber).__name__,
                    activity=record.kind.value if record.kind else None,
                    error=str(exc),
                )
                raise PublishError(subscriber, exc) from exc
        return record


class ActivityLog:
    """Append-only audit trail; subscribes to a publisher and keeps every record."""

    def __init__(self) -> None:
        self._records: List[ActivityRecord] = []

    def update(self, record: ActivityRecord) -> None:
        self._records.append(record)

    @property
    def records(self) -> Tuple[ActivityRecord, ...]:
        return tuple(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def kinds(self) -> List[ActivityKind]:
        return [record.kind for record in self._records if record.kind is not None]

    def for_player(self, player_id: str) -> List[ActivityRecord]:
        return [record for record in self._records if record.player_id == player_id]

    def last(self) -> Optional[ActivityRecord]:
        return self._records[-1] if self._records else None
