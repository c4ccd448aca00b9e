"""Question and question bank models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .errors import DuplicateQuestionError, InvalidQuestionStateError, LoadError
from .schemas import QuestionRecord, option_labels


@dataclass(slots=True, eq=False)
class Question:
    """A single multiple-choice trivia item."""

    category: str
    prompt: str
    value: int
    options: Dict[str, str]
    correct_label: str
    answered: bool = False

    @classmethod
    def from_options(
        cls,
        *,
        category: str,
        prompt: str,
        value: int,
        options: Sequence[str],
        correct_label: str,
    ) -> "Question":
        """Build a question, labelling ``options`` A, B, C... in order."""
        labelled = dict(zip(option_labels(len(options)), options))
        return cls(
            category=category,
            prompt=prompt,
            value=value,
            options=labelled,
            correct_label=correct_label.strip().upper(),
        )

    @classmethod
    def from_record(cls, record: QuestionRecord) -> "Question":
        return cls(
            category=record.category,
            prompt=record.prompt,
            value=record.value,
            options=record.labelled_options(),
            correct_label=record.correct_label,
        )

    @property
    def correct_text(self) -> str:
        return self.options.get(self.correct_label, "")

    def has_option(self, label: str) -> bool:
        return _normalize_label(label) in self.options

    def option_text(self, label: str) -> Optional[str]:
        return self.options.get(_normalize_label(label))

    def evaluate(self, choice: str) -> bool:
        """Return whether ``choice`` names the correct option.

        Evaluating an answered question is a caller bug and raises.
        """
        if self.answered:
            raise InvalidQuestionStateError(
                f"Question {self.category}/{self.value} has already been answered"
            )
        return _normalize_label(choice) == self.correct_label

    def mark_answered(self) -> None:
        if self.answered:
            raise InvalidQuestionStateError(
                f"Question {self.category}/{self.value} is already marked answered"
            )
        self.answered = True


def _normalize_label(label: str) -> str:
    return str(label).strip().upper()


@dataclass
class QuestionBank:
    """The loaded question set with views restricted to unanswered questions."""

    questions: List[Question]
    source: str = ""
    _index: Dict[Tuple[str, int], Question] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        if not self.questions:
            raise LoadError(self.source or "<memory>", "no questions found")
        for question in self.questions:
            key = (question.category, question.value)
            if key in self._index:
                raise DuplicateQuestionError(self.source or "<memory>", question.category, question.value)
            self._index[key] = question

    @classmethod
    def from_questions(cls, questions: Iterable[Question], *, source: str = "") -> "QuestionBank":
        return cls(questions=list(questions), source=source)

    def __len__(self) -> int:
        return len(self.questions)

    def unanswered(self) -> List[Question]:
        return [question for question in self.questions if not question.answered]

    def answered(self) -> List[Question]:
        return [question for question in self.questions if question.answered]

    @property
    def remaining(self) -> int:
        return sum(1 for question in self.questions if not question.answered)

    @property
    def is_exhausted(self) -> bool:
        return self.remaining == 0

    def unanswered_categories(self) -> List[str]:
        """Categories with at least one unanswered question, in load order."""
        return list(dict.fromkeys(question.category for question in self.unanswered()))

    def values_for(self, category: str) -> List[int]:
        """Ascending, de-duplicated point values still open in ``category``."""
        return sorted({question.value for question in self.unanswered() if question.category == category})

    def find(self, category: str, value: int) -> Optional[Question]:
        question = self._index.get((category, value))
        if question is None or question.answered:
            return None
        return question
