"""Pydantic contracts for question records and shared game enums."""

from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

FIRST_OPTION_LABEL = "A"


class ActivityKind(str, Enum):
    """Kinds of audited activity."""
    START_GAME = "START_GAME"
    LOAD_FILE = "LOAD_FILE"
    SELECT_PLAYER_COUNT = "SELECT_PLAYER_COUNT"
    ENTER_PLAYER_NAME = "ENTER_PLAYER_NAME"
    SELECT_CATEGORY = "SELECT_CATEGORY"
    SELECT_QUESTION = "SELECT_QUESTION"
    ANSWER_QUESTION = "ANSWER_QUESTION"
    SCORE_UPDATE = "SCORE_UPDATE"
    TURN_START = "TURN_START"
    TURN_END = "TURN_END"
    GENERATE_REPORT = "GENERATE_REPORT"
    GAME_OVER = "GAME_OVER"
    EXIT_GAME = "EXIT_GAME"


class ActivityResult(str, Enum):
    """Result strings written into activity records."""
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    CORRECT = "Correct"
    INCORRECT = "Incorrect"


def option_labels(count: int) -> List[str]:
    """Return ``count`` option labels starting at ``A``.

    >>> option_labels(4)
    ['A', 'B', 'C', 'D']
    >>> option_labels(0)
    []
    """
    start = ord(FIRST_OPTION_LABEL)
    return [chr(start + offset) for offset in range(count)]


class QuestionRecord(BaseModel):
    """Validated shape of one question as read from a source file."""

    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    category: str = Field(..., min_length=1)
    value: int = Field(..., gt=0)
    prompt: str = Field(..., min_length=1)
    options: List[str] = Field(..., min_length=1)
    correct_label: str = Field(..., min_length=1)

    @field_validator("value", mode="before")
    @classmethod
    def _strip_value(cls, raw: Any) -> Any:
        if isinstance(raw, str):
            return raw.strip()
        return raw

    @field_validator("options", mode="before")
    @classmethod
    def _normalize_options(cls, raw: Any) -> Any:
        # Labelled maps are read in label order; the labels themselves are reassigned.
        # Blank cells keep their slot so later labels stay put; only a blank tail is cut.
        if isinstance(raw, dict):
            raw = [raw[key] for key in sorted(raw)]
        if isinstance(raw, (list, tuple)):
            options = ["" if item is None else str(item).strip() for item in raw]
            while options and not options[-1]:
                options.pop()
            return options
        return raw

    @field_validator("correct_label", mode="after")
    @classmethod
    def _upper_label(cls, label: str) -> str:
        return label.upper()

    @model_validator(mode="after")
    def _check_correct_label(self) -> "QuestionRecord":
        labels = option_labels(len(self.options))
        if self.correct_label not in labels:
            raise ValueError(
                f"correct answer {self.correct_label!r} is not one of the option labels {labels}"
            )
        if not self.options[labels.index(self.correct_label)]:
            raise ValueError(f"correct answer {self.correct_label!r} points at an empty option")
        return self

    def labelled_options(self) -> Dict[str, str]:
        return dict(zip(option_labels(len(self.options)), self.options))


class SchemaValidationError(Exception):
    """Raised when a raw question record fails validation."""

    def __init__(self, origin: str, errors: list):
        self.origin = origin
        self.errors = errors
        super().__init__(f"Invalid question record at {origin}: {errors}")


def validate_record(*, origin: str, record: Dict[str, Any]) -> QuestionRecord:
    """Validate a raw question mapping or raise SchemaValidationError."""
    try:
        return QuestionRecord(**record)
    except ValidationError as e:
        raise SchemaValidationError(origin, e.errors(include_url=False))


# Doctests
def _test_question_record():
    """
    Test QuestionRecord creation and label assignment.

    >>> record = QuestionRecord(
    ...     category=" Math ",
    ...     value="100",
    ...     prompt="What is 2 + 2?",
    ...     options=["4", "5", "6", "22"],
    ...     correct_label="a",
    ... )
    >>> record.category
    'Math'
    >>> record.value
    100
    >>> record.correct_label
    'A'
    >>> record.labelled_options()
    {'A': '4', 'B': '5', 'C': '6', 'D': '22'}
    """
    pass


def _test_labelled_map_options():
    """
    Options given as a labelled map are read in label order.

    >>> record = QuestionRecord(
    ...     category="Science",
    ...     value=200,
    ...     prompt="H2O is?",
    ...     options={"B": "Salt", "A": "Water"},
    ...     correct_label="A",
    ... )
    >>> record.options
    ['Water', 'Salt']
    """
    pass


def _test_validation():
    """
    Test record validation failures.

    >>> try:
    ...     validate_record(origin="row 1", record={"category": "", "value": 0})
    ... except SchemaValidationError as exc:
    ...     exc.origin
    'row 1'

    >>> try:
    ...     validate_record(
    ...         origin="row 2",
    ...         record={
    ...             "category": "Math",
    ...             "value": 100,
    ...             "prompt": "1 + 1?",
    ...             "options": ["2", "3"],
    ...             "correct_label": "D",
    ...         },
    ...     )
    ... except SchemaValidationError:
    ...     pass  # Expected
    ... else:
    ...     assert False, "Should have raised SchemaValidationError"
    """
    pass


if __name__ == "__main__":
    import doctest
    doctest.testmod()
