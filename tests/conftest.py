"""
Shared fixtures for the trivia engine tests.
"""

from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pytest

from jeopardy.core.activity import ActivityRecord
from jeopardy.core.config import GameConfig
from jeopardy.core.fsm import GameEngine
from jeopardy.core.questions import Question, QuestionBank
from jeopardy.core.reports import ReportSink, Roster

DATA_DIR = Path(__file__).resolve().parent.parent / "data"

CSV_HEADER_LINE = "Category,Value,Question,OptionA,OptionB,OptionC,OptionD,CorrectAnswer\n"


class RecordingSink(ReportSink):
    """Sink that keeps the records it was handed instead of writing a file."""

    format_name = "memory"

    def __init__(self) -> None:
        self.calls: List[List[ActivityRecord]] = []
        self.rosters: List[Dict[str, int]] = []

    def render(self, records: Sequence[ActivityRecord], *, roster: Optional[Roster] = None) -> Path:
        self.calls.append(list(records))
        self.rosters.append(dict(roster or {}))
        return Path("memory")


class BrokenSink(ReportSink):
    """Sink that always fails."""

    format_name = "broken"

    def render(self, records: Sequence[ActivityRecord], *, roster: Optional[Roster] = None) -> Path:
        raise OSError("disk full")


def write_csv(path: Path, rows: Sequence[str]) -> Path:
    path.write_text(CSV_HEADER_LINE + "".join(f"{row}\n" for row in rows), encoding="utf-8")
    return path


@pytest.fixture
def data_dir():
    """Directory holding the bundled sample question banks."""
    return DATA_DIR


@pytest.fixture
def math_csv(tmp_path):
    """Single-question bank: Math for 100, correct answer A."""
    return write_csv(tmp_path / "math.csv", ["Math,100,What is 2 + 2?,4,5,6,22,A"])


@pytest.fixture
def grid_csv(tmp_path):
    """Two categories with two values each."""
    return write_csv(
        tmp_path / "grid.csv",
        [
            "Math,100,What is 2 + 2?,4,5,6,22,A",
            "Math,200,What is 3 * 3?,6,9,12,33,B",
            "Science,100,H2O is?,Salt,Water,Air,Fire,B",
            "Science,200,Closest star to Earth?,Sirius,Vega,The Sun,Polaris,C",
        ],
    )


@pytest.fixture
def sample_question():
    """Multiple choice question with the correct answer at B."""
    return Question.from_options(
        category="Science",
        prompt="What planet is known as the Red Planet?",
        value=200,
        options=["Venus", "Mars", "Jupiter", "Saturn"],
        correct_label="B",
    )


@pytest.fixture
def sample_bank():
    """In-memory bank with two categories."""
    return QuestionBank.from_questions(
        [
            Question.from_options(category="Math", prompt="2 + 2?", value=200, options=["4", "5"], correct_label="A"),
            Question.from_options(category="Math", prompt="1 + 1?", value=100, options=["2", "3"], correct_label="A"),
            Question.from_options(category="History", prompt="WWI began?", value=100, options=["1914", "1918"], correct_label="A"),
        ],
        source="memory",
    )


@pytest.fixture
def recording_sink():
    return RecordingSink()


@pytest.fixture
def engine(tmp_path, recording_sink):
    """Engine writing nowhere but the recording sink."""
    config = GameConfig(data_dir=DATA_DIR, output_dir=tmp_path / "output")
    return GameEngine(config=config, sinks=[recording_sink])
