"""Question source strategies and the registry that selects between them.

Each source turns one external file representation into a :class:`QuestionBank`.
Sources are looked up by symbolic name (``"csv"``, ``"json"``, ``"xml"``) so
adding a format means writing a new :class:`QuestionSource` subclass and
registering it; nothing else changes.
"""

from __future__ import annotations

import csv
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

import orjson
import structlog

from .errors import LoadError, UnknownFormatError
from .questions import Question, QuestionBank
from .schemas import SchemaValidationError, validate_record

LOGGER = structlog.get_logger(__name__)

CSV_COLUMNS = 8
SAMPLE_FILE_TEMPLATE = "sample_game_{upper}.{lower}"

RawRecord = Tuple[str, Dict[str, Any]]


class QuestionSource(ABC):
    """Strategy that loads a question bank from one file format."""

    format_name: str = ""
    extensions: Tuple[str, ...] = ()

    def __init__(self, *, strict: bool = False) -> None:
        self.strict = strict

    @abstractmethod
    def read_records(self, path: Path) -> Iterable[RawRecord]:
        """Yield ``(origin, raw_mapping)`` pairs parsed from ``path``."""

    def load(self, locator: str | Path) -> QuestionBank:
        """Load and validate every question in ``locator``.

        Raises LoadError when the file is missing, unreadable, malformed or
        yields no valid questions. Invalid individual records are skipped
        unless the source is strict.
        """
        path = Path(locator)
        if not path.is_file():
            raise LoadError(path, "file not found")

        try:
            raw_records = list(self.read_records(path))
        except LoadError:
            raise
        except (OSError, UnicodeDecodeError, csv.Error, orjson.JSONDecodeError, ET.ParseError) as exc:
            raise LoadError(path, str(exc)) from exc

        questions: List[Question] = []
        skipped = 0
        for origin, raw in raw_records:
            try:
                record = validate_record(origin=origin, record=raw)
            except SchemaValidationError as exc:
                if self.strict:
                    raise LoadError(path, str(exc)) from exc
                skipped += 1
                LOGGER.warning("question_source.record_skipped", path=str(path), origin=origin, errors=len(exc.errors))
                continue
            questions.append(Question.from_record(record))

        bank = QuestionBank.from_questions(questions, source=str(path))
        LOGGER.info(
            "question_bank.loaded",
            format=self.format_name,
            path=str(path),
            questions=len(bank),
            categories=len(bank.unanswered_categories()),
            skipped=skipped,
        )
        return bank


class CsvQuestionSource(QuestionSource):
    """Rows of ``Category, Value, Question, Option x4, CorrectAnswer``."""

    format_name = "csv"
    extensions = (".csv",)

    def read_records(self, path: Path) -> Iterator[RawRecord]:
        with path.open(newline="", encoding="utf-8") as handle:
            for line_num, row in enumerate(csv.reader(handle), start=1):
                if not row or not any(cell.strip() for cell in row):
                    continue
                if line_num == 1 and "category" in ",".join(row).lower():
                    continue
                if len(row) < CSV_COLUMNS:
                    LOGGER.warning("question_source.short_row", path=str(path), line=line_num, columns=len(row))
                    continue
                yield f"line {line_num}", {
                    "category": row[0],
                    "value": row[1],
                    "prompt": row[2],
                    "options": row[3:7],
                    "correct_label": row[7],
                }


class JsonQuestionSource(QuestionSource):
    """A top-level array of question objects.

    ``Options`` may be a labelled map (``{"A": ..., "B": ...}``) or a plain list.
    """

    format_name = "json"
    extensions = (".json",)

    def read_records(self, path: Path) -> Iterator[RawRecord]:
        data = orjson.loads(path.read_bytes())
        if not isinstance(data, list):
            raise LoadError(path, "expected a JSON array of questions")
        for index, item in enumerate(data):
            if not isinstance(item, dict):
                raise LoadError(path, f"item {index} is not an object")
            correct = item.get("CorrectAnswer")
            if correct is None:
                correct = item.get("correctAnswer")
            yield f"item {index}", {
                "category": item.get("Category"),
                "value": item.get("Value"),
                "prompt": item.get("Question"),
                "options": item.get("Options"),
                "correct_label": correct,
            }


class XmlQuestionSource(QuestionSource):
    """``QuestionItem`` elements with an ``Options`` container of child nodes."""

    format_name = "xml"
    extensions = (".xml",)

    def read_records(self, path: Path) -> Iterator[RawRecord]:
        root = ET.parse(path).getroot()
        for index, element in enumerate(root.iter("QuestionItem")):
            options_element = element.find(".//Options")
            options = (
                [(child.text or "") for child in options_element]
                if options_element is not None
                else []
            )
            yield f"QuestionItem {index}", {
                "category": _element_text(element, "Category"),
                "value": _element_text(element, "Value"),
                "prompt": _element_text(element, "QuestionText"),
                "options": options,
                "correct_label": _element_text(element, "CorrectAnswer"),
            }


def _element_text(element: ET.Element, tag: str) -> Optional[str]:
    found = element.find(f".//{tag}")
    if found is None or found.text is None:
        return None
    return found.text.strip()


class QuestionSourceRegistry:
    """Registry of question sources keyed by symbolic format name."""

    def __init__(self) -> None:
        self._sources: Dict[str, type[QuestionSource]] = {}

    def register(self, name: str, source_class: type[QuestionSource]) -> None:
        """Register a source class under ``name``."""
        self._sources[name.lower()] = source_class

    def create(self, name: str, **kwargs: Any) -> QuestionSource:
        """Create a source instance by name."""
        key = name.lower()
        if key not in self._sources:
            raise UnknownFormatError(name, self.names())
        return self._sources[key](**kwargs)

    def names(self) -> List[str]:
        """List all registered format names."""
        return list(self._sources.keys())

    def for_path(self, path: str | Path, **kwargs: Any) -> QuestionSource:
        """Pick a source by the file extension of ``path``."""
        suffix = Path(path).suffix.lower()
        for name, source_class in self._sources.items():
            if suffix in source_class.extensions:
                return self.create(name, **kwargs)
        raise UnknownFormatError(suffix or str(path), self.names())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._sources


def default_registry() -> QuestionSourceRegistry:
    """Return a registry with the built-in CSV, JSON and XML sources."""
    registry = QuestionSourceRegistry()
    registry.register(CsvQuestionSource.format_name, CsvQuestionSource)
    registry.register(JsonQuestionSource.format_name, JsonQuestionSource)
    registry.register(XmlQuestionSource.format_name, XmlQuestionSource)
    return registry


def default_locator(data_dir: Path, name: str) -> Path:
    """Return the sample file path for ``name``, e.g. ``data/sample_game_CSV.csv``."""
    return Path(data_dir) / SAMPLE_FILE_TEMPLATE.format(upper=name.upper(), lower=name.lower())


DEFAULT_REGISTRY = default_registry()
