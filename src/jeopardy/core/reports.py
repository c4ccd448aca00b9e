"""Report sinks that render the activity audit trail at game end."""

from __future__ import annotations

import csv
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import orjson
import structlog

from .activity import CSV_HEADER, ENGINE_SOURCE, SYSTEM_PLAYER_ID, ActivityRecord, make_record, now
from .errors import ReportError, ReportFlushError
from .schemas import ActivityKind, ActivityResult

LOGGER = structlog.get_logger(__name__)

DEFAULT_OUTPUT_DIR = Path("output")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"
TEXT_TITLE = "JEOPARDY PROGRAMMING GAME REPORT"

# Seated player ids mapped to final scores, in seating order.
Roster = Mapping[str, int]


def participants(records: Iterable[ActivityRecord], roster: Optional[Roster] = None) -> List[str]:
    """Seated players first, then anyone else in order of first appearance."""
    seen: Dict[str, None] = dict.fromkeys(roster or ())
    for record in records:
        if record.player_id and record.player_id != SYSTEM_PLAYER_ID:
            seen.setdefault(record.player_id, None)
    return list(seen)


def final_scores(records: Iterable[ActivityRecord], roster: Optional[Roster] = None) -> Dict[str, int]:
    """Roster scores as given; other players get their last recorded score."""
    seated = dict(roster or {})
    scores = dict(seated)
    for record in records:
        if record.player_id and record.player_id != SYSTEM_PLAYER_ID and record.player_id not in seated:
            scores[record.player_id] = record.score_after
    return scores


def answer_records(records: Iterable[ActivityRecord]) -> List[ActivityRecord]:
    return [record for record in records if record.kind == ActivityKind.ANSWER_QUESTION]


class ReportSink(ABC):
    """Strategy that renders a sequence of activity records."""

    format_name: str = ""

    @abstractmethod
    def render(self, records: Sequence[ActivityRecord], *, roster: Optional[Roster] = None) -> Path:
        """Render ``records`` and return the path written.

        ``roster`` maps every seated player to their final score in seating
        order, so players who never acted still appear.
        """


class FileReportSink(ReportSink):
    """Sink writing one timestamped file per render into ``output_dir``."""

    extension: str = ""

    def __init__(self, output_dir: Path = DEFAULT_OUTPUT_DIR, *, case_id: Optional[str] = None) -> None:
        self.output_dir = Path(output_dir)
        self.case_id = case_id

    def file_name(self, records: Sequence[ActivityRecord]) -> str:
        timestamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
        case_id = self.case_id or records[0].case_id or "game"
        return f"{timestamp}_{case_id}.{self.extension}"

    def render(self, records: Sequence[ActivityRecord], *, roster: Optional[Roster] = None) -> Path:
        records = list(records)
        if not records:
            raise ReportError(f"No activity records to render as {self.format_name}")
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / self.file_name(records)
        self.write(path, records, roster=roster)
        LOGGER.info("report.written", format=self.format_name, path=str(path), records=len(records))
        return path

    @abstractmethod
    def write(self, path: Path, records: List[ActivityRecord], *, roster: Optional[Roster] = None) -> None:
        """Write the report body to ``path``."""


class CsvReportSink(FileReportSink):
    format_name = "csv"
    extension = "csv"

    def write(self, path: Path, records: List[ActivityRecord], *, roster: Optional[Roster] = None) -> None:
        with path.open("w", newline="", encoding="utf-8") as handle:
            writer = csv.writer(handle)
            writer.writerow(CSV_HEADER)
            writer.writerows(record.as_row() for record in records)


class TextReportSink(FileReportSink):
    """Plain text summary: case id, players, turn narrative and final scores."""

    format_name = "txt"
    extension = "txt"

    def write(self, path: Path, records: List[ActivityRecord], *, roster: Optional[Roster] = None) -> None:
        path.write_text(self.render_text(records, roster), encoding="utf-8")

    @staticmethod
    def render_text(records: Sequence[ActivityRecord], roster: Optional[Roster] = None) -> str:
        lines: List[str] = [TEXT_TITLE, "=" * len(TEXT_TITLE), ""]
        lines.append(f"Case ID: {records[0].case_id or 'UNKNOWN'}")
        lines.append("")

        players = participants(records, roster)
        if players:
            lines.append(f"Players: {', '.join(players)}")
            lines.append("")

        lines.append("Gameplay Summary:")
        lines.append("-----------------")
        for record in answer_records(records):
            summary = record.summary_text()
            if summary is not None:
                lines.append(summary)
                lines.append("")

        lines.append("")
        lines.append("Final Scores:")
        for player_id, score in final_scores(records, roster).items():
            lines.append(f"{player_id}: {score}")
        return "\n".join(lines) + "\n"


class JsonReportSink(FileReportSink):
    format_name = "json"
    extension = "json"

    def write(self, path: Path, records: List[ActivityRecord], *, roster: Optional[Roster] = None) -> None:
        document: Dict[str, Any] = {
            "case_id": records[0].case_id,
            "players": participants(records, roster),
            "final_scores": final_scores(records, roster),
            "records": [record.to_dict() for record in records],
        }
        path.write_bytes(orjson.dumps(document, option=orjson.OPT_INDENT_2))


class MarkdownReportSink(FileReportSink):
    format_name = "md"
    extension = "md"

    def write(self, path: Path, records: List[ActivityRecord], *, roster: Optional[Roster] = None) -> None:
        scores = final_scores(records, roster)
        answers = answer_records(records)
        correct = sum(1 for record in answers if record.is_correct)

        lines: List[str] = []
        lines.append("# Jeopardy Match Report")
        lines.append("")
        lines.append(f"- Case ID: {records[0].case_id or 'UNKNOWN'}")
        lines.append(f"- Players: {', '.join(participants(records, roster)) or 'none'}")
        lines.append(f"- Questions answered: {len(answers)} ({correct} correct)")
        lines.append("")

        current_turn = None
        for record in answers:
            if record.turn != current_turn:
                current_turn = record.turn
                lines.append(f"## Turn {record.turn}")
            lines.append(f"- Player: {record.player_id}")
            lines.append(f"- Category: {record.category} ({record.question_value} pts)")
            if record.question is not None:
                lines.append(f"- Question: {record.question.prompt}")
            lines.append(f"- Answer: {record.answer_text()} ({record.result})")
            if not record.is_correct and record.question is not None:
                lines.append(f"  - Correct answer: {record.question.correct_label}) {record.question.correct_text}")
            lines.append(f"- Score after turn: {record.score_after}")
            lines.append("")

        lines.append("## Final Scores")
        lines.append("")
        lines.append("| Player | Score |")
        lines.append("| --- | --- |")
        for player_id, score in sorted(scores.items(), key=lambda item: item[1], reverse=True):
            lines.append(f"| {player_id} | {score} |")
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")


class ReportSinkRegistry:
    """Registry of report sinks keyed by format name."""

    def __init__(self) -> None:
        self._sinks: Dict[str, type[ReportSink]] = {}

    def register(self, name: str, sink_class: type[ReportSink]) -> None:
        self._sinks[name.lower()] = sink_class

    def create(self, name: str, **kwargs: Any) -> ReportSink:
        key = name.lower()
        if key not in self._sinks:
            raise ReportError(f"Unknown report format {name!r} (available: {', '.join(self.names())})")
        return self._sinks[key](**kwargs)

    def names(self) -> List[str]:
        return list(self._sinks.keys())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._sinks


def default_sink_registry() -> ReportSinkRegistry:
    registry = ReportSinkRegistry()
    for sink_class in (CsvReportSink, TextReportSink, JsonReportSink, MarkdownReportSink):
        registry.register(sink_class.format_name, sink_class)
    return registry


SINK_REGISTRY = default_sink_registry()


@dataclass(slots=True)
class FlushResult:
    """Outcome of handing the audit trail to every sink."""

    paths: List[Path] = field(default_factory=list)
    failures: List[Tuple[str, BaseException]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def raise_for_failures(self) -> None:
        if self.failures:
            raise ReportFlushError(self.failures)


def report_marker(records: Sequence[ActivityRecord]) -> ActivityRecord:
    """Trailing GENERATE_REPORT record appended to the trail handed to sinks."""
    last = records[-1] if records else None
    return make_record(
        case_id=last.case_id if last is not None else "",
        player_id=SYSTEM_PLAYER_ID,
        kind=ActivityKind.GENERATE_REPORT,
        timestamp=now(),
        turn=last.turn if last is not None else 0,
        result=ActivityResult.SUCCESS.value,
        source=ENGINE_SOURCE,
    )


def flush_reports(
    records: Sequence[ActivityRecord],
    sinks: Iterable[ReportSink],
    *,
    roster: Optional[Roster] = None,
) -> FlushResult:
    """Render ``records`` through every sink; one failing sink never stops the rest."""
    trail = list(records)
    trail.append(report_marker(trail))

    result = FlushResult()
    for sink in sinks:
        name = sink.format_name or type(sink).__name__
        try:
            result.paths.append(sink.render(trail, roster=roster))
        except Exception as exc:
            LOGGER.error("report.failed", format=name, error=str(exc))
            result.failures.append((name, exc))
    return result
