"""Game configuration loaded from an optional JSON file and the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import orjson
import structlog

LOGGER = structlog.get_logger(__name__)

DEFAULT_CONFIG_PATH = Path("config/jeopardy.json")
DEFAULT_CASE_ID = "GAME-001"
DEFAULT_DATA_DIR = Path("data")
DEFAULT_OUTPUT_DIR = Path("output")
DEFAULT_QUESTION_FORMAT = "csv"
DEFAULT_REPORT_FORMATS = ("csv", "txt")
MIN_PLAYERS = 1
MAX_PLAYERS = 4

ENV_DATA_DIR = "JEOPARDY_DATA_DIR"
ENV_OUTPUT_DIR = "JEOPARDY_OUTPUT_DIR"
ENV_CASE_ID = "JEOPARDY_CASE_ID"


@dataclass(slots=True)
class GameConfig:
    """Settings for one game session."""

    case_id: str = DEFAULT_CASE_ID
    data_dir: Path = DEFAULT_DATA_DIR
    output_dir: Path = DEFAULT_OUTPUT_DIR
    question_format: str = DEFAULT_QUESTION_FORMAT
    report_formats: List[str] = field(default_factory=lambda: list(DEFAULT_REPORT_FORMATS))
    min_players: int = MIN_PLAYERS
    max_players: int = MAX_PLAYERS
    record_turn_events: bool = False

    def __post_init__(self) -> None:
        if not (MIN_PLAYERS <= self.min_players <= self.max_players <= MAX_PLAYERS):
            raise ValueError(
                f"Player bounds must satisfy {MIN_PLAYERS} <= min ({self.min_players})"
                f" <= max ({self.max_players}) <= {MAX_PLAYERS}"
            )

    def allows_player_count(self, count: int) -> bool:
        return self.min_players <= count <= self.max_players


def load_game_config(
    path: Path = DEFAULT_CONFIG_PATH,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> GameConfig:
    """Load configuration from disk, falling back to defaults.

    Environment variables override file values for the data directory,
    output directory and case id.
    """

    data: Dict[str, Any] = {}
    if path.exists():
        loaded = orjson.loads(path.read_bytes())
        if isinstance(loaded, dict):
            data = loaded
        else:
            LOGGER.warning("config.ignored", path=str(path), reason="top-level value is not an object")

    env = os.environ if environ is None else environ

    report_formats = data.get("report_formats", list(DEFAULT_REPORT_FORMATS))
    if isinstance(report_formats, str):
        report_formats = [report_formats]

    config = GameConfig(
        case_id=str(env.get(ENV_CASE_ID) or data.get("case_id", DEFAULT_CASE_ID)),
        data_dir=Path(env.get(ENV_DATA_DIR) or data.get("data_dir", DEFAULT_DATA_DIR)),
        output_dir=Path(env.get(ENV_OUTPUT_DIR) or data.get("output_dir", DEFAULT_OUTPUT_DIR)),
        question_format=str(data.get("question_format", DEFAULT_QUESTION_FORMAT)).lower(),
        report_formats=[str(name).lower() for name in report_formats],
        min_players=int(data.get("min_players", MIN_PLAYERS)),
        max_players=int(data.get("max_players", MAX_PLAYERS)),
        record_turn_events=bool(data.get("record_turn_events", False)),
    )
    LOGGER.debug("config.loaded", path=str(path), exists=path.exists(), case_id=config.case_id)
    return config
