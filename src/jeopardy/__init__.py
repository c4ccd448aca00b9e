"""Turn-based multiple-choice trivia engine."""

from .core import activity, config, errors, fsm, loaders, players, questions, reports, schemas
from .services import cli, console

from .core.fsm import (  # noqa: F401
    AnswerOutcome,
    EngineState,
    FSMError,
    GameEngine,
    GameState,
    TransitionResult,
    is_valid_player_count,
    is_valid_player_name,
)

__all__ = [
    "activity",
    "cli",
    "config",
    "console",
    "errors",
    "fsm",
    "loaders",
    "players",
    "questions",
    "reports",
    "schemas",
    "AnswerOutcome",
    "EngineState",
    "FSMError",
    "GameEngine",
    "GameState",
    "TransitionResult",
    "is_valid_player_count",
    "is_valid_player_name",
]
