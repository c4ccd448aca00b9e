"""Core game logic and data structures."""

from . import activity, config, errors, fsm, loaders, players, questions, reports, schemas

__all__ = [
    "activity",
    "config",
    "errors",
    "fsm",
    "loaders",
    "players",
    "questions",
    "reports",
    "schemas",
]
