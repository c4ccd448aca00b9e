"""Exception hierarchy shared by the game core."""

from __future__ import annotations

from typing import List, Tuple


class GameError(Exception):
    """Base exception for game errors."""


class LoadError(GameError):
    """Question source could not be read or parsed."""

    def __init__(self, locator: object, message: str) -> None:
        self.locator = str(locator)
        super().__init__(f"Failed to load questions from {self.locator}: {message}")


class UnknownFormatError(LoadError):
    """No question source is registered under the requested name."""

    def __init__(self, name: str, available: List[str]) -> None:
        self.name = name
        self.available = list(available)
        super().__init__(name, f"unknown format {name!r} (available: {', '.join(self.available)})")


class DuplicateQuestionError(LoadError):
    """Two questions share the same category and value."""

    def __init__(self, locator: object, category: str, value: int) -> None:
        self.category = category
        self.value = value
        super().__init__(locator, f"duplicate question for category {category!r} at value {value}")


class InvalidPlayerCountError(GameError):
    """Player count outside the supported range."""

    def __init__(self, count: int, minimum: int, maximum: int) -> None:
        self.count = count
        super().__init__(f"Invalid player count: {count}. Must be between {minimum} and {maximum}.")


class InvalidQuestionStateError(GameError):
    """A question was used in a way its lifecycle does not allow."""


class PublishError(GameError):
    """A subscriber raised while an activity record was being delivered."""

    def __init__(self, subscriber: object, cause: BaseException) -> None:
        self.subscriber = subscriber
        self.cause = cause
        super().__init__(f"Subscriber {subscriber!r} failed: {cause}")


class ReportError(GameError):
    """A report sink could not render its report."""


class ReportFlushError(GameError):
    """One or more report sinks failed during a flush."""

    def __init__(self, failures: List[Tuple[str, BaseException]]) -> None:
        self.failures = list(failures)
        details = "; ".join(f"{name}: {exc}" for name, exc in self.failures)
        super().__init__(f"{len(self.failures)} report sink(s) failed: {details}")
