"""Player identity and scoring."""

from __future__ import annotations

from typing import Any, Optional

from .activity import ActivityPublisher, ActivityRecord
from .schemas import ActivityKind


class Player:
    """A participant with a stable id and a running score."""

    def __init__(self, player_id: str) -> None:
        player_id = str(player_id).strip()
        if not player_id:
            raise ValueError("Player id must be at least 1 character long")
        self._player_id = player_id
        self._score = 0
        self._bus: Optional[ActivityPublisher] = None

    @property
    def player_id(self) -> str:
        return self._player_id

    @property
    def score(self) -> int:
        return self._score

    def update_score(self, delta: int) -> int:
        """Add ``delta`` points and return the new total. Scores never decrease."""
        if delta < 0:
            raise ValueError(f"Score delta must be non-negative, got {delta}")
        self._score += delta
        return self._score

    def attach(self, bus: ActivityPublisher) -> None:
        self._bus = bus

    def announce(self, kind: ActivityKind, *, case_id: str = "", turn: int = 0, **extra: Any) -> Optional[ActivityRecord]:
        """Publish a player-sourced record on the attached bus.

        Returns None when the player has not been attached to a bus.
        """
        if self._bus is None:
            return None
        builder = (
            self._bus.compose()
            .with_case_id(case_id)
            .with_player(self._player_id)
            .with_kind(kind)
            .with_score_after(self._score)
            .with_turn(turn)
            .stamp()
        )
        for name, value in extra.items():
            getattr(builder, f"with_{name}")(value)
        return self._bus.publish(builder.build(), source=self._player_id)

    def __repr__(self) -> str:
        return f"Player(player_id={self._player_id!r}, score={self._score})"
