"""Dialogue abstract base class."""

from __future__ import annotations

from abc import ABC, abstractmethod

from callorder.dialogue.types import TurnResult
from callorder.sessions.models import Session


class Dialogue(ABC):
    """Decides the next state and prompt given the latest transcript."""

    @abstractmethod
    def advance(self, session: Session, transcript: str | None) -> TurnResult:
        """Mutate ``session`` for one turn and return the next prompt."""

    @abstractmethod
    def describe(self) -> str:
        """Human-readable summary of dialogue strategy."""
