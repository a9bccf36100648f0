"""Dialogue outputs."""

from __future__ import annotations

from dataclasses import dataclass

from callorder.sessions.models import FinalOrder


@dataclass(slots=True)
class TurnResult:
    """What one turn produced: the next prompt and how the call continues."""

    prompt: str
    terminal: bool = False
    escalate: bool = False
    recognized: bool = True
    final_order: FinalOrder | None = None
