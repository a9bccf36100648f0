"""Lightweight in-memory metrics collector."""

from __future__ import annotations

import threading
from collections import Counter
from dataclasses import dataclass
from typing import Dict


@dataclass
class MetricSnapshot:
    total_turns: int
    states: Dict[str, int]
    escalations: int
    confirmed_orders: int
    chat_replies: int


class MetricsCollector:
    """Thread-safe counter storage for turn handling metrics."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._total_turns = 0
        self._states: Counter[str] = Counter()
        self._escalations = 0
        self._confirmed = 0
        self._chat_replies = 0

    def record_turn(self, state: str, *, escalated: bool = False, confirmed: bool = False) -> None:
        with self._lock:
            self._total_turns += 1
            self._states[state] += 1
            if escalated:
                self._escalations += 1
            if confirmed:
                self._confirmed += 1

    def record_chat_reply(self, *, confirmed: bool = False) -> None:
        with self._lock:
            self._chat_replies += 1
            if confirmed:
                self._confirmed += 1

    def snapshot(self) -> MetricSnapshot:
        with self._lock:
            return MetricSnapshot(
                total_turns=self._total_turns,
                states=dict(self._states),
                escalations=self._escalations,
                confirmed_orders=self._confirmed,
                chat_replies=self._chat_replies,
            )
