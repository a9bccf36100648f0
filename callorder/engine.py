"""Per-turn entry point tying the session store to the dialogue."""

from __future__ import annotations

import logging
import sqlite3
import threading
import zlib
from dataclasses import dataclass

from callorder.core.errors import SessionConflictError
from callorder.core.metrics import MetricsCollector
from callorder.dialogue import prompts
from callorder.dialogue.base import Dialogue
from callorder.dialogue.types import TurnResult
from callorder.memory.models import MessageTurn
from callorder.memory.store import TranscriptStore
from callorder.sessions.models import Session
from callorder.sessions.store import SessionStore
from callorder.tenants import TenantResolver

logger = logging.getLogger("callorder.engine")

LOCK_STRIPES = 64


@dataclass(slots=True)
class TurnOutcome:
    session: Session | None
    prompt: str
    terminal: bool
    escalate: bool = False


class CallLocks:
    """Striped locks serializing turns that share a call id within this process."""

    def __init__(self, stripes: int = LOCK_STRIPES) -> None:
        self._locks = [threading.Lock() for _ in range(stripes)]

    def for_call(self, call_id: str) -> threading.Lock:
        return self._locks[zlib.crc32(call_id.encode("utf-8")) % len(self._locks)]


class OrderCaptureEngine:
    """Run one telephony turn: load, advance, save, log."""

    def __init__(
        self,
        dialogue: Dialogue,
        session_store: SessionStore,
        *,
        tenant_resolver: TenantResolver | None = None,
        transcript_store: TranscriptStore | None = None,
        metrics: MetricsCollector | None = None,
        save_attempts: int = 3,
    ) -> None:
        self.dialogue = dialogue
        self.session_store = session_store
        self.tenant_resolver = tenant_resolver or TenantResolver()
        self.transcript_store = transcript_store
        self.metrics = metrics
        self.save_attempts = max(1, save_attempts)
        self._locks = CallLocks()

    def handle_turn(self, call_id: str, transcript: str | None, to_number: str | None = None) -> TurnOutcome:
        tenant_id = self.tenant_resolver.resolve(to_number)
        if tenant_id is None:
            return TurnOutcome(session=None, prompt=prompts.NOT_CONFIGURED, terminal=True)

        with self._locks.for_call(call_id):
            session, result = self._advance_and_save(call_id, tenant_id, transcript)

        self._log_turns(call_id, transcript, result)
        if self.metrics is not None:
            self.metrics.record_turn(
                session.dialogue_state.value,
                escalated=result.escalate,
                confirmed=result.final_order is not None,
            )
        return TurnOutcome(
            session=session,
            prompt=result.prompt,
            terminal=result.terminal,
            escalate=result.escalate,
        )

    def _advance_and_save(
        self, call_id: str, tenant_id: str, transcript: str | None
    ) -> tuple[Session, TurnResult]:
        attempt = 0
        while True:
            attempt += 1
            session = self.session_store.load_or_create(call_id, tenant_id)
            if session.is_terminal:
                # Nothing changes for a finished call, so nothing is saved.
                return session, self.dialogue.advance(session, transcript)

            result = self.dialogue.advance(session, transcript)
            try:
                self.session_store.save(session, final_order=result.final_order)
            except SessionConflictError:
                if attempt >= self.save_attempts:
                    logger.error("Giving up on call %s after %d conflicting saves", call_id, attempt)
                    raise
                logger.warning("Session %s changed concurrently, replaying turn (attempt %d)", call_id, attempt)
                continue
            return session, result

    def _log_turns(self, call_id: str, transcript: str | None, result: TurnResult) -> None:
        if self.transcript_store is None:
            return
        try:
            self.transcript_store.append_turn(
                MessageTurn(conversation_id=call_id, role="user", content=transcript or "")
            )
            self.transcript_store.append_turn(
                MessageTurn(
                    conversation_id=call_id,
                    role="assistant",
                    content=result.prompt,
                    metadata={"terminal": result.terminal, "escalate": result.escalate},
                )
            )
        except sqlite3.Error:
            logger.exception("Failed to log transcript for call %s", call_id)
