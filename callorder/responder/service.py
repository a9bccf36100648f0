"""Language-model driven alternative to the rule-based dialogue."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from callorder.core.errors import ConversationClosedError, ResponderError
from callorder.core.metrics import MetricsCollector
from callorder.dialogue.finalizer import OrderFinalizer
from callorder.dialogue.states import DialogueState
from callorder.memory.models import MessageTurn
from callorder.memory.store import TranscriptStore
from callorder.responder.base import SpeechResponder
from callorder.sessions.models import FinalOrder, Lifecycle
from callorder.sessions.store import SessionStore

logger = logging.getLogger("callorder.chat")

FALLBACK_REPLY = "Sorry, I didn't catch that. Could you say it again?"
INVALID_ORDER_REPLY = "I couldn't validate that order. Let me check the details with you again."
ORDER_CREATED_REPLY = "Your order is confirmed. Thank you!"


@dataclass(slots=True)
class ChatReply:
    conversation_id: str
    reply: str
    order_created: bool = False
    order: FinalOrder | None = None
    issues: list[dict[str, Any]] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    degraded: bool = False


def parse_strict_json(text: str) -> dict[str, Any] | None:
    """Return the reply as an object only when the whole reply is one JSON object."""

    trimmed = text.strip()
    if not (trimmed.startswith("{") and trimmed.endswith("}")):
        return None
    try:
        value = json.loads(trimmed)
    except ValueError:
        return None
    return value if isinstance(value, dict) else None


class ChatService:
    """Relay a conversation to the responder and turn its JSON into an order."""

    def __init__(
        self,
        responder: SpeechResponder,
        session_store: SessionStore,
        transcript_store: TranscriptStore,
        finalizer: OrderFinalizer,
        *,
        system_prompt: str,
        history_limit: int = 30,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self.responder = responder
        self.session_store = session_store
        self.transcript_store = transcript_store
        self.finalizer = finalizer
        self.system_prompt = system_prompt
        self.history_limit = history_limit
        self.metrics = metrics

    async def reply(self, conversation_id: str, message: str, tenant_id: str | None = None) -> ChatReply:
        session = self.session_store.load_or_create(conversation_id, tenant_id)
        if session.is_terminal:
            raise ConversationClosedError(conversation_id)

        self.transcript_store.append_turn(
            MessageTurn(conversation_id=conversation_id, role="user", content=message)
        )
        turns = self.transcript_store.fetch_recent_turns(conversation_id, limit=self.history_limit)
        history = [{"role": "system", "content": self.system_prompt}]
        history.extend({"role": turn.role, "content": turn.content} for turn in turns)

        try:
            text = await self.responder.generate_reply(history)
        except ResponderError:
            logger.warning("Responder unavailable for conversation %s, re-prompting", conversation_id)
            self._log_assistant(conversation_id, FALLBACK_REPLY, degraded=True)
            return ChatReply(conversation_id=conversation_id, reply=FALLBACK_REPLY, degraded=True)

        self._log_assistant(conversation_id, text)
        payload = parse_strict_json(text)
        if payload is None:
            self._record(confirmed=False)
            return ChatReply(conversation_id=conversation_id, reply=text)

        result = self.finalizer.finalize_payload(conversation_id, payload, tenant_id=session.tenant_id)
        if not result.ok:
            logger.info(
                "Rejected order JSON for conversation %s: missing=%s issues=%d",
                conversation_id,
                result.missing,
                len(result.issues),
            )
            self._record(confirmed=False)
            return ChatReply(
                conversation_id=conversation_id,
                reply=INVALID_ORDER_REPLY,
                issues=result.issues,
                missing=list(result.missing),
            )

        order = result.order
        session.cart.items = list(order.items)
        session.fulfillment_type = order.fulfillment_type
        session.customer_name = order.customer_name
        session.customer_phone = order.customer_phone
        session.address = order.address
        session.city = order.city
        session.postal_code = order.postal_code
        session.lifecycle = Lifecycle.CONFIRMED
        session.dialogue_state = DialogueState.CONFIRMED
        self.session_store.save(session, final_order=order)
        logger.info("Order created from chat conversation %s, total %s", conversation_id, order.total)
        self._record(confirmed=True)
        return ChatReply(
            conversation_id=conversation_id,
            reply=ORDER_CREATED_REPLY,
            order_created=True,
            order=order,
        )

    def _log_assistant(self, conversation_id: str, content: str, *, degraded: bool = False) -> None:
        self.transcript_store.append_turn(
            MessageTurn(
                conversation_id=conversation_id,
                role="assistant",
                content=content,
                metadata={"degraded": True} if degraded else {},
            )
        )

    def _record(self, *, confirmed: bool) -> None:
        if self.metrics is not None:
            self.metrics.record_chat_reply(confirmed=confirmed)
