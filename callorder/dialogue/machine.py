"""Rule-based order-taking dialogue."""

from __future__ import annotations

import logging
import re
from typing import Callable

from callorder.cart.models import (
    add_items,
    apply_modifiers,
    describe_line,
    last_pizza_index,
    recap_sentence,
    remove_first_by_label,
    remove_last,
)
from callorder.catalog.models import Catalog, Category
from callorder.dialogue import prompts
from callorder.dialogue.address import looks_like_address, parse_address
from callorder.dialogue.base import Dialogue
from callorder.dialogue.finalizer import OrderFinalizer
from callorder.dialogue.retry import RetryPolicy
from callorder.dialogue.states import COLLECTING_STATES, TERMINAL_STATES, DialogueState
from callorder.dialogue.types import TurnResult
from callorder.nlu.extractor import EntityExtractor
from callorder.nlu.normalizer import normalize
from callorder.nlu.types import Intent, ParsedUtterance
from callorder.sessions.models import FulfillmentType, Lifecycle, Session

logger = logging.getLogger("callorder.dialogue")

Handler = Callable[[Session, str, ParsedUtterance], TurnResult]

_DELIVERY_RE = re.compile(r"\b(?:delivery|deliver|delivered|bring it|at home)\b")
_TAKEAWAY_RE = re.compile(
    r"\b(?:takeaway|take away|takeout|take out|pick up|pickup|collect|collection|carry out|to go)\b"
)
_WORD_RE = re.compile(r"\w")

_FIELD_NAMES = {"address": "street address", "city": "city", "postal_code": "postal code"}


class OrderDialogue(Dialogue):
    """State machine turning transcripts into a confirmed order."""

    def __init__(
        self,
        catalog: Catalog,
        *,
        extractor: EntityExtractor | None = None,
        retry_policy: RetryPolicy | None = None,
        finalizer: OrderFinalizer | None = None,
        currency: str = "euros",
        postal_code_pattern: str = r"\b\d{5}\b",
    ) -> None:
        self.catalog = catalog
        self.extractor = extractor or EntityExtractor(catalog)
        self.retry_policy = retry_policy or RetryPolicy()
        self.finalizer = finalizer or OrderFinalizer(catalog)
        self.currency = currency
        self.postal_code_pattern = postal_code_pattern

        self._handlers: dict[DialogueState, Handler] = {
            **{state: self._collect for state in COLLECTING_STATES},
            DialogueState.RECAP: self._recap,
            DialogueState.EDIT: self._edit,
            DialogueState.TYPE: self._type,
            DialogueState.NAME: self._name,
            DialogueState.PHONE: self._phone,
            DialogueState.ADDRESS_FULL: self._address,
        }
        unhandled = set(DialogueState) - TERMINAL_STATES - set(self._handlers)
        if unhandled:
            raise RuntimeError(f"No handler for states: {sorted(s.value for s in unhandled)}")

    def describe(self) -> str:
        return "Rule-based pizzeria order state machine"

    def advance(self, session: Session, transcript: str | None) -> TurnResult:
        if session.is_terminal:
            return self.terminal_result(session)

        raw = (transcript or "").strip()
        if not raw:
            question = self._question(session)
            return self._settle(
                session,
                TurnResult(prompts.DIDNT_HEAR.format(question=question), recognized=False),
            )

        parsed = self.extractor.parse(normalize(raw))
        if parsed.has(Intent.CANCEL):
            logger.info("Call %s cancelled by caller in state %s", session.call_id, session.dialogue_state.value)
            session.dialogue_state = DialogueState.CANCELLED
            session.lifecycle = Lifecycle.CANCELLED
            session.fail_count = 0
            return TurnResult(prompts.CANCELLED_BY_CALLER, terminal=True)

        state = session.dialogue_state
        result = self._handlers[state](session, raw, parsed)
        if not result.recognized and parsed.recognized and state is not DialogueState.RECAP:
            # Any recognized entity or intent resets the failure counter.
            result.recognized = True
        logger.debug(
            "Call %s: %s -> %s (recognized=%s)",
            session.call_id,
            state.value,
            session.dialogue_state.value,
            result.recognized,
        )
        return self._settle(session, result)

    def terminal_result(self, session: Session) -> TurnResult:
        if session.lifecycle is Lifecycle.CONFIRMED:
            return TurnResult(prompts.TERMINAL_CONFIRMED, terminal=True)
        return TurnResult(prompts.TERMINAL_CANCELLED, terminal=True)

    def _settle(self, session: Session, result: TurnResult) -> TurnResult:
        if self.retry_policy.register(session, result.recognized):
            return TurnResult(prompts.ESCALATE, terminal=True, escalate=True, recognized=False)
        return result

    def _question(self, session: Session) -> str:
        if session.dialogue_state is DialogueState.RECAP:
            return self._recap_prompt(session)
        return prompts.QUESTION_FOR_STATE[session.dialogue_state.value]

    def _recap_prompt(self, session: Session) -> str:
        return recap_sentence(session.cart, self.currency)

    # Collecting products

    def _collect(self, session: Session, raw: str, parsed: ParsedUtterance) -> TurnResult:
        state = session.dialogue_state
        extras_phase = state in (DialogueState.EXTRAS, DialogueState.EXTRAS_MORE)

        if parsed.items:
            add_items(session.cart, parsed.items)
            added = ", ".join(describe_line(item) for item in parsed.items)
            if extras_phase:
                session.dialogue_state = DialogueState.EXTRAS_MORE
                return TurnResult(prompts.ADDED_ASK_MORE_EXTRAS.format(items=added))
            session.dialogue_state = DialogueState.MORE
            return TurnResult(prompts.ADDED_ASK_MORE_PIZZA.format(items=added))

        if parsed.has(Intent.MENU):
            return TurnResult(self.catalog.describe_menu(self.currency))

        if parsed.has(Intent.DONE) or parsed.has(Intent.NO):
            return self._finish_collecting(session)

        if parsed.removal_verb or parsed.has_modifier_change:
            resume = DialogueState.MORE if state is DialogueState.LISTEN else state
            return self._apply_edit(session, parsed, resume=resume)

        if parsed.has(Intent.CHANGE):
            if session.cart.is_empty():
                session.dialogue_state = DialogueState.LISTEN
                return TurnResult(prompts.NOTHING_YET)
            session.dialogue_state = DialogueState.EDIT
            return TurnResult(prompts.ASK_EDIT)

        if parsed.has(Intent.YES):
            if extras_phase:
                session.dialogue_state = DialogueState.EXTRAS_MORE
                return TurnResult(prompts.ASK_WHICH_EXTRA.format(examples=self._extra_examples()))
            session.dialogue_state = DialogueState.LISTEN
            return TurnResult(prompts.ASK_WHICH_PIZZA)

        clarify = prompts.CLARIFY_EXTRAS if extras_phase else prompts.CLARIFY_LISTEN
        return TurnResult(clarify, recognized=False)

    def _finish_collecting(self, session: Session) -> TurnResult:
        cart = session.cart
        if cart.is_empty():
            session.dialogue_state = DialogueState.LISTEN
            return TurnResult(prompts.NOTHING_YET)
        if cart.has_pizza and not cart.extras_offered:
            cart.extras_offered = True
            session.dialogue_state = DialogueState.EXTRAS
            return TurnResult(prompts.OFFER_EXTRAS)
        session.dialogue_state = DialogueState.RECAP
        return TurnResult(self._recap_prompt(session))

    def _extra_examples(self) -> str:
        drinks = self.catalog.items_in(Category.DRINK)[:2]
        desserts = self.catalog.items_in(Category.DESSERT)[:1]
        return ", ".join(item.label for item in [*drinks, *desserts]) or "a drink"

    # Confirmation and corrections

    def _recap(self, session: Session, raw: str, parsed: ParsedUtterance) -> TurnResult:
        if parsed.has(Intent.NO) or parsed.has(Intent.CHANGE):
            if parsed.has_edit_payload:
                return self._apply_edit(session, parsed)
            session.dialogue_state = DialogueState.EDIT
            return TurnResult(prompts.ASK_EDIT)

        if parsed.has(Intent.YES):
            if session.cart.is_empty():
                session.dialogue_state = DialogueState.LISTEN
                return TurnResult(prompts.NOTHING_YET)
            session.dialogue_state = DialogueState.TYPE
            return TurnResult(prompts.ASK_TYPE)

        if parsed.has_edit_payload:
            return self._apply_edit(session, parsed)

        if parsed.has(Intent.MENU):
            return TurnResult(self.catalog.describe_menu(self.currency))

        return TurnResult(prompts.CONFIRM_YES_NO, recognized=False)

    def _edit(self, session: Session, raw: str, parsed: ParsedUtterance) -> TurnResult:
        if parsed.has_edit_payload:
            return self._apply_edit(session, parsed)
        if parsed.has(Intent.MENU):
            return TurnResult(self.catalog.describe_menu(self.currency))
        if parsed.has(Intent.YES) or parsed.has(Intent.DONE) or parsed.has(Intent.NO):
            session.dialogue_state = DialogueState.RECAP
            return TurnResult(self._recap_prompt(session))
        if parsed.has(Intent.CHANGE):
            return TurnResult(prompts.ASK_EDIT)
        return TurnResult(prompts.EDIT_NOT_UNDERSTOOD, recognized=False)

    def _apply_edit(
        self, session: Session, parsed: ParsedUtterance, resume: DialogueState | None = None
    ) -> TurnResult:
        """Apply removals, new items and bare modifier phrases, in that order.

        Without ``resume`` the call moves to the recap. While still collecting
        products, ``resume`` is the state to continue in.
        """

        cart = session.cart
        changes: list[str] = []
        problem: str | None = None

        if parsed.removal_verb:
            if parsed.removal_items:
                label = parsed.removal_items[0].label
                if remove_first_by_label(cart, label) is not None:
                    changes.append(f"I removed {label}")
                else:
                    problem = prompts.EDIT_NOT_FOUND.format(label=label)
            elif parsed.removal_modifiers:
                index = last_pizza_index(cart)
                if index is None:
                    problem = prompts.EDIT_NO_PIZZA
                else:
                    line = apply_modifiers(cart.items[index], self.catalog, removals=parsed.removal_modifiers)
                    changes.append(f"I updated your {line.item_label}")
            else:
                removed = remove_last(cart)
                if removed is not None:
                    changes.append(f"I removed {removed.item_label}")
                else:
                    problem = prompts.EDIT_EMPTY_CART

        if parsed.items:
            add_items(cart, parsed.items)
            changes.append("I added " + ", ".join(describe_line(item) for item in parsed.items))

        if parsed.has_modifier_change:
            index = last_pizza_index(cart)
            if index is None:
                problem = problem or prompts.EDIT_NO_PIZZA
            else:
                line = apply_modifiers(
                    cart.items[index],
                    self.catalog,
                    additions=parsed.loose_additions,
                    removals=parsed.loose_removals,
                )
                changes.append(f"I updated your {line.item_label}")

        if not changes:
            if resume is None:
                session.dialogue_state = DialogueState.EDIT
            return TurnResult(problem or prompts.EDIT_NOT_UNDERSTOOD)

        if resume is None:
            session.dialogue_state = DialogueState.RECAP
            follow_up = self._recap_prompt(session)
        else:
            session.dialogue_state = DialogueState.LISTEN if cart.is_empty() else resume
            follow_up = prompts.QUESTION_FOR_STATE[session.dialogue_state.value]
        summary = f"Okay, {' and '.join(changes)}. {follow_up}"
        if problem:
            summary = f"{problem.split('.')[0]}. {summary}"
        return TurnResult(summary)

    # Fulfillment and customer details

    def _type(self, session: Session, raw: str, parsed: ParsedUtterance) -> TurnResult:
        delivery = bool(_DELIVERY_RE.search(parsed.text))
        takeaway = bool(_TAKEAWAY_RE.search(parsed.text))
        if delivery == takeaway:
            # Closed question: re-ask without counting a failure.
            return TurnResult(prompts.REPEAT_TYPE)
        session.fulfillment_type = FulfillmentType.DELIVERY if delivery else FulfillmentType.TAKEAWAY
        session.dialogue_state = DialogueState.NAME
        return TurnResult(prompts.ASK_NAME)

    def _name(self, session: Session, raw: str, parsed: ParsedUtterance) -> TurnResult:
        if not _WORD_RE.search(raw):
            return TurnResult(prompts.REPEAT_NAME, recognized=False)
        session.customer_name = raw
        session.dialogue_state = DialogueState.PHONE
        return TurnResult(prompts.ASK_PHONE)

    def _phone(self, session: Session, raw: str, parsed: ParsedUtterance) -> TurnResult:
        if not _WORD_RE.search(raw):
            return TurnResult(prompts.REPEAT_PHONE, recognized=False)
        session.customer_phone = raw
        if session.fulfillment_type is FulfillmentType.DELIVERY:
            session.dialogue_state = DialogueState.ADDRESS_FULL
            return TurnResult(prompts.ASK_ADDRESS)
        return self._finalize(session)

    def _address(self, session: Session, raw: str, parsed: ParsedUtterance) -> TurnResult:
        if not looks_like_address(raw):
            return TurnResult(prompts.REPEAT_ADDRESS, recognized=False)
        address = parse_address(raw, self.postal_code_pattern)
        session.address = address.full
        session.city = address.city
        session.postal_code = address.postal_code
        return self._finalize(session)

    def _finalize(self, session: Session) -> TurnResult:
        result = self.finalizer.finalize(session)
        if result.ok:
            prompt = (
                prompts.CONFIRMED_DELIVERY
                if session.fulfillment_type is FulfillmentType.DELIVERY
                else prompts.CONFIRMED_TAKEAWAY
            )
            return TurnResult(prompt, terminal=True, final_order=result.order)

        session.dialogue_state = result.resume_state
        if session.dialogue_state is DialogueState.ADDRESS_FULL:
            parts = [_FIELD_NAMES[name] for name in result.missing if name in _FIELD_NAMES]
            prompt = prompts.ADDRESS_MISSING_PARTS.format(parts=" and ".join(parts))
        elif session.dialogue_state is DialogueState.LISTEN:
            prompt = prompts.NOTHING_YET
        else:
            prompt = self._question(session)
        return TurnResult(prompt, recognized=False)
