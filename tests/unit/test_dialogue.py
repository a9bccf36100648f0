from decimal import Decimal

import pytest

from callorder.cart.models import Cart, LineItem
from callorder.catalog import Category
from callorder.dialogue import prompts
from callorder.dialogue.states import TERMINAL_STATES, DialogueState
from callorder.sessions.models import FulfillmentType, Lifecycle, Session


def line(label, price, category=Category.PIZZA, **kwargs):
    return LineItem(
        category=category,
        item_label=label,
        item_key=label.lower(),
        unit_price=Decimal(price),
        **kwargs,
    )


def session_in(state, *items, **fields):
    return Session(
        call_id="call-1",
        dialogue_state=state,
        cart=Cart(items=list(items), extras_offered=True),
        **fields,
    )


def test_every_open_state_has_a_handler(dialogue):
    assert set(dialogue._handlers) | TERMINAL_STATES == set(DialogueState)


def test_first_pizza_asks_for_more(dialogue):
    session = Session(call_id="call-1")

    result = dialogue.advance(session, "one Margherita")

    assert session.dialogue_state is DialogueState.MORE
    assert [(i.item_label, i.quantity, i.unit_price) for i in session.cart.items] == [
        ("Margherita", 1, Decimal("10"))
    ]
    assert result.prompt == prompts.ADDED_ASK_MORE_PIZZA.format(items="1 pizza Margherita")


def test_extras_are_offered_once(dialogue):
    session = Session(call_id="call-1")

    dialogue.advance(session, "one margherita")
    result = dialogue.advance(session, "no")
    assert session.dialogue_state is DialogueState.EXTRAS
    assert result.prompt == prompts.OFFER_EXTRAS
    assert session.cart.extras_offered

    dialogue.advance(session, "a coke")
    assert session.dialogue_state is DialogueState.EXTRAS_MORE

    result = dialogue.advance(session, "no thanks")
    assert session.dialogue_state is DialogueState.RECAP
    assert "Total 13 euros" in result.prompt

    dialogue.advance(session, "no")
    assert session.dialogue_state is DialogueState.EDIT
    result = dialogue.advance(session, "add a reine")
    assert session.dialogue_state is DialogueState.RECAP
    assert "Total 24 euros" in result.prompt


def test_done_with_empty_cart_stays_in_listen(dialogue):
    session = Session(call_id="call-1")

    result = dialogue.advance(session, "that's all")

    assert session.dialogue_state is DialogueState.LISTEN
    assert result.prompt == prompts.NOTHING_YET
    assert session.fail_count == 0


def test_drinks_only_order_skips_extras_offer(dialogue):
    session = Session(call_id="call-1")

    dialogue.advance(session, "two cokes")
    dialogue.advance(session, "that's all")

    assert session.dialogue_state is DialogueState.RECAP


def test_menu_request_keeps_state(dialogue):
    session = Session(call_id="call-1")

    result = dialogue.advance(session, "what's on the menu?")

    assert session.dialogue_state is DialogueState.LISTEN
    assert result.prompt.startswith("Here is the menu")


def test_recap_yes_moves_to_type(dialogue):
    session = session_in(DialogueState.RECAP, line("Reine", "11"))

    result = dialogue.advance(session, "yes")

    assert session.dialogue_state is DialogueState.TYPE
    assert result.prompt == prompts.ASK_TYPE


def test_recap_no_moves_to_edit(dialogue):
    session = session_in(DialogueState.RECAP, line("Reine", "11"))

    result = dialogue.advance(session, "no")

    assert session.dialogue_state is DialogueState.EDIT
    assert result.prompt == prompts.ASK_EDIT


def test_recap_correction_in_same_breath_is_applied(dialogue):
    session = session_in(DialogueState.RECAP, line("Margherita", "11", additions=["Olives"]))

    result = dialogue.advance(session, "no olives instead")

    item = session.cart.items[0]
    assert session.dialogue_state is DialogueState.RECAP
    assert item.additions == []
    assert item.removals == ["olives"]
    assert "Total 10 euros" in result.prompt


def test_edit_removes_named_item(dialogue):
    session = session_in(
        DialogueState.EDIT,
        line("Margherita", "10"),
        line("Coca", "3", category=Category.DRINK),
    )

    result = dialogue.advance(session, "remove the Coca")

    assert [item.item_label for item in session.cart.items] == ["Margherita"]
    assert session.dialogue_state is DialogueState.RECAP
    assert "Total 10 euros" in result.prompt


def test_edit_remove_without_name_drops_last_line(dialogue):
    session = session_in(
        DialogueState.EDIT,
        line("Margherita", "10"),
        line("Tiramisu", "5", category=Category.DESSERT),
    )

    dialogue.advance(session, "remove it")

    assert [item.item_label for item in session.cart.items] == ["Margherita"]


def test_edit_missing_item_reports_and_does_not_count_as_failure(dialogue):
    session = session_in(DialogueState.EDIT, line("Margherita", "10"))

    result = dialogue.advance(session, "remove the coke")

    assert session.dialogue_state is DialogueState.EDIT
    assert result.prompt == prompts.EDIT_NOT_FOUND.format(label="Coca")
    assert result.recognized
    assert session.fail_count == 0
    assert len(session.cart.items) == 1


def test_bare_modifier_applies_to_last_pizza(dialogue):
    session = session_in(
        DialogueState.EDIT,
        line("Margherita", "10"),
        line("Reine", "11"),
        line("Coca", "3", category=Category.DRINK),
    )

    dialogue.advance(session, "with extra cheese")

    assert session.cart.items[0].additions == []
    assert session.cart.items[1].additions == ["Cheese"]
    assert session.cart.items[1].unit_price == Decimal("13")
    assert session.dialogue_state is DialogueState.RECAP


def test_type_unmatched_answer_does_not_count(dialogue):
    session = session_in(DialogueState.TYPE, line("Reine", "11"))

    result = dialogue.advance(session, "maybe")

    assert result.prompt == prompts.REPEAT_TYPE
    assert session.dialogue_state is DialogueState.TYPE
    assert session.fail_count == 0


def test_takeaway_flow_confirms_after_phone(dialogue):
    session = session_in(DialogueState.TYPE, line("Margherita", "10"))

    dialogue.advance(session, "takeaway")
    assert session.fulfillment_type is FulfillmentType.TAKEAWAY
    dialogue.advance(session, "Alice")
    result = dialogue.advance(session, "06 12 34 56 78")

    assert result.terminal
    assert result.prompt == prompts.CONFIRMED_TAKEAWAY
    assert result.final_order is not None
    assert result.final_order.customer_name == "Alice"
    assert result.final_order.customer_phone == "06 12 34 56 78"
    assert session.lifecycle is Lifecycle.CONFIRMED
    assert session.dialogue_state is DialogueState.CONFIRMED


def test_delivery_flow_collects_address(dialogue):
    session = session_in(DialogueState.TYPE, line("Margherita", "10"))

    dialogue.advance(session, "delivery please")
    dialogue.advance(session, "Bob")
    result = dialogue.advance(session, "0612345678")
    assert session.dialogue_state is DialogueState.ADDRESS_FULL
    assert result.prompt == prompts.ASK_ADDRESS

    result = dialogue.advance(session, "12 Baker Street, 75001 Paris")

    assert result.prompt == prompts.CONFIRMED_DELIVERY
    assert result.final_order.postal_code == "75001"
    assert result.final_order.city == "Paris"
    assert result.final_order.address == "12 Baker Street, 75001 Paris"


def test_address_needs_number_and_three_words(dialogue):
    session = session_in(
        DialogueState.ADDRESS_FULL,
        line("Margherita", "10"),
        fulfillment_type=FulfillmentType.DELIVERY,
        customer_name="Bob",
        customer_phone="0612345678",
    )

    result = dialogue.advance(session, "Baker Street")

    assert result.prompt == prompts.REPEAT_ADDRESS
    assert session.fail_count == 1


def test_address_without_postal_code_is_not_finalized(dialogue):
    session = session_in(
        DialogueState.ADDRESS_FULL,
        line("Margherita", "10"),
        fulfillment_type=FulfillmentType.DELIVERY,
        customer_name="Bob",
        customer_phone="0612345678",
    )

    result = dialogue.advance(session, "12 Baker Street, London")

    assert not result.terminal
    assert result.final_order is None
    assert "postal code" in result.prompt
    assert session.dialogue_state is DialogueState.ADDRESS_FULL
    assert session.lifecycle is Lifecycle.IN_PROGRESS
    assert session.city == "London"


def test_cancellation_from_any_state(dialogue):
    session = session_in(DialogueState.NAME, line("Margherita", "10"))

    result = dialogue.advance(session, "forget it, cancel the order")

    assert result.terminal
    assert result.prompt == prompts.CANCELLED_BY_CALLER
    assert session.lifecycle is Lifecycle.CANCELLED


def test_three_empty_turns_escalate_and_close_the_call(dialogue):
    session = Session(call_id="call-1")

    first = dialogue.advance(session, "")
    second = dialogue.advance(session, None)
    third = dialogue.advance(session, "   ")

    assert first.prompt.startswith("Sorry, I didn't hear you.")
    assert not second.terminal
    assert third.terminal and third.escalate
    assert third.prompt == prompts.ESCALATE
    assert session.lifecycle is Lifecycle.CANCELLED

    fourth = dialogue.advance(session, "one margherita")
    assert fourth.prompt == prompts.TERMINAL_CANCELLED
    assert session.cart.is_empty()
    assert session.fail_count == 3


@pytest.mark.parametrize(
    "state",
    [
        DialogueState.LISTEN,
        DialogueState.EXTRAS,
        DialogueState.RECAP,
        DialogueState.EDIT,
        DialogueState.NAME,
        DialogueState.ADDRESS_FULL,
    ],
)
def test_escalation_from_any_state(dialogue, state):
    session = session_in(state, line("Margherita", "10"))

    results = [dialogue.advance(session, "") for _ in range(3)]

    assert [r.escalate for r in results] == [False, False, True]
    assert session.dialogue_state is DialogueState.CANCELLED


def test_recap_answer_that_is_neither_yes_nor_no_counts(dialogue):
    session = session_in(DialogueState.RECAP, line("Reine", "11"))

    result = dialogue.advance(session, "blue sky")

    assert result.prompt == prompts.CONFIRM_YES_NO
    assert session.fail_count == 1


def test_recognized_turn_resets_failures(dialogue):
    session = Session(call_id="call-1")

    dialogue.advance(session, "")
    dialogue.advance(session, "hmm")
    assert session.fail_count == 2

    dialogue.advance(session, "one margherita")
    assert session.fail_count == 0


@pytest.mark.parametrize(
    ("state", "transcript"),
    [
        (DialogueState.LISTEN, "actually"),
        (DialogueState.MORE, "hmm actually"),
        (DialogueState.EDIT, "I want to change something"),
        (DialogueState.NAME, "actually"),
    ],
)
def test_recognized_intent_resets_failures(dialogue, state, transcript):
    session = session_in(state, line("Margherita", "10"))

    dialogue.advance(session, "")
    dialogue.advance(session, "")
    assert session.fail_count == 2

    result = dialogue.advance(session, transcript)

    assert not result.escalate
    assert session.fail_count == 0
    assert session.lifecycle is Lifecycle.IN_PROGRESS


def test_change_while_collecting_moves_to_edit(dialogue):
    session = session_in(DialogueState.MORE, line("Margherita", "10"))

    result = dialogue.advance(session, "actually I want to change something")

    assert session.dialogue_state is DialogueState.EDIT
    assert result.prompt == prompts.ASK_EDIT


def test_change_without_payload_in_edit_asks_again(dialogue):
    session = session_in(DialogueState.EDIT, line("Margherita", "10"))

    result = dialogue.advance(session, "I want to change something")

    assert session.dialogue_state is DialogueState.EDIT
    assert result.prompt == prompts.ASK_EDIT
    assert result.recognized


def test_bare_modifier_while_collecting_keeps_extras_offer(dialogue):
    session = Session(call_id="call-1")

    dialogue.advance(session, "one margherita")
    result = dialogue.advance(session, "no olives")

    assert session.dialogue_state is DialogueState.MORE
    assert session.cart.items[0].removals == ["olives"]
    assert result.prompt.endswith(prompts.ASK_MORE_PIZZA)
    assert not session.cart.extras_offered

    result = dialogue.advance(session, "no")
    assert session.dialogue_state is DialogueState.EXTRAS
    assert result.prompt == prompts.OFFER_EXTRAS


def test_modifier_during_extras_stays_in_extras(dialogue):
    session = session_in(DialogueState.EXTRAS_MORE, line("Margherita", "10"))

    dialogue.advance(session, "with extra cheese")

    assert session.dialogue_state is DialogueState.EXTRAS_MORE
    assert session.cart.items[0].additions == ["Cheese"]
    assert session.cart.total == Decimal("12")


def test_removing_last_item_while_collecting_returns_to_listen(dialogue):
    session = session_in(DialogueState.MORE, line("Coca", "3", category=Category.DRINK))

    dialogue.advance(session, "remove the coke")

    assert session.cart.is_empty()
    assert session.dialogue_state is DialogueState.LISTEN
