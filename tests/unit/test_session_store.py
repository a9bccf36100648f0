import sqlite3
from decimal import Decimal

import pytest

from callorder.cart.models import LineItem
from callorder.catalog import Category
from callorder.core.errors import SessionConflictError
from callorder.dialogue.states import DialogueState
from callorder.sessions.models import FinalOrder, FulfillmentType, Lifecycle


def margherita():
    return LineItem(
        Category.PIZZA,
        "Margherita",
        quantity=2,
        unit_price=Decimal("12.50"),
        size="L",
        additions=["Cheese"],
        removals=["basil"],
        item_key="margherita",
    )


def test_load_or_create_is_idempotent(session_store):
    first = session_store.load_or_create("call-1", "default")
    second = session_store.load_or_create("call-1", "other")

    assert first.version == second.version == 0
    assert second.tenant_id == "default"
    assert list(session_store.iter_sessions()) == ["call-1"]


def test_unknown_call_loads_as_none(session_store):
    assert session_store.load("missing") is None


def test_save_persists_cart_and_fields(session_store):
    session = session_store.load_or_create("call-1")
    session.cart.items.append(margherita())
    session.cart.extras_offered = True
    session.dialogue_state = DialogueState.PHONE
    session.fulfillment_type = FulfillmentType.DELIVERY
    session.customer_name = "Bob"

    session_store.save(session)
    loaded = session_store.load("call-1")

    assert loaded.version == 1 == session.version
    assert loaded.dialogue_state is DialogueState.PHONE
    assert loaded.fulfillment_type is FulfillmentType.DELIVERY
    assert loaded.customer_name == "Bob"
    assert loaded.cart.extras_offered
    assert loaded.cart.items[0].additions == ["Cheese"]
    assert loaded.cart.items[0].unit_price == Decimal("12.50")
    assert loaded.cart.total == Decimal("25")


def test_stale_save_is_rejected(session_store):
    first = session_store.load_or_create("call-1")
    second = session_store.load("call-1")

    first.fail_count = 1
    session_store.save(first)
    second.fail_count = 2

    with pytest.raises(SessionConflictError):
        session_store.save(second)
    assert session_store.load("call-1").fail_count == 1


@pytest.mark.parametrize(
    "raw_cart",
    [
        "not json",
        '{"schema_version": 2, "items": []}',
        '{"schema_version": 1, "items": [{"category": "sushi", "item_label": "x", "quantity": 1, "unit_price": "1"}]}',
    ],
)
def test_unreadable_cart_falls_back_to_empty(session_store, raw_cart):
    session_store.load_or_create("call-1")
    with sqlite3.connect(session_store.db_path) as conn:
        conn.execute("UPDATE sessions SET cart = ? WHERE call_id = ?", (raw_cart, "call-1"))

    loaded = session_store.load("call-1")

    assert loaded.cart.is_empty()


def test_unknown_state_falls_back_to_listen(session_store):
    session_store.load_or_create("call-1")
    with sqlite3.connect(session_store.db_path) as conn:
        conn.execute("UPDATE sessions SET dialogue_state = 'bogus' WHERE call_id = 'call-1'")

    assert session_store.load("call-1").dialogue_state is DialogueState.LISTEN


def test_order_cannot_be_submitted_twice(session_store):
    session = session_store.load_or_create("call-1")
    order = FinalOrder(
        call_id="call-1",
        fulfillment_type=FulfillmentType.TAKEAWAY,
        customer_name="Alice",
        customer_phone="0612345678",
        items=(margherita(),),
        total=Decimal("25"),
    )
    session.lifecycle = Lifecycle.CONFIRMED
    session_store.save(session, final_order=order)

    replay = session_store.load("call-1")
    with pytest.raises(SessionConflictError):
        session_store.save(replay, final_order=order)

    stored = session_store.get_final_order("call-1")
    assert stored.total == Decimal("25")
    assert stored.items[0].size == "L"
    assert session_store.load("call-1").version == 1


def test_missing_order_is_none(session_store):
    assert session_store.get_final_order("call-1") is None


def test_timestamps_are_timezone_aware(session_store):
    session = session_store.load_or_create("call-1", "default")
    session_store.save(session)

    reloaded = session_store.load("call-1")

    assert reloaded.created_at.tzinfo is not None
    assert reloaded.updated_at.utcoffset().total_seconds() == 0
    assert reloaded.updated_at >= reloaded.created_at
