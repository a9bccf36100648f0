from decimal import Decimal

import pytest

from callorder.cart.models import Cart, LineItem
from callorder.catalog import Category
from callorder.dialogue.finalizer import OrderFinalizer
from callorder.dialogue.states import DialogueState
from callorder.sessions.models import FulfillmentType, Lifecycle, Session


@pytest.fixture()
def finalizer(catalog):
    return OrderFinalizer(catalog)


def complete_session(**overrides):
    fields = dict(
        call_id="call-1",
        dialogue_state=DialogueState.PHONE,
        cart=Cart(items=[LineItem(Category.PIZZA, "Margherita", unit_price=Decimal("10"), item_key="margherita")]),
        fulfillment_type=FulfillmentType.TAKEAWAY,
        customer_name="Alice",
        customer_phone="0612345678",
    )
    fields.update(overrides)
    return Session(**fields)


def test_empty_draft_resumes_at_item_collection(finalizer):
    session = Session(call_id="call-1", dialogue_state=DialogueState.PHONE)

    result = finalizer.finalize(session)

    assert not result.ok
    assert result.missing[0] == "items"
    assert result.resume_state is DialogueState.LISTEN
    assert session.lifecycle is Lifecycle.IN_PROGRESS


def test_delivery_requires_address_city_and_postal_code(finalizer):
    session = complete_session(
        fulfillment_type=FulfillmentType.DELIVERY,
        address="12 Baker Street",
        postal_code="75001",
    )

    result = finalizer.finalize(session)

    assert result.missing == ("city",)
    assert result.resume_state is DialogueState.ADDRESS_FULL


def test_takeaway_does_not_need_an_address(finalizer):
    session = complete_session()

    result = finalizer.finalize(session)

    assert result.ok
    assert result.order.total == Decimal("10")
    assert session.lifecycle is Lifecycle.CONFIRMED
    assert session.dialogue_state is DialogueState.CONFIRMED


def test_final_order_is_a_snapshot(finalizer):
    session = complete_session()

    order = finalizer.finalize(session).order
    session.cart.items[0].quantity = 5

    assert order.items[0].quantity == 1
    assert order.total == Decimal("10")


def test_payload_order_is_resolved_against_catalog(finalizer):
    result = finalizer.finalize_payload(
        "conv-1",
        {
            "orderType": "TAKEAWAY",
            "customerName": "Alice",
            "customerPhone": "0612345678",
            "items": [
                {"productId": "pepperoni", "size": "large", "quantity": 2, "extras": ["cheese"]},
                {"productId": "Coca"},
            ],
        },
    )

    assert result.ok
    first, second = result.order.items
    assert (first.item_label, first.size, first.additions, first.unit_price) == (
        "Pepperoni",
        "L",
        ["Cheese"],
        Decimal("14"),
    )
    assert second.quantity == 1
    assert result.order.total == Decimal("31")


def test_payload_delivery_without_address_is_rejected(finalizer):
    result = finalizer.finalize_payload(
        "conv-1",
        {
            "orderType": "DELIVERY",
            "customerName": "Alice",
            "customerPhone": "0612345678",
            "items": [{"productId": "margherita"}],
        },
    )

    assert not result.ok
    assert result.missing == ("address", "city", "postal_code")
    assert result.order is None


def test_payload_schema_errors_are_reported(finalizer):
    result = finalizer.finalize_payload(
        "conv-1",
        {"orderType": "PICKUP", "customerName": "A", "customerPhone": "123", "items": []},
    )

    locations = {issue["loc"] for issue in result.issues}
    assert not result.ok
    assert {"orderType", "customerPhone", "items"} <= locations


def test_payload_unknown_product_is_reported(finalizer):
    result = finalizer.finalize_payload(
        "conv-1",
        {
            "orderType": "TAKEAWAY",
            "customerName": "Alice",
            "customerPhone": "0612345678",
            "items": [{"productId": "calzone"}],
        },
    )

    assert not result.ok
    assert result.issues == [{"loc": "items.0.productId", "msg": "unknown product"}]
