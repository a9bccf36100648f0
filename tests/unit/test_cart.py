from decimal import Decimal

import pytest

from callorder.cart.models import (
    Cart,
    LineItem,
    add_items,
    apply_modifiers,
    describe_line,
    format_price,
    last_pizza_index,
    recap_sentence,
    remove_first_by_label,
    remove_last,
)
from callorder.catalog import Category


def pizza(label="Margherita", price="10", **kwargs):
    return LineItem(category=Category.PIZZA, item_label=label, unit_price=Decimal(price), **kwargs)


def drink(label="Coca", price="3", **kwargs):
    return LineItem(category=Category.DRINK, item_label=label, unit_price=Decimal(price), **kwargs)


def assert_total_invariant(cart):
    assert cart.total == sum((item.unit_price * item.quantity for item in cart.items), Decimal("0"))


def test_quantity_must_be_positive():
    with pytest.raises(ValueError):
        pizza(quantity=0)


def test_unknown_size_is_rejected():
    with pytest.raises(ValueError):
        pizza(size="XL")


def test_line_never_holds_same_name_in_additions_and_removals():
    item = pizza(additions=["Olives"], removals=["olives", "onions"])

    assert item.additions == ["Olives"]
    assert item.removals == ["onions"]


def test_total_is_recomputed_after_every_mutation():
    cart = Cart()
    add_items(cart, [pizza(quantity=2), drink()])
    assert cart.total == Decimal("23")
    assert_total_invariant(cart)

    remove_first_by_label(cart, "coca")
    assert cart.total == Decimal("20")
    assert_total_invariant(cart)

    cart.items[0].quantity = 1
    assert cart.total == Decimal("10")


def test_remove_first_by_label_only_removes_first_match():
    cart = Cart(items=[drink(quantity=1), pizza(), drink(quantity=2)])

    removed = remove_first_by_label(cart, "Coca")

    assert removed.quantity == 1
    assert [item.item_label for item in cart.items] == ["Margherita", "Coca"]
    assert remove_first_by_label(cart, "Tiramisu") is None


def test_remove_last_and_last_pizza_index():
    cart = Cart(items=[pizza("Reine", "11"), drink()])

    assert last_pizza_index(cart) == 0
    assert remove_last(cart).item_label == "Coca"
    assert remove_last(cart).item_label == "Reine"
    assert remove_last(cart) is None
    assert last_pizza_index(cart) is None


def test_apply_modifiers_latest_phrase_wins_and_reprices(catalog):
    item = pizza(item_key="margherita", additions=["Olives"], price="11")

    apply_modifiers(item, catalog, removals=["olives"])
    assert item.additions == []
    assert item.removals == ["olives"]
    assert item.unit_price == Decimal("10")

    apply_modifiers(item, catalog, additions=["Olives", "Mushrooms"])
    assert item.additions == ["Olives", "Mushrooms"]
    assert item.removals == []
    assert item.unit_price == Decimal("12.50")


def test_format_price():
    assert format_price(Decimal("10")) == "10"
    assert format_price(Decimal("12.5")) == "12.50"


def test_describe_line():
    item = pizza("Reine", "13", quantity=2, size="L", additions=["Cheese"], removals=["mushrooms"])

    assert describe_line(item) == "2 pizzas Reine size L with Cheese without mushrooms"


def test_recap_sentence():
    cart = Cart(items=[pizza(), drink()])

    assert recap_sentence(cart) == (
        "Let me read that back: 1 pizza Margherita, 1 drink Coca. Total 13 euros. Is that correct?"
    )
    assert recap_sentence(Cart()).startswith("I haven't noted anything yet")
