"""Order draft data and the pure functions that edit and describe it."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Iterable, Sequence

from callorder.catalog.models import Catalog, Category

SIZES = ("S", "M", "L")


@dataclass(slots=True)
class LineItem:
    """One ordered product with quantity, modifiers and computed unit price.

    ``additions`` holds modifier labels, ``removals`` holds lowercase
    ingredient names. Both keep insertion order and never share a name.
    """

    category: Category
    item_label: str
    quantity: int = 1
    unit_price: Decimal = Decimal("0")
    size: str | None = None
    additions: list[str] = field(default_factory=list)
    removals: list[str] = field(default_factory=list)
    item_key: str | None = None

    def __post_init__(self) -> None:
        if self.quantity < 1:
            raise ValueError("quantity must be at least 1")
        if self.size is not None and self.size not in SIZES:
            raise ValueError(f"unknown size {self.size!r}")
        self.additions = _dedupe(self.additions)
        blocked = {name.lower() for name in self.additions}
        self.removals = [name for name in _dedupe(self.removals) if name.lower() not in blocked]

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(slots=True)
class Cart:
    items: list[LineItem] = field(default_factory=list)
    extras_offered: bool = False

    @property
    def total(self) -> Decimal:
        return sum((item.line_total for item in self.items), Decimal("0"))

    @property
    def has_pizza(self) -> bool:
        return any(item.category is Category.PIZZA for item in self.items)

    def is_empty(self) -> bool:
        return not self.items


def _dedupe(names: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for name in names:
        lowered = name.lower()
        if name and lowered not in seen:
            seen.add(lowered)
            result.append(name)
    return result


def add_items(cart: Cart, items: Sequence[LineItem]) -> Cart:
    cart.items.extend(items)
    return cart


def remove_first_by_label(cart: Cart, label: str) -> LineItem | None:
    """Delete the first line whose label matches, returning it."""

    lowered = label.lower()
    for index, item in enumerate(cart.items):
        if item.item_label.lower() == lowered:
            return cart.items.pop(index)
    return None


def remove_last(cart: Cart) -> LineItem | None:
    if not cart.items:
        return None
    return cart.items.pop()


def last_pizza_index(cart: Cart) -> int | None:
    for index in range(len(cart.items) - 1, -1, -1):
        if cart.items[index].category is Category.PIZZA:
            return index
    return None


def reprice(item: LineItem, catalog: Catalog) -> LineItem:
    """Recompute the unit price from the catalog; unknown products keep theirs."""

    product = catalog.item_by_key(item.item_key) if item.item_key else None
    if product is None:
        product = catalog.item_by_label(item.item_label)
    if product is not None:
        item.unit_price = catalog.unit_price(product, item.additions)
    return item


def apply_modifiers(
    item: LineItem,
    catalog: Catalog,
    additions: Iterable[str] = (),
    removals: Iterable[str] = (),
) -> LineItem:
    """Merge a correction into a line. The latest phrase wins on overlap."""

    additions = list(additions)
    removals = list(removals)
    added = {name.lower() for name in additions}
    removed = {name.lower() for name in removals}

    merged_additions = [name for name in item.additions if name.lower() not in removed]
    merged_additions.extend(additions)
    merged_removals = [name for name in item.removals if name.lower() not in added]
    merged_removals.extend(removals)

    updated = replace(item, additions=merged_additions, removals=merged_removals)
    item.additions = updated.additions
    item.removals = updated.removals
    return reprice(item, catalog)


def format_price(amount: Decimal) -> str:
    """Whole amounts without decimals, others with two."""

    if amount == amount.to_integral_value():
        return str(int(amount))
    return f"{amount.quantize(Decimal('0.01'))}"


def describe_line(item: LineItem) -> str:
    noun = item.category.value
    if item.quantity > 1:
        noun += "s"
    text = f"{item.quantity} {noun} {item.item_label}"
    if item.size:
        text += f" size {item.size}"
    if item.additions:
        text += f" with {', '.join(item.additions)}"
    if item.removals:
        text += f" without {', '.join(item.removals)}"
    return text


def describe_cart(cart: Cart) -> str:
    return ", ".join(describe_line(item) for item in cart.items)


def recap_sentence(cart: Cart, currency: str = "euros") -> str:
    if cart.is_empty():
        return "I haven't noted anything yet. Tell me what you would like to order."
    return (
        f"Let me read that back: {describe_cart(cart)}. "
        f"Total {format_price(cart.total)} {currency}. Is that correct?"
    )
