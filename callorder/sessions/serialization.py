"""Schema-checked JSON documents for carts and order lines."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable, Literal

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from callorder.cart.models import Cart, LineItem
from callorder.catalog.models import Category

logger = logging.getLogger("callorder.sessions")

CART_SCHEMA_VERSION = 1


class LineItemRecord(BaseModel):
    category: Category
    item_label: str = Field(min_length=1)
    item_key: str | None = None
    quantity: int = Field(ge=1)
    size: Literal["S", "M", "L"] | None = None
    additions: list[str] = Field(default_factory=list)
    removals: list[str] = Field(default_factory=list)
    unit_price: Decimal = Field(ge=0)

    @classmethod
    def from_item(cls, item: LineItem) -> "LineItemRecord":
        return cls(
            category=item.category,
            item_label=item.item_label,
            item_key=item.item_key,
            quantity=item.quantity,
            size=item.size,
            additions=list(item.additions),
            removals=list(item.removals),
            unit_price=item.unit_price,
        )

    def to_item(self) -> LineItem:
        return LineItem(
            category=self.category,
            item_label=self.item_label,
            item_key=self.item_key,
            quantity=self.quantity,
            size=self.size,
            additions=list(self.additions),
            removals=list(self.removals),
            unit_price=self.unit_price,
        )


class CartRecord(BaseModel):
    schema_version: Literal[1] = CART_SCHEMA_VERSION
    items: list[LineItemRecord] = Field(default_factory=list)
    extras_offered: bool = False


_LINES = TypeAdapter(list[LineItemRecord])


def cart_to_json(cart: Cart) -> str:
    record = CartRecord(
        items=[LineItemRecord.from_item(item) for item in cart.items],
        extras_offered=cart.extras_offered,
    )
    return record.model_dump_json()


def cart_from_json(raw: str | None, *, call_id: str = "") -> Cart:
    """Decode a stored cart; anything unreadable becomes an empty cart."""

    if not raw or not raw.strip():
        return Cart()
    try:
        record = CartRecord.model_validate_json(raw)
    except ValidationError as exc:
        logger.warning(
            "Discarding unreadable cart for %s: %d validation errors",
            call_id or "<unknown>",
            exc.error_count(),
        )
        return Cart()
    return Cart(items=[line.to_item() for line in record.items], extras_offered=record.extras_offered)


def lines_to_json(items: Iterable[LineItem]) -> str:
    return _LINES.dump_json([LineItemRecord.from_item(item) for item in items]).decode("utf-8")


def lines_from_json(raw: str) -> list[LineItem]:
    return [line.to_item() for line in _LINES.validate_json(raw)]
