"""Immutable menu reference data."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Iterable, Sequence


class Category(str, Enum):
    """Product families sold on the line."""

    PIZZA = "pizza"
    DRINK = "drink"
    DESSERT = "dessert"


@dataclass(frozen=True, slots=True)
class CatalogItem:
    key: str
    label: str
    base_price: Decimal
    category: Category
    aliases: tuple[str, ...] = ()
    ingredients: tuple[str, ...] = ()

    @property
    def terms(self) -> tuple[str, ...]:
        """Lowercase spoken forms, longest first."""

        return _spoken_terms(self.key, self.label, self.aliases)


@dataclass(frozen=True, slots=True)
class Modifier:
    """Priced topping that can be added to a pizza."""

    key: str
    label: str
    price: Decimal
    aliases: tuple[str, ...] = ()

    @property
    def terms(self) -> tuple[str, ...]:
        return _spoken_terms(self.key, self.label, self.aliases)


def _spoken_terms(key: str, label: str, aliases: Iterable[str]) -> tuple[str, ...]:
    terms = {key.lower(), label.lower(), *(alias.lower() for alias in aliases)}
    return tuple(sorted((term for term in terms if term), key=len, reverse=True))


def _term_pattern(term: str) -> re.Pattern[str]:
    # Plural "s" tolerated: "two margheritas", "extra olive".
    stem = term[:-1] if term.endswith("s") else term
    return re.compile(rf"(?<!\w){re.escape(stem)}s?(?!\w)")


@dataclass(frozen=True)
class Catalog:
    """Read-only view over the menu, built once at process start."""

    items: tuple[CatalogItem, ...]
    modifiers: tuple[Modifier, ...]
    _item_patterns: tuple[tuple[CatalogItem, tuple[re.Pattern[str], ...]], ...] = field(
        init=False, repr=False, compare=False
    )
    _modifier_patterns: tuple[tuple[Modifier, tuple[re.Pattern[str], ...]], ...] = field(
        init=False, repr=False, compare=False
    )
    _ingredient_patterns: tuple[re.Pattern[str], ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "_item_patterns",
            tuple((item, tuple(_term_pattern(t) for t in item.terms)) for item in self.items),
        )
        object.__setattr__(
            self,
            "_modifier_patterns",
            tuple((mod, tuple(_term_pattern(t) for t in mod.terms)) for mod in self.modifiers),
        )
        object.__setattr__(
            self,
            "_ingredient_patterns",
            tuple(_term_pattern(name) for name in self.ingredients),
        )

    @classmethod
    def build(cls, items: Sequence[CatalogItem], modifiers: Sequence[Modifier]) -> "Catalog":
        return cls(items=tuple(items), modifiers=tuple(modifiers))

    def find_item(self, text: str) -> CatalogItem | None:
        """Return the first item named in ``text``, in declaration order."""

        for item, patterns in self._item_patterns:
            if any(pattern.search(text) for pattern in patterns):
                return item
        return None

    def find_items(self, text: str) -> list[CatalogItem]:
        return [
            item
            for item, patterns in self._item_patterns
            if any(pattern.search(text) for pattern in patterns)
        ]

    def find_modifiers(self, text: str) -> list[Modifier]:
        return [
            modifier
            for modifier, patterns in self._modifier_patterns
            if any(pattern.search(text) for pattern in patterns)
        ]

    @property
    def ingredients(self) -> tuple[str, ...]:
        """Lowercase pizza ingredients, first-seen order, no duplicates."""

        names: dict[str, None] = {}
        for item in self.items:
            if item.category is Category.PIZZA:
                names.update((name.strip().lower(), None) for name in item.ingredients if name.strip())
        return tuple(names)

    def is_ingredient(self, text: str) -> bool:
        return any(pattern.search(text) for pattern in self._ingredient_patterns)

    def starts_with_topping(self, text: str) -> bool:
        """True when ``text`` opens with a modifier or a pizza ingredient."""

        patterns = [p for _, group in self._modifier_patterns for p in group]
        patterns.extend(self._ingredient_patterns)
        for pattern in patterns:
            match = pattern.search(text)
            if match and match.start() == 0:
                return True
        return False

    def item_by_key(self, key: str) -> CatalogItem | None:
        lowered = key.strip().lower()
        return next((item for item in self.items if item.key == lowered), None)

    def item_by_label(self, label: str) -> CatalogItem | None:
        lowered = label.strip().lower()
        return next((item for item in self.items if item.label.lower() == lowered), None)

    def modifier_by_key(self, key: str) -> Modifier | None:
        lowered = key.strip().lower()
        return next((mod for mod in self.modifiers if mod.key == lowered), None)

    def modifier_by_label(self, label: str) -> Modifier | None:
        lowered = label.strip().lower()
        return next(
            (mod for mod in self.modifiers if mod.label.lower() == lowered or mod.key == lowered),
            None,
        )

    def items_in(self, category: Category) -> list[CatalogItem]:
        return [item for item in self.items if item.category is category]

    def unit_price(self, item: CatalogItem, additions: Iterable[str]) -> Decimal:
        """Base price plus the price of every known addition label."""

        total = item.base_price
        for label in additions:
            modifier = self.modifier_by_label(label)
            if modifier is not None:
                total += modifier.price
        return total

    def describe_menu(self, currency: str = "euros") -> str:
        from callorder.cart.models import format_price

        def _listing(category: Category) -> str:
            return ", ".join(
                f"{item.label} at {format_price(item.base_price)} {currency}"
                for item in self.items_in(category)
            )

        toppings = ", ".join(
            f"{mod.label} plus {format_price(mod.price)} {currency}" for mod in self.modifiers
        )
        return (
            f"Here is the menu. Pizzas: {_listing(Category.PIZZA)}. "
            f"Drinks: {_listing(Category.DRINK)}. "
            f"Desserts: {_listing(Category.DESSERT)}. "
            f"Extra toppings: {toppings}. What would you like to order?"
        )
