"""Catalog providers: built-in menu and JSON-file menu."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Sequence

from callorder.catalog.models import Catalog, CatalogItem, Category, Modifier
from callorder.core.errors import CatalogError

logger = logging.getLogger("callorder.catalog")

DEFAULT_ITEMS: tuple[CatalogItem, ...] = (
    CatalogItem(
        "margherita", "Margherita", Decimal("10"), Category.PIZZA,
        ingredients=("tomato", "mozzarella", "basil"),
    ),
    CatalogItem(
        "reine", "Reine", Decimal("11"), Category.PIZZA,
        ingredients=("tomato", "mozzarella", "ham", "mushrooms"),
    ),
    CatalogItem(
        "pepperoni", "Pepperoni", Decimal("12"), Category.PIZZA,
        ingredients=("tomato", "mozzarella", "pepperoni"),
    ),
    CatalogItem("coca", "Coca", Decimal("3"), Category.DRINK, aliases=("coke", "cola")),
    CatalogItem("water", "Water", Decimal("2"), Category.DRINK),
    CatalogItem("ice tea", "Ice Tea", Decimal("3"), Category.DRINK, aliases=("iced tea",)),
    CatalogItem("tiramisu", "Tiramisu", Decimal("5"), Category.DESSERT),
    CatalogItem("brownie", "Brownie", Decimal("4"), Category.DESSERT),
    CatalogItem("ice cream", "Ice Cream", Decimal("4"), Category.DESSERT),
)

DEFAULT_MODIFIERS: tuple[Modifier, ...] = (
    Modifier("cheese", "Cheese", Decimal("2")),
    Modifier("olives", "Olives", Decimal("1")),
    Modifier("mushrooms", "Mushrooms", Decimal("1.50"), aliases=("mushroom",)),
)


class CatalogProvider(ABC):
    """Source of menu reference data, read once at startup."""

    @abstractmethod
    def list_items(self) -> Sequence[CatalogItem]:
        """Return every sellable product in declaration order."""

    @abstractmethod
    def list_modifiers(self) -> Sequence[Modifier]:
        """Return every priced pizza topping."""

    def load(self) -> Catalog:
        catalog = Catalog.build(self.list_items(), self.list_modifiers())
        logger.info(
            "Catalog loaded with %d items and %d modifiers", len(catalog.items), len(catalog.modifiers)
        )
        return catalog


class StaticCatalogProvider(CatalogProvider):
    """Serve the built-in pizzeria menu."""

    def __init__(
        self,
        items: Sequence[CatalogItem] = DEFAULT_ITEMS,
        modifiers: Sequence[Modifier] = DEFAULT_MODIFIERS,
    ) -> None:
        self._items = tuple(items)
        self._modifiers = tuple(modifiers)

    def list_items(self) -> Sequence[CatalogItem]:
        return self._items

    def list_modifiers(self) -> Sequence[Modifier]:
        return self._modifiers


class JsonCatalogProvider(CatalogProvider):
    """Read the menu from a JSON document ``{"items": [...], "modifiers": [...]}``."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._data: dict[str, Any] | None = None

    def _document(self) -> dict[str, Any]:
        if self._data is not None:
            return self._data
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            raise CatalogError(f"Cannot read catalog {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise CatalogError(f"Catalog {self.path} must be a JSON object")
        self._data = data
        return data

    def list_items(self) -> Sequence[CatalogItem]:
        entries = self._document().get("items")
        if not isinstance(entries, list) or not entries:
            raise CatalogError("Catalog needs a non-empty 'items' list")
        return tuple(_parse_item(entry) for entry in entries)

    def list_modifiers(self) -> Sequence[Modifier]:
        entries = self._document().get("modifiers", [])
        if not isinstance(entries, list):
            raise CatalogError("Catalog 'modifiers' must be a list")
        return tuple(_parse_modifier(entry) for entry in entries)


def _price(value: Any) -> Decimal:
    try:
        price = Decimal(str(value))
    except InvalidOperation as exc:
        raise CatalogError(f"Invalid price {value!r}") from exc
    if price < 0:
        raise CatalogError(f"Negative price {value!r}")
    return price


def _parse_item(entry: Any) -> CatalogItem:
    if not isinstance(entry, dict):
        raise CatalogError(f"Catalog item must be an object, got {entry!r}")
    try:
        category = Category(str(entry["category"]).lower())
        return CatalogItem(
            key=str(entry["key"]).strip().lower(),
            label=str(entry["label"]).strip(),
            base_price=_price(entry["price"]),
            category=category,
            aliases=tuple(str(alias) for alias in entry.get("aliases", [])),
            ingredients=tuple(str(name) for name in entry.get("ingredients", [])),
        )
    except (KeyError, ValueError) as exc:
        raise CatalogError(f"Malformed catalog item {entry!r}: {exc}") from exc


def _parse_modifier(entry: Any) -> Modifier:
    if not isinstance(entry, dict):
        raise CatalogError(f"Modifier must be an object, got {entry!r}")
    try:
        return Modifier(
            key=str(entry["key"]).strip().lower(),
            label=str(entry["label"]).strip(),
            price=_price(entry["price"]),
            aliases=tuple(str(alias) for alias in entry.get("aliases", [])),
        )
    except KeyError as exc:
        raise CatalogError(f"Malformed modifier {entry!r}: missing {exc}") from exc


def provider_for(path: Path | None) -> CatalogProvider:
    """Pick the JSON provider when a catalog file is configured."""

    if path is not None:
        return JsonCatalogProvider(path)
    return StaticCatalogProvider()
