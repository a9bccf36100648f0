"""Extractor enums and data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from callorder.cart.models import LineItem
from callorder.catalog.models import CatalogItem


class Intent(str, Enum):
    """Utterance-wide intents, detected independently of items."""

    MENU = "menu"
    YES = "yes"
    NO = "no"
    DONE = "done"
    CHANGE = "change"
    CANCEL = "cancel"


@dataclass(slots=True)
class ParsedUtterance:
    """Everything the extractor found in one normalized utterance."""

    text: str
    items: list[LineItem] = field(default_factory=list)
    intents: frozenset[Intent] = frozenset()
    mentioned_items: list[CatalogItem] = field(default_factory=list)
    loose_additions: list[str] = field(default_factory=list)
    loose_removals: list[str] = field(default_factory=list)
    removal_verb: bool = False
    removal_items: list[CatalogItem] = field(default_factory=list)
    removal_modifiers: list[str] = field(default_factory=list)

    def has(self, intent: Intent) -> bool:
        return intent in self.intents

    @property
    def has_modifier_change(self) -> bool:
        return bool(self.loose_additions or self.loose_removals)

    @property
    def has_edit_payload(self) -> bool:
        return bool(self.items or self.removal_verb or self.has_modifier_change)

    @property
    def recognized(self) -> bool:
        return bool(
            self.items
            or self.intents
            or self.mentioned_items
            or self.removal_verb
            or self.has_modifier_change
        )
