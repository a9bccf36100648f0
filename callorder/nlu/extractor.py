"""Deterministic entity extraction over normalized utterances.

Rules, in the order they are applied:

- The utterance is split into segments on commas, then on "and" when it is
  followed by a quantity or a product name. "without mushrooms and olives"
  therefore stays in one piece.
- Each segment yields at most one line item: the first catalog product it
  names outside its removal phrases, in catalog order.
- Removals follow "without"/"no" up to the next addition trigger. A product
  name there is skipped unless it is also a pizza ingredient ("pepperoni").
- Additions need an explicit trigger ("with", "add", "extra", "plus"); a bare
  topping name is never an addition, and a topping that is also removed in
  the same segment is dropped from the additions.
- Intents are detected across the whole utterance, not per segment.
"""

from __future__ import annotations

import logging
import re

from callorder.cart.models import LineItem
from callorder.catalog.models import Catalog, CatalogItem, Category, Modifier
from callorder.nlu.normalizer import tokens
from callorder.nlu.types import Intent, ParsedUtterance

logger = logging.getLogger("callorder.nlu")

QUANTITY_WORDS = {"one": 1, "two": 2, "three": 3, "four": 4}
ARTICLES = ("a", "an")
SIZE_WORDS = {"small": "S", "medium": "M", "large": "L"}

YES_WORDS = {"yes", "yeah", "yep", "yup", "ok", "okay", "sure", "correct", "perfect", "absolutely", "fine"}
YES_PHRASES = ("thats right", "that is right", "sounds good", "go ahead", "of course", "all good")
NO_WORDS = {"no", "nope", "nah", "negative"}
NO_PHRASES = ("not really", "not right", "not correct", "incorrect", "thats wrong", "that is wrong")
DONE_PHRASES = (
    "thats all",
    "that is all",
    "thats it",
    "that is it",
    "thats everything",
    "that will be all",
    "thatll be all",
    "nothing else",
    "nothing more",
    "no more",
    "im done",
    "i am done",
    "done",
    "finished",
)
MENU_PHRASES = (
    "menu",
    "what do you have",
    "what have you got",
    "what do you sell",
    "which pizzas",
    "what pizzas",
    "which drinks",
    "what drinks",
    "which desserts",
    "what desserts",
    "your options",
)
CHANGE_PHRASES = (
    "actually",
    "change",
    "modify",
    "instead",
    "replace",
    "correction",
    "remove",
    "delete",
    "take off",
    "take out",
)
CANCEL_PHRASES = (
    "cancel the order",
    "cancel my order",
    "cancel order",
    "cancel the whole order",
    "cancel everything",
    "forget the order",
    "forget my order",
    "forget it",
)

# Words dropped from free-text removals ("no onions instead" -> "onions").
REMOVAL_NOISE = {
    "the", "any", "some", "more", "instead", "actually", "it", "that", "thats", "this",
    "of", "on", "in", "my", "them", "those", "please", "else", "nothing", "all",
    "i", "im", "am", "done", "thanks", "for", "me", "one", "pizza",
}

_REMOVAL_TRIGGER_RE = re.compile(r"\b(?:without|no)\b")
_ADDITION_TRIGGER_RE = re.compile(r"\b(?:with|add|extra|plus)\b")
_REMOVAL_VERB_RE = re.compile(r"\b(?:remove|cancel|delete|drop|take off|take out)\b")
_CHUNK_SPLIT_RE = re.compile(r"\s+(?:and|or)\s+|\s*,\s*")
_DIGIT_RE = re.compile(r"(?<!\d)([1-9])(?!\d)")
_EXPLICIT_SIZE_RE = re.compile(r"\bsize\s+(s|m|l|small|medium|large)\b")
_EXPLICIT_SIZES = {"s": "S", "m": "M", "l": "L", **SIZE_WORDS}


def _phrase_re(phrases: tuple[str, ...]) -> re.Pattern[str]:
    ordered = sorted(phrases, key=len, reverse=True)
    return re.compile(r"\b(?:" + "|".join(re.escape(p) for p in ordered) + r")\b")


_YES_RE = _phrase_re(YES_PHRASES)
_NO_RE = _phrase_re(NO_PHRASES)
_DONE_RE = _phrase_re(DONE_PHRASES)
_MENU_RE = _phrase_re(MENU_PHRASES)
_CHANGE_RE = _phrase_re(CHANGE_PHRASES)
_CANCEL_RE = _phrase_re(CANCEL_PHRASES)


class EntityExtractor:
    """Turn a normalized utterance into line items and intents."""

    def __init__(self, catalog: Catalog) -> None:
        self.catalog = catalog
        quantity_alt = "|".join([r"[1-9]", *QUANTITY_WORDS, *ARTICLES])
        item_terms = sorted(
            {term for item in catalog.items for term in item.terms}, key=len, reverse=True
        )
        item_alt = "|".join(re.escape(term) for term in item_terms) or r"(?!x)x"
        self._and_split_re = re.compile(
            rf"\s+and\s+(?=(?:{quantity_alt})\b|(?:(?:the|some)\s+)?(?:{item_alt}))"
        )

    def segments(self, text: str) -> list[str]:
        parts: list[str] = []
        for clause in text.split(","):
            for piece in self._and_split_re.split(clause):
                piece = piece.strip()
                if piece:
                    parts.append(piece)
        return parts

    def parse(self, text: str) -> ParsedUtterance:
        parsed = ParsedUtterance(text=text, intents=self.detect_intents(text))
        if not text:
            return parsed

        parsed.mentioned_items = self.catalog.find_items(text)
        for segment in self.segments(text):
            removals = self._removals(segment)
            additions = self._additions(segment, removals)

            if _REMOVAL_VERB_RE.search(segment) and not parsed.has(Intent.CANCEL):
                parsed.removal_verb = True
                product = self.catalog.find_item(segment)
                if product is not None:
                    parsed.removal_items.append(product)
                else:
                    parsed.removal_modifiers.extend(
                        modifier.key for modifier in self.catalog.find_modifiers(segment)
                    )
                continue

            # "a reine without pepperoni" orders a Reine, not a Pepperoni.
            head = _outside_spans(segment, _REMOVAL_TRIGGER_RE, _ADDITION_TRIGGER_RE)
            product = self.catalog.find_item(head)
            if product is None:
                parsed.loose_additions.extend(additions)
                parsed.loose_removals.extend(removals)
                continue

            parsed.items.append(self._line_item(product, segment, additions, removals))

        logger.debug(
            "Parsed %r into %d items, intents=%s",
            text,
            len(parsed.items),
            sorted(intent.value for intent in parsed.intents),
        )
        return parsed

    def _line_item(
        self,
        product: CatalogItem,
        segment: str,
        additions: list[str],
        removals: list[str],
    ) -> LineItem:
        is_pizza = product.category is Category.PIZZA
        additions = additions if is_pizza else []
        return LineItem(
            category=product.category,
            item_label=product.label,
            item_key=product.key,
            quantity=detect_quantity(segment),
            size=detect_size(segment) if is_pizza else None,
            additions=additions,
            removals=removals,
            unit_price=self.catalog.unit_price(product, additions),
        )

    def _removals(self, segment: str) -> list[str]:
        removals: list[str] = []
        for span in _trigger_spans(segment, _REMOVAL_TRIGGER_RE, _ADDITION_TRIGGER_RE):
            for chunk in _CHUNK_SPLIT_RE.split(span):
                chunk = chunk.strip()
                if not chunk:
                    continue
                if self.catalog.find_item(chunk) is not None and not self.catalog.is_ingredient(chunk):
                    continue
                modifiers = self.catalog.find_modifiers(chunk)
                if modifiers:
                    removals.extend(modifier.key for modifier in modifiers)
                    continue
                words = [word for word in tokens(chunk) if word not in REMOVAL_NOISE]
                if words:
                    removals.append(" ".join(words))
        return _unique(removals)

    def _additions(self, segment: str, removals: list[str]) -> list[str]:
        blocked = {name.lower() for name in removals}
        found: list[Modifier] = []
        for span in _trigger_spans(segment, _ADDITION_TRIGGER_RE, _REMOVAL_TRIGGER_RE):
            found.extend(self.catalog.find_modifiers(span))
        return _unique(
            modifier.label
            for modifier in found
            if modifier.key not in blocked and modifier.label.lower() not in blocked
        )

    def detect_intents(self, text: str) -> frozenset[Intent]:
        intents: set[Intent] = set()
        if not text:
            return frozenset()
        words = tokens(text)

        if _MENU_RE.search(text):
            intents.add(Intent.MENU)
        if _CANCEL_RE.search(text):
            intents.add(Intent.CANCEL)
        if _DONE_RE.search(text):
            intents.add(Intent.DONE)
        if _CHANGE_RE.search(text):
            intents.add(Intent.CHANGE)
        if _YES_RE.search(text) or any(word in YES_WORDS for word in words):
            intents.add(Intent.YES)
        if _NO_RE.search(text) or self._leading_no(text, words):
            intents.add(Intent.NO)
        return frozenset(intents)

    def _leading_no(self, text: str, words: list[str]) -> bool:
        if not words or words[0] not in NO_WORDS:
            return False
        rest = text.split(None, 1)[1].lstrip(" ,") if len(words) > 1 else ""
        # "no olives" is a removal, not a refusal.
        return not (rest and self.catalog.starts_with_topping(rest))


def _trigger_spans(
    segment: str, trigger_re: re.Pattern[str], stop_re: re.Pattern[str]
) -> list[str]:
    spans: list[str] = []
    for match in trigger_re.finditer(segment):
        rest = segment[match.end():]
        stop = stop_re.search(rest)
        same = trigger_re.search(rest)
        ends = [m.start() for m in (stop, same) if m is not None]
        span = rest[: min(ends)] if ends else rest
        if span.strip():
            spans.append(span.strip())
    return spans


def _outside_spans(
    segment: str, trigger_re: re.Pattern[str], stop_re: re.Pattern[str]
) -> str:
    """``segment`` with every trigger and the span it governs cut out."""

    kept: list[str] = []
    position = 0
    for match in trigger_re.finditer(segment):
        if match.start() < position:
            continue
        kept.append(segment[position:match.start()])
        rest = segment[match.end():]
        ends = [m.start() for m in (stop_re.search(rest), trigger_re.search(rest)) if m is not None]
        position = match.end() + (min(ends) if ends else len(rest))
    kept.append(segment[position:])
    return " ".join(piece.strip() for piece in kept if piece.strip())


def _unique(names) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for name in names:
        lowered = name.lower()
        if lowered not in seen:
            seen.add(lowered)
            result.append(name)
    return result


def detect_quantity(segment: str) -> int:
    """First digit 1-9, else a number word, else 1."""

    match = _DIGIT_RE.search(segment)
    if match:
        return int(match.group(1))
    for word in tokens(segment):
        if word in QUANTITY_WORDS:
            return QUANTITY_WORDS[word]
    return 1


def detect_size(segment: str) -> str | None:
    explicit = _EXPLICIT_SIZE_RE.search(segment)
    if explicit:
        return _EXPLICIT_SIZES[explicit.group(1)]
    for word in tokens(segment):
        if word in SIZE_WORDS:
            return SIZE_WORDS[word]
    return None
