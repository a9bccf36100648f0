"""Spoken delivery address helpers."""

from __future__ import annotations

import re
from dataclasses import dataclass

MIN_ADDRESS_TOKENS = 3


@dataclass(frozen=True, slots=True)
class SpokenAddress:
    full: str
    city: str | None = None
    postal_code: str | None = None


def looks_like_address(text: str) -> bool:
    """At least three words and one digit (the house number or postal code)."""

    return len(text.split()) >= MIN_ADDRESS_TOKENS and any(ch.isdigit() for ch in text)


def parse_address(text: str, postal_code_pattern: str = r"\b\d{5}\b") -> SpokenAddress:
    """Keep the address verbatim and pull out postal code and city when present.

    The city is whatever follows the postal code, or else the last
    comma-separated part.
    """

    full = " ".join(text.split()).strip(" ,.")
    match = re.search(postal_code_pattern, full)
    postal_code = match.group(0) if match else None

    city: str | None = None
    if match:
        after = full[match.end():].strip(" ,.")
        if after:
            city = after
        else:
            before = [part.strip() for part in full[: match.start()].split(",") if part.strip()]
            city = before[-1] if len(before) > 1 else None
    else:
        parts = [part.strip() for part in full.split(",") if part.strip()]
        city = parts[-1] if len(parts) > 1 else None

    return SpokenAddress(full=full, city=city or None, postal_code=postal_code)
