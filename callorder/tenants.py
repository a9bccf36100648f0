"""Map the dialled number of an inbound call to a restaurant."""

from __future__ import annotations

import logging
import re
from typing import Mapping

logger = logging.getLogger("callorder.tenants")

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_phone(number: str | None, country_code: str = "33") -> str:
    """Best-effort E.164 form of a dialled number.

    >>> normalize_phone("06 12 34 56 78")
    '+33612345678'
    """

    raw = _WHITESPACE_RE.sub("", number or "")
    if not raw:
        return ""
    if raw.startswith("+"):
        return raw
    if raw.startswith(country_code):
        return f"+{raw}"
    if raw.startswith("0") and len(raw) == 10:
        return f"+{country_code}{raw[1:]}"
    return raw


class TenantResolver:
    """Resolve tenants from a number-to-restaurant mapping.

    With an empty mapping every call belongs to ``default_tenant``.
    """

    def __init__(
        self,
        mapping: Mapping[str, str] | None = None,
        default_tenant: str = "default",
        country_code: str = "33",
    ) -> None:
        self.country_code = country_code
        self.default_tenant = default_tenant
        self._mapping: dict[str, str] = {}
        for number, tenant in (mapping or {}).items():
            self._mapping[normalize_phone(number, country_code)] = tenant
            self._mapping.setdefault(_WHITESPACE_RE.sub("", number), tenant)

    def resolve(self, to_number: str | None) -> str | None:
        if not self._mapping:
            return self.default_tenant

        normalized = normalize_phone(to_number, self.country_code)
        raw = _WHITESPACE_RE.sub("", to_number or "")
        for candidate in (normalized, raw):
            if candidate and candidate in self._mapping:
                return self._mapping[candidate]

        logger.warning("No tenant configured for dialled number %r", to_number)
        return None
