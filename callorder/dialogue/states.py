"""Dialogue positions persisted with each session."""

from __future__ import annotations

from enum import Enum


class DialogueState(str, Enum):
    LISTEN = "listen"
    MORE = "more"
    EXTRAS = "extras"
    EXTRAS_MORE = "extras_more"
    RECAP = "recap"
    EDIT = "edit"
    TYPE = "type"
    NAME = "name"
    PHONE = "phone"
    ADDRESS_FULL = "address_full"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({DialogueState.CONFIRMED, DialogueState.CANCELLED})

# States where the caller is adding products to the cart.
COLLECTING_STATES = frozenset(
    {
        DialogueState.LISTEN,
        DialogueState.MORE,
        DialogueState.EXTRAS,
        DialogueState.EXTRAS_MORE,
    }
)
