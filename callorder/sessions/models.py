"""Durable per-call records: the draft session and the frozen order."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from callorder.cart.models import Cart, LineItem
from callorder.dialogue.states import DialogueState


class FulfillmentType(str, Enum):
    DELIVERY = "delivery"
    TAKEAWAY = "takeaway"


class Lifecycle(str, Enum):
    IN_PROGRESS = "in_progress"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


@dataclass(slots=True)
class Session:
    """Draft order and dialogue position for one call.

    ``version`` is owned by the store and bumped on every successful save.
    """

    call_id: str
    tenant_id: str | None = None
    dialogue_state: DialogueState = DialogueState.LISTEN
    cart: Cart = field(default_factory=Cart)
    fulfillment_type: FulfillmentType | None = None
    customer_name: str | None = None
    customer_phone: str | None = None
    address: str | None = None
    city: str | None = None
    postal_code: str | None = None
    fail_count: int = 0
    lifecycle: Lifecycle = Lifecycle.IN_PROGRESS
    version: int = 0
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_terminal(self) -> bool:
        return self.lifecycle is not Lifecycle.IN_PROGRESS


@dataclass(frozen=True, slots=True)
class FinalOrder:
    """Immutable snapshot produced by the finalizer."""

    call_id: str
    fulfillment_type: FulfillmentType
    customer_name: str
    customer_phone: str
    items: tuple[LineItem, ...]
    total: Decimal
    address: str | None = None
    city: str | None = None
    postal_code: str | None = None
    tenant_id: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
