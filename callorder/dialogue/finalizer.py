"""Validation of completed drafts and creation of frozen orders."""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError

from callorder.cart.models import SIZES, Cart, LineItem
from callorder.catalog.models import Catalog, Category
from callorder.dialogue.states import DialogueState
from callorder.nlu.extractor import SIZE_WORDS
from callorder.sessions.models import FinalOrder, FulfillmentType, Lifecycle, Session

logger = logging.getLogger("callorder.dialogue")

# Where the dialogue resumes to collect a missing field.
MISSING_FIELD_STATES: dict[str, DialogueState] = {
    "items": DialogueState.LISTEN,
    "fulfillment_type": DialogueState.TYPE,
    "customer_name": DialogueState.NAME,
    "customer_phone": DialogueState.PHONE,
    "address": DialogueState.ADDRESS_FULL,
    "city": DialogueState.ADDRESS_FULL,
    "postal_code": DialogueState.ADDRESS_FULL,
}


class OrderPayloadItem(BaseModel):
    productId: str = Field(min_length=1)
    size: str | None = None
    quantity: int = Field(default=1, ge=1)
    extras: list[str] = Field(default_factory=list)


class OrderPayload(BaseModel):
    """Order document proposed by the language-model responder."""

    orderType: Literal["DELIVERY", "TAKEAWAY"]
    customerName: str = Field(min_length=1)
    customerPhone: str = Field(min_length=6)
    address: str | None = None
    city: str | None = None
    postalCode: str | None = None
    items: list[OrderPayloadItem] = Field(min_length=1)


@dataclass(slots=True)
class FinalizeResult:
    ok: bool
    order: FinalOrder | None = None
    missing: tuple[str, ...] = ()
    issues: list[dict[str, Any]] = field(default_factory=list)

    @property
    def resume_state(self) -> DialogueState | None:
        if not self.missing:
            return None
        return MISSING_FIELD_STATES.get(self.missing[0], DialogueState.RECAP)


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


def required_fields_missing(
    fulfillment_type: FulfillmentType | None,
    *,
    has_items: bool,
    customer_name: str | None,
    customer_phone: str | None,
    address: str | None,
    city: str | None,
    postal_code: str | None,
) -> tuple[str, ...]:
    missing: list[str] = []
    if not has_items:
        missing.append("items")
    if fulfillment_type is None:
        missing.append("fulfillment_type")
    if _blank(customer_name):
        missing.append("customer_name")
    if _blank(customer_phone):
        missing.append("customer_phone")
    if fulfillment_type is FulfillmentType.DELIVERY:
        for name, value in (("address", address), ("city", city), ("postal_code", postal_code)):
            if _blank(value):
                missing.append(name)
    return tuple(missing)


class OrderFinalizer:
    """Check required fields per fulfillment type and freeze the order."""

    def __init__(self, catalog: Catalog) -> None:
        self.catalog = catalog

    def missing_fields(self, session: Session) -> tuple[str, ...]:
        return required_fields_missing(
            session.fulfillment_type,
            has_items=not session.cart.is_empty(),
            customer_name=session.customer_name,
            customer_phone=session.customer_phone,
            address=session.address,
            city=session.city,
            postal_code=session.postal_code,
        )

    def finalize(self, session: Session) -> FinalizeResult:
        """Freeze ``session`` into an order, or report what is still missing.

        On success the session is marked confirmed. A failure leaves the
        session untouched so the dialogue can collect the missing field.
        """

        missing = self.missing_fields(session)
        if missing:
            logger.info("Call %s cannot be finalized yet, missing %s", session.call_id, missing)
            return FinalizeResult(ok=False, missing=missing)

        order = FinalOrder(
            call_id=session.call_id,
            tenant_id=session.tenant_id,
            fulfillment_type=session.fulfillment_type,
            customer_name=session.customer_name.strip(),
            customer_phone=session.customer_phone.strip(),
            address=session.address,
            city=session.city,
            postal_code=session.postal_code,
            items=tuple(copy.deepcopy(item) for item in session.cart.items),
            total=session.cart.total,
        )
        session.lifecycle = Lifecycle.CONFIRMED
        session.dialogue_state = DialogueState.CONFIRMED
        logger.info(
            "Order confirmed for call %s: %d lines, total %s",
            session.call_id,
            len(order.items),
            order.total,
        )
        return FinalizeResult(ok=True, order=order)

    def finalize_payload(
        self,
        call_id: str,
        payload: Any,
        tenant_id: str | None = None,
    ) -> FinalizeResult:
        """Apply the same rules to an order proposed as JSON."""

        try:
            data = OrderPayload.model_validate(payload)
        except ValidationError as exc:
            issues = [
                {"loc": ".".join(str(part) for part in error["loc"]), "msg": error["msg"]}
                for error in exc.errors()
            ]
            return FinalizeResult(ok=False, issues=issues)

        lines, issues = self._resolve_lines(data.items)
        fulfillment = (
            FulfillmentType.DELIVERY if data.orderType == "DELIVERY" else FulfillmentType.TAKEAWAY
        )
        missing = required_fields_missing(
            fulfillment,
            has_items=bool(lines) and not issues,
            customer_name=data.customerName,
            customer_phone=data.customerPhone,
            address=data.address,
            city=data.city,
            postal_code=data.postalCode,
        )
        if missing or issues:
            return FinalizeResult(ok=False, missing=missing, issues=issues)

        cart = Cart(items=lines)
        return FinalizeResult(
            ok=True,
            order=FinalOrder(
                call_id=call_id,
                tenant_id=tenant_id,
                fulfillment_type=fulfillment,
                customer_name=data.customerName.strip(),
                customer_phone=data.customerPhone.strip(),
                address=data.address,
                city=data.city,
                postal_code=data.postalCode,
                items=tuple(lines),
                total=cart.total,
            ),
        )

    def _resolve_lines(
        self, entries: list[OrderPayloadItem]
    ) -> tuple[list[LineItem], list[dict[str, Any]]]:
        lines: list[LineItem] = []
        issues: list[dict[str, Any]] = []
        for index, entry in enumerate(entries):
            product = self.catalog.item_by_key(entry.productId) or self.catalog.item_by_label(
                entry.productId
            )
            if product is None:
                issues.append({"loc": f"items.{index}.productId", "msg": "unknown product"})
                continue

            additions: list[str] = []
            for extra in entry.extras:
                modifier = self.catalog.modifier_by_label(extra)
                if modifier is None or product.category is not Category.PIZZA:
                    issues.append({"loc": f"items.{index}.extras", "msg": f"unknown extra {extra!r}"})
                    continue
                additions.append(modifier.label)

            size = _payload_size(entry.size)
            if entry.size and size is None:
                issues.append({"loc": f"items.{index}.size", "msg": f"unknown size {entry.size!r}"})

            lines.append(
                LineItem(
                    category=product.category,
                    item_label=product.label,
                    item_key=product.key,
                    quantity=entry.quantity,
                    size=size if product.category is Category.PIZZA else None,
                    additions=additions,
                    unit_price=self.catalog.unit_price(product, additions),
                )
            )
        return lines, issues


def _payload_size(value: str | None) -> str | None:
    if not value:
        return None
    cleaned = value.strip()
    if cleaned.upper() in SIZES:
        return cleaned.upper()
    return SIZE_WORDS.get(cleaned.lower())
