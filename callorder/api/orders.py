"""Read-only routes over sessions, confirmed orders and the menu."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException

from callorder.cart.models import Cart, LineItem, format_price
from callorder.catalog.models import Catalog
from callorder.sessions.models import FinalOrder, Session
from callorder.sessions.store import SessionStore


def line_to_dict(item: LineItem) -> dict[str, Any]:
    return {
        "category": item.category.value,
        "item": item.item_label,
        "item_key": item.item_key,
        "quantity": item.quantity,
        "size": item.size,
        "additions": list(item.additions),
        "removals": list(item.removals),
        "unit_price": format_price(item.unit_price),
        "line_total": format_price(item.line_total),
    }


def cart_to_dict(cart: Cart) -> dict[str, Any]:
    return {
        "items": [line_to_dict(item) for item in cart.items],
        "total": format_price(cart.total),
        "extras_offered": cart.extras_offered,
    }


def session_to_dict(session: Session) -> dict[str, Any]:
    return {
        "call_id": session.call_id,
        "tenant_id": session.tenant_id,
        "state": session.dialogue_state.value,
        "lifecycle": session.lifecycle.value,
        "fail_count": session.fail_count,
        "fulfillment_type": session.fulfillment_type.value if session.fulfillment_type else None,
        "customer_name": session.customer_name,
        "customer_phone": session.customer_phone,
        "address": session.address,
        "city": session.city,
        "postal_code": session.postal_code,
        "cart": cart_to_dict(session.cart),
        "version": session.version,
    }


def order_to_dict(order: FinalOrder) -> dict[str, Any]:
    return {
        "call_id": order.call_id,
        "tenant_id": order.tenant_id,
        "fulfillment_type": order.fulfillment_type.value,
        "customer_name": order.customer_name,
        "customer_phone": order.customer_phone,
        "address": order.address,
        "city": order.city,
        "postal_code": order.postal_code,
        "items": [line_to_dict(item) for item in order.items],
        "total": format_price(order.total),
        "created_at": order.created_at.isoformat(),
    }


def create_orders_router(session_store: SessionStore, catalog: Catalog, currency: str = "euros") -> APIRouter:
    router = APIRouter(tags=["orders"])

    @router.get("/sessions")
    def list_sessions() -> list[str]:
        """List known call identifiers (development helper)."""

        return list(session_store.iter_sessions())

    @router.get("/sessions/{call_id}")
    def get_session(call_id: str) -> dict:
        session = session_store.load(call_id)
        if session is None:
            raise HTTPException(status_code=404, detail=f"unknown call {call_id}")
        return session_to_dict(session)

    @router.get("/orders/{call_id}")
    def get_order(call_id: str) -> dict:
        order = session_store.get_final_order(call_id)
        if order is None:
            raise HTTPException(status_code=404, detail=f"no confirmed order for call {call_id}")
        return order_to_dict(order)

    @router.get("/menu", tags=["menu"])
    def menu() -> dict:
        return {
            "items": [
                {
                    "key": item.key,
                    "label": item.label,
                    "category": item.category.value,
                    "price": format_price(item.base_price),
                    "aliases": list(item.aliases),
                }
                for item in catalog.items
            ],
            "modifiers": [
                {"key": modifier.key, "label": modifier.label, "price": format_price(modifier.price)}
                for modifier in catalog.modifiers
            ],
            "spoken": catalog.describe_menu(currency),
        }

    return router
