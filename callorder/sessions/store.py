"""Session store abstraction and SQLite implementation."""

from __future__ import annotations

import logging
import sqlite3
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Iterable

from callorder.core.db import sqlite_connection
from callorder.core.errors import SessionConflictError, SessionStoreError
from callorder.dialogue.states import DialogueState
from callorder.sessions.models import FinalOrder, FulfillmentType, Lifecycle, Session
from callorder.sessions.serialization import (
    cart_from_json,
    cart_to_json,
    lines_from_json,
    lines_to_json,
)

logger = logging.getLogger("callorder.sessions")


class SessionStore(ABC):
    """Persistence boundary owning every session's lifetime."""

    @abstractmethod
    def load(self, call_id: str) -> Session | None:
        """Return the stored session for ``call_id`` if any."""

    @abstractmethod
    def load_or_create(self, call_id: str, tenant_id: str | None = None) -> Session:
        """Return the session for ``call_id``, creating it at most once."""

    @abstractmethod
    def save(self, session: Session, final_order: FinalOrder | None = None) -> None:
        """Persist ``session`` if nobody saved it since it was loaded.

        Raises ``SessionConflictError`` on a stale version. A final order is
        written in the same transaction.
        """

    @abstractmethod
    def get_final_order(self, call_id: str) -> FinalOrder | None:
        """Return the frozen order created for a call."""

    @abstractmethod
    def iter_sessions(self) -> Iterable[str]:
        """Iterate over known call identifiers."""


class SQLiteSessionStore(SessionStore):
    """SQLite-backed store using a version column for compare-and-swap saves."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        """Create required tables if they do not exist."""

        with sqlite_connection(self.db_path) as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS sessions (
                    call_id TEXT PRIMARY KEY,
                    tenant_id TEXT,
                    dialogue_state TEXT NOT NULL,
                    cart TEXT NOT NULL,
                    fulfillment_type TEXT,
                    customer_name TEXT,
                    customer_phone TEXT,
                    address TEXT,
                    city TEXT,
                    postal_code TEXT,
                    fail_count INTEGER NOT NULL DEFAULT 0,
                    lifecycle TEXT NOT NULL,
                    version INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS final_orders (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    call_id TEXT NOT NULL UNIQUE,
                    tenant_id TEXT,
                    fulfillment_type TEXT NOT NULL,
                    customer_name TEXT NOT NULL,
                    customer_phone TEXT NOT NULL,
                    address TEXT,
                    city TEXT,
                    postal_code TEXT,
                    items TEXT NOT NULL,
                    total TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    FOREIGN KEY (call_id) REFERENCES sessions (call_id)
                );
                """
            )

    def load(self, call_id: str) -> Session | None:
        try:
            with sqlite_connection(self.db_path) as conn:
                row = conn.execute("SELECT * FROM sessions WHERE call_id = ?", (call_id,)).fetchone()
        except sqlite3.Error as exc:
            raise SessionStoreError(f"Cannot load session {call_id}: {exc}") from exc
        return _row_to_session(row) if row else None

    def load_or_create(self, call_id: str, tenant_id: str | None = None) -> Session:
        fresh = Session(call_id=call_id, tenant_id=tenant_id)
        try:
            with sqlite_connection(self.db_path) as conn:
                created = conn.execute(
                    """
                    INSERT OR IGNORE INTO sessions (
                        call_id, tenant_id, dialogue_state, cart, fail_count,
                        lifecycle, version, created_at, updated_at
                    ) VALUES (?, ?, ?, ?, 0, ?, 0, ?, ?)
                    """,
                    (
                        call_id,
                        tenant_id,
                        fresh.dialogue_state.value,
                        cart_to_json(fresh.cart),
                        fresh.lifecycle.value,
                        fresh.created_at.isoformat(),
                        fresh.updated_at.isoformat(),
                    ),
                ).rowcount
                row = conn.execute("SELECT * FROM sessions WHERE call_id = ?", (call_id,)).fetchone()
        except sqlite3.Error as exc:
            raise SessionStoreError(f"Cannot create session {call_id}: {exc}") from exc

        if created:
            logger.info("Created session %s for tenant %s", call_id, tenant_id)
        return _row_to_session(row)

    def save(self, session: Session, final_order: FinalOrder | None = None) -> None:
        now = datetime.now(timezone.utc)
        try:
            with sqlite_connection(self.db_path) as conn:
                updated = conn.execute(
                    """
                    UPDATE sessions SET
                        tenant_id = ?, dialogue_state = ?, cart = ?, fulfillment_type = ?,
                        customer_name = ?, customer_phone = ?, address = ?, city = ?,
                        postal_code = ?, fail_count = ?, lifecycle = ?,
                        version = version + 1, updated_at = ?
                    WHERE call_id = ? AND version = ?
                    """,
                    (
                        session.tenant_id,
                        session.dialogue_state.value,
                        cart_to_json(session.cart),
                        session.fulfillment_type.value if session.fulfillment_type else None,
                        session.customer_name,
                        session.customer_phone,
                        session.address,
                        session.city,
                        session.postal_code,
                        session.fail_count,
                        session.lifecycle.value,
                        now.isoformat(),
                        session.call_id,
                        session.version,
                    ),
                ).rowcount
                if not updated:
                    raise SessionConflictError(session.call_id, session.version)
                if final_order is not None:
                    _insert_final_order(conn, final_order)
        except SessionConflictError:
            raise
        except sqlite3.IntegrityError as exc:
            # The UNIQUE call id means another turn already submitted this order.
            raise SessionConflictError(session.call_id, session.version) from exc
        except sqlite3.Error as exc:
            raise SessionStoreError(f"Cannot save session {session.call_id}: {exc}") from exc

        session.version += 1
        session.updated_at = now

    def get_final_order(self, call_id: str) -> FinalOrder | None:
        try:
            with sqlite_connection(self.db_path) as conn:
                row = conn.execute(
                    "SELECT * FROM final_orders WHERE call_id = ?", (call_id,)
                ).fetchone()
        except sqlite3.Error as exc:
            raise SessionStoreError(f"Cannot load order {call_id}: {exc}") from exc
        if row is None:
            return None
        return FinalOrder(
            call_id=row["call_id"],
            tenant_id=row["tenant_id"],
            fulfillment_type=FulfillmentType(row["fulfillment_type"]),
            customer_name=row["customer_name"],
            customer_phone=row["customer_phone"],
            address=row["address"],
            city=row["city"],
            postal_code=row["postal_code"],
            items=tuple(lines_from_json(row["items"])),
            total=Decimal(row["total"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def iter_sessions(self) -> Iterable[str]:
        with sqlite_connection(self.db_path) as conn:
            rows = conn.execute("SELECT call_id FROM sessions ORDER BY created_at, call_id")
            return [row["call_id"] for row in rows]


def _insert_final_order(conn: sqlite3.Connection, order: FinalOrder) -> None:
    conn.execute(
        """
        INSERT INTO final_orders (
            call_id, tenant_id, fulfillment_type, customer_name, customer_phone,
            address, city, postal_code, items, total, created_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            order.call_id,
            order.tenant_id,
            order.fulfillment_type.value,
            order.customer_name,
            order.customer_phone,
            order.address,
            order.city,
            order.postal_code,
            lines_to_json(order.items),
            str(order.total),
            order.created_at.isoformat(),
        ),
    )


def _enum_or(enum_cls, value, fallback, call_id: str):
    try:
        return enum_cls(value)
    except ValueError:
        logger.warning("Unknown %s %r for session %s", enum_cls.__name__, value, call_id)
        return fallback


def _row_to_session(row: sqlite3.Row) -> Session:
    call_id = row["call_id"]
    fulfillment = row["fulfillment_type"]
    return Session(
        call_id=call_id,
        tenant_id=row["tenant_id"],
        dialogue_state=_enum_or(DialogueState, row["dialogue_state"], DialogueState.LISTEN, call_id),
        cart=cart_from_json(row["cart"], call_id=call_id),
        fulfillment_type=FulfillmentType(fulfillment) if fulfillment else None,
        customer_name=row["customer_name"],
        customer_phone=row["customer_phone"],
        address=row["address"],
        city=row["city"],
        postal_code=row["postal_code"],
        fail_count=row["fail_count"],
        lifecycle=_enum_or(Lifecycle, row["lifecycle"], Lifecycle.IN_PROGRESS, call_id),
        version=row["version"],
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )
