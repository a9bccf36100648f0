"""FastAPI application entry point for the pizzeria order line."""

import logging
import sqlite3
from typing import Any

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from callorder.api.orders import cart_to_dict, create_orders_router, order_to_dict
from callorder.catalog import provider_for
from callorder.core.config import get_settings
from callorder.core.db import sqlite_connection
from callorder.core.errors import (
    ConversationClosedError,
    SessionStoreError,
    session_store_exception_handler,
    unhandled_exception_handler,
)
from callorder.core.logging import configure_logging, request_id_middleware
from callorder.core.metrics import MetricsCollector
from callorder.dialogue.finalizer import OrderFinalizer
from callorder.dialogue.machine import OrderDialogue
from callorder.dialogue.retry import RetryPolicy
from callorder.engine import OrderCaptureEngine
from callorder.memory.store import SQLiteTranscriptStore
from callorder.responder import ChatService, OpenRouterResponder, build_system_prompt
from callorder.sessions.store import SQLiteSessionStore
from callorder.tenants import TenantResolver

settings = get_settings()
logger = logging.getLogger("callorder.app")

catalog = provider_for(settings.catalog_path).load()
session_store = SQLiteSessionStore(settings.sqlite_path)
transcript_store = SQLiteTranscriptStore(settings.sqlite_path)
finalizer = OrderFinalizer(catalog)
metrics = MetricsCollector()
dialogue = OrderDialogue(
    catalog,
    retry_policy=RetryPolicy(settings.fail_threshold),
    finalizer=finalizer,
    currency=settings.currency_name,
    postal_code_pattern=settings.postal_code_pattern,
)
tenant_resolver = TenantResolver(
    settings.tenant_numbers,
    default_tenant=settings.default_tenant,
    country_code=settings.default_country_code,
)
engine = OrderCaptureEngine(
    dialogue,
    session_store,
    tenant_resolver=tenant_resolver,
    transcript_store=transcript_store,
    metrics=metrics,
    save_attempts=settings.session_save_attempts,
)

chat_service: ChatService | None = None
if settings.openrouter_enabled:
    chat_service = ChatService(
        OpenRouterResponder(
            settings.openrouter_api_key,
            model=settings.openrouter_model,
            referer=settings.openrouter_referer,
            title=settings.openrouter_title,
            timeout=settings.responder_timeout_seconds,
        ),
        session_store,
        transcript_store,
        finalizer,
        system_prompt=build_system_prompt(catalog, settings.currency_name),
        history_limit=settings.chat_history_limit,
        metrics=metrics,
    )

app = FastAPI(title=settings.app_name, version="0.1.0", docs_url="/docs")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.middleware("http")(request_id_middleware)

app.include_router(create_orders_router(session_store, catalog, settings.currency_name))


@app.get("/health", tags=["health"])
async def health_check() -> dict[str, str]:
    """Return basic service status for monitoring."""

    return {"status": "ok"}


@app.get("/ready", tags=["health"])
def readiness_probe() -> dict[str, Any]:
    """Readiness endpoint checking the order database and the loaded catalog."""

    components: dict[str, dict[str, Any]] = {}

    db_ok = False
    db_error: str | None = None
    try:
        with sqlite_connection(settings.sqlite_path) as conn:
            rows = conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name IN ('sessions','final_orders','messages')"
            ).fetchall()
            db_ok = len(rows) == 3
    except sqlite3.Error as exc:
        db_error = str(exc)
    components["orders_db"] = {
        "path": str(settings.sqlite_path),
        "ok": db_ok,
        **({"error": db_error} if db_error else {}),
    }

    components["catalog"] = {
        "source": str(settings.catalog_path) if settings.catalog_path else "built-in",
        "items": len(catalog.items),
        "modifiers": len(catalog.modifiers),
        "ok": bool(catalog.items),
    }
    components["responder"] = {"enabled": chat_service is not None}

    overall = "ok" if db_ok and components["catalog"]["ok"] else "fail"
    return {
        "status": overall,
        "environment": settings.environment,
        "components": components,
    }


def get_engine() -> OrderCaptureEngine:
    """Dependency injector for the turn engine."""

    return engine


def get_chat_service() -> ChatService | None:
    """Dependency injector for the optional language-model path."""

    return chat_service


@app.post("/turn", tags=["turns"])
def handle_turn(payload: dict, turn_engine: OrderCaptureEngine = Depends(get_engine)) -> dict:
    """Process one transcribed caller utterance and return the next prompt."""

    call_id = payload.get("call_id")
    if not call_id or not isinstance(call_id, str):
        raise HTTPException(status_code=400, detail="call_id is required")

    transcript = payload.get("transcript")
    if not isinstance(transcript, str):
        transcript = None
    to_number = payload.get("to_number")
    if not isinstance(to_number, str):
        to_number = None

    outcome = turn_engine.handle_turn(call_id, transcript, to_number)
    session = outcome.session
    return {
        "call_id": call_id,
        "prompt": outcome.prompt,
        "terminal": outcome.terminal,
        "escalate": outcome.escalate,
        "state": session.dialogue_state.value if session else None,
        "lifecycle": session.lifecycle.value if session else None,
        "fail_count": session.fail_count if session else 0,
        "cart": cart_to_dict(session.cart) if session else None,
    }


@app.post("/chat", tags=["chat"])
async def chat(message: dict, service: ChatService | None = Depends(get_chat_service)) -> dict:
    """Language-model driven conversation producing a JSON order."""

    if service is None:
        raise HTTPException(status_code=503, detail="language-model responder is not configured")

    conversation_id = message.get("conversation_id")
    content = message.get("message")
    if not conversation_id or not isinstance(content, str) or not content.strip():
        raise HTTPException(status_code=400, detail="conversation_id and message are required")

    try:
        result = await service.reply(conversation_id, content.strip())
    except ConversationClosedError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc

    return {
        "conversation_id": result.conversation_id,
        "reply": result.reply,
        "order_created": result.order_created,
        "order": order_to_dict(result.order) if result.order else None,
        "issues": result.issues,
        "missing": result.missing,
        "degraded": result.degraded,
    }


@app.on_event("startup")
async def configure_app_logging() -> None:
    level = configure_logging(settings.log_level)
    logger.info(
        "Logging configured at %s level for %s environment",
        logging.getLevelName(level),
        settings.environment,
    )
    logger.info("Dialogue: %s", dialogue.describe())


app.add_exception_handler(SessionStoreError, session_store_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)


@app.get("/metrics", tags=["metrics"])
async def metrics_endpoint() -> dict:
    snapshot = metrics.snapshot()
    return {
        "total_turns": snapshot.total_turns,
        "states": snapshot.states,
        "escalations": snapshot.escalations,
        "confirmed_orders": snapshot.confirmed_orders,
        "chat_replies": snapshot.chat_replies,
    }
