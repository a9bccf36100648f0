"""Domain exceptions and exception handling utilities."""

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger("callorder.errors")


class CatalogError(Exception):
    """Raised when catalog data cannot be loaded or is malformed."""


class SessionStoreError(Exception):
    """Raised when the session store cannot be read or written."""


class SessionConflictError(SessionStoreError):
    """Raised when a session was modified by another turn since it was loaded."""

    def __init__(self, call_id: str, expected_version: int) -> None:
        super().__init__(f"Session {call_id} changed since version {expected_version}")
        self.call_id = call_id
        self.expected_version = expected_version


class ResponderError(Exception):
    """Raised when the language-model responder fails or times out."""


async def session_store_exception_handler(request: Request, exc: SessionStoreError) -> JSONResponse:
    """Report session persistence failures as a retryable 503."""

    logger.error("Session store failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=503,
        content={
            "error": "session_store_unavailable",
            "message": "The order could not be saved. Please retry the turn.",
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:  # noqa: D401
    """Return a generic JSON error response while logging the exception."""

    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_error",
            "message": "Something unexpected happened. Please try again later.",
        },
    )


class ConversationClosedError(Exception):
    """Raised when a chat message arrives for an already completed conversation."""

    def __init__(self, conversation_id: str) -> None:
        super().__init__(f"Conversation {conversation_id} is already completed")
        self.conversation_id = conversation_id
