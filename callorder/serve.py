"""Launch script starting Uvicorn with the order line application."""

from __future__ import annotations

import logging
import os

import uvicorn

logger = logging.getLogger("callorder.launcher")


def main() -> None:
    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", "8000"))
    logger.debug("Starting order line on %s:%d", host, port)
    uvicorn.run("callorder.main:app", host=host, port=port)


if __name__ == "__main__":
    main()
