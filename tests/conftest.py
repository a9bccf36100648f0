from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path

import pytest

# The application wires its stores at import time, so the database location
# has to be fixed before any test module imports it.
_TEST_DB_DIR = Path(tempfile.mkdtemp(prefix="callorder-tests-"))
os.environ["SQLITE_PATH"] = str(_TEST_DB_DIR / "orders.db")
os.environ.pop("OPENROUTER_API_KEY", None)
os.environ.pop("CATALOG_PATH", None)
os.environ.pop("TENANT_NUMBERS", None)


@pytest.fixture(scope="session")
def fixtures_dir() -> Path:
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def takeaway_call(fixtures_dir: Path) -> dict:
    return json.loads((fixtures_dir / "takeaway_call.json").read_text(encoding="utf-8"))


@pytest.fixture
def delivery_call(fixtures_dir: Path) -> dict:
    return json.loads((fixtures_dir / "delivery_call.json").read_text(encoding="utf-8"))


@pytest.fixture
def catalog_document(fixtures_dir: Path) -> dict:
    return json.loads((fixtures_dir / "catalog.json").read_text(encoding="utf-8"))
