"""Pytest unit test fixtures."""

import pytest

from callorder.catalog import StaticCatalogProvider
from callorder.core.metrics import MetricsCollector
from callorder.dialogue.machine import OrderDialogue
from callorder.engine import OrderCaptureEngine
from callorder.memory.store import SQLiteTranscriptStore
from callorder.nlu import EntityExtractor
from callorder.sessions.store import SQLiteSessionStore


@pytest.fixture(scope="session")
def catalog():
    return StaticCatalogProvider().load()


@pytest.fixture()
def extractor(catalog):
    return EntityExtractor(catalog)


@pytest.fixture()
def dialogue(catalog):
    return OrderDialogue(catalog)


@pytest.fixture()
def session_store(tmp_path):
    return SQLiteSessionStore(tmp_path / "orders.db")


@pytest.fixture()
def transcript_store(tmp_path):
    return SQLiteTranscriptStore(tmp_path / "orders.db")


@pytest.fixture()
def metrics():
    return MetricsCollector()


@pytest.fixture()
def engine(dialogue, session_store, transcript_store, metrics):
    return OrderCaptureEngine(
        dialogue,
        session_store,
        transcript_store=transcript_store,
        metrics=metrics,
    )
