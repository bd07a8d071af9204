from datetime import datetime, timedelta, timezone

import mongomock
import pytest
from fastapi.testclient import TestClient

from taskboard.services.tasks import TaskStore

START = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

# --- Canned stored documents ---

LEGACY_TASK_DOC = {
    "title": "  Legacy task ",
    "status": "todo",
    "completed": True,
    "priority": "urgent",
    "createdAt": datetime(2024, 6, 1),
    "updatedAt": datetime(2024, 6, 2),
}

PARTIAL_TASK_DOC = {
    "title": "Imported",
}


class FakeClock:
    """Returns a strictly increasing UTC time, one second per call."""

    def __init__(self, start: datetime = START):
        self.current = start

    def __call__(self) -> datetime:
        value = self.current
        self.current += timedelta(seconds=1)
        return value


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def collection():
    return mongomock.MongoClient().taskboard_test.tasks


@pytest.fixture
def store(collection, clock):
    """TaskStore over an in-memory mongomock collection."""
    return TaskStore(collection, clock=clock)


@pytest.fixture
def api_client():
    """FastAPI TestClient for router tests."""
    from taskboard.main import api
    return TestClient(api)
