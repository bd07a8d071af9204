import time
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock

import mongomock
import pytest
from fastapi.testclient import TestClient

from taskboard.config import Settings, require_mongo_settings
from taskboard.exceptions import ConfigurationError
from taskboard.services import tasks as tasks_service


@pytest.fixture
def settings(mocker):
    settings = Settings(
        _env_file=None,
        mongodb_uri="mongodb://localhost:27017",
        mongodb_database="taskboard_test",
    )
    mocker.patch("taskboard.services.tasks.get_settings", return_value=settings)
    mocker.patch("taskboard.main.get_settings", return_value=settings)
    return settings


@pytest.fixture(autouse=True)
def reset_default_store():
    tasks_service.close_task_store()
    yield
    tasks_service.close_task_store()


class TestRequireMongoSettings:
    def test_both_missing(self):
        with pytest.raises(ConfigurationError, match="env vars: MONGODB_URI, MONGODB_DATABASE"):
            require_mongo_settings(Settings(_env_file=None, mongodb_uri="", mongodb_database=""))

    def test_one_missing(self):
        with pytest.raises(ConfigurationError, match="env var: MONGODB_DATABASE"):
            require_mongo_settings(Settings(_env_file=None, mongodb_uri="mongodb://x", mongodb_database=""))

    def test_complete(self):
        require_mongo_settings(Settings(_env_file=None, mongodb_uri="mongodb://x", mongodb_database="db"))


class TestDefaultStore:
    def test_missing_config_is_fatal(self, mocker):
        mocker.patch(
            "taskboard.services.tasks.get_settings",
            return_value=Settings(_env_file=None, mongodb_uri="", mongodb_database=""),
        )
        with pytest.raises(ConfigurationError):
            tasks_service.get_task_store()

    def test_created_once_and_reused(self, settings, mocker):
        client_cls = mocker.patch("taskboard.services.tasks.MongoClient", wraps=mongomock.MongoClient)
        first = tasks_service.get_task_store()
        second = tasks_service.get_task_store()
        assert first is second
        client_cls.assert_called_once()
        assert first.collection.name == "tasks"

    def test_concurrent_first_use_builds_one_client(self, settings, mocker):
        def slow_client(*args, **kwargs):
            time.sleep(0.05)
            return MagicMock()

        client_cls = mocker.patch("taskboard.services.tasks.MongoClient", side_effect=slow_client)
        with ThreadPoolExecutor(max_workers=8) as pool:
            stores = list(pool.map(lambda _: tasks_service.get_task_store(), range(8)))
        assert all(s is stores[0] for s in stores)
        client_cls.assert_called_once()

    def test_close_releases_client(self, settings, mocker):
        client = MagicMock()
        mocker.patch("taskboard.services.tasks.MongoClient", return_value=client)
        tasks_service.get_task_store()
        tasks_service.close_task_store()
        client.close.assert_called_once()

    def test_module_functions_use_default_store(self, settings, mocker):
        mocker.patch("taskboard.services.tasks.MongoClient", wraps=mongomock.MongoClient)
        created = tasks_service.create_task("Through the module", priority="Low")
        tasks_service.update_task(created.id, completed=True)
        listed = tasks_service.list_tasks()
        assert [t.id for t in listed] == [created.id]
        assert listed[0].completed is True
        tasks_service.delete_task(created.id)
        assert tasks_service.list_tasks() == []


class TestStatusEndpoint:
    def test_unconfigured(self, api_client, mocker):
        mocker.patch(
            "taskboard.main.get_task_store",
            side_effect=ConfigurationError("Missing MongoDB env vars: MONGODB_URI, MONGODB_DATABASE"),
        )
        resp = api_client.get("/api/status")
        assert resp.status_code == 200
        assert resp.json()["store"] == {"configured": False, "reachable": False, "database": None}

    def test_reachable(self, api_client, settings, mocker):
        store = MagicMock()
        store.ping.return_value = True
        mocker.patch("taskboard.main.get_task_store", return_value=store)
        resp = api_client.get("/api/status")
        assert resp.json()["store"] == {"configured": True, "reachable": True, "database": "taskboard_test"}


class TestAllowedHosts:
    def test_unknown_host_rejected(self, settings):
        from taskboard.main import app
        resp = TestClient(app).get("/api/tasks")
        assert resp.status_code == 403
        assert resp.json() == {"error": "Access denied."}

    def test_allowed_host_passes(self, settings, mocker):
        settings.allowed_hosts = ["testclient"]
        mocker.patch("taskboard.routers.tasks.tasks_service").list_tasks.return_value = []
        from taskboard.main import app
        resp = TestClient(app).get("/api/tasks")
        assert resp.status_code == 200
        assert resp.json() == {"tasks": []}


class TestUnexpectedErrors:
    def test_returns_json_500(self, mocker):
        mocker.patch("taskboard.routers.tasks.tasks_service").list_tasks.side_effect = RuntimeError("boom")
        from taskboard.main import api
        resp = TestClient(api, raise_server_exceptions=False).get("/api/tasks")
        assert resp.status_code == 500
        assert resp.json() == {"error": "Internal server error."}
