import pytest
from fastapi.testclient import TestClient
from pymongo.errors import OperationFailure, ServerSelectionTimeoutError

import app.main as main
from app.database import ConnectionManager
from app.main import create_app, serve
from app.models.database_model import ConnectionState

from conftest import FakeClientFactory


@pytest.fixture
def unreachable_manager(test_settings):
    factory = FakeClientFactory(
        ping_error=ServerSelectionTimeoutError("127.0.0.1:1: [Errno 111] Connection refused")
    )
    return ConnectionManager(test_settings, client_factory=factory)


def test_lifespan_connects_and_closes(manager, client_factory):
    app = create_app(manager)

    with TestClient(app) as client:
        assert app.state.db.name == "classroom"
        res = client.get("/")
        assert res.status_code == 200
        assert "Running" in res.json()["message"]

    assert manager.state == ConnectionState.CLOSED
    assert client_factory.last.closed


@pytest.mark.asyncio
async def test_lifespan_startup_exits_1_when_server_unreachable(unreachable_manager):
    app = create_app(unreachable_manager)

    with pytest.raises(SystemExit) as exc:
        async with app.router.lifespan_context(app):
            pass

    assert exc.value.code == 1
    assert unreachable_manager.handle is None


def test_serve_exits_1_when_startup_fails(unreachable_manager):
    with pytest.raises(SystemExit) as exc:
        serve(create_app(unreachable_manager), host="127.0.0.1", port=0)

    assert exc.value.code == 1


def test_serve_returns_after_clean_run(monkeypatch, manager):
    runs = []

    class FakeServer:
        def __init__(self, config):
            self.config = config
            self.started = False

        def run(self):
            runs.append((self.config.host, self.config.port))
            self.started = True

    monkeypatch.setattr(main.uvicorn, "Server", FakeServer)

    serve(create_app(manager), host="127.0.0.1", port=8123)

    assert runs == [("127.0.0.1", 8123)]


def test_health_reports_index_failures(test_settings):
    factory = FakeClientFactory(
        fail_on={("payments", (("paymentId", 1),)): OperationFailure("E11000", code=11000)}
    )
    manager = ConnectionManager(test_settings, client_factory=factory)

    with TestClient(create_app(manager)) as client:
        res = client.get("/health/db")

    assert res.status_code == 200
    body = res.json()
    assert body["state"] == "connected"
    assert body["host"] == "localhost:27017"
    assert body["database"] == "classroom"
    assert body["indexes_total"] == 22
    assert body["indexes_created"] == 21
    assert body["indexes_failed"][0]["name"] == "paymentId_1"
    assert body["indexes_failed"][0]["code"] == 11000


def test_health_unavailable_without_connection(manager):
    # No lifespan: the manager never connects
    client = TestClient(create_app(manager))

    res = client.get("/health/db")

    assert res.status_code == 503
    assert res.json()["state"] == "disconnected"
