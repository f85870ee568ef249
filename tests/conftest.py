import os
import tempfile

os.environ.setdefault("MONGODB_URI", "mongodb://localhost:27017/classroom")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="classroom-logs-"))

import pytest

from app.config import Settings
from app.database import ConnectionManager


class FakeCollection:
    def __init__(self, name, database):
        self.name = name
        self.database = database

    async def create_index(self, keys, **kwargs):
        keys = list(keys)
        self.database.calls.append((self.name, keys, kwargs))
        error = self.database.fail_on.get((self.name, tuple(keys)))
        if error is not None:
            raise error
        name = "_".join(f"{field}_{direction}" for field, direction in keys)
        self.database.indexes.setdefault(self.name, set()).add(name)
        return name


class FakeDatabase:
    def __init__(self, name, fail_on=None):
        self.name = name
        self.fail_on = fail_on or {}
        self.calls = []
        self.indexes = {}

    def __getitem__(self, name):
        return FakeCollection(name, self)


class FakeAdmin:
    def __init__(self, client):
        self.client = client

    async def command(self, name):
        self.client.commands.append(name)
        if self.client.on_ping is not None:
            self.client.on_ping(self.client)
        if self.client.ping_error is not None:
            raise self.client.ping_error
        return {"ok": 1.0}


class FakeClient:
    def __init__(self, uri, ping_error=None, fail_on=None, on_ping=None, **kwargs):
        self.uri = uri
        self.on_ping = on_ping
        self.kwargs = kwargs
        self.ping_error = ping_error
        self.fail_on = fail_on
        self.commands = []
        self.closed = False
        self.admin = FakeAdmin(self)
        self.nodes = frozenset({("localhost", 27017)})
        self.database = None

    def get_default_database(self, default=None):
        path = self.uri.split("://", 1)[1].split("/", 1)
        name = path[1].split("?", 1)[0] if len(path) > 1 else ""
        self.database = FakeDatabase(name or default, fail_on=self.fail_on)
        return self.database

    def close(self):
        self.closed = True


class FakeClientFactory:
    """Stands in for AsyncIOMotorClient and remembers every client it built."""

    def __init__(self, ping_error=None, fail_on=None, on_ping=None):
        self.ping_error = ping_error
        self.on_ping = on_ping
        self.fail_on = fail_on
        self.clients = []

    def __call__(self, uri, **kwargs):
        client = FakeClient(
            uri,
            ping_error=self.ping_error,
            fail_on=self.fail_on,
            on_ping=self.on_ping,
            **kwargs,
        )
        self.clients.append(client)
        return client

    @property
    def last(self):
        return self.clients[-1]


@pytest.fixture
def test_settings():
    return Settings(MONGODB_URI="mongodb://localhost:27017/classroom")


@pytest.fixture
def client_factory():
    return FakeClientFactory()


@pytest.fixture
def manager(test_settings, client_factory):
    return ConnectionManager(test_settings, client_factory=client_factory)
