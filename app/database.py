# app/database.py
import sys
from typing import Callable, Iterable, List, Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from app import indexes
from app.config import Settings, settings as default_settings
from app.events import (
    ConnectionEvents,
    EventCallback,
    MongoEventListener,
    attach_default_loggers,
)
from app.models.database_model import (
    ConnectionEvent,
    ConnectionEventInfo,
    ConnectionState,
    DatabaseStatus,
    IndexReport,
    IndexSpec,
)
from app.utils.logger import logger


class DatabaseNotConnectedError(RuntimeError):
    """Raised when a closed or never-opened connection is used."""


def format_nodes(nodes: Iterable) -> str:
    hosts = sorted(f"{host}:{port}" for host, port in nodes)
    return ",".join(hosts) if hosts else "unknown"


class ConnectionHandle:
    """Open link to one MongoDB database, handed to whatever needs the db."""

    def __init__(
        self, client: AsyncIOMotorClient, database: AsyncIOMotorDatabase, host: str
    ):
        self.client = client
        self.host = host
        self.name = database.name
        self.closed = False
        self.index_report: Optional[IndexReport] = None
        self._database = database

    @property
    def db(self) -> AsyncIOMotorDatabase:
        if self.closed:
            raise DatabaseNotConnectedError(
                f"MongoDB connection to {self.host}/{self.name} is not connected"
            )
        return self._database

    def collection(self, name: str):
        return self.db[name]

    def __repr__(self):
        state = "closed" if self.closed else "open"
        return f"<ConnectionHandle {self.host}/{self.name} {state}>"


class ConnectionManager:
    """
    Owns the MongoDB client for one process (or one test).

    connect() opens the client, checks it with a ping and provisions the
    indexes. A failed initial connection ends the process with status 1.
    close() releases the client; shutdown() closes and exits with status 0.
    Lifecycle events are published through ``events``; logging observers are
    attached by default.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client_factory: Optional[Callable[..., AsyncIOMotorClient]] = None,
        index_specs: Optional[List[IndexSpec]] = None,
    ):
        self.settings = settings or default_settings
        self.client_factory = client_factory or AsyncIOMotorClient
        self.index_specs = index_specs

        self.state = ConnectionState.DISCONNECTED
        self.client: Optional[AsyncIOMotorClient] = None
        self.handle: Optional[ConnectionHandle] = None

        self.events = ConnectionEvents()
        attach_default_loggers(self.events)
        self.events.on(ConnectionEvent.CONNECTED, self._on_connected)
        self.events.on(ConnectionEvent.DISCONNECTED, self._on_disconnected)

    def on(self, kind: ConnectionEvent, callback: EventCallback) -> EventCallback:
        return self.events.on(kind, callback)

    def off(self, kind: ConnectionEvent, callback: EventCallback) -> None:
        self.events.off(kind, callback)

    def _on_connected(self, info: ConnectionEventInfo) -> None:
        if self.state == ConnectionState.DISCONNECTED and self.client is not None:
            self.state = ConnectionState.CONNECTED

    def _on_disconnected(self, info: ConnectionEventInfo) -> None:
        if self.state in (ConnectionState.CONNECTING, ConnectionState.CONNECTED):
            self.state = ConnectionState.DISCONNECTED

    async def connect(self) -> ConnectionHandle:
        """Open the connection, provision indexes and return the handle."""
        if self.handle is not None and not self.handle.closed:
            return self.handle

        self.state = ConnectionState.CONNECTING
        try:
            self.client = self.client_factory(
                self.settings.MONGODB_URI,
                serverSelectionTimeoutMS=self.settings.MONGO_SERVER_SELECTION_TIMEOUT_MS,
                appname=self.settings.APP_NAME,
                event_listeners=[MongoEventListener(self.events)],
            )
            # The client connects lazily; ping forces the handshake
            await self.client.admin.command("ping")
            database = self.client.get_default_database(default=self.settings.MONGO_DB)
        except PyMongoError as e:
            logger.error(f"MongoDB Connection Error: {e}")
            self._release_client()
            self.state = ConnectionState.DISCONNECTED
            sys.exit(1)

        host = format_nodes(self.client.nodes)
        logger.info(f"MongoDB Connected: {host}")
        logger.info(f"Database: {database.name}")

        self.handle = ConnectionHandle(self.client, database, host)
        # The monitor may already have seen the server drop during the ping
        if self.state == ConnectionState.CONNECTING:
            self.state = ConnectionState.CONNECTED

        await self.provision_indexes()
        return self.handle

    async def provision_indexes(self) -> IndexReport:
        if self.handle is None or self.handle.closed:
            raise DatabaseNotConnectedError(
                "Cannot provision indexes without a connection"
            )

        report = await indexes.provision_indexes(self.handle.db, self.index_specs)
        self.handle.index_report = report
        return report

    def _release_client(self) -> None:
        client, self.client = self.client, None
        if client is not None:
            try:
                client.close()
            except PyMongoError as e:
                logger.warning(f"Error while releasing MongoDB client: {e}")

    async def close(self) -> None:
        """Close the open connection. No-op when nothing is open."""
        if self.client is None:
            return

        self.state = ConnectionState.CLOSING
        try:
            if self.handle is not None:
                self.handle.closed = True
            self.client.close()
        finally:
            self.client = None
            self.state = ConnectionState.CLOSED
            logger.info("MongoDB connection closed")

    async def shutdown(self, exit_code: int = 0) -> None:
        """Close the connection and terminate the process."""
        await self.close()
        logger.info("MongoDB connection closed through app termination")
        sys.exit(exit_code)

    def status(self) -> DatabaseStatus:
        report = self.handle.index_report if self.handle else None
        connected = self.handle is not None and not self.handle.closed
        return DatabaseStatus(
            state=self.state,
            host=self.handle.host if connected else None,
            database=self.handle.name if connected else None,
            indexes_total=len(report.results) if report else 0,
            indexes_created=len(report.created) if report else 0,
            indexes_failed=report.failed if report else [],
        )
