# app/events.py
from typing import Callable, Dict, List

from pymongo import monitoring

from app.models.database_model import ConnectionEvent, ConnectionEventInfo
from app.utils.logger import logger


EventCallback = Callable[[ConnectionEventInfo], None]


class ConnectionEvents:
    """Observer registry for connection lifecycle events."""

    def __init__(self):
        self._observers: Dict[ConnectionEvent, List[EventCallback]] = {
            kind: [] for kind in ConnectionEvent
        }

    def on(self, kind: ConnectionEvent, callback: EventCallback) -> EventCallback:
        self._observers[ConnectionEvent(kind)].append(callback)
        return callback

    def off(self, kind: ConnectionEvent, callback: EventCallback) -> None:
        try:
            self._observers[ConnectionEvent(kind)].remove(callback)
        except ValueError:
            pass

    def emit(self, info: ConnectionEventInfo) -> None:
        # Observers are passive; one failing must not stop the others
        for callback in list(self._observers[info.kind]):
            try:
                callback(info)
            except Exception as e:
                logger.error(
                    f"Connection event observer failed on '{info.kind.value}': {e}",
                    exc_info=True,
                )


def log_connected(info: ConnectionEventInfo) -> None:
    logger.info(f"MongoDB connection established ({info.address})")


def log_error(info: ConnectionEventInfo) -> None:
    logger.error(f"MongoDB connection error ({info.address}): {info.message}")


def log_disconnected(info: ConnectionEventInfo) -> None:
    logger.warning(f"MongoDB connection disconnected ({info.address})")


def attach_default_loggers(events: ConnectionEvents) -> None:
    events.on(ConnectionEvent.CONNECTED, log_connected)
    events.on(ConnectionEvent.ERROR, log_error)
    events.on(ConnectionEvent.DISCONNECTED, log_disconnected)


def _format_address(address) -> str:
    if not address:
        return "unknown"
    host, port = address
    return f"{host}:{port}"


class MongoEventListener(monitoring.ServerListener):
    """
    Translates driver server monitoring events into ConnectionEvent kinds.

    The driver calls these methods from its monitor threads.
    """

    def __init__(self, events: ConnectionEvents):
        self.events = events

    def opened(self, event):
        logger.debug(f"Monitoring server {_format_address(event.server_address)}")

    def description_changed(self, event):
        previous = event.previous_description
        new = event.new_description
        address = _format_address(event.server_address)

        if new.error is not None:
            self.events.emit(
                ConnectionEventInfo(
                    kind=ConnectionEvent.ERROR, address=address, message=str(new.error)
                )
            )

        if not previous.is_server_type_known and new.is_server_type_known:
            self.events.emit(
                ConnectionEventInfo(kind=ConnectionEvent.CONNECTED, address=address)
            )
        elif previous.is_server_type_known and not new.is_server_type_known:
            self.events.emit(
                ConnectionEventInfo(kind=ConnectionEvent.DISCONNECTED, address=address)
            )

    def closed(self, event):
        self.events.emit(
            ConnectionEventInfo(
                kind=ConnectionEvent.DISCONNECTED,
                address=_format_address(event.server_address),
            )
        )
