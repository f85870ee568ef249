# app/models/database_model.py
from pydantic import BaseModel, Field
from pymongo import DESCENDING
from typing import List, Optional, Tuple
from enum import Enum


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    CLOSING = "closing"
    CLOSED = "closed"


class ConnectionEvent(str, Enum):
    CONNECTED = "connected"
    ERROR = "error"
    DISCONNECTED = "disconnected"


class ConnectionEventInfo(BaseModel):
    """Payload handed to connection event observers"""

    kind: ConnectionEvent
    address: Optional[str] = None
    message: Optional[str] = None


class IndexSpec(BaseModel):
    """One secondary index to provision on a collection"""

    collection: str
    keys: List[Tuple[str, int]]
    unique: bool = False

    @property
    def name(self) -> str:
        # Same naming rule the server applies when no name is given
        return "_".join(f"{field}_{direction}" for field, direction in self.keys)

    def options(self) -> dict:
        # Only send options that differ from server defaults so a re-run is a no-op
        return {"unique": True} if self.unique else {}

    def describe(self) -> str:
        fields = ", ".join(
            f"{field} {'desc' if direction == DESCENDING else 'asc'}"
            for field, direction in self.keys
        )
        suffix = " (unique)" if self.unique else ""
        return f"{self.collection}({fields}){suffix}"


class IndexResult(BaseModel):
    collection: str
    name: str
    keys: List[Tuple[str, int]]
    ok: bool
    error: Optional[str] = None
    code: Optional[int] = None


class IndexReport(BaseModel):
    """Outcome of one provisioning pass, in the order indexes were attempted"""

    results: List[IndexResult] = Field(default_factory=list)

    @property
    def created(self) -> List[IndexResult]:
        return [r for r in self.results if r.ok]

    @property
    def failed(self) -> List[IndexResult]:
        return [r for r in self.results if not r.ok]

    @property
    def ok(self) -> bool:
        return not self.failed


class DatabaseStatus(BaseModel):
    state: ConnectionState
    host: Optional[str] = None
    database: Optional[str] = None
    indexes_total: int = 0
    indexes_created: int = 0
    indexes_failed: List[IndexResult] = Field(default_factory=list)

    class Config:
        use_enum_values = True
