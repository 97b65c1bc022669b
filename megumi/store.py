"""
Backend selection for the record store.

The durable backend is attempted once per process. On failure the process
commits to the in-memory backend for its lifetime, so records never split
between two stores.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Union

from sqlalchemy.exc import SQLAlchemyError

from megumi.db import InMemoryDbClient, ProductStore, SqlDbClient, UserStore
from megumi.ids import IdScheme

logger = logging.getLogger(__name__)

DbClient = Union[SqlDbClient, InMemoryDbClient]


class BackendKind(str, Enum):
    DURABLE = "durable"
    TRANSIENT = "transient"


class StoreState(str, Enum):
    UNRESOLVED = "unresolved"
    DURABLE = "durable"
    TRANSIENT = "transient"


@dataclass(frozen=True)
class Backend:
    kind: BackendKind
    client: DbClient
    reason: Optional[str] = None

    @property
    def users(self) -> UserStore:
        return self.client.users

    @property
    def products(self) -> ProductStore:
        return self.client.products

    @property
    def ids(self) -> IdScheme:
        return self.client.ids


@dataclass(frozen=True)
class ConnectResult:
    """Outcome of a single durable connection attempt."""

    backend: Optional[Backend] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.backend is not None


Connector = Callable[[], ConnectResult]


def transient_backend(reason: Optional[str] = None) -> Backend:
    return Backend(BackendKind.TRANSIENT, InMemoryDbClient(), reason)


def connect_sql(database_url: str, connect_timeout: float = 5.0) -> ConnectResult:
    """Try to open the durable database and provision its tables."""
    client = None
    try:
        client = SqlDbClient(database_url, connect_timeout=connect_timeout)
        client.provision()
    except (SQLAlchemyError, OSError, ImportError, ValueError) as exc:
        if client is not None:
            client.dispose()
        return ConnectResult(error=f"{type(exc).__name__}: {exc}")
    return ConnectResult(backend=Backend(BackendKind.DURABLE, client))


def resolve_backend(
    connector: Optional[Connector],
    fallback: Callable[[Optional[str]], Backend] = transient_backend,
) -> Backend:
    """
    Run the durable connector once and pick the live backend.

    A missing connector means the durable backend is disabled by
    configuration and the transient backend is used directly.
    """
    if connector is None:
        logger.info("Durable backend disabled; using in-memory store")
        return fallback("disabled by configuration")

    try:
        result = connector()
    except Exception as exc:
        result = ConnectResult(error=f"{type(exc).__name__}: {exc}")
    if result.ok:
        logger.info("Connected to durable backend")
        return result.backend

    logger.warning(
        "Durable backend unavailable, switching to in-memory store: %s",
        result.error,
    )
    return fallback(result.error)


class RecordStore:
    """
    Lazily resolved, process-wide handle on the active backend.

    The first caller of ``connect`` performs resolution under a lock; callers
    that arrive meanwhile wait and then share the same result.
    """

    def __init__(
        self,
        connector: Optional[Connector],
        fallback: Callable[[Optional[str]], Backend] = transient_backend,
    ):
        self._connector = connector
        self._fallback = fallback
        self._lock = threading.Lock()
        self._backend: Optional[Backend] = None

    @property
    def state(self) -> StoreState:
        backend = self._backend
        if backend is None:
            return StoreState.UNRESOLVED
        return StoreState(backend.kind.value)

    def connect(self) -> Backend:
        backend = self._backend
        if backend is not None:
            return backend
        with self._lock:
            if self._backend is None:
                self._backend = resolve_backend(self._connector, self._fallback)
            return self._backend

    @property
    def users(self) -> UserStore:
        return self.connect().users

    @property
    def products(self) -> ProductStore:
        return self.connect().products

    def close(self) -> None:
        with self._lock:
            if self._backend is not None:
                self._backend.client.dispose()
