"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import threading
from functools import partial

from fastapi import Depends

from megumi.catalog import CatalogService
from megumi.config import get_settings
from megumi.credentials import CredentialService, PasswordHasher
from megumi.store import RecordStore, connect_sql

_record_store: RecordStore | None = None
_record_store_lock = threading.Lock()


def build_record_store() -> RecordStore:
    settings = get_settings()
    if settings.use_in_memory_backends:
        return RecordStore(connector=None)
    return RecordStore(
        connector=partial(
            connect_sql,
            settings.database_url,
            settings.database_connect_timeout,
        )
    )


def get_record_store() -> RecordStore:
    """
    Return a singleton record store so the backend choice is shared by every
    request in the process.
    """
    global _record_store
    if _record_store is not None:
        return _record_store
    with _record_store_lock:
        if _record_store is None:
            _record_store = build_record_store()
        return _record_store


def reset_record_store() -> None:
    """Drop the singleton (tests and shutdown)."""
    global _record_store
    with _record_store_lock:
        if _record_store is not None:
            _record_store.close()
        _record_store = None


def get_credential_service(
    store: RecordStore = Depends(get_record_store),
) -> CredentialService:
    settings = get_settings()
    return CredentialService(
        store, PasswordHasher(iterations=settings.password_iterations)
    )


def get_catalog_service(
    store: RecordStore = Depends(get_record_store),
) -> CatalogService:
    return CatalogService(store)
