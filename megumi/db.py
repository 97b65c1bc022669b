"""
Record storage for users and products.

Two interchangeable backends implement the same repository protocols: an
in-memory one (per-process, lost on restart) and a SQLAlchemy one (Postgres
in production, SQLite in tests).
"""

from __future__ import annotations

import math
import threading
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Dict, Iterator, Optional, Protocol

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    Integer,
    String,
    Uuid,
    create_engine,
    select,
    text,
)
from sqlalchemy.engine import make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from megumi.errors import DuplicateEmail, StorageFailure
from megumi.ids import DurableIdScheme, IdScheme, TransientIdScheme

# Fields a catalog update is allowed to touch.
MUTABLE_PRODUCT_FIELDS = ("name", "category", "price", "description", "image_url")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class UserRecord:
    email: str
    password_hash: str
    salt: str
    iteration_count: int
    id: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class ProductRecord:
    name: str
    category: str
    price: Optional[float] = None
    description: str = ""
    image_url: str = ""
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "price": self.price,
            "description": self.description,
            "imageUrl": self.image_url,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


class UserStore(Protocol):
    """Interface for user credential records."""

    def find_by_email(self, email: str) -> Optional[UserRecord]:
        ...

    def insert(self, user: UserRecord) -> UserRecord:
        ...


class ProductStore(Protocol):
    """Interface for catalog records."""

    def find(self, category: Optional[str] = None) -> list[ProductRecord]:
        ...

    def get(self, product_id: str) -> Optional[ProductRecord]:
        ...

    def insert(self, product: ProductRecord) -> ProductRecord:
        ...

    def update(self, product_id: str, fields: dict) -> Optional[ProductRecord]:
        ...

    def delete(self, product_id: str) -> bool:
        ...


def _mutable_fields(fields: dict) -> dict:
    return {k: v for k, v in fields.items() if k in MUTABLE_PRODUCT_FIELDS}


class InMemoryUserStore:
    """Users keyed by email in a process-local dict."""

    def __init__(self, lock: Optional[threading.RLock] = None):
        self._lock = lock or threading.RLock()
        self.ids: IdScheme = TransientIdScheme()
        self.users: Dict[str, UserRecord] = {}

    def find_by_email(self, email: str) -> Optional[UserRecord]:
        with self._lock:
            user = self.users.get(email)
            return replace(user) if user else None

    def insert(self, user: UserRecord) -> UserRecord:
        with self._lock:
            if user.email in self.users:
                raise DuplicateEmail()
            stored = replace(
                user,
                id=str(self.ids.new_id()),
                created_at=user.created_at or utcnow(),
            )
            self.users[stored.email] = stored
            return replace(stored)

    def reset(self) -> None:
        with self._lock:
            self.users.clear()


class InMemoryProductStore:
    """Products keyed by generated token, kept in insertion order."""

    def __init__(self, lock: Optional[threading.RLock] = None):
        self._lock = lock or threading.RLock()
        self.ids: IdScheme = TransientIdScheme()
        self.products: Dict[str, ProductRecord] = {}

    def find(self, category: Optional[str] = None) -> list[ProductRecord]:
        with self._lock:
            items = [
                replace(p)
                for p in self.products.values()
                if category is None or p.category == category
            ]
        # Newest insert wins ties: reverse first, then a stable descending sort.
        items.reverse()
        return sorted(items, key=lambda p: p.created_at, reverse=True)

    def get(self, product_id: str) -> Optional[ProductRecord]:
        key = str(self.ids.parse_id(product_id))
        with self._lock:
            product = self.products.get(key)
            return replace(product) if product else None

    def insert(self, product: ProductRecord) -> ProductRecord:
        with self._lock:
            stored = replace(
                product,
                id=str(self.ids.new_id()),
                created_at=product.created_at or utcnow(),
                updated_at=None,
            )
            self.products[stored.id] = stored
            return replace(stored)

    def update(self, product_id: str, fields: dict) -> Optional[ProductRecord]:
        key = str(self.ids.parse_id(product_id))
        with self._lock:
            existing = self.products.get(key)
            if existing is None:
                return None
            updated = replace(existing, **_mutable_fields(fields), updated_at=utcnow())
            self.products[key] = updated
            return replace(updated)

    def delete(self, product_id: str) -> bool:
        key = str(self.ids.parse_id(product_id))
        with self._lock:
            return self.products.pop(key, None) is not None

    def reset(self) -> None:
        with self._lock:
            self.products.clear()


class InMemoryDbClient:
    """Transient backend: both tables behind one lock."""

    def __init__(self):
        self._lock = threading.RLock()
        self.ids: IdScheme = TransientIdScheme()
        self.users = InMemoryUserStore(self._lock)
        self.products = InMemoryProductStore(self._lock)

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        with self._lock:
            self.users.reset()
            self.products.reset()

    def dispose(self) -> None:
        return None


Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True)
    email = Column(String, nullable=False, unique=True, index=True)
    password_hash = Column(String, nullable=False)
    salt = Column(String, nullable=False)
    iteration_count = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)


class ProductRow(Base):
    __tablename__ = "products"

    id = Column(Uuid, primary_key=True)
    name = Column(String, nullable=False)
    category = Column(String, nullable=False, index=True)
    price = Column(Float, nullable=True)
    description = Column(String, nullable=False, default="")
    image_url = Column(String, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=True)


@contextmanager
def _storage_errors(action: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        raise StorageFailure(f"Unable to {action}.") from exc


def _to_user_record(row: UserRow) -> UserRecord:
    return UserRecord(
        id=str(row.id),
        email=row.email,
        password_hash=row.password_hash,
        salt=row.salt,
        iteration_count=row.iteration_count,
        created_at=_aware(row.created_at),
    )


def _to_product_record(row: ProductRow) -> ProductRecord:
    return ProductRecord(
        id=str(row.id),
        name=row.name,
        category=row.category,
        price=row.price,
        description=row.description or "",
        image_url=row.image_url or "",
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
    )


class SqlUserStore:
    def __init__(self, session_factory: sessionmaker, ids: IdScheme):
        self.Session = session_factory
        self.ids = ids

    def find_by_email(self, email: str) -> Optional[UserRecord]:
        with _storage_errors("load user"), self.Session() as session:
            row = session.execute(
                select(UserRow).where(UserRow.email == email)
            ).scalar_one_or_none()
            return _to_user_record(row) if row else None

    def insert(self, user: UserRecord) -> UserRecord:
        with _storage_errors("save user"), self.Session() as session:
            row = UserRow(
                id=self.ids.new_id().value,
                email=user.email,
                password_hash=user.password_hash,
                salt=user.salt,
                iteration_count=user.iteration_count,
                created_at=user.created_at or utcnow(),
            )
            session.add(row)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise DuplicateEmail() from exc
            session.refresh(row)
            return _to_user_record(row)


class SqlProductStore:
    def __init__(self, session_factory: sessionmaker, ids: IdScheme):
        self.Session = session_factory
        self.ids = ids

    def find(self, category: Optional[str] = None) -> list[ProductRecord]:
        stmt = select(ProductRow).order_by(ProductRow.created_at.desc())
        if category is not None:
            stmt = stmt.where(ProductRow.category == category)
        with _storage_errors("load products"), self.Session() as session:
            rows = session.execute(stmt).scalars().all()
            return [_to_product_record(row) for row in rows]

    def get(self, product_id: str) -> Optional[ProductRecord]:
        key = self.ids.parse_id(product_id).value
        with _storage_errors("load product"), self.Session() as session:
            row = session.get(ProductRow, key)
            return _to_product_record(row) if row else None

    def insert(self, product: ProductRecord) -> ProductRecord:
        with _storage_errors("save product"), self.Session() as session:
            row = ProductRow(
                id=self.ids.new_id().value,
                name=product.name,
                category=product.category,
                price=product.price,
                description=product.description,
                image_url=product.image_url,
                created_at=product.created_at or utcnow(),
                updated_at=None,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return _to_product_record(row)

    def update(self, product_id: str, fields: dict) -> Optional[ProductRecord]:
        key = self.ids.parse_id(product_id).value
        with _storage_errors("update product"), self.Session() as session:
            row = session.get(ProductRow, key)
            if not row:
                return None
            for name, value in _mutable_fields(fields).items():
                setattr(row, name, value)
            row.updated_at = utcnow()
            session.commit()
            session.refresh(row)
            return _to_product_record(row)

    def delete(self, product_id: str) -> bool:
        key = self.ids.parse_id(product_id).value
        with _storage_errors("delete product"), self.Session() as session:
            row = session.get(ProductRow, key)
            if not row:
                return False
            session.delete(row)
            session.commit()
            return True


def _connect_args(database_url: str, timeout: float) -> dict:
    backend = make_url(database_url).get_backend_name()
    if backend == "sqlite":
        return {"timeout": timeout}
    if backend in ("postgresql", "mysql", "mariadb"):
        # libpq only accepts whole seconds.
        return {"connect_timeout": max(1, math.ceil(timeout))}
    return {}


class SqlDbClient:
    """
    SQLAlchemy-backed durable backend. Accepts any SQLAlchemy URL (Postgres in
    production, SQLite for tests).
    """

    def __init__(self, database_url: str, connect_timeout: float = 5.0):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
            connect_args=_connect_args(database_url, connect_timeout),
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        self.ids: IdScheme = DurableIdScheme()
        self.users = SqlUserStore(self.Session, self.ids)
        self.products = SqlProductStore(self.Session, self.ids)

    def provision(self) -> None:
        """Create tables and indexes, then make sure the server answers."""
        Base.metadata.create_all(self.engine)
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    def dispose(self) -> None:
        self.engine.dispose()
