"""
Pytest fixtures for the back office tests.

The data layer runs against an in-memory SQLite database that offers the
same query surface as ``Database`` (fetch_all / fetch_one / execute / ping).
"""

import os
import tempfile
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Sequence

os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="backoffice-public-"))
os.environ.setdefault("RESEND_API_KEY", "re_test")

import aiosqlite
import pytest

from backoffice.core.security import hash_password
from backoffice.database.connection import ExecuteResult
from backoffice.domain.entities import UserRole
from backoffice.repositories import (
    PlanogramRepository,
    StoreRepository,
    SubmissionRepository,
    UploadRepository,
    UserRepository,
)
from backoffice.services.email import EmailService
from backoffice.services.storage import LocalStorageBackend, StorageService

SCHEMA = """
CREATE TABLE users (
    id TEXT PRIMARY KEY,
    email TEXT NOT NULL UNIQUE,
    password TEXT,
    first_name TEXT,
    last_name TEXT,
    google_id TEXT,
    profile_picture TEXT,
    is_confirmed INTEGER DEFAULT 0,
    last_password_reset_at TEXT,
    last_email_confirmation_at TEXT,
    lang TEXT DEFAULT 'en',
    theme TEXT DEFAULT 'light',
    role TEXT DEFAULT 'USER',
    created_by_id TEXT,
    updated_by_id TEXT,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE stores (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    address TEXT,
    image_src TEXT,
    created_by_id TEXT,
    updated_by_id TEXT,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE planograms (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    description TEXT NOT NULL,
    image_src TEXT,
    store_id TEXT NOT NULL REFERENCES stores(id) ON DELETE CASCADE,
    created_by_id TEXT,
    updated_by_id TEXT,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE submissions (
    id TEXT PRIMARY KEY,
    uploaded_at TEXT DEFAULT CURRENT_TIMESTAMP,
    uploaded_by_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    store_id TEXT NOT NULL REFERENCES stores(id) ON DELETE CASCADE,
    planogram_id TEXT NOT NULL REFERENCES planograms(id) ON DELETE CASCADE,
    upload_ids TEXT,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE uploads (
    id TEXT PRIMARY KEY,
    filename TEXT NOT NULL,
    filesize TEXT NOT NULL,
    file_type TEXT NOT NULL,
    uploaded_at TEXT DEFAULT CURRENT_TIMESTAMP,
    uploaded_by_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    store_id TEXT NOT NULL REFERENCES stores(id) ON DELETE CASCADE,
    planogram_id TEXT NOT NULL REFERENCES planograms(id) ON DELETE CASCADE,
    submission_id TEXT REFERENCES submissions(id) ON DELETE CASCADE,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE tags (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    label TEXT NOT NULL
);
"""


class SQLiteDatabase:
    """In-memory stand-in for ``Database`` with MySQL-style ``%s`` placeholders."""

    def __init__(self, conn: aiosqlite.Connection):
        self.conn = conn
        self.statements: list[str] = []

    @staticmethod
    def _bind(params: Optional[Sequence[Any]]) -> tuple:
        values = []
        for value in params or ():
            if isinstance(value, datetime):
                value = value.isoformat()
            elif isinstance(value, Enum):
                value = value.value
            values.append(value)
        return tuple(values)

    def _sql(self, sql: str) -> str:
        self.statements.append(sql)
        return sql.replace("%s", "?")

    async def fetch_all(self, sql: str, params: Optional[Sequence[Any]] = None) -> list[dict]:
        async with self.conn.execute(self._sql(sql), self._bind(params)) as cursor:
            rows = await cursor.fetchall()
        return [dict(row) for row in rows]

    async def fetch_one(self, sql: str, params: Optional[Sequence[Any]] = None) -> Optional[dict]:
        rows = await self.fetch_all(sql, params)
        return rows[0] if rows else None

    async def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> ExecuteResult:
        cursor = await self.conn.execute(self._sql(sql), self._bind(params))
        await self.conn.commit()
        return ExecuteResult(rowcount=cursor.rowcount, lastrowid=cursor.lastrowid)

    async def ping(self) -> bool:
        await self.fetch_one("SELECT 1")
        return True

    async def close(self) -> None:
        await self.conn.close()


class RecordingEmailService(EmailService):
    """Renders emails like the real service but keeps them instead of sending."""

    def __init__(self):
        super().__init__()
        self.sent: list[dict] = []

    def _send(self, to: str, subject: str, html_content: str) -> bool:
        self.sent.append({"to": to, "subject": subject, "html": html_content})
        return True


@pytest.fixture
async def bare_db():
    """An empty SQLite database, for migration tests."""
    conn = await aiosqlite.connect(":memory:")
    conn.row_factory = aiosqlite.Row
    db = SQLiteDatabase(conn)
    yield db
    await db.close()


@pytest.fixture
async def db():
    """A SQLite database with the application schema."""
    conn = await aiosqlite.connect(":memory:")
    conn.row_factory = aiosqlite.Row
    await conn.execute("PRAGMA foreign_keys = ON")
    await conn.executescript(SCHEMA)
    await conn.commit()
    database = SQLiteDatabase(conn)
    yield database
    await database.close()


@pytest.fixture
def storage(tmp_path):
    return StorageService(LocalStorageBackend(tmp_path / "public"))


@pytest.fixture
def email():
    return RecordingEmailService()


@pytest.fixture
def users_repo(db):
    return UserRepository(db)


@pytest.fixture
def stores_repo(db):
    return StoreRepository(db)


@pytest.fixture
def planograms_repo(db):
    return PlanogramRepository(db)


@pytest.fixture
def submissions_repo(db):
    return SubmissionRepository(db)


@pytest.fixture
def uploads_repo(db):
    return UploadRepository(db)


@pytest.fixture
def make_user(users_repo):
    """Factory inserting a user with a known password."""
    counter = {"n": 0}

    async def _make_user(role: UserRole = UserRole.USER, password: str = "password123", **fields):
        counter["n"] += 1
        n = counter["n"]
        data = {
            "id": f"user-{n}",
            "email": f"user{n}@example.com",
            "password_hash": hash_password(password) if password else None,
            "first_name": f"First{n}",
            "last_name": f"Last{n}",
            "role": role,
        }
        data.update(fields)
        return await users_repo.create(data)

    return _make_user


@pytest.fixture
async def store(stores_repo):
    return await stores_repo.create({"id": "store-1", "name": "Downtown", "address": "1 Main Street"})


@pytest.fixture
async def planogram(planograms_repo, store):
    return await planograms_repo.create({
        "id": "planogram-1",
        "name": "Cereal aisle",
        "description": "Top shelf layout",
        "store_id": store.id,
    })
