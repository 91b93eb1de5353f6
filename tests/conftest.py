"""Pytest configuration and fixtures."""
import asyncio

import pytest
from jose import jwt

from schema_canvas.auth import SessionContext
from schema_canvas.config import get_settings
from schema_canvas.errors import NetworkError, NotFound, ParseError
from schema_canvas.schema_model import DatabaseSchema, Table
from schema_canvas.store import SchemaRecord

TEST_SECRET = "test-secret"


class ManualTimer:
    def __init__(self, due, callback):
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Scheduler whose clock only moves when a test calls advance()."""

    def __init__(self):
        self.now = 0.0
        self.timers = []

    def call_later(self, delay, callback):
        timer = ManualTimer(self.now + delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def active(self):
        return [t for t in self.timers if not t.cancelled]

    def advance(self, seconds):
        self.now += seconds
        due = sorted(
            (t for t in self.timers if not t.cancelled and t.due <= self.now),
            key=lambda t: t.due,
        )
        self.timers = [t for t in self.timers if not t.cancelled and t not in due]
        for timer in due:
            timer.callback()


class FakeStore:
    """In-memory SchemaStore that records every call."""

    def __init__(self):
        self.saves = []
        self.records = {}
        self.fail_next = 0
        self.gate = None  # asyncio.Event holding saves in flight when set
        self.next_id = 100

    async def load_schema(self, schema_id=None, share_token=None):
        key = schema_id if schema_id is not None else share_token
        if key not in self.records:
            raise NotFound("schema not found")
        return self.records[key]

    async def save_schema(self, identity, schema, name, share_token=None):
        self.saves.append((identity, schema, name, share_token))
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_next:
            self.fail_next -= 1
            raise NetworkError("connection reset")
        if identity is None:
            identity = self.next_id
            self.next_id += 1
        record = SchemaRecord(identity=identity, name=name, data=schema)
        self.records[identity] = record
        return record

    async def export_schema(self, schema, fmt):
        return f"-- {fmt}\n" + "\n".join(f"CREATE TABLE {name} ();" for name in schema.get_table_names())

    async def import_schema(self, text, fmt):
        if "CREATE TABLE" not in text.upper():
            raise ParseError("no CREATE TABLE statement found")
        return DatabaseSchema(tables=[Table(name="imported")])


def run(coro):
    return asyncio.run(coro)


def make_token(user_id=7, secret=TEST_SECRET):
    return jwt.encode({"user_id": user_id}, secret, algorithm="HS256")


@pytest.fixture
def sample_schema():
    """The users/posts schema: one foreign key posts.user_id -> users.id."""
    return DatabaseSchema.model_validate({
        "tables": [
            {"name": "users", "columns": [{"name": "id", "type": "INTEGER", "primaryKey": True}]},
            {
                "name": "posts",
                "columns": [{"name": "user_id", "type": "INTEGER"}],
                "foreignKeys": [{
                    "column": "user_id",
                    "references": {"table": "users", "column": "id"},
                    "relationType": "1:n",
                }],
            },
        ]
    })


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def jwt_secret(monkeypatch):
    monkeypatch.setenv("JWT_SECRET", TEST_SECRET)
    get_settings.cache_clear()
    yield TEST_SECRET
    get_settings.cache_clear()


@pytest.fixture
def owner_session():
    """Logged-in session with no explicit grant (owner of its own schema)."""
    context = SessionContext()
    context.start(make_token(), secret=TEST_SECRET)
    return context
