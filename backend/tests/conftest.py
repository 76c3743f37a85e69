"""
Shared test fixtures
====================
An in-memory stand-in for the slice of the Supabase client the backend
uses: ``client.table(name)`` query chains and ``client.auth.get_user``.

Unlike a bare MagicMock chain, the fake actually stores rows and applies
filters, ordering and ranges, so the entry store's query semantics
(ownership scoping, inclusive date ranges, pagination) are exercised for
real. Supported chain methods:

    .select(cols) .insert(row) .update(values) .delete()
    .eq() .gte() .lte() .contains() .order(col, desc=) .limit() .range()
    .execute()
"""

from __future__ import annotations

import copy
import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any, Callable, Optional

import pytest

OWNER_ID = "user-a"
OTHER_OWNER_ID = "user-b"

OWNER_TOKEN = "token-user-a"
OTHER_TOKEN = "token-user-b"

_EPOCH = datetime(2026, 1, 1, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Query builder
# ---------------------------------------------------------------------------

class _FakeQuery:
    def __init__(self, table: "FakeTable", action: str, payload: Any = None) -> None:
        self._table = table
        self._action = action
        self._payload = payload
        self._columns = "*"
        self._filters: list[Callable[[dict], bool]] = []
        self._orders: list[tuple[str, bool]] = []
        self._slice: Optional[tuple[int, int]] = None

    # ---- builders ----------------------------------------------------------

    def select(self, columns: str = "*", **_: Any) -> "_FakeQuery":
        self._columns = columns
        return self

    def eq(self, column: str, value: Any) -> "_FakeQuery":
        self._filters.append(lambda row: row.get(column) == value)
        return self

    def gte(self, column: str, value: Any) -> "_FakeQuery":
        self._filters.append(lambda row: row.get(column) is not None and row[column] >= value)
        return self

    def lte(self, column: str, value: Any) -> "_FakeQuery":
        self._filters.append(lambda row: row.get(column) is not None and row[column] <= value)
        return self

    def contains(self, column: str, values: list) -> "_FakeQuery":
        self._filters.append(lambda row: all(v in (row.get(column) or []) for v in values))
        return self

    def order(self, column: str, *, desc: bool = False, **_: Any) -> "_FakeQuery":
        self._orders.append((column, desc))
        return self

    def limit(self, size: int, **_: Any) -> "_FakeQuery":
        self._slice = (0, size - 1)
        return self

    def range(self, start: int, end: int, **_: Any) -> "_FakeQuery":
        self._slice = (start, end)
        return self

    # ---- execution ---------------------------------------------------------

    def execute(self) -> SimpleNamespace:
        self._table.calls.append(self._action)

        if self._action == "insert":
            return SimpleNamespace(data=[self._table.add(self._payload)], count=None)

        matched = [row for row in self._table.rows if all(f(row) for f in self._filters)]

        if self._action == "update":
            for row in matched:
                row.update(copy.deepcopy(self._payload))
            return SimpleNamespace(data=copy.deepcopy(matched), count=None)

        if self._action == "delete":
            self._table.rows = [row for row in self._table.rows if row not in matched]
            return SimpleNamespace(data=copy.deepcopy(matched), count=None)

        # select: apply orders last-key-first so the sort is lexicographic
        for column, desc in reversed(self._orders):
            matched = sorted(matched, key=lambda row: row[column], reverse=desc)
        if self._slice is not None:
            start, end = self._slice
            matched = matched[start:end + 1]

        return SimpleNamespace(data=[self._project(row) for row in matched], count=None)

    def _project(self, row: dict) -> dict:
        if self._columns.strip() == "*":
            return copy.deepcopy(row)
        wanted = [c.strip() for c in self._columns.split(",")]
        return {c: copy.deepcopy(row.get(c)) for c in wanted}


class FakeTable:
    def __init__(self) -> None:
        self.rows: list[dict] = []
        self.calls: list[str] = []
        self._inserted = 0

    def add(self, payload: dict) -> dict:
        # created_at strictly increases so ordering is deterministic
        self._inserted += 1
        stamp = (_EPOCH + timedelta(seconds=self._inserted)).isoformat()
        row = {
            "id": str(uuid.uuid4()),
            "title": None,
            "moods": [],
            "dominant_mood": None,
            "is_notable": False,
            "feedback": None,
            "suggested_bullets": None,
            "notable_suggestion": None,
            "analyzed_at": None,
            **copy.deepcopy(payload),
            "created_at": stamp,
            "updated_at": stamp,
        }
        self.rows.append(row)
        return copy.deepcopy(row)

    # Query entry points
    def select(self, columns: str = "*", **kwargs: Any) -> _FakeQuery:
        return _FakeQuery(self, "select").select(columns, **kwargs)

    def insert(self, payload: dict) -> _FakeQuery:
        return _FakeQuery(self, "insert", payload)

    def update(self, payload: dict) -> _FakeQuery:
        return _FakeQuery(self, "update", payload)

    def delete(self) -> _FakeQuery:
        return _FakeQuery(self, "delete")


class _FakeAuth:
    def __init__(self, tokens: dict[str, str]) -> None:
        self._tokens = tokens

    def get_user(self, token: str) -> SimpleNamespace:
        if token not in self._tokens:
            raise Exception("Invalid token")
        return SimpleNamespace(user=SimpleNamespace(id=self._tokens[token]))


class FakeSupabase:
    """Minimal in-memory Supabase client."""

    def __init__(self) -> None:
        self.tables: dict[str, FakeTable] = {}
        self.auth = _FakeAuth({OWNER_TOKEN: OWNER_ID, OTHER_TOKEN: OTHER_OWNER_ID})

    def table(self, name: str) -> FakeTable:
        return self.tables.setdefault(name, FakeTable())


# ---------------------------------------------------------------------------
# Document builders
# ---------------------------------------------------------------------------

def mood_block(mood: Any) -> dict:
    return {"type": "moodBlock", "attrs": {"mood": mood}}


def paragraph(*children: dict, text: str = "") -> dict:
    node: dict = {"type": "paragraph"}
    if children:
        node["content"] = list(children)
    elif text:
        node["content"] = [{"type": "text", "text": text}]
    return node


def doc(*nodes: dict) -> dict:
    return {"type": "doc", "content": list(nodes)}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def fake_db() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def store(fake_db: FakeSupabase):
    from app.services.entry_store import EntryStore

    return EntryStore(fake_db)
