from __future__ import annotations

import io
import itertools
import sys
from pathlib import Path
from types import SimpleNamespace

import pytest
from PIL import Image

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from stylizer.storage import SupabaseStore


class FakeQuery:
    def __init__(self, table: FakeTable, op: str, payload: dict | None = None) -> None:
        self.table = table
        self.op = op
        self.payload = payload
        self.filters: list[tuple[str, object]] = []
        self.order_by: tuple[str, bool] | None = None
        self.max_rows: int | None = None

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def limit(self, n):
        self.max_rows = n
        return self

    def _matches(self):
        return [r for r in self.table.rows if all(r.get(c) == v for c, v in self.filters)]

    def execute(self):
        if self.op in self.table.fail_ops:
            raise RuntimeError(f"{self.op} rejected")

        if self.op == "insert":
            row = dict(self.payload, id=str(next(self.table.ids)), created_at=next(self.table.clock))
            self.table.rows.append(row)
            return SimpleNamespace(data=[dict(row)])

        rows = self._matches()
        if self.op == "update":
            for row in rows:
                row.update(self.payload)
            return SimpleNamespace(data=[dict(r) for r in rows])

        if self.order_by:
            column, desc = self.order_by
            rows = sorted(rows, key=lambda r: r.get(column), reverse=desc)
        if self.max_rows is not None:
            rows = rows[: self.max_rows]
        return SimpleNamespace(data=[dict(r) for r in rows])


class FakeTable:
    def __init__(self) -> None:
        self.rows: list[dict] = []
        self.fail_ops: set[str] = set()
        self.ids = itertools.count(1)
        self.clock = itertools.count(1)

    def select(self, *_columns):
        return FakeQuery(self, "select")

    def insert(self, row):
        return FakeQuery(self, "insert", row)

    def update(self, fields):
        return FakeQuery(self, "update", fields)


class FakeBucket:
    def __init__(self, name: str) -> None:
        self.name = name
        self.files: dict[str, bytes] = {}
        self.options: dict[str, dict] = {}
        self.fail_uploads = False

    def upload(self, path, data, file_options=None):
        if self.fail_uploads:
            raise RuntimeError("bucket rejected upload")
        self.files[path] = data
        self.options[path] = file_options or {}
        return SimpleNamespace(path=path)

    def get_public_url(self, path):
        return f"https://storage.test/{self.name}/{path}"

    def create_signed_url(self, path, expires_in):
        if path not in self.files:
            raise RuntimeError("Object not found")
        return {"signedURL": f"https://signed.test/{self.name}/{path}?expires={expires_in}"}


class FakeStorage:
    def __init__(self) -> None:
        self.buckets: dict[str, FakeBucket] = {}

    def from_(self, name):
        if name not in self.buckets:
            self.buckets[name] = FakeBucket(name)
        return self.buckets[name]


class FakeAuth:
    def __init__(self) -> None:
        self.user_id: str | None = None
        self.passwords: dict[str, tuple[str, str]] = {}

    def get_user(self, jwt=None):
        if self.user_id is None:
            raise RuntimeError("Auth session missing!")
        return SimpleNamespace(user=SimpleNamespace(id=self.user_id))

    def sign_in_with_password(self, credentials):
        entry = self.passwords.get(credentials["email"])
        if entry is None or entry[0] != credentials["password"]:
            raise RuntimeError("Invalid login credentials")
        self.user_id = entry[1]
        return SimpleNamespace(user=SimpleNamespace(id=entry[1]))


class FakeSupabase:
    def __init__(self) -> None:
        self.tables: dict[str, FakeTable] = {}
        self.storage = FakeStorage()
        self.auth = FakeAuth()

    def table(self, name):
        if name not in self.tables:
            self.tables[name] = FakeTable()
        return self.tables[name]


def make_jpeg(width: int = 64, height: int = 48, color=(200, 40, 40)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="JPEG")
    return buf.getvalue()


@pytest.fixture
def supabase():
    return FakeSupabase()


@pytest.fixture
def store(supabase):
    return SupabaseStore(supabase)


@pytest.fixture
def jpeg():
    return make_jpeg
