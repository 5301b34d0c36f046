"""
Shared fixtures: an in-memory stand-in for the Supabase client and a
TestClient with auth and Supabase dependencies overridden.

The fake only covers the query-builder calls the services make.
"""

import copy
import uuid
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from app.core.errors import error_handler
from app.core.monitoring import monitor
from app.modules.auth.service import clear_auth_cache


class FakeResponse:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table_name = table
        self.op = "select"
        self.payload: Any = None
        self.filters: List[tuple] = []
        self.order_by: Optional[tuple] = None
        self.limit_to: Optional[int] = None
        self.single_mode: Optional[str] = None

    def select(self, columns: str = "*"):
        self.op = "select"
        return self

    def insert(self, payload):
        self.op, self.payload = "insert", payload
        return self

    def update(self, payload):
        self.op, self.payload = "update", payload
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column, value):
        self.filters.append((column, lambda v, value=value: v == value))
        return self

    def in_(self, column, values):
        self.filters.append((column, lambda v, values=tuple(values): v in values))
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def limit(self, n):
        self.limit_to = n
        return self

    def maybe_single(self):
        self.single_mode = "maybe"
        return self

    def single(self):
        self.single_mode = "single"
        return self

    def _matches(self, row):
        return all(check(row.get(column)) for column, check in self.filters)

    def execute(self):
        if self.table_name in self.db.failing_tables:
            raise Exception(f"simulated failure on {self.table_name}")
        rows = self.db.tables.setdefault(self.table_name, [])

        if self.op == "insert":
            payload = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = []
            for item in payload:
                row = copy.deepcopy(item)
                row.setdefault("id", str(uuid.uuid4()))
                rows.append(row)
                inserted.append(copy.deepcopy(row))
            return FakeResponse(inserted)

        matched = [row for row in rows if self._matches(row)]

        if self.op == "update":
            for row in matched:
                row.update(copy.deepcopy(self.payload))
            return FakeResponse(copy.deepcopy(matched))

        if self.op == "delete":
            self.db.tables[self.table_name] = [row for row in rows if not self._matches(row)]
            return FakeResponse(copy.deepcopy(matched))

        if self.order_by:
            column, desc = self.order_by
            matched = sorted(matched, key=lambda r: r.get(column) or "", reverse=desc)
        if self.limit_to is not None:
            matched = matched[:self.limit_to]
        matched = copy.deepcopy(matched)

        if self.single_mode == "maybe":
            return FakeResponse(matched[0]) if matched else None
        if self.single_mode == "single":
            if not matched:
                raise Exception("JSON object requested, multiple (or no) rows returned")
            return FakeResponse(matched[0])
        return FakeResponse(matched)


class FakeBucket:
    def __init__(self, name: str):
        self.name = name
        self.files: Dict[str, bytes] = {}
        self.upload_error: Optional[Exception] = None
        self.uploads: List[Dict[str, Any]] = []

    def list(self, path: str = "", options: Optional[Dict[str, Any]] = None):
        search = (options or {}).get("search", "")
        return [{"name": name} for name in sorted(self.files) if search in name]

    def upload(self, path, file, file_options=None):
        if self.upload_error is not None:
            raise self.upload_error
        self.files[path] = file
        self.uploads.append({"path": path, "options": file_options or {}})
        return {"Key": f"{self.name}/{path}"}

    def remove(self, paths):
        for path in paths:
            self.files.pop(path, None)
        return [{"name": p} for p in paths]

    def get_public_url(self, path):
        return f"https://fake.supabase.co/storage/v1/object/public/{self.name}/{path}"


class FakeStorage:
    def __init__(self):
        self.buckets: Dict[str, FakeBucket] = {}

    def from_(self, bucket: str) -> FakeBucket:
        return self.buckets.setdefault(bucket, FakeBucket(bucket))


class FakeSupabase:
    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.failing_tables = set()
        self.storage = FakeStorage()
        self.auth = SimpleNamespace()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def seed(self, table: str, *rows: Dict[str, Any]) -> None:
        self.tables.setdefault(table, []).extend(copy.deepcopy(list(rows)))


USER_ID = "11111111-1111-1111-1111-111111111111"
OTHER_USER_ID = "22222222-2222-2222-2222-222222222222"


def make_user(user_id: str = USER_ID, **overrides) -> Dict[str, Any]:
    user = {
        "id": user_id,
        "email": "jane@example.com",
        "user_metadata": {"full_name": "Jane Smith", "user_name": "janesmith"},
        "app_metadata": {"provider": "github"},
        "email_confirmed_at": "2024-01-01T00:00:00+00:00",
        "last_sign_in_at": "2024-02-01T00:00:00+00:00",
        "created_at": "2024-01-01T00:00:00+00:00",
        "updated_at": "2024-01-01T00:00:00+00:00",
    }
    user.update(overrides)
    return user


def make_profile(user_id: str = USER_ID, **overrides) -> Dict[str, Any]:
    profile = {
        "id": user_id,
        "username": "janesmith",
        "full_name": "Jane Smith",
        "email": "jane@example.com",
        "avatar_url": None,
        "about_me": None,
        "age": 28,
        "education_status": "professional",
        "coding_languages": ["Python", "Go"],
        "github_username": "janesmith",
        "github_repository_count": 3,
        "github_commit_count": 30,
        "onboarding_completed": True,
        "account_status": "active",
        "privacy_settings": None,
        "created_at": "2024-01-01T00:00:00+00:00",
        "updated_at": "2024-01-01T00:00:00+00:00",
    }
    profile.update(overrides)
    return profile


def github_transport(status_code: int = 200, payload: Optional[Dict[str, Any]] = None, calls: Optional[list] = None):
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request.url.path)
        return httpx.Response(status_code, json=payload if payload is not None else {"public_repos": 7})
    return httpx.MockTransport(handler)


def github_http_client(**kwargs) -> httpx.Client:
    return httpx.Client(base_url="https://api.github.com", transport=github_transport(**kwargs))


@pytest.fixture
def fake_db() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def current_user() -> Dict[str, Any]:
    return make_user()


@pytest.fixture(autouse=True)
def reset_in_memory_state():
    monitor.clear()
    error_handler.clear()
    clear_auth_cache()
    yield
    monitor.clear()
    error_handler.clear()
    clear_auth_cache()


@pytest.fixture
def github_calls() -> list:
    return []


@pytest.fixture
def client(fake_db, current_user, github_calls, monkeypatch):
    from app.main import app
    from app.core import dependencies
    from app.database.supabase_client import SupabaseClient, get_supabase
    from app.modules.github_stats.client import GitHubClient
    from app.modules.github_stats.routes import get_github_stats_service
    from app.modules.github_stats.service import GitHubStatsService

    monkeypatch.setattr(SupabaseClient, "_service_client", fake_db)

    def stats_service():
        http = httpx.Client(base_url="https://api.github.com", transport=github_transport(calls=github_calls))
        return GitHubStatsService(fake_db, GitHubClient(http_client=http))

    app.dependency_overrides[dependencies.get_current_user] = lambda: current_user
    app.dependency_overrides[dependencies.get_user_supabase] = lambda: fake_db
    app.dependency_overrides[dependencies.get_storage_supabase] = lambda: fake_db
    app.dependency_overrides[get_supabase] = lambda: fake_db
    app.dependency_overrides[get_github_stats_service] = stats_service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
