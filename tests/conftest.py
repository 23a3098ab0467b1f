"""
Shared fixtures. The Supabase client is replaced by an in-memory fake that
implements the subset of the PostgREST query builder, Auth and Storage APIs
the services use.
"""
import copy
import uuid
from datetime import date, datetime, timedelta
from enum import Enum
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from guardiao.config import settings
from guardiao.core.rate_limit import limiter
from guardiao.core.security import get_pin_hash
from guardiao.database.supabase_client import get_supabase, get_supabase_admin, get_supabase_session
from guardiao.main import app
from guardiao.modules.auth.service import clear_auth_cache

PIN = "1234"
PIN_HASH = get_pin_hash(PIN)
PASSWORD = "senha-forte-123"


def _norm(value):
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def _compare(op):
    def check(row_value, value):
        row_value, value = _norm(row_value), _norm(value)
        if row_value is None or value is None:
            return False
        return op(row_value, value)
    return check


class FakeQuery:
    def __init__(self, db, table):
        self.db = db
        self.table_name = table
        self.filters = []
        self.ordering = []
        self.limit_count = None
        self.offset_count = 0
        self.operation = "select"
        self.payload = None
        self.count_mode = None

    # Builders

    def select(self, *args, count=None, **kwargs):
        self.count_mode = count
        return self

    def insert(self, payload):
        self.operation = "insert"
        self.payload = payload
        return self

    def update(self, payload):
        self.operation = "update"
        self.payload = payload
        return self

    def delete(self):
        self.operation = "delete"
        return self

    # Filters

    def _filter(self, column, value, check):
        self.filters.append(lambda row: check(row.get(column), value))
        return self

    def eq(self, column, value):
        return self._filter(column, value, lambda a, b: _norm(a) == _norm(b))

    def neq(self, column, value):
        return self._filter(column, value, lambda a, b: _norm(a) != _norm(b))

    def in_(self, column, values):
        normalized = [_norm(v) for v in values]
        return self._filter(column, normalized, lambda a, b: _norm(a) in b)

    def gt(self, column, value):
        return self._filter(column, value, _compare(lambda a, b: a > b))

    def gte(self, column, value):
        return self._filter(column, value, _compare(lambda a, b: a >= b))

    def lt(self, column, value):
        return self._filter(column, value, _compare(lambda a, b: a < b))

    def lte(self, column, value):
        return self._filter(column, value, _compare(lambda a, b: a <= b))

    def order(self, column, desc=False):
        self.ordering.append((column, desc))
        return self

    def limit(self, count):
        self.limit_count = count
        return self

    def offset(self, count):
        self.offset_count = count
        return self

    # Execution

    def _matches(self, row):
        return all(f(row) for f in self.filters)

    def execute(self):
        rows = self.db.tables.setdefault(self.table_name, [])
        if self.operation == "insert":
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            created = [self.db.new_row(self.table_name, item) for item in items]
            rows.extend(created)
            return SimpleNamespace(data=copy.deepcopy(created))
        if self.operation == "update":
            matched = [row for row in rows if self._matches(row)]
            for row in matched:
                row.update({k: _norm(v) for k, v in copy.deepcopy(self.payload).items()})
            return SimpleNamespace(data=copy.deepcopy(matched))
        if self.operation == "delete":
            matched = [row for row in rows if self._matches(row)]
            self.db.tables[self.table_name] = [row for row in rows if not self._matches(row)]
            return SimpleNamespace(data=copy.deepcopy(matched))

        result = [row for row in rows if self._matches(row)]
        total = len(result) if self.count_mode else None
        for column, desc in reversed(self.ordering):
            result.sort(
                key=lambda r: (_norm(r.get(column)) is None, _norm(r.get(column)) if r.get(column) is not None else ""),
                reverse=desc
            )
        result = result[self.offset_count:]
        if self.limit_count is not None:
            result = result[:self.limit_count]
        if self.db.max_rows is not None:
            result = result[:self.db.max_rows]
        return SimpleNamespace(data=copy.deepcopy(result), count=total)


class FakeBucket:
    def __init__(self, db, name):
        self.db = db
        self.name = name

    def upload(self, path, content, file_options=None):
        self.db.storage_data.setdefault(self.name, {})[path] = {
            "content": content,
            "content_type": (file_options or {}).get("content-type"),
        }
        return SimpleNamespace(path=path)

    def get_public_url(self, path):
        return f"https://storage.test/{self.name}/{path}"

    def remove(self, paths):
        for path in paths:
            self.db.storage_data.get(self.name, {}).pop(path, None)
        return []


class FakeStorage:
    def __init__(self, db):
        self.db = db

    def from_(self, bucket):
        return FakeBucket(self.db, bucket)


def _auth_user(account):
    return SimpleNamespace(
        id=account["id"],
        email=account["email"],
        user_metadata=account.get("user_metadata", {}),
        app_metadata=account.get("app_metadata", {}),
    )


class FakeAuthAdmin:
    def __init__(self, db):
        self.db = db

    def create_user(self, attributes):
        email = attributes["email"].lower()
        if any(a["email"] == email for a in self.db.accounts.values()):
            raise Exception("A user with this email address has already been registered")
        account = {
            "id": str(uuid.uuid4()),
            "email": email,
            "password": attributes.get("password"),
            "user_metadata": attributes.get("user_metadata", {}),
            "app_metadata": {},
        }
        self.db.accounts[account["id"]] = account
        return SimpleNamespace(user=_auth_user(account))

    def update_user_by_id(self, user_id, attributes):
        account = self.db.accounts[user_id]
        account.update(attributes)
        return SimpleNamespace(user=_auth_user(account))

    def delete_user(self, user_id):
        self.db.accounts.pop(user_id, None)

    def sign_out(self, jwt, scope="global"):
        self.db.tokens.pop(jwt, None)

    def generate_link(self, params):
        account = next(a for a in self.db.accounts.values() if a["email"] == params["email"])
        hashed_token = uuid.uuid4().hex
        self.db.link_tokens[hashed_token] = account["id"]
        return SimpleNamespace(properties=SimpleNamespace(hashed_token=hashed_token))


class FakeAuth:
    def __init__(self, db):
        self.db = db
        self.admin = FakeAuthAdmin(db)

    def _session_for(self, account):
        token = self.db.issue_token(account["id"])
        return SimpleNamespace(
            user=_auth_user(account),
            session=SimpleNamespace(access_token=token, refresh_token=f"refresh-{token}"),
        )

    def sign_in_with_password(self, credentials):
        account = next(
            (a for a in self.db.accounts.values() if a["email"] == credentials["email"].lower()),
            None
        )
        if not account or account.get("password") != credentials["password"]:
            raise Exception("Invalid login credentials")
        return self._session_for(account)

    def get_user(self, jwt=None):
        user_id = self.db.tokens.get(jwt)
        if not user_id or user_id not in self.db.accounts:
            raise Exception("invalid JWT: token is malformed")
        return SimpleNamespace(user=_auth_user(self.db.accounts[user_id]))

    def verify_otp(self, params):
        user_id = self.db.link_tokens.pop(params["token_hash"])
        return self._session_for(self.db.accounts[user_id])


class FakeSupabase:
    """In-memory stand-in for supabase.Client"""

    def __init__(self):
        self.tables = {}
        self.storage_data = {}
        self.accounts = {}
        self.tokens = {}
        self.link_tokens = {}
        self.sequences = {}
        # PostgREST max-rows cap on response bodies
        self.max_rows = None
        self._clock = datetime.utcnow()
        self._ticks = 0
        self.auth = FakeAuth(self)
        self.storage = FakeStorage(self)

    def now(self):
        self._ticks += 1
        return (self._clock + timedelta(milliseconds=self._ticks)).isoformat()

    def next_value(self, name):
        self.sequences[name] = self.sequences.get(name, 0) + 1
        return self.sequences[name]

    def new_row(self, table, item):
        row = {k: _norm(v) for k, v in copy.deepcopy(item).items()}
        row.setdefault("id", str(uuid.uuid4()))
        row.setdefault("created_at", self.now())
        if table == "missoes_gsd":
            row.setdefault("data_criacao", row["created_at"])
        if table == "parking_requests":
            row.setdefault("numero_autorizacao", self.next_value("numero_autorizacao"))
        return row

    def table(self, name):
        return FakeQuery(self, name)

    def rows(self, name):
        return self.tables.get(name, [])

    def issue_token(self, user_id):
        token = f"token-{uuid.uuid4().hex}"
        self.tokens[token] = user_id
        return token


@pytest.fixture
def fake_supabase():
    return FakeSupabase()


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    monkeypatch.setattr(settings, "aws_access_key_id", None)
    monkeypatch.setattr(settings, "aws_secret_access_key", None)
    monkeypatch.setattr(settings, "s3_bucket_name", None)
    monkeypatch.setattr(settings, "notifications_enabled", True)
    clear_auth_cache()
    yield
    clear_auth_cache()


@pytest.fixture
def client(fake_supabase):
    app.dependency_overrides[get_supabase] = lambda: fake_supabase
    app.dependency_overrides[get_supabase_admin] = lambda: fake_supabase
    app.dependency_overrides[get_supabase_session] = lambda: fake_supabase
    limiter.enabled = False
    with TestClient(app) as test_client:
        yield test_client
    limiter.enabled = True
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(fake_supabase):
    """Create an auth account plus its users row. Returns the row."""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        n = counter["n"]
        email = overrides.pop("email", f"militar{n}@fab.mil.br")
        password = overrides.pop("password", PASSWORD)
        app_metadata = overrides.pop("app_metadata", {})
        account = {
            "id": str(uuid.uuid4()),
            "email": email,
            "password": password,
            "user_metadata": {},
            "app_metadata": app_metadata,
        }
        fake_supabase.accounts[account["id"]] = account
        row = {
            "id": account["id"],
            "username": f"militar{n}",
            "name": f"Militar Numero {n}",
            "war_name": f"GUERRA{n}",
            "email": email,
            "rank": "1S",
            "saram": f"{1000000 + n}",
            "sector": "SOP",
            "access_level": "N1",
            "function_id": "PADRAO",
            "custom_permissions": [],
            "approved": True,
            "display_order": n,
            "signature_hash": PIN_HASH,
        }
        row.update(overrides)
        fake_supabase.tables.setdefault("users", []).append(row)
        return copy.deepcopy(row)

    return _make


@pytest.fixture
def auth_headers(fake_supabase):
    def _headers(user):
        return {"Authorization": f"Bearer {fake_supabase.issue_token(user['id'])}"}
    return _headers
