"""Shared test fixtures."""

import os
import uuid
from collections import defaultdict
from datetime import datetime, timezone

os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-service-role-key")

import pytest
from fastapi.testclient import TestClient

from gateway.db.client import get_backend
from gateway.errors import BackendError
from gateway.main import app


class FakeBackend:
    """In-memory stand-in for ``BackendClient`` with Supabase-like error text."""

    def __init__(self):
        self.tables: dict[str, list[dict]] = defaultdict(list)
        self.users: dict[str, dict] = {}
        self.passwords: dict[str, str] = {}
        # token -> (user id, session id)
        self.access_tokens: dict[str, tuple[str, str]] = {}
        self.refresh_tokens: dict[str, tuple[str, str]] = {}
        self.failures: dict[str, BackendError] = {}
        self.calls: list[str] = []

    def fail(self, operation: str, message: str, status: int | None = None) -> None:
        """Make the next call to ``operation`` raise a backend error."""
        self.failures[operation] = BackendError(message, status)

    def _enter(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.failures:
            raise self.failures.pop(operation)

    # --- Tables ---

    async def list_records(self, table, select, filters, offset, limit):
        self._enter("list_records")
        rows = [r for r in self.tables[table] if all(str(r.get(k)) == v for k, v in filters.items())]
        window = rows[offset:offset + limit]
        if select != "*":
            columns = [c.strip() for c in select.split(",")]
            window = [{c: r.get(c) for c in columns} for r in window]
        return window, len(rows)

    async def get_record(self, table, record_id):
        self._enter("get_record")
        return next((dict(r) for r in self.tables[table] if str(r["id"]) == record_id), None)

    async def insert_record(self, table, fields):
        self._enter("insert_record")
        row = {"id": str(uuid.uuid4()), **fields}
        self.tables[table].append(row)
        return dict(row)

    async def update_record(self, table, record_id, fields):
        self._enter("update_record")
        for row in self.tables[table]:
            if str(row["id"]) == record_id:
                row.update(fields)
                return dict(row)
        return None

    async def delete_record(self, table, record_id):
        self._enter("delete_record")
        self.tables[table] = [r for r in self.tables[table] if str(r["id"]) != record_id]

    # --- Users ---

    async def list_users(self):
        self._enter("list_users")
        return [dict(u) for u in self.users.values()]

    async def create_user(self, attributes):
        self._enter("create_user")
        if any(u["email"] == attributes["email"] for u in self.users.values()):
            raise BackendError('duplicate key value violates unique constraint "users_email_key"', 422)
        if len(attributes["password"]) < 6:
            raise BackendError("Password should be at least 6 characters.", 422)
        user_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc).isoformat()
        self.users[user_id] = {
            "id": user_id,
            "email": attributes["email"],
            "created_at": now,
            "email_confirmed_at": now if attributes.get("email_confirm") else None,
            "user_metadata": attributes.get("user_metadata") or {},
            "role": "authenticated",
        }
        self.passwords[user_id] = attributes["password"]
        return dict(self.users[user_id])

    async def get_user(self, user_id):
        self._enter("get_user")
        user = self.users.get(user_id)
        return dict(user) if user else None

    async def update_user(self, user_id, attributes):
        self._enter("update_user")
        user = self.users.get(user_id)
        if user is None:
            return None
        if "password" in attributes:
            self.passwords[user_id] = attributes["password"]
        if "email" in attributes:
            user["email"] = attributes["email"]
        if "user_metadata" in attributes:
            user["user_metadata"] = {**user["user_metadata"], **attributes["user_metadata"]}
        return dict(user)

    async def delete_user(self, user_id):
        self._enter("delete_user")
        if user_id not in self.users:
            raise BackendError("User not found", 404)
        del self.users[user_id]

    # --- Sessions ---

    def _issue_session(self, user_id, session_id=None):
        session_id = session_id or uuid.uuid4().hex
        access, refresh = uuid.uuid4().hex, uuid.uuid4().hex
        self.access_tokens[access] = (user_id, session_id)
        self.refresh_tokens[refresh] = (user_id, session_id)
        return {"access_token": access, "refresh_token": refresh}

    async def sign_in_with_password(self, email, password):
        self._enter("sign_in_with_password")
        user = next((u for u in self.users.values() if u["email"] == email), None)
        if user is None or self.passwords[user["id"]] != password:
            raise BackendError("Invalid login credentials", 400)
        if user["email_confirmed_at"] is None:
            raise BackendError("Email not confirmed", 400)
        return dict(user), self._issue_session(user["id"])

    async def get_user_from_token(self, token):
        self._enter("get_user_from_token")
        if token not in self.access_tokens:
            raise BackendError("invalid JWT: unable to parse or verify signature", 403)
        user_id, _ = self.access_tokens[token]
        return dict(self.users[user_id])

    async def sign_out(self, token):
        """Revoke the user's other sessions, keeping the one ``token`` belongs to."""
        self._enter("sign_out")
        if token not in self.access_tokens:
            raise BackendError("invalid JWT: unable to parse or verify signature", 403)
        user_id, session_id = self.access_tokens[token]

        def revoked(owner):
            return owner[0] == user_id and owner[1] != session_id

        self.access_tokens = {t: o for t, o in self.access_tokens.items() if not revoked(o)}
        self.refresh_tokens = {t: o for t, o in self.refresh_tokens.items() if not revoked(o)}

    async def refresh_session(self, refresh_token):
        self._enter("refresh_session")
        owner = self.refresh_tokens.pop(refresh_token, None)
        if owner is None:
            raise BackendError("Invalid Refresh Token: Refresh Token Not Found", 400)
        user_id, session_id = owner
        return dict(self.users[user_id]), self._issue_session(user_id, session_id)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def client(backend):
    app.dependency_overrides[get_backend] = lambda: backend
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def test_email():
    return f"test_{uuid.uuid4().hex[:8]}@example.com"


@pytest.fixture
def test_password():
    return "secret1"


@pytest.fixture
def created_user(client, test_email, test_password):
    """Create a user and return its public fields."""
    resp = client.post("/api/supabase/auth/users", json={"email": test_email, "password": test_password})
    assert resp.status_code == 201
    return resp.json()["data"]["user"]


@pytest.fixture
def session_tokens(client, created_user, test_email, test_password):
    resp = client.post("/api/supabase/auth/login", json={"email": test_email, "password": test_password})
    assert resp.status_code == 200
    return resp.json()


@pytest.fixture
def auth_header(session_tokens):
    return {"Authorization": f"Bearer {session_tokens['access_token']}"}
