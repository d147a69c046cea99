"""Supabase-backed client for table and identity operations.

One ``BackendClient`` is created at startup and shared read-only by every
request. It owns two Supabase clients built from the service-role key:

* ``_data`` serves table queries and the admin user API.
* ``_sessions`` serves end-user sign-in and session refresh. The auth library
  remembers the last session it issued and re-authenticates its client with
  it, so those calls must never run on the client used for table queries.
"""

import logging
import uuid
from contextlib import contextmanager
from typing import Any

from fastapi import Request
from supabase import AsyncClient, acreate_client
from supabase.lib.client_options import AsyncClientOptions

from gateway.config.settings import Settings
from gateway.errors import BackendError

logger = logging.getLogger(__name__)

USERS_PAGE_SIZE = 1000


@contextmanager
def _backend_call():
    """Re-raise anything the Supabase libraries throw as ``BackendError``."""
    try:
        yield
    except BackendError:
        raise
    except Exception as exc:
        message = getattr(exc, "message", None) or str(exc) or exc.__class__.__name__
        raise BackendError(message, getattr(exc, "status", None)) from exc


def _is_uuid(value: str) -> bool:
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


def _user_dict(user) -> dict | None:
    return user.model_dump(mode="json") if user is not None else None


def _session_dict(session) -> dict | None:
    if session is None:
        return None
    return {"access_token": session.access_token, "refresh_token": session.refresh_token}


class BackendClient:
    def __init__(self, data: AsyncClient, sessions: AsyncClient):
        self._data = data
        self._sessions = sessions

    @classmethod
    async def create(cls, settings: Settings) -> "BackendClient":
        def options() -> AsyncClientOptions:
            return AsyncClientOptions(
                auto_refresh_token=False,
                persist_session=False,
                postgrest_client_timeout=settings.BACKEND_TIMEOUT_SECONDS,
            )

        data = await acreate_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY, options=options())
        sessions = await acreate_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY, options=options())
        logger.info("Supabase clients initialized for %s", settings.SUPABASE_URL)
        return cls(data, sessions)

    async def close(self) -> None:
        for client in (self._data, self._sessions):
            try:
                await client.postgrest.aclose()
            finally:
                await client.auth.close()

    # --- Tables ---

    async def list_records(
        self, table: str, select: str, filters: dict[str, Any], offset: int, limit: int
    ) -> tuple[list[dict], int | None]:
        with _backend_call():
            result = (
                await self._data.table(table)
                .select(select, count="exact")
                .match(filters)
                .range(offset, offset + limit - 1)
                .execute()
            )
        return result.data, result.count

    async def get_record(self, table: str, record_id: str) -> dict | None:
        with _backend_call():
            result = await self._data.table(table).select("*").eq("id", record_id).limit(1).execute()
        return result.data[0] if result.data else None

    async def insert_record(self, table: str, fields: dict[str, Any]) -> dict:
        with _backend_call():
            result = await self._data.table(table).insert(fields).execute()
        if not result.data:
            raise BackendError(f"Insert into {table} returned no row")
        return result.data[0]

    async def update_record(self, table: str, record_id: str, fields: dict[str, Any]) -> dict | None:
        with _backend_call():
            result = await self._data.table(table).update(fields).eq("id", record_id).execute()
        return result.data[0] if result.data else None

    async def delete_record(self, table: str, record_id: str) -> None:
        with _backend_call():
            await self._data.table(table).delete().eq("id", record_id).execute()

    # --- Users (admin API) ---

    async def list_users(self) -> list[dict]:
        users: list[dict] = []
        page = 1
        with _backend_call():
            while True:
                batch = await self._data.auth.admin.list_users(page=page, per_page=USERS_PAGE_SIZE)
                users.extend(_user_dict(u) for u in batch)
                if len(batch) < USERS_PAGE_SIZE:
                    break
                page += 1
        return users

    async def create_user(self, attributes: dict[str, Any]) -> dict:
        with _backend_call():
            response = await self._data.auth.admin.create_user(attributes)
        return _user_dict(response.user)

    async def get_user(self, user_id: str) -> dict | None:
        if not _is_uuid(user_id):
            return None
        try:
            with _backend_call():
                response = await self._data.auth.admin.get_user_by_id(user_id)
        except BackendError as exc:
            if exc.status == 404:
                return None
            raise
        return _user_dict(response.user)

    async def update_user(self, user_id: str, attributes: dict[str, Any]) -> dict | None:
        if not _is_uuid(user_id):
            return None
        try:
            with _backend_call():
                response = await self._data.auth.admin.update_user_by_id(user_id, attributes)
        except BackendError as exc:
            if exc.status == 404:
                return None
            raise
        return _user_dict(response.user)

    async def delete_user(self, user_id: str) -> None:
        with _backend_call():
            await self._data.auth.admin.delete_user(user_id)

    # --- Sessions ---

    async def sign_in_with_password(self, email: str, password: str) -> tuple[dict | None, dict | None]:
        with _backend_call():
            response = await self._sessions.auth.sign_in_with_password({"email": email, "password": password})
        return _user_dict(response.user), _session_dict(response.session)

    async def get_user_from_token(self, token: str) -> dict | None:
        with _backend_call():
            response = await self._data.auth.get_user(token)
        return _user_dict(response.user) if response else None

    async def sign_out(self, token: str) -> None:
        # Ends the user's other sessions; the caller's refresh token stays usable.
        with _backend_call():
            await self._data.auth.admin.sign_out(token, scope="others")

    async def refresh_session(self, refresh_token: str) -> tuple[dict | None, dict | None]:
        with _backend_call():
            response = await self._sessions.auth.refresh_session(refresh_token)
        return _user_dict(response.user), _session_dict(response.session)


def get_backend(request: Request) -> BackendClient:
    """FastAPI dependency: the process-wide backend client."""
    return request.app.state.backend
