"""Request schemas and user projections for the auth endpoints."""

from typing import Any

from pydantic import BaseModel, Field

DEFAULT_ROLE = "employee"


# --- Requests ---
# Required fields are optional here so handlers can answer 400 themselves.

class CreateUserRequest(BaseModel):
    email: str | None = None
    password: str | None = None
    email_confirm: bool = True
    user_metadata: dict[str, Any] = Field(default_factory=dict)


class UpdateUserRequest(BaseModel):
    email: str | None = None
    password: str | None = None
    user_metadata: dict[str, Any] | None = None


class LoginRequest(BaseModel):
    email: str | None = None
    password: str | None = None


class RefreshRequest(BaseModel):
    refresh_token: str | None = None


# --- User projections ---

def to_public_user(user: dict) -> dict:
    metadata = user.get("user_metadata") or {}
    return {
        "id": user["id"],
        "email": user.get("email"),
        "created_at": user.get("created_at"),
        "user_metadata": metadata,
        "role": metadata.get("role") or DEFAULT_ROLE,
    }


def to_session_user(user: dict) -> dict:
    return {
        "id": user["id"],
        "email": user.get("email"),
        "user_metadata": user.get("user_metadata") or {},
    }
