"""Identity and session endpoints: admin user management, login, session, logout, refresh.

Bearer tokens are relayed to the backend verbatim; the gateway keeps no
session state of its own.
"""

import logging

from fastapi import APIRouter, Depends

from gateway.auth.dependencies import optional_bearer_token, require_bearer_token
from gateway.auth.schemas import (
    CreateUserRequest,
    LoginRequest,
    RefreshRequest,
    UpdateUserRequest,
    to_public_user,
    to_session_user,
)
from gateway.db.client import BackendClient, get_backend
from gateway.errors import (
    CREATE_USER_RULES,
    LOGIN_RULES,
    AuthError,
    BackendError,
    InternalError,
    NotFound,
    ValidationError,
    classify_backend_error,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/supabase/auth", tags=["Auth"])


# --- Admin user management ---

@router.get("/users", summary="List users")
async def list_users(backend: BackendClient = Depends(get_backend)):
    try:
        users = await backend.list_users()
    except BackendError as exc:
        logger.error("Error listing users: %s", exc.message)
        raise InternalError(exc.message) from exc
    return {"success": True, "data": [to_public_user(u) for u in users], "total": len(users)}


@router.post("/users", status_code=201, summary="Create a user", description="Sign up a user through the admin API. The email is confirmed unless `email_confirm` is false.")
async def create_user(body: CreateUserRequest, backend: BackendClient = Depends(get_backend)):
    if not body.email or not body.password:
        raise ValidationError("Email and password are required")

    logger.info("Creating user %s (metadata: %s)", body.email, bool(body.user_metadata))
    try:
        user = await backend.create_user({
            "email": body.email,
            "password": body.password,
            "email_confirm": body.email_confirm,
            "user_metadata": body.user_metadata,
        })
    except BackendError as exc:
        logger.error("Error creating user %s: %s", body.email, exc.message)
        raise classify_backend_error(exc.message, CREATE_USER_RULES) from exc

    return {"success": True, "data": {"user": to_session_user(user)}}


@router.get("/users/{user_id}", summary="Get a user by id")
async def get_user(user_id: str, backend: BackendClient = Depends(get_backend)):
    try:
        user = await backend.get_user(user_id)
    except BackendError as exc:
        logger.error("Error fetching user %s: %s", user_id, exc.message)
        raise InternalError(exc.message) from exc
    if user is None:
        raise NotFound("User not found")
    return {"success": True, "data": user}


@router.put("/users/{user_id}", summary="Update a user", description="Change email, password or metadata. Omitted fields are left untouched.")
async def update_user(user_id: str, body: UpdateUserRequest, backend: BackendClient = Depends(get_backend)):
    try:
        user = await backend.update_user(user_id, body.model_dump(exclude_none=True))
    except BackendError as exc:
        logger.error("Error updating user %s: %s", user_id, exc.message)
        raise InternalError(exc.message) from exc
    if user is None:
        raise NotFound("User not found")
    return {"success": True, "data": user}


@router.delete("/users/{user_id}", summary="Delete a user")
async def delete_user(user_id: str, backend: BackendClient = Depends(get_backend)):
    try:
        await backend.delete_user(user_id)
    except BackendError as exc:
        logger.error("Error deleting user %s: %s", user_id, exc.message)
        raise InternalError(exc.message) from exc
    return {"success": True, "message": "User deleted"}


# --- Sessions ---

@router.post("/login", summary="Login", description="Sign in with email and password; returns the backend's access and refresh tokens.")
async def login(body: LoginRequest, backend: BackendClient = Depends(get_backend)):
    if not body.email or not body.password:
        raise ValidationError("Email and password are required")

    email = body.email.strip().lower()
    logger.info("Login attempt for %s", email)
    try:
        user, session = await backend.sign_in_with_password(email, body.password)
    except BackendError as exc:
        logger.error("Login failed for %s: %s", email, exc.message)
        raise classify_backend_error(exc.message, LOGIN_RULES) from exc

    if not user or not session:
        raise AuthError("Could not sign in")

    logger.info("Login succeeded for user %s", user["id"])
    return {
        "success": True,
        "access_token": session["access_token"],
        "refresh_token": session["refresh_token"],
        "user": to_session_user(user),
    }


@router.get("/session", summary="Validate a session", description="Exchange the bearer token for the user it belongs to.")
async def get_session(token: str = Depends(require_bearer_token), backend: BackendClient = Depends(get_backend)):
    try:
        user = await backend.get_user_from_token(token)
    except BackendError as exc:
        logger.warning("Session validation failed: %s", exc.message)
        raise AuthError("Invalid token") from exc
    if not user:
        raise AuthError("Invalid session")
    return {"success": True, "user": to_session_user(user)}


@router.post("/logout", summary="Logout", description="Invalidate the sessions of the bearer token's user. Without a token there is nothing to do.")
async def logout(token: str | None = Depends(optional_bearer_token), backend: BackendClient = Depends(get_backend)):
    if not token:
        return {"success": True, "message": "No active session"}
    try:
        await backend.sign_out(token)
    except BackendError as exc:
        logger.error("Error during logout: %s", exc.message)
        raise InternalError(exc.message) from exc
    return {"success": True, "message": "Session closed"}


@router.post("/refresh", summary="Refresh a session", description="Exchange a refresh token for a new token pair.")
async def refresh(body: RefreshRequest, backend: BackendClient = Depends(get_backend)):
    if not body.refresh_token:
        raise ValidationError("Refresh token required")
    try:
        user, session = await backend.refresh_session(body.refresh_token)
    except BackendError as exc:
        logger.warning("Token refresh failed: %s", exc.message)
        raise AuthError("Invalid token") from exc
    if not session:
        raise AuthError("Invalid token")
    return {
        "success": True,
        "access_token": session["access_token"],
        "refresh_token": session["refresh_token"],
        "user": user,
    }
