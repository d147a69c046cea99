"""Auth dependencies for FastAPI route injection."""

from fastapi import Request

from gateway.errors import AuthError


def _extract_bearer_token(request: Request) -> str | None:
    auth = request.headers.get("Authorization")
    if auth and auth.startswith("Bearer "):
        return auth[7:]
    return None


async def optional_bearer_token(request: Request) -> str | None:
    """FastAPI dependency: the bearer token, or None when absent or malformed."""
    return _extract_bearer_token(request)


async def require_bearer_token(request: Request) -> str:
    """FastAPI dependency: the bearer token; 401 when absent or malformed."""
    token = _extract_bearer_token(request)
    if not token:
        raise AuthError("Token not provided")
    return token
