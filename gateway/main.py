"""Backend gateway: FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import uvicorn
from fastapi import FastAPI
from pydantic import ValidationError as SettingsError

from gateway.auth.routes import router as auth_router
from gateway.config.cors import configure_cors
from gateway.config.settings import get_settings
from gateway.db.client import BackendClient
from gateway.logging_config import configure_logging
from gateway.middleware.body_limit import BodySizeLimitMiddleware
from gateway.middleware.error_handler import register_error_handlers
from gateway.middleware.request_id import RequestIDMiddleware
from gateway.tables.routes import router as tables_router

logger = logging.getLogger(__name__)

VERSION = "1.0.0"
AUTH_PREFIX = auth_router.prefix


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)
    app.state.backend = await BackendClient.create(settings)
    logger.info("Backend gateway started")
    yield
    await app.state.backend.close()
    app.state.backend = None
    logger.info("Backend gateway stopped")


def create_app() -> FastAPI:
    try:
        settings = get_settings()
    except SettingsError:
        logger.error("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")
        raise

    app = FastAPI(
        title="Backend Gateway",
        description=(
            "HTTP gateway in front of Supabase.\n\n"
            "## Features\n"
            "- Generic CRUD over any table: `/{table}` and `/{table}/{id}`\n"
            "- Admin user management, login, session validation, logout and token refresh\n\n"
            "## Authentication\n"
            "Session endpoints take `Authorization: Bearer <access_token>` as issued by `/login`.\n"
            "Tokens are passed to Supabase as-is."
        ),
        version=VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_tags=[
            {"name": "Health", "description": "Health check and service index"},
            {"name": "Auth", "description": "Users, login, session, logout, refresh"},
            {"name": "Tables", "description": "CRUD operations on any table"},
        ],
    )

    # --- Middleware (outermost last) ---
    app.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.MAX_BODY_BYTES)
    configure_cors(app, settings)
    app.add_middleware(RequestIDMiddleware)

    # --- Error handlers ---
    register_error_handlers(app)

    # --- Routes (fixed paths before the table catch-all) ---
    @app.get("/", tags=["Health"], summary="Service index")
    async def index():
        return {
            "message": "Backend Gateway API",
            "version": VERSION,
            "status": "running",
            "endpoints": {
                "health": "/health",
                "auth": {
                    "list_users": f"GET {AUTH_PREFIX}/users",
                    "create_user": f"POST {AUTH_PREFIX}/users",
                    "get_user": f"GET {AUTH_PREFIX}/users/:id",
                    "update_user": f"PUT {AUTH_PREFIX}/users/:id",
                    "delete_user": f"DELETE {AUTH_PREFIX}/users/:id",
                    "login": f"POST {AUTH_PREFIX}/login",
                    "session": f"GET {AUTH_PREFIX}/session",
                    "logout": f"POST {AUTH_PREFIX}/logout",
                    "refresh": f"POST {AUTH_PREFIX}/refresh",
                },
                "tables": {
                    "list": "GET /:table",
                    "get": "GET /:table/:id",
                    "create": "POST /:table",
                    "update": "PUT /:table/:id",
                    "delete": "DELETE /:table/:id",
                },
            },
            "docs": "/docs",
        }

    @app.get("/health", tags=["Health"], summary="Health check", description="Returns healthy if the process is running.")
    async def health_check():
        return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}

    app.include_router(auth_router)
    app.include_router(tables_router)
    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)
    uvicorn.run("gateway.main:app", host=settings.HOST, port=settings.PORT)
