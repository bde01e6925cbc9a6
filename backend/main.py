# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
FastAPI application factory.

Responsibilities
----------------
* Build every collaborator once – settings, document store, hasher, token
  codec, access gate, services – and hang them on ``app.state``.  Nothing is
  a module-level global; routes reach them through ``Depends``.
* Register CORS, request logging and the error handlers.
* Mount the three feature routers (auth, user, admin).
* Ping the database on startup.  Failure aborts the process.
* Expose a /health endpoint for container liveness checks.

Run with:
    uvicorn --factory main:create_app --app-dir backend
"""

import time
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from admin.router import router as admin_router
from auth.router import router as auth_router
from auth.service import CredentialService, UserService
from core.config import Settings
from core.errors import register_exception_handlers
from core.logger import logger
from core.security import AccessGate, PasswordHasher, TokenCodec
from database import DocumentStore, create_db_engine
from models.user import User
from user.router import router as user_router


# ---------------------------------------------------------------------------
# Request-logging middleware
# ---------------------------------------------------------------------------
# Logs every inbound request: method, path, client IP, status, latency.
# Bodies (credentials) and the Authorization header are never echoed.


class _RequestLogMiddleware(BaseHTTPMiddleware):
    """Log method, path, client IP, response status and latency (ms)."""

    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000

        client_ip = request.client.host if request.client else "unknown"

        logger.info(
            "%s %s | client=%s status=%d latency=%.1fms",
            request.method,
            request.url.path,
            client_ip,
            response.status_code,
            elapsed_ms,
        )
        return response


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[DocumentStore] = None,
    hasher: Optional[PasswordHasher] = None,
) -> FastAPI:
    settings = settings or Settings()
    # Raises InvalidKey here, at startup, rather than on the first request
    encryption_key = settings.encryption_key

    if store is None:
        engine = create_db_engine(settings.database_url, settings.db_connect_timeout_seconds)
        store = DocumentStore(engine, User)
    hasher = hasher or PasswordHasher()
    codec = TokenCodec(settings.secret_key, timedelta(minutes=settings.access_token_expire_minutes))

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        try:
            store.ping()
        except Exception:
            logger.critical("Cannot reach the database – refusing to start")
            raise
        logger.info("User Gate service starting up")
        yield
        logger.info("User Gate service shutting down")
        store.engine.dispose()

    app = FastAPI(title="User Gate", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.gate = AccessGate(codec)
    app.state.credentials = CredentialService(store, hasher, codec, encryption_key)
    app.state.users = UserService(store, hasher, encryption_key)

    register_exception_handlers(app)

    # -----------------------------------------------------------------------
    # CORS
    # -----------------------------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Authorization", "Content-Type"],
    )
    app.add_middleware(_RequestLogMiddleware)

    # -----------------------------------------------------------------------
    # Routers
    # -----------------------------------------------------------------------
    app.include_router(auth_router)
    app.include_router(user_router)
    app.include_router(admin_router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app
