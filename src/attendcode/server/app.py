"""FastAPI application — secret provisioning and code verification API."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from attendcode import __version__
from attendcode.auth.totp import CodeEngine
from attendcode.config import SecretStoreBackend, engine_config_from_settings, settings
from attendcode.db import close_pool, init_pool
from attendcode.errors import (
    AuthenticationError,
    AuthorizationError,
    ConfigurationError,
    ScopeNotProvisioned,
)
from attendcode.provisioning.service import SecretProvisioner
from attendcode.verification import CodeVerifier

logger = logging.getLogger(__name__)


def create_app(
    provisioner: SecretProvisioner | None = None,
    verifier: CodeVerifier | None = None,
) -> FastAPI:
    use_db = provisioner is None and settings.secret_store == SecretStoreBackend.POSTGRES

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if use_db:
            await init_pool()
        yield
        if use_db:
            await close_pool()

    app = FastAPI(
        title="AttendCode",
        description="Rotating attendance codes — secret provisioning and verification",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.provisioner = provisioner or SecretProvisioner()
    app.state.verifier = verifier or CodeVerifier(
        app.state.provisioner, CodeEngine(engine_config_from_settings())
    )

    @app.exception_handler(AuthenticationError)
    async def _unauthenticated(request: Request, exc: AuthenticationError):
        return JSONResponse(
            status_code=401,
            content={"detail": str(exc)},
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(AuthorizationError)
    async def _forbidden(request: Request, exc: AuthorizationError):
        return JSONResponse(status_code=403, content={"detail": str(exc)})

    @app.exception_handler(ScopeNotProvisioned)
    async def _not_provisioned(request: Request, exc: ScopeNotProvisioned):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(ConfigurationError)
    async def _misconfigured(request: Request, exc: ConfigurationError):
        logger.error("Server misconfigured: %s", exc)
        return JSONResponse(status_code=500, content={"detail": "Server misconfigured"})

    from attendcode.server.routes import codes, health

    app.include_router(health.router)
    app.include_router(codes.router)
    return app


app = create_app()
