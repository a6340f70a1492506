# main.py

"""FastAPI application for floor, order and billing operations."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm import sessionmaker
from starlette.exceptions import HTTPException as StarletteHTTPException

from .auth import Token, authenticate_user, create_access_token
from .config import Settings, get_settings
from .db import init_db
from .deps import build_services
from .domain import DomainError
from .middlewares import LoggingMiddleware, RequestIdMiddleware
from .models import utcnow
from .obs import capture_exception, configure_logging, init_sentry
from .routes_billing import router as billing_router
from .routes_kds import router as kds_router
from .routes_menu import router as menu_router
from .routes_orders import router as orders_router
from .routes_tables import router as tables_router
from .schemas import LoginPayload
from .seed import seed
from .utils.responses import domain_error, err, ok

logger = logging.getLogger("api")


def create_app(
    session_factory: Optional[sessionmaker] = None,
    settings: Optional[Settings] = None,
    clock: Callable[[], datetime] = utcnow,
) -> FastAPI:
    """Build the application around ``session_factory``.

    Without a factory the shared engine from :mod:`floorpos.db` is used. The
    schema is created on the factory's engine and, when ``seed_on_startup``
    is set, the seating plan and menu are seeded.
    """

    settings = settings or get_settings()
    if session_factory is None:
        from .db import SessionLocal

        session_factory = SessionLocal
    init_db(session_factory.kw["bind"])
    if settings.seed_on_startup:
        seed(session_factory)

    app = FastAPI(title="Floor POS API", version="1.0.0")
    app.state.session_factory = session_factory
    app.state.services = build_services(session_factory, settings, clock)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(RequestIdMiddleware)

    app.include_router(tables_router)
    app.include_router(orders_router)
    app.include_router(kds_router)
    app.include_router(billing_router)
    app.include_router(menu_router)

    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError):
        logger.warning(
            "%s: %s",
            exc.code,
            exc.message,
            extra={"status": exc.status_code, "route": request.url.path},
        )
        return domain_error(exc)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            err(
                "VALIDATION_ERROR",
                "invalid request",
                {"errors": jsonable_encoder(exc.errors())},
            ),
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        logger.warning(
            exc.detail,
            extra={"status": exc.status_code, "route": request.url.path},
        )
        return JSONResponse(
            err(exc.status_code, exc.detail),
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def general_error_handler(request: Request, exc: Exception):
        logger.exception(
            "unhandled_error", extra={"status": 500, "route": request.url.path}
        )
        capture_exception(exc)
        return JSONResponse(err(500, "Internal Server Error"), status_code=500)

    @app.post("/login", tags=["Auth"], summary="Login with username and password")
    async def login(credentials: LoginPayload) -> dict:
        user = authenticate_user(credentials.username, credentials.password)
        if not user:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid credentials"
            )
        token = create_access_token(
            {"sub": user.username, "role": user.role, "name": user.name}
        )
        logger.info("login user=%s role=%s", user.username, user.role)
        return ok(Token(access_token=token, role=user.role))

    @app.get("/health", tags=["Ops"])
    async def health() -> dict:
        return ok({"status": "ok"})

    return app


settings = get_settings()
configure_logging(settings.log_level)
init_sentry(settings.error_dsn, env=settings.environment)
app = create_app(settings=settings)
