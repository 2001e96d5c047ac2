"""Shared API helpers for request parsing, service wiring and cross-cutting concerns."""

from __future__ import annotations

import functools
import time
from collections.abc import Callable
from datetime import timedelta
from typing import Any, TypeVar, cast

from flask import Response, current_app, jsonify, request
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request

from campus_auth.core.errors import Unauthorized
from campus_auth.core.extensions import get_redis
from campus_auth.infra.jwt import FlaskJWTAccessTokenIssuer
from campus_auth.infra.mail import ResendNotifier
from campus_auth.infra.redis import RedisRefreshTokenStore
from campus_auth.infra.sql import SQLAlchemyRefreshTokenStore
from campus_auth.services import (
    AuthService,
    CredentialService,
    EmailVerificationService,
    PasswordResetService,
    RefreshTokenLedger,
)
from campus_auth.services._shared.base import BaseService
from campus_auth.services._shared.errors import ServiceError
from campus_auth.services._shared.ports import InMemoryNotifier, Notifier, RefreshTokenStore

F = TypeVar("F", bound=Callable[..., Any])
T = TypeVar("T")


def require_auth(func: F) -> F:
    """Ensure the request carries a valid JWT access token."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        verify_jwt_in_request(optional=False)
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def current_principal_id() -> int:
    """Return the principal id carried by the verified access token."""

    identity = get_jwt_identity()
    try:
        return int(identity)
    except (TypeError, ValueError):
        raise Unauthorized("Invalid token subject") from None


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            request_endpoint = getattr(request, "endpoint", None)
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request_endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]


def call_service(service: BaseService, operation: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Run a service operation, translating service errors to API errors."""

    try:
        return operation(*args, **kwargs)
    except ServiceError as exc:
        raise service.translate_exceptions(exc) from exc


# --------------------------------------------------------------------------- #
# Service wiring
# --------------------------------------------------------------------------- #


def get_notifier() -> Notifier:
    """Return the notifier selected by ``NOTIFIER_BACKEND``.

    The in-memory notifier is kept on ``app.extensions`` so its outbox
    survives across requests of the same application.
    """

    config = current_app.config
    if config.get("NOTIFIER_BACKEND") == "memory":
        notifier = current_app.extensions.setdefault("notifier", InMemoryNotifier())
        return cast(Notifier, notifier)

    verification_ttl = cast(timedelta, config["EMAIL_VERIFICATION_TTL"])
    reset_ttl = cast(timedelta, config["PASSWORD_RESET_TTL"])
    return ResendNotifier(
        api_key=config.get("RESEND_API_KEY"),
        sender=str(config["EMAIL_FROM"]),
        verification_ttl_hours=int(verification_ttl.total_seconds() // 3600),
        reset_ttl_minutes=int(reset_ttl.total_seconds() // 60),
    )


def get_refresh_store() -> RefreshTokenStore:
    """Return the refresh token ledger backend selected by ``REFRESH_TOKEN_BACKEND``."""

    if current_app.config.get("REFRESH_TOKEN_BACKEND") == "redis":
        return RedisRefreshTokenStore(get_redis())
    return SQLAlchemyRefreshTokenStore()


def build_refresh_ledger() -> RefreshTokenLedger:
    config = current_app.config
    return RefreshTokenLedger(
        store=get_refresh_store(),
        ttl=cast(timedelta, config["REFRESH_TOKEN_TTL"]),
        reuse_detection=bool(config.get("REFRESH_REUSE_DETECTION", True)),
    )


def build_auth_service() -> AuthService:
    """Assemble :class:`AuthService` from the active application config."""

    config = current_app.config
    notifier = get_notifier()
    return AuthService(
        credentials=CredentialService(),
        access_tokens=FlaskJWTAccessTokenIssuer(),
        refresh_ledger=build_refresh_ledger(),
        verification=EmailVerificationService(
            notifier=notifier,
            ttl=cast(timedelta, config["EMAIL_VERIFICATION_TTL"]),
            code_length=int(config.get("VERIFICATION_CODE_LENGTH", 6)),
        ),
        password_reset=PasswordResetService(
            notifier=notifier,
            frontend_url=str(config["FRONTEND_URL"]),
            ttl=cast(timedelta, config["PASSWORD_RESET_TTL"]),
        ),
        notifier=notifier,
    )
