from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from campus_auth.core import errors as api_errors
from campus_auth.services._shared.errors import (
    AuthenticationError,
    ConflictError,
    InvalidTokenError,
    NotFoundError,
    PasswordPolicyError,
    ServiceError,
)
from campus_auth.uow.sqlalchemy_uow import (
    SQLAlchemyReadOnlyUnitOfWork,
    SQLAlchemyUnitOfWork,
)

Clock = Callable[[], datetime]

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(UTC)


class BaseService:
    """
    Base class for application services.

    Responsibilities
    ----------------
    * Provide helpers to run read-only and read-write units of work.
    * Centralize error translation.
    * Own the clock so expiry checks are deterministic under test.

    Notes
    -----
    - Services must never touch the global session; always use a Unit of Work.
    - Services never log secrets; principals are logged by id.
    """

    def __init__(self, *, clock: Clock | None = None) -> None:
        """
        Initialize the base service.

        :param clock: Callable returning the current aware UTC datetime.
        :type clock: Callable[[], datetime] | None
        """
        self._clock: Clock = clock or utcnow

    # -------------------------- UoW helpers ---------------------------------

    def rw_uow(self) -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork()

    def ro_uow(self) -> SQLAlchemyReadOnlyUnitOfWork:
        return SQLAlchemyReadOnlyUnitOfWork()

    def now_utc(self) -> datetime:
        return self._clock()

    # -------------------------- Error handling ------------------------------

    def translate_exceptions(self, exc: Exception) -> Exception:
        """
        Map domain/service-level errors to API-level (HTTP) errors.

        :param exc: Exception raised within the service.
        :type exc: Exception
        :returns: Translated exception ready to be re-raised.
        :rtype: Exception
        """
        if isinstance(exc, AuthenticationError):
            # → 401 Unauthorized
            return api_errors.Unauthorized(str(exc))

        if isinstance(exc, InvalidTokenError):
            # → 400 invalid_token
            return api_errors.InvalidToken(str(exc))

        if isinstance(exc, PasswordPolicyError):
            # → 400 bad_request
            return api_errors.BadRequest(str(exc))

        if isinstance(exc, NotFoundError):
            # → 404 Not Found
            return api_errors.NotFound(str(exc))

        if isinstance(exc, ConflictError):
            # → 409 Conflict
            return api_errors.Conflict(str(exc))

        # Any other ServiceError subclass → 400 Bad Request
        if isinstance(exc, ServiceError):
            return api_errors.APIError(
                message=str(exc),
                status_code=400,
                code="bad_request",
            )

        # Fallback: return untouched (will bubble up to Flask handler)
        return exc

    # -------------------------- Side effects --------------------------------

    def best_effort(self, event: str, send: Callable[[], None], *, user_id: int | None = None) -> bool:
        """
        Run an outbound notification without letting it fail the caller.

        The failure is logged with its traceback; the message content (which
        may carry a code or link) is never logged.

        :returns: ``True`` when ``send`` completed.
        """
        try:
            send()
        except Exception:
            logger.error(
                "Notification failed",
                exc_info=True,
                extra={"event": event, "user_id": user_id, "outcome": "failed"},
            )
            return False
        return True
