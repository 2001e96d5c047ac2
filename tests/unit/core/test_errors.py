"""Unit tests for problem documents and service error translation."""

from __future__ import annotations

import pytest

from campus_auth.core import errors as api_errors
from campus_auth.services._shared.base import BaseService
from campus_auth.services._shared.errors import (
    AuthenticationError,
    ConflictError,
    InvalidTokenError,
    NotFoundError,
    PasswordPolicyError,
    ServiceError,
)


def test_api_error_renders_problem(app):
    with app.test_request_context("/api/v1/auth/login"):
        problem = api_errors.InvalidToken("Invalid or expired reset token").to_problem()

    assert problem["status"] == 400
    assert problem["code"] == "invalid_token"
    assert problem["detail"] == "Invalid or expired reset token"
    assert problem["instance"] == "/api/v1/auth/login"
    assert problem["request_id"]


def test_unauthorized_response_carries_challenge(app):
    with app.test_request_context("/"):
        resp, status = api_errors.problem_response(api_errors.Unauthorized().to_problem(), 401)
    assert status == 401
    assert resp.mimetype == "application/problem+json"
    assert resp.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.parametrize(
    ("exc", "expected_type", "status", "code"),
    [
        (AuthenticationError(), api_errors.Unauthorized, 401, "unauthorized"),
        (InvalidTokenError(), api_errors.InvalidToken, 400, "invalid_token"),
        (PasswordPolicyError(), api_errors.BadRequest, 400, "bad_request"),
        (NotFoundError("User", 1), api_errors.NotFound, 404, "not_found"),
        (ConflictError("User", "email already registered"), api_errors.Conflict, 409, "conflict"),
        (ServiceError("other"), api_errors.APIError, 400, "bad_request"),
    ],
)
def test_translate_exceptions(exc, expected_type, status, code):
    translated = BaseService().translate_exceptions(exc)
    assert isinstance(translated, expected_type)
    assert translated.status_code == status
    assert translated.code == code


def test_translate_leaves_foreign_exceptions_untouched():
    exc = KeyError("x")
    assert BaseService().translate_exceptions(exc) is exc
