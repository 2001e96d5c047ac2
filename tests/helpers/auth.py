"""Authentication helpers for tests."""

from __future__ import annotations

from datetime import timedelta

from flask_jwt_extended import create_access_token


def issue_token(identity: int, expires_delta: timedelta | None = None) -> str:
    """Generate an access token for ``identity`` the way the API does.

    Parameters
    ----------
    identity:
        Principal identifier to encode in ``sub``.
    expires_delta:
        Optional expiry delta. If ``None``, the default expiry is used.
    """

    return create_access_token(
        identity=str(identity),
        additional_claims={"email": f"user{identity}@school.test", "role": "admin"},
        expires_delta=expires_delta,
    )


def expired_token(identity: int) -> str:
    """Return an already expired access token for ``identity``."""

    return issue_token(identity, expires_delta=timedelta(seconds=-1))


def bearer(token: str) -> dict[str, str]:
    """Authorization header for ``token``."""

    return {"Authorization": f"Bearer {token}"}
