from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, cast

from flask import current_app
from flask_jwt_extended import create_access_token, decode_token
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

from campus_auth.services._shared.errors import AuthenticationError
from campus_auth.services._shared.ports import AccessClaims, AccessTokenIssuer, IssuedAccessToken


@dataclass(slots=True)
class FlaskJWTAccessTokenIssuer(AccessTokenIssuer):
    """
    Adapter for Flask-JWT-Extended.

    Claims: ``sub`` (principal id as a string), ``email``, ``role``, ``iat``,
    ``exp`` and ``type="access"``; lifetime comes from
    ``JWT_ACCESS_TOKEN_EXPIRES``.

    .. note::
       Requires an active Flask app context with proper JWT settings.
    """

    expires_delta: timedelta | None = None

    def _lifetime(self) -> timedelta:
        if self.expires_delta is not None:
            return self.expires_delta
        return cast(timedelta, current_app.config["JWT_ACCESS_TOKEN_EXPIRES"])

    def issue(self, *, principal_id: int, email: str, role: str) -> IssuedAccessToken:
        lifetime = self._lifetime()
        token = cast(
            str,
            create_access_token(
                identity=str(principal_id),
                additional_claims={"email": email, "role": role},
                expires_delta=lifetime,
            ),
        )
        return IssuedAccessToken(token=token, expires_in=int(lifetime.total_seconds()))

    def verify(self, token: str) -> AccessClaims:
        try:
            claims = cast(dict[str, Any], decode_token(token))
        except (PyJWTError, JWTExtendedException) as exc:
            raise AuthenticationError("Invalid access token") from exc

        # Flask-JWT-Extended sets "type": "access" | "refresh"
        if claims.get("type") != "access":
            raise AuthenticationError("Invalid access token")
        try:
            return AccessClaims(
                principal_id=int(claims["sub"]),
                email=str(claims["email"]),
                role=str(claims["role"]),
                issued_at=datetime.fromtimestamp(int(claims["iat"]), tz=UTC),
                expires_at=datetime.fromtimestamp(int(claims["exp"]), tz=UTC),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise AuthenticationError("Invalid access token") from exc
