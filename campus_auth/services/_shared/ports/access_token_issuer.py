from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol


@dataclass(frozen=True, slots=True)
class IssuedAccessToken:
    """Signed access token plus its lifetime in seconds."""

    token: str
    expires_in: int


@dataclass(frozen=True, slots=True)
class AccessClaims:
    """
    Verified claims of an access token.

    :ivar principal_id: Subject (``sub``) parsed back to the principal id.
    :ivar email: Email at issuance time.
    :ivar role: Role value at issuance time.
    :ivar issued_at: ``iat`` as an aware UTC datetime.
    :ivar expires_at: ``exp`` as an aware UTC datetime.
    """

    principal_id: int
    email: str
    role: str
    issued_at: datetime
    expires_at: datetime


class AccessTokenIssuer(Protocol):
    """Port for short-lived, stateless, signed access tokens.

    Verification checks signature and expiry only; there is no store lookup,
    so an access token stays valid until it expires.
    """

    def issue(self, *, principal_id: int, email: str, role: str) -> IssuedAccessToken: ...

    def verify(self, token: str) -> AccessClaims:
        """Return the claims or raise ``AuthenticationError``."""
        ...
