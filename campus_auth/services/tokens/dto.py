from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


@dataclass(frozen=True, slots=True)
class IssuedRefreshToken:
    """
    Plaintext refresh token, returned exactly once at issuance.

    :param token: ``<selector>.<secret>``; only the secret's hash is stored.
    :type token: str
    :param expires_at: Absolute expiry (UTC).
    :type expires_at: datetime
    """

    token: str
    expires_at: datetime


@dataclass(frozen=True, slots=True)
class RefreshRotation:
    """
    Result of a successful redemption.

    :param user_id: Principal the redeemed token belonged to.
    :type user_id: int
    :param refresh: Successor refresh token.
    :type refresh: IssuedRefreshToken
    """

    user_id: int
    refresh: IssuedRefreshToken


class VerificationOutcome(Enum):
    """Outcome of consuming a verification code."""

    VERIFIED = "verified"
    ALREADY_VERIFIED = "already_verified"


@dataclass(frozen=True, slots=True)
class ResetTokenCheck:
    """
    Non-consuming reset token check.

    :param valid: Whether the token would currently be accepted.
    :type valid: bool
    :param email: Owner email when valid.
    :type email: str | None
    """

    valid: bool
    email: str | None = None


@dataclass(frozen=True, slots=True)
class PasswordResetDone:
    """Principal whose password was replaced by a reset."""

    user_id: int
    email: str
    full_name: str
