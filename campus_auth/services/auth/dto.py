from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from campus_auth.services.identity.dto import PrincipalOut

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class RegisterIn:
    """
    Input DTO for self-service registration (creates an admin principal).

    :param email: Login email.
    :type email: str
    :param password: Raw password.
    :type password: str
    :param full_name: Display name stored on the profile.
    :type full_name: str
    :param phone: Optional contact phone.
    :type phone: str | None
    :param school_name: Optional school name; a default is used when omitted.
    :type school_name: str | None
    """

    email: str
    password: str
    full_name: str
    phone: str | None = None
    school_name: str | None = None


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for login.

    :param email: User email (normalized).
    :type email: str
    :param password: Raw password (to be verified).
    :type password: str
    """

    email: str
    password: str


@dataclass(frozen=True, slots=True)
class ChangePasswordIn:
    """
    Input DTO for changing the password of an authenticated principal.

    :param user_id: Principal taken from the verified access token.
    :type user_id: int
    :param current_password: Current raw password.
    :type current_password: str
    :param new_password: Replacement raw password.
    :type new_password: str
    :param revoke_all_sessions: Also revoke every live refresh token.
    :type revoke_all_sessions: bool
    """

    user_id: int
    current_password: str
    new_password: str
    revoke_all_sessions: bool = False


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class TokenPairOut:
    """
    Output DTO with access and refresh tokens.

    :param access_token: Signed access token.
    :type access_token: str
    :param refresh_token: Opaque refresh token (``<selector>.<secret>``).
    :type refresh_token: str
    :param expires_in: Access token lifetime in seconds.
    :type expires_in: int
    :param refresh_expires_at: Refresh token expiry (UTC).
    :type refresh_expires_at: datetime
    """

    access_token: str
    refresh_token: str
    expires_in: int
    refresh_expires_at: datetime
    token_type: str = "bearer"


@dataclass(frozen=True, slots=True)
class AuthSessionOut:
    """Principal plus a freshly opened session (register and login)."""

    principal: PrincipalOut
    tokens: TokenPairOut


@dataclass(frozen=True, slots=True)
class PasswordChangedOut:
    """
    Result of a password change.

    :param sessions_revoked: Refresh tokens revoked alongside the change.
    :type sessions_revoked: int
    """

    sessions_revoked: int = 0
