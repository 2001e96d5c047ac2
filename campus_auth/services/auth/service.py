"""
AuthService
===========

Facade over the credential lifecycle: registration, login, session refresh
and logout, password recovery, email verification and password change.

Sessions pair a short-lived signed access token (stateless, from an
:class:`AccessTokenIssuer`) with an opaque refresh token tracked in the
:class:`RefreshTokenLedger`. Outbound mail is best-effort and never changes
the outcome of a flow.
"""

from __future__ import annotations

import logging

from campus_auth.services._shared.base import BaseService, Clock
from campus_auth.services._shared.errors import AuthenticationError, NotFoundError
from campus_auth.services._shared.ports import AccessTokenIssuer, Notifier
from campus_auth.services.auth.dto import (
    AuthSessionOut,
    ChangePasswordIn,
    LoginIn,
    PasswordChangedOut,
    RegisterIn,
    TokenPairOut,
)
from campus_auth.services.identity.dto import (
    DEFAULT_SCHOOL_NAME,
    AdminProfile,
    PrincipalCreateIn,
    PrincipalOut,
)
from campus_auth.services.identity.service import CredentialService, principal_out
from campus_auth.services.tokens.dto import ResetTokenCheck, VerificationOutcome
from campus_auth.services.tokens.password_reset import PasswordResetService
from campus_auth.services.tokens.refresh_ledger import RefreshTokenLedger
from campus_auth.services.tokens.verification import EmailVerificationService

logger = logging.getLogger(__name__)


class AuthService(BaseService):
    """
    Authentication lifecycle service.

    :param credentials: Principal creation, lookup and password checks.
    :param access_tokens: Issuer for signed access tokens.
    :param refresh_ledger: Refresh token issuance, rotation and revocation.
    :param verification: Email verification codes.
    :param password_reset: Password reset links.
    :param notifier: Outbound mail (best-effort).
    """

    def __init__(
        self,
        *,
        credentials: CredentialService,
        access_tokens: AccessTokenIssuer,
        refresh_ledger: RefreshTokenLedger,
        verification: EmailVerificationService,
        password_reset: PasswordResetService,
        notifier: Notifier,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(clock=clock)
        self.credentials = credentials
        self.access_tokens = access_tokens
        self.refresh_ledger = refresh_ledger
        self.verification = verification
        self.password_reset = password_reset
        self.notifier = notifier

    # ------------------------------------------------------------------ #
    # Sessions
    # ------------------------------------------------------------------ #

    def _open_session(self, principal: PrincipalOut) -> TokenPairOut:
        # Refresh entry is registered before any plaintext leaves the service.
        refresh = self.refresh_ledger.issue(principal.id)
        access = self.access_tokens.issue(
            principal_id=principal.id,
            email=principal.email,
            role=principal.role.value,
        )
        return TokenPairOut(
            access_token=access.token,
            refresh_token=refresh.token,
            expires_in=access.expires_in,
            refresh_expires_at=refresh.expires_at,
        )

    def register(self, dto: RegisterIn) -> AuthSessionOut:
        """
        Create an admin principal, its profile and its first verification
        code in one transaction, then open a session.

        The new principal starts unverified; welcome and verification mails
        are sent best-effort after the commit.

        :raises ConflictError: If the email is already registered.
        """
        create = PrincipalCreateIn(
            email=dto.email,
            password=dto.password,
            profile=AdminProfile(
                full_name=dto.full_name,
                phone=dto.phone,
                school_name=dto.school_name or DEFAULT_SCHOOL_NAME,
            ),
        )
        with self.rw_uow() as uow:
            user = self.credentials.create_in(uow, create)
            code = self.verification.issue_in(uow, user.id)
            principal = principal_out(user)

        logger.info("Principal registered", extra={"event": "auth.register", "user_id": principal.id})
        tokens = self._open_session(principal)

        self.best_effort(
            "welcome.send",
            lambda: self.notifier.send_welcome(principal.email, principal.name),
            user_id=principal.id,
        )
        self.best_effort(
            "verification.send",
            lambda: self.notifier.send_verification_code(principal.email, code),
            user_id=principal.id,
        )
        return AuthSessionOut(principal=principal, tokens=tokens)

    def login(self, dto: LoginIn) -> AuthSessionOut:
        """
        Authenticate credentials and open a session.

        :raises AuthenticationError: Same message for unknown email and wrong password.
        """
        try:
            principal = self.credentials.authenticate(dto.email, dto.password)
        except AuthenticationError:
            logger.info("Login rejected", extra={"event": "auth.login", "outcome": "rejected"})
            raise
        logger.info("Login succeeded", extra={"event": "auth.login", "user_id": principal.id, "outcome": "ok"})
        return AuthSessionOut(principal=principal, tokens=self._open_session(principal))

    def refresh(self, refresh_token: str) -> TokenPairOut:
        """
        Redeem ``refresh_token`` for a new access token and its successor.

        :raises AuthenticationError: For any invalid token, or if the
            principal no longer exists.
        """
        rotation = self.refresh_ledger.redeem(refresh_token)
        try:
            principal = self.credentials.get_principal(rotation.user_id)
        except NotFoundError as exc:
            raise AuthenticationError("Invalid refresh token") from exc

        access = self.access_tokens.issue(
            principal_id=principal.id,
            email=principal.email,
            role=principal.role.value,
        )
        return TokenPairOut(
            access_token=access.token,
            refresh_token=rotation.refresh.token,
            expires_in=access.expires_in,
            refresh_expires_at=rotation.refresh.expires_at,
        )

    def logout(self, refresh_token: str) -> None:
        """Revoke ``refresh_token``. Succeeds whether or not the token was live."""
        self.refresh_ledger.revoke(refresh_token)

    # ------------------------------------------------------------------ #
    # Password recovery
    # ------------------------------------------------------------------ #

    def forgot_password(self, email: str) -> None:
        """Send a reset link if the email is known. Never reveals which case applied."""
        self.password_reset.issue(email)

    def verify_reset_token(self, token: str) -> ResetTokenCheck:
        return self.password_reset.verify(token)

    def reset_password(self, token: str, new_password: str) -> None:
        """
        Consume a reset token, replace the password and end every session.

        The token and the new password are committed before sessions are
        revoked. If the refresh ledger is unavailable the error propagates
        with the password already changed and the token spent; the principal
        signs in with the new password and existing sessions stay live until
        they expire or are revoked.

        :raises InvalidTokenError: Missing, mismatched, expired or used token.
        """
        done = self.password_reset.consume(token, new_password)
        try:
            self.refresh_ledger.revoke_all(done.user_id)
        except Exception:
            logger.error(
                "Password reset committed but sessions were not revoked",
                exc_info=True,
                extra={"event": "password_reset.revoke_all", "user_id": done.user_id, "outcome": "failed"},
            )
            raise
        self.best_effort(
            "password_changed.send",
            lambda: self.notifier.send_password_changed(done.email, done.full_name),
            user_id=done.user_id,
        )

    # ------------------------------------------------------------------ #
    # Email verification
    # ------------------------------------------------------------------ #

    def verify_email(self, code: str) -> VerificationOutcome:
        """:raises InvalidTokenError: Unknown or expired code."""
        return self.verification.consume(code)

    def resend_verification(self, email: str) -> None:
        self.verification.resend(email)

    # ------------------------------------------------------------------ #
    # Authenticated principal
    # ------------------------------------------------------------------ #

    def change_password(self, dto: ChangePasswordIn) -> PasswordChangedOut:
        """
        Replace the password of the authenticated principal.

        :raises AuthenticationError: Wrong current password, or principal gone.
        :raises PasswordPolicyError: New password equals the current one.
        """
        try:
            principal = self.credentials.change_password(
                dto.user_id, dto.current_password, dto.new_password
            )
        except NotFoundError as exc:
            raise AuthenticationError("User not found") from exc

        revoked = self.refresh_ledger.revoke_all(principal.id) if dto.revoke_all_sessions else 0
        logger.info(
            "Password changed",
            extra={"event": "auth.change_password", "user_id": principal.id},
        )
        self.best_effort(
            "password_changed.send",
            lambda: self.notifier.send_password_changed(principal.email, principal.name),
            user_id=principal.id,
        )
        return PasswordChangedOut(sessions_revoked=revoked)

    def me(self, user_id: int) -> PrincipalOut:
        """:raises AuthenticationError: If the principal no longer exists."""
        try:
            return self.credentials.get_principal(user_id)
        except NotFoundError as exc:
            raise AuthenticationError("User not found") from exc
