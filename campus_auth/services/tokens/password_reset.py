"""
Password reset links.

A reset token is ``<selector>.<secret>``: the selector is the row id and the
secret is compared against a salted hash. A principal holds at most one
pending reset token; issuing a new one deletes the previous row, so only
the newest link works.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from urllib.parse import urlencode

from campus_auth.core.security import (
    SecretHasher,
    generate_secret,
    generate_selector,
    join_token,
    split_token,
)
from campus_auth.models.base import as_utc
from campus_auth.models.tokens import PasswordResetToken
from campus_auth.services._shared.base import BaseService, Clock
from campus_auth.services._shared.errors import InvalidTokenError
from campus_auth.services._shared.ports import Notifier
from campus_auth.services.tokens.dto import PasswordResetDone, ResetTokenCheck

logger = logging.getLogger(__name__)

INVALID_RESET_TOKEN = "Invalid or expired reset token"


class PasswordResetService(BaseService):
    """
    Issue, check and consume password reset tokens.

    :param notifier: Delivers reset links out-of-band (best-effort).
    :param frontend_url: Base URL of the page that accepts ``?token=``.
    :param hasher: Hasher for reset secrets and the new password.
    :param ttl: Reset token lifetime.
    """

    def __init__(
        self,
        *,
        notifier: Notifier,
        frontend_url: str,
        hasher: SecretHasher | None = None,
        ttl: timedelta = timedelta(hours=1),
        clock: Clock | None = None,
    ) -> None:
        super().__init__(clock=clock)
        self.notifier = notifier
        self.frontend_url = frontend_url.rstrip("/")
        self.hasher = hasher or SecretHasher()
        self.ttl = ttl

    def reset_url(self, token: str) -> str:
        return f"{self.frontend_url}/reset-password?{urlencode({'token': token})}"

    # ------------------------------------------------------------------ #
    # Issuance
    # ------------------------------------------------------------------ #

    def issue(self, email: str) -> None:
        """
        Send a reset link when ``email`` resolves to a principal.

        Returns nothing either way; an unknown email is indistinguishable
        from a known one to the caller.
        """
        with self.rw_uow() as uow:
            user = uow.users.get_by_email(email)
            if user is None:
                logger.info("Password reset requested for unknown email", extra={"event": "reset.issue", "outcome": "skipped"})
                return
            user_id, address = user.id, user.email
            uow.reset_tokens.delete_for_user(user_id)
            selector, secret = generate_selector(), generate_secret()
            uow.reset_tokens.add(
                PasswordResetToken(
                    id=selector,
                    user_id=user_id,
                    secret_hash=self.hasher.hash(secret),
                    expires_at=self.now_utc() + self.ttl,
                )
            )

        logger.info("Password reset token issued", extra={"event": "reset.issue", "user_id": user_id})
        url = self.reset_url(join_token(selector, secret))
        self.best_effort(
            "reset.send",
            lambda: self.notifier.send_password_reset(address, url),
            user_id=user_id,
        )

    # ------------------------------------------------------------------ #
    # Verification (non-consuming)
    # ------------------------------------------------------------------ #

    def verify(self, token: str) -> ResetTokenCheck:
        parts = split_token(token)
        if parts is None:
            return ResetTokenCheck(valid=False)
        selector, secret = parts

        with self.ro_uow() as uow:
            row = uow.reset_tokens.get(selector)
            if row is None or as_utc(row.expires_at) <= self.now_utc():
                return ResetTokenCheck(valid=False)
            if not self.hasher.compare(secret, row.secret_hash):
                return ResetTokenCheck(valid=False)
            user = uow.users.get(row.user_id)
            if user is None:
                return ResetTokenCheck(valid=False)
            return ResetTokenCheck(valid=True, email=user.email)

    # ------------------------------------------------------------------ #
    # Consumption
    # ------------------------------------------------------------------ #

    def consume(self, token: str, new_password: str) -> PasswordResetDone:
        """
        Replace the password of the token's principal and destroy the token.

        The row is removed with a conditional delete, so of several
        concurrent callers only one proceeds to the password update; both
        writes commit together. Expired rows are deleted on sight.

        :raises InvalidTokenError: Missing, mismatched, expired or already used.
        """
        parts = split_token(token)
        if parts is None:
            raise InvalidTokenError(INVALID_RESET_TOKEN)
        selector, secret = parts
        now = self.now_utc()
        done: PasswordResetDone | None = None

        with self.rw_uow() as uow:
            row = uow.reset_tokens.get(selector)
            if row is not None and self.hasher.compare(secret, row.secret_hash):
                user_id = row.user_id
                expired = as_utc(row.expires_at) <= now
                won = uow.reset_tokens.delete_if_present(selector)
                user = uow.users.get(user_id) if won and not expired else None
                if user is not None:
                    uow.users.update_password_hash(user_id, self.hasher.hash(new_password))
                    full_name = user.profile.full_name if user.profile else user.email
                    done = PasswordResetDone(user_id=user_id, email=user.email, full_name=full_name)

        if done is None:
            logger.info("Password reset rejected", extra={"event": "reset.consume", "outcome": "invalid"})
            raise InvalidTokenError(INVALID_RESET_TOKEN)
        logger.info("Password reset completed", extra={"event": "reset.consume", "user_id": done.user_id})
        return done

    def purge_expired(self) -> int:
        """Housekeeping: delete reset tokens past their expiry."""
        with self.rw_uow() as uow:
            return uow.reset_tokens.purge_expired(now=self.now_utc())
