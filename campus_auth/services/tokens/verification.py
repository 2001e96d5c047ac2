"""
Email verification codes.

A principal holds at most one pending code. Codes are short and typed by
hand, so rows are located by a keyed HMAC digest of the code rather than by
a selector; ``code_digest`` is unique, which makes a code resolve to exactly
one principal.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from campus_auth.core.security import generate_numeric_code, keyed_digest
from campus_auth.models.base import as_utc
from campus_auth.models.tokens import EmailVerificationToken
from campus_auth.services._shared.base import BaseService, Clock
from campus_auth.services._shared.errors import InvalidTokenError, ServiceError
from campus_auth.services._shared.ports import Notifier
from campus_auth.services.tokens.dto import VerificationOutcome
from campus_auth.uow.sqlalchemy_uow import SQLAlchemyUnitOfWork

logger = logging.getLogger(__name__)

INVALID_CODE = "Invalid or expired verification code"


class EmailVerificationService(BaseService):
    """
    Issue, resend and consume email verification codes.

    :param notifier: Delivers codes out-of-band (best-effort).
    :param ttl: Code lifetime.
    :param code_length: Number of digits per code.
    :param digest_key: HMAC key; defaults to ``TOKEN_DIGEST_KEY`` of the app.
    """

    MAX_ISSUE_ATTEMPTS = 8

    def __init__(
        self,
        *,
        notifier: Notifier,
        ttl: timedelta = timedelta(hours=24),
        code_length: int = 6,
        digest_key: str | None = None,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(clock=clock)
        self.notifier = notifier
        self.ttl = ttl
        self.code_length = code_length
        self.digest_key = digest_key

    def _digest(self, code: str) -> str:
        return keyed_digest(code, self.digest_key)

    # ------------------------------------------------------------------ #
    # Issuance
    # ------------------------------------------------------------------ #

    def issue_in(self, uow: SQLAlchemyUnitOfWork, user_id: int) -> str:
        """
        Replace the principal's pending code inside the caller's Unit of Work.

        Used by registration so the principal, its profile and its first code
        commit together.

        :returns: The plaintext code (never stored).
        :raises ServiceError: If no collision-free code could be drawn.
        """
        repo = uow.verification_tokens
        repo.delete_for_user(user_id)
        now = self.now_utc()

        for _ in range(self.MAX_ISSUE_ATTEMPTS):
            code = generate_numeric_code(self.code_length)
            digest = self._digest(code)
            clash = repo.get_by_digest(digest)
            if clash is not None:
                if as_utc(clash.expires_at) > now:
                    # Live code of another principal; draw again.
                    continue
                repo.delete_if_present(clash.id)
            repo.add(
                EmailVerificationToken(
                    user_id=user_id,
                    code_digest=digest,
                    expires_at=now + self.ttl,
                )
            )
            logger.info("Verification code issued", extra={"event": "verification.issue", "user_id": user_id})
            return code

        raise ServiceError("Could not allocate a verification code")

    def issue(self, user_id: int) -> str:
        with self.rw_uow() as uow:
            return self.issue_in(uow, user_id)

    def resend(self, email: str) -> None:
        """
        Issue and send a fresh code when ``email`` belongs to an unverified principal.

        Returns nothing either way so callers cannot tell which case applied.
        """
        with self.rw_uow() as uow:
            user = uow.users.get_by_email(email)
            if user is None or user.email_verified:
                logger.info("Verification resend skipped", extra={"event": "verification.resend", "outcome": "skipped"})
                return
            user_id, address = user.id, user.email
            code = self.issue_in(uow, user_id)

        self.best_effort(
            "verification.send",
            lambda: self.notifier.send_verification_code(address, code),
            user_id=user_id,
        )

    # ------------------------------------------------------------------ #
    # Consumption
    # ------------------------------------------------------------------ #

    def consume(self, code: str) -> VerificationOutcome:
        """
        Consume ``code`` and mark its principal verified.

        - unknown code: :class:`InvalidTokenError`
        - principal already verified: stale code deleted, ``ALREADY_VERIFIED``
        - expired: code deleted, :class:`InvalidTokenError`
        - otherwise: code deleted (single use) and the principal flipped to
          verified in the same transaction, ``VERIFIED``
        """
        digest = self._digest(code.strip())
        now = self.now_utc()
        outcome: VerificationOutcome | None = None

        with self.rw_uow() as uow:
            token = uow.verification_tokens.get_by_digest(digest)
            if token is not None:
                token_id, user_id = token.id, token.user_id
                expired = as_utc(token.expires_at) <= now
                user = uow.users.get(user_id)

                if user is not None and user.email_verified:
                    uow.verification_tokens.delete_if_present(token_id)
                    outcome = VerificationOutcome.ALREADY_VERIFIED
                elif expired or user is None:
                    uow.verification_tokens.delete_if_present(token_id)
                elif uow.verification_tokens.delete_if_present(token_id):
                    if uow.users.mark_email_verified(user_id, now=now):
                        outcome = VerificationOutcome.VERIFIED
                    else:
                        outcome = VerificationOutcome.ALREADY_VERIFIED

        if outcome is None:
            logger.info("Verification rejected", extra={"event": "verification.consume", "outcome": "invalid"})
            raise InvalidTokenError(INVALID_CODE)
        logger.info(
            "Verification code consumed",
            extra={"event": "verification.consume", "outcome": outcome.value},
        )
        return outcome

    def purge_expired(self) -> int:
        """Housekeeping: delete codes past their expiry."""
        with self.rw_uow() as uow:
            return uow.verification_tokens.purge_expired(now=self.now_utc())
