"""Email verification code persistence."""

from __future__ import annotations

from datetime import datetime
from typing import cast

from sqlalchemy import delete, select

from campus_auth.models.tokens import EmailVerificationToken
from campus_auth.repositories.base import BaseRepository


class EmailVerificationTokenRepository(BaseRepository[EmailVerificationToken]):
    model = EmailVerificationToken

    def _filterable_fields(self):
        return {"user_id": EmailVerificationToken.user_id}

    def get_by_digest(self, code_digest: str) -> EmailVerificationToken | None:
        stmt = select(EmailVerificationToken).where(
            EmailVerificationToken.code_digest == code_digest
        )
        return cast(EmailVerificationToken | None, self.session.execute(stmt).scalars().first())

    def delete_for_user(self, user_id: int) -> int:
        stmt = delete(EmailVerificationToken).where(EmailVerificationToken.user_id == user_id)
        return self._execute_dml(stmt, detach=True)

    def delete_if_present(self, token_id: int) -> bool:
        """Conditional single-use delete; only one concurrent caller gets ``True``."""
        stmt = delete(EmailVerificationToken).where(EmailVerificationToken.id == token_id)
        return self._execute_dml(stmt, detach=True) == 1

    def purge_expired(self, *, now: datetime) -> int:
        stmt = delete(EmailVerificationToken).where(EmailVerificationToken.expires_at <= now)
        return self._execute_dml(stmt, detach=True)
