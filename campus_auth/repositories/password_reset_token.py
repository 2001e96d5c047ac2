"""Password reset token persistence."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete

from campus_auth.models.tokens import PasswordResetToken
from campus_auth.repositories.base import BaseRepository


class PasswordResetTokenRepository(BaseRepository[PasswordResetToken]):
    model = PasswordResetToken

    def _filterable_fields(self):
        return {"user_id": PasswordResetToken.user_id}

    def delete_for_user(self, user_id: int) -> int:
        stmt = delete(PasswordResetToken).where(PasswordResetToken.user_id == user_id)
        return self._execute_dml(stmt, detach=True)

    def delete_if_present(self, selector: str) -> bool:
        """Conditional single-use delete; only one concurrent caller gets ``True``."""
        stmt = delete(PasswordResetToken).where(PasswordResetToken.id == selector)
        return self._execute_dml(stmt, detach=True) == 1

    def purge_expired(self, *, now: datetime) -> int:
        stmt = delete(PasswordResetToken).where(PasswordResetToken.expires_at <= now)
        return self._execute_dml(stmt, detach=True)
