"""Refresh token ledger persistence with conditional state transitions."""

from __future__ import annotations

from datetime import datetime
from typing import cast

from sqlalchemy import delete, or_, select, update

from campus_auth.models.tokens import RefreshToken, TokenState
from campus_auth.repositories.base import BaseRepository


class RefreshTokenRepository(BaseRepository[RefreshToken]):
    """Persistence for :class:`RefreshToken` rows.

    Every state change is a single ``UPDATE ... WHERE state = 'issued'``; the
    affected row count tells the caller whether it won the transition.
    """

    model = RefreshToken

    def _filterable_fields(self):
        return {
            "id": RefreshToken.id,
            "user_id": RefreshToken.user_id,
            "state": RefreshToken.state,
        }

    def list_for_user(self, user_id: int) -> list[RefreshToken]:
        stmt = (
            select(RefreshToken)
            .where(RefreshToken.user_id == user_id)
            .order_by(RefreshToken.created_at, RefreshToken.id)
        )
        return cast(list[RefreshToken], list(self.session.execute(stmt).scalars().all()))

    def redeem_if_issued(self, selector: str, *, now: datetime, replaced_by: str) -> bool:
        """Compare-and-swap ``ISSUED`` (and unexpired) to ``REDEEMED``."""
        stmt = (
            update(RefreshToken)
            .where(
                RefreshToken.id == selector,
                RefreshToken.state == TokenState.ISSUED,
                RefreshToken.expires_at > now,
            )
            .values(state=TokenState.REDEEMED, redeemed_at=now, replaced_by=replaced_by)
        )
        return self._execute_dml(stmt) == 1

    def revoke_if_issued(self, selector: str, *, now: datetime) -> bool:
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.id == selector, RefreshToken.state == TokenState.ISSUED)
            .values(state=TokenState.REVOKED, revoked_at=now)
        )
        return self._execute_dml(stmt) == 1

    def revoke_all_for_user(self, user_id: int, *, now: datetime) -> int:
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.user_id == user_id, RefreshToken.state == TokenState.ISSUED)
            .values(state=TokenState.REVOKED, revoked_at=now)
        )
        return self._execute_dml(stmt)

    def purge(self, *, now: datetime) -> int:
        """Delete terminal rows: redeemed, revoked or past ``expires_at``."""
        stmt = delete(RefreshToken).where(
            or_(RefreshToken.state != TokenState.ISSUED, RefreshToken.expires_at <= now)
        )
        return self._execute_dml(stmt, detach=True)
