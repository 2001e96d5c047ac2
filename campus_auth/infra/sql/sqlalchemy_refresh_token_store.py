from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from campus_auth.models.base import as_utc
from campus_auth.models.tokens import RefreshToken, TokenState
from campus_auth.services._shared.ports import RefreshTokenStore, RefreshTokenView, RotationResult
from campus_auth.uow.sqlalchemy_uow import SQLAlchemyUnitOfWork


def _view(row: RefreshToken) -> RefreshTokenView:
    expires_at = as_utc(row.expires_at) or row.expires_at
    return RefreshTokenView(
        selector=row.id,
        user_id=row.user_id,
        secret_hash=row.secret_hash,
        state=TokenState(row.state).value,
        expires_at=expires_at,
        replaced_by=row.replaced_by,
    )


@dataclass(slots=True)
class SQLAlchemyRefreshTokenStore(RefreshTokenStore):
    """
    Relational refresh token ledger (default backend).

    Each call runs in its own read-write Unit of Work. Transitions are a
    single conditional ``UPDATE ... WHERE state = 'issued'``; a rotation
    flips the old row and inserts the successor in the same transaction, so
    either both are committed or neither is.

    :param uow_factory: Builds the Unit of Work for each call.
    """

    uow_factory: Callable[[], SQLAlchemyUnitOfWork] = field(default=SQLAlchemyUnitOfWork)

    def register(
        self,
        *,
        selector: str,
        user_id: int,
        secret_hash: str,
        issued_at: datetime,
        expires_at: datetime,
    ) -> None:
        with self.uow_factory() as uow:
            uow.refresh_tokens.add(
                RefreshToken(
                    id=selector,
                    user_id=user_id,
                    secret_hash=secret_hash,
                    state=TokenState.ISSUED,
                    expires_at=expires_at,
                    created_at=issued_at,
                )
            )

    def get(self, selector: str) -> RefreshTokenView | None:
        with self.uow_factory() as uow:
            row = uow.refresh_tokens.get(selector)
            return _view(row) if row is not None else None

    def rotate(
        self,
        *,
        old_selector: str,
        new_selector: str,
        new_secret_hash: str,
        now: datetime,
        new_expires_at: datetime,
    ) -> RotationResult:
        with self.uow_factory() as uow:
            repo = uow.refresh_tokens
            if repo.redeem_if_issued(old_selector, now=now, replaced_by=new_selector):
                row = repo.get(old_selector)
                if row is None:
                    raise RuntimeError(f"Refresh token {old_selector!r} vanished after redemption")
                repo.add(
                    RefreshToken(
                        id=new_selector,
                        user_id=row.user_id,
                        secret_hash=new_secret_hash,
                        state=TokenState.ISSUED,
                        expires_at=new_expires_at,
                        created_at=now,
                    )
                )
                return RotationResult.OK

            # Lost the swap: classify why from the current row.
            row = repo.get(old_selector)
            if row is None:
                return RotationResult.NOT_FOUND
            if row.state == TokenState.REVOKED:
                return RotationResult.REVOKED
            if row.state == TokenState.REDEEMED:
                return RotationResult.REUSED
            return RotationResult.EXPIRED

    def revoke(self, selector: str, *, now: datetime) -> bool:
        with self.uow_factory() as uow:
            return uow.refresh_tokens.revoke_if_issued(selector, now=now)

    def revoke_all_for_user(self, user_id: int, *, now: datetime) -> int:
        with self.uow_factory() as uow:
            return uow.refresh_tokens.revoke_all_for_user(user_id, now=now)

    def list_user_tokens(self, user_id: int) -> list[RefreshTokenView]:
        with self.uow_factory() as uow:
            return [_view(row) for row in uow.refresh_tokens.list_for_user(user_id)]

    def purge(self, *, now: datetime) -> int:
        with self.uow_factory() as uow:
            return uow.refresh_tokens.purge(now=now)
