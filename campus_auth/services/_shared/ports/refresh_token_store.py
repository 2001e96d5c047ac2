from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from enum import Enum, auto
from typing import Protocol

ISSUED = "issued"
REDEEMED = "redeemed"
REVOKED = "revoked"


class RotationResult(Enum):
    """Outcome of an atomic refresh rotation attempt."""

    OK = auto()
    NOT_FOUND = auto()
    EXPIRED = auto()
    REVOKED = auto()
    REUSED = auto()


@dataclass(frozen=True, slots=True)
class RefreshTokenView:
    """
    Read-model for a refresh token ledger entry.

    :ivar selector: Public half of the token, locating the entry.
    :ivar user_id: Owner principal id.
    :ivar secret_hash: Salted hash of the secret half.
    :ivar state: ``"issued"``, ``"redeemed"`` or ``"revoked"``.
    :ivar expires_at: Absolute expiration (UTC).
    :ivar replaced_by: Successor selector once redeemed.
    """

    selector: str
    user_id: int
    secret_hash: str
    state: str
    expires_at: datetime
    replaced_by: str | None = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now

    def is_live(self, now: datetime) -> bool:
        return self.state == ISSUED and not self.is_expired(now)


class RefreshTokenStore(Protocol):
    """
    Stateful ledger of refresh tokens.

    Every transition out of ``issued`` is a compare-and-swap: of any number of
    concurrent callers presenting the same entry, exactly one observes
    ``RotationResult.OK`` (or ``True`` for revocation).
    """

    def register(
        self,
        *,
        selector: str,
        user_id: int,
        secret_hash: str,
        issued_at: datetime,
        expires_at: datetime,
    ) -> None:
        """Persist a brand-new ``issued`` entry before its plaintext is handed out."""
        ...

    def get(self, selector: str) -> RefreshTokenView | None: ...

    def rotate(
        self,
        *,
        old_selector: str,
        new_selector: str,
        new_secret_hash: str,
        now: datetime,
        new_expires_at: datetime,
    ) -> RotationResult:
        """
        Atomically flip ``old_selector`` to ``redeemed`` and register its successor.

        :returns: ``RotationResult.OK`` on success, otherwise the specific failure.
        """
        ...

    def revoke(self, selector: str, *, now: datetime) -> bool:
        """Flip an ``issued`` entry to ``revoked``. :returns: True if this call flipped it."""
        ...

    def revoke_all_for_user(self, user_id: int, *, now: datetime) -> int:
        """Flip every ``issued`` entry of the principal. :returns: entries affected."""
        ...

    def list_user_tokens(self, user_id: int) -> list[RefreshTokenView]: ...

    def purge(self, *, now: datetime) -> int:
        """Remove redeemed, revoked and expired entries. :returns: entries removed."""
        ...


class InMemoryRefreshTokenStore(RefreshTokenStore):
    """
    In-memory refresh token ledger with atomic rotation behavior.

    .. note::
       A threading lock serialises every transition; used by unit tests and
       the concurrency tests that race several redeemers.
    """

    def __init__(self) -> None:
        self._by_selector: dict[str, RefreshTokenView] = {}
        self._by_user: dict[int, set[str]] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _utc(dt: datetime) -> datetime:
        return dt.replace(tzinfo=UTC) if dt.tzinfo is None else dt

    def register(
        self,
        *,
        selector: str,
        user_id: int,
        secret_hash: str,
        issued_at: datetime,
        expires_at: datetime,
    ) -> None:
        with self._lock:
            if selector in self._by_selector:
                raise ValueError("Refresh token selector already registered.")
            self._by_selector[selector] = RefreshTokenView(
                selector=selector,
                user_id=user_id,
                secret_hash=secret_hash,
                state=ISSUED,
                expires_at=self._utc(expires_at),
            )
            self._by_user.setdefault(user_id, set()).add(selector)

    def get(self, selector: str) -> RefreshTokenView | None:
        with self._lock:
            return self._by_selector.get(selector)

    def rotate(
        self,
        *,
        old_selector: str,
        new_selector: str,
        new_secret_hash: str,
        now: datetime,
        new_expires_at: datetime,
    ) -> RotationResult:
        now = self._utc(now)
        with self._lock:
            current = self._by_selector.get(old_selector)
            if current is None:
                return RotationResult.NOT_FOUND
            if current.state == REVOKED:
                return RotationResult.REVOKED
            if current.state == REDEEMED:
                return RotationResult.REUSED
            if current.is_expired(now):
                return RotationResult.EXPIRED

            self._by_selector[old_selector] = replace(
                current, state=REDEEMED, replaced_by=new_selector
            )
            self._by_selector[new_selector] = RefreshTokenView(
                selector=new_selector,
                user_id=current.user_id,
                secret_hash=new_secret_hash,
                state=ISSUED,
                expires_at=self._utc(new_expires_at),
            )
            self._by_user.setdefault(current.user_id, set()).add(new_selector)
            return RotationResult.OK

    def revoke(self, selector: str, *, now: datetime) -> bool:
        with self._lock:
            current = self._by_selector.get(selector)
            if current is None or current.state != ISSUED:
                return False
            self._by_selector[selector] = replace(current, state=REVOKED)
            return True

    def revoke_all_for_user(self, user_id: int, *, now: datetime) -> int:
        with self._lock:
            count = 0
            for selector in self._by_user.get(user_id, set()):
                current = self._by_selector.get(selector)
                if current is not None and current.state == ISSUED:
                    self._by_selector[selector] = replace(current, state=REVOKED)
                    count += 1
            return count

    def list_user_tokens(self, user_id: int) -> list[RefreshTokenView]:
        with self._lock:
            return [
                self._by_selector[s]
                for s in sorted(self._by_user.get(user_id, set()))
                if s in self._by_selector
            ]

    def purge(self, *, now: datetime) -> int:
        now = self._utc(now)
        with self._lock:
            dead = [s for s, v in self._by_selector.items() if not v.is_live(now)]
            for selector in dead:
                view = self._by_selector.pop(selector)
                self._by_user.get(view.user_id, set()).discard(selector)
            return len(dead)
