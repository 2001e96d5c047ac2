from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import redis  # type: ignore[import-untyped]

from campus_auth.services._shared.ports import RefreshTokenStore, RefreshTokenView, RotationResult
from campus_auth.services._shared.ports.refresh_token_store import ISSUED, REDEEMED, REVOKED


def _s(value: Any, default: str = "") -> str:
    if value is None:
        return default
    if isinstance(value, bytes | bytearray):
        return value.decode()
    return str(value)


@dataclass(slots=True)
class RedisRefreshTokenStore(RefreshTokenStore):
    """
    Redis-backed refresh token ledger with atomic rotation.

    Layout: one hash per entry at ``rt:{selector}`` (``user_id``,
    ``secret_hash``, ``state``, ``expires_at`` as epoch seconds,
    ``replaced_by``) and a set of selectors per principal at
    ``rt:u:{user_id}``. Entry keys expire with the token, so expired entries
    disappear on their own and read as not found.

    :param r: A Redis client (already connected).
    """

    r: redis.Redis

    # -------------------- helpers --------------------

    @staticmethod
    def _k(selector: str) -> str:
        return f"rt:{selector}"

    @staticmethod
    def _ku(user_id: int | str) -> str:
        return f"rt:u:{user_id}"

    @staticmethod
    def _to_ts(dt: datetime) -> int:
        # Naive datetimes are labelled as UTC (no conversion)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=UTC)
        return int(dt.timestamp())

    @staticmethod
    def _view(selector: str, h: dict[Any, Any]) -> RefreshTokenView:
        replaced_by = _s(h.get(b"replaced_by")) or None
        return RefreshTokenView(
            selector=selector,
            user_id=int(_s(h.get(b"user_id"), "0")),
            secret_hash=_s(h.get(b"secret_hash")),
            state=_s(h.get(b"state"), ISSUED),
            expires_at=datetime.fromtimestamp(int(_s(h.get(b"expires_at"), "0")), tz=UTC),
            replaced_by=replaced_by,
        )

    def _members(self, user_id: int | str) -> list[str]:
        return sorted(_s(m) for m in self.r.smembers(self._ku(user_id)))

    # -------------------- API ------------------------

    def register(
        self,
        *,
        selector: str,
        user_id: int,
        secret_hash: str,
        issued_at: datetime,
        expires_at: datetime,
    ) -> None:
        """
        Insert the entry *before* the plaintext token is handed to the client.

        :raises ValueError: If the selector is already taken.
        """
        key = self._k(selector)
        exp_ts = self._to_ts(expires_at)
        ttl = max(1, exp_ts - self._to_ts(issued_at))

        with self.r.pipeline() as p:
            p.watch(key)
            if p.exists(key):
                p.unwatch()
                raise ValueError("Refresh token selector already registered.")
            p.multi()
            p.hset(
                key,
                mapping={
                    "user_id": str(user_id),
                    "secret_hash": secret_hash,
                    "state": ISSUED,
                    "expires_at": str(exp_ts),
                },
            )
            p.expire(key, ttl)
            p.sadd(self._ku(user_id), selector)
            p.execute()

    def get(self, selector: str) -> RefreshTokenView | None:
        h = self.r.hgetall(self._k(selector))
        if not h:
            return None
        return self._view(selector, h)

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
        Atomically consume ``old_selector`` and create ``new_selector``.

        Uses WATCH/MULTI/EXEC (optimistic locking):

        - Check existence and state of the old entry.
        - Reject if revoked, redeemed or expired.
        - Mark old as redeemed and create the successor with its TTL in one
          atomic step.
        - Add the successor to the principal's index.
        """
        now_ts = self._to_ts(now)
        new_exp_ts = self._to_ts(new_expires_at)
        ttl = max(1, new_exp_ts - now_ts)

        k_old = self._k(old_selector)
        k_new = self._k(new_selector)

        # Need user_id for the index key; if absent, treat as NOT_FOUND
        uid_b = self.r.hget(k_old, "user_id")
        if not uid_b:
            return RotationResult.NOT_FOUND
        uid = _s(uid_b)
        k_user = self._ku(uid)

        while True:
            try:
                with self.r.pipeline() as p:
                    p.watch(k_old, k_new, k_user)

                    h = p.hgetall(k_old)
                    if not h:
                        p.unwatch()
                        return RotationResult.NOT_FOUND

                    state = _s(h.get(b"state"), ISSUED)
                    exp = int(_s(h.get(b"expires_at"), "0"))

                    if state == REVOKED:
                        p.unwatch()
                        return RotationResult.REVOKED
                    if state == REDEEMED:
                        p.unwatch()
                        return RotationResult.REUSED
                    if exp <= now_ts:
                        p.unwatch()
                        return RotationResult.EXPIRED

                    p.multi()
                    p.hset(k_old, mapping={"state": REDEEMED, "replaced_by": new_selector})
                    p.hset(
                        k_new,
                        mapping={
                            "user_id": uid,
                            "secret_hash": new_secret_hash,
                            "state": ISSUED,
                            "expires_at": str(new_exp_ts),
                        },
                    )
                    p.expire(k_new, ttl)
                    p.sadd(k_user, new_selector)
                    p.execute()

                return RotationResult.OK

            except redis.WatchError:
                # Concurrent modification detected; re-read and decide again
                continue

    def revoke(self, selector: str, *, now: datetime) -> bool:
        key = self._k(selector)
        while True:
            try:
                with self.r.pipeline() as p:
                    p.watch(key)
                    state = p.hget(key, "state")
                    if state is None or _s(state) != ISSUED:
                        p.unwatch()
                        return False
                    p.multi()
                    p.hset(key, "state", REVOKED)
                    p.execute()
                return True
            except redis.WatchError:
                continue

    def revoke_all_for_user(self, user_id: int, *, now: datetime) -> int:
        key_u = self._ku(user_id)
        while True:
            try:
                with self.r.pipeline() as p:
                    p.watch(key_u)
                    members = sorted(_s(m) for m in p.smembers(key_u))
                    keys = [self._k(m) for m in members]
                    if keys:
                        p.watch(*keys)
                    live = [k for k in keys if _s(p.hget(k, "state")) == ISSUED]
                    if not live:
                        p.unwatch()
                        return 0
                    p.multi()
                    for k in live:
                        p.hset(k, "state", REVOKED)
                    p.execute()
                return len(live)
            except redis.WatchError:
                continue

    def list_user_tokens(self, user_id: int) -> list[RefreshTokenView]:
        views: list[RefreshTokenView] = []
        stale: list[str] = []
        for selector in self._members(user_id):
            view = self.get(selector)
            if view:
                views.append(view)
            else:
                # Underlying hash expired -> mark for cleanup
                stale.append(selector)
        if stale:
            self.r.srem(self._ku(user_id), *stale)
        return views

    def purge(self, *, now: datetime) -> int:
        """Delete redeemed and revoked entries and drop expired selectors from the indexes."""
        now_ts = self._to_ts(now)
        removed = 0
        for key_u in self.r.scan_iter(match="rt:u:*"):
            user_key = _s(key_u)
            for selector in sorted(_s(m) for m in self.r.smembers(user_key)):
                h = self.r.hgetall(self._k(selector))
                dead = (
                    not h
                    or _s(h.get(b"state"), ISSUED) != ISSUED
                    or int(_s(h.get(b"expires_at"), "0")) <= now_ts
                )
                if not dead:
                    continue
                with self.r.pipeline(transaction=True) as p:
                    p.delete(self._k(selector))
                    p.srem(user_key, selector)
                    p.execute()
                if h:
                    removed += 1
        return removed
