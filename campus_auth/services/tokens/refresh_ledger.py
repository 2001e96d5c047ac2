"""
Refresh token ledger.

Entries move ``issued -> redeemed | revoked`` exactly once; ``expired`` is
derived from ``expires_at``. Every failure mode of a redemption (unknown
selector, wrong secret, expired, revoked, replayed) surfaces as the same
``AuthenticationError`` so callers learn nothing about which one happened.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from campus_auth.core.security import (
    SecretHasher,
    generate_secret,
    generate_selector,
    join_token,
    split_token,
)
from campus_auth.services._shared.base import Clock, utcnow
from campus_auth.services._shared.errors import AuthenticationError
from campus_auth.services._shared.ports import RefreshTokenStore, RotationResult
from campus_auth.services.tokens.dto import IssuedRefreshToken, RefreshRotation

logger = logging.getLogger(__name__)

INVALID_REFRESH_TOKEN = "Invalid refresh token"
DEFAULT_REFRESH_TTL = timedelta(days=7)


class RefreshTokenLedger:
    """
    Issue, rotate and revoke opaque refresh tokens over a :class:`RefreshTokenStore`.

    :param store: Ledger backend (in-memory, SQL or Redis).
    :param hasher: Hasher for the secret half of each token.
    :param ttl: Lifetime of each issued token.
    :param reuse_detection: When ``True``, presenting an already redeemed
        token revokes every live refresh token of its principal.
    :param clock: Returns the current aware UTC datetime.
    """

    def __init__(
        self,
        *,
        store: RefreshTokenStore,
        hasher: SecretHasher | None = None,
        ttl: timedelta = DEFAULT_REFRESH_TTL,
        reuse_detection: bool = True,
        clock: Clock | None = None,
    ) -> None:
        self.store = store
        self.hasher = hasher or SecretHasher()
        self.ttl = ttl
        self.reuse_detection = reuse_detection
        self._clock: Clock = clock or utcnow

    # ------------------------------------------------------------------ #
    # Issuance
    # ------------------------------------------------------------------ #

    def issue(self, user_id: int) -> IssuedRefreshToken:
        """Register a new entry, then return its plaintext (the only time it exists)."""
        now = self._clock()
        selector, secret = generate_selector(), generate_secret()
        expires_at = now + self.ttl
        self.store.register(
            selector=selector,
            user_id=user_id,
            secret_hash=self.hasher.hash(secret),
            issued_at=now,
            expires_at=expires_at,
        )
        logger.info("Refresh token issued", extra={"event": "refresh.issue", "user_id": user_id})
        return IssuedRefreshToken(token=join_token(selector, secret), expires_at=expires_at)

    # ------------------------------------------------------------------ #
    # Redemption (rotation)
    # ------------------------------------------------------------------ #

    def redeem(self, token: str) -> RefreshRotation:
        """
        Consume ``token`` and issue its successor atomically.

        The caller mints the access token for ``RefreshRotation.user_id``.

        :raises AuthenticationError: For every kind of invalid token.
        """
        parts = split_token(token)
        if parts is None:
            raise AuthenticationError(INVALID_REFRESH_TOKEN)
        selector, secret = parts

        view = self.store.get(selector)
        if view is None or not self.hasher.compare(secret, view.secret_hash):
            logger.info("Refresh rejected", extra={"event": "refresh.redeem", "outcome": "not_found"})
            raise AuthenticationError(INVALID_REFRESH_TOKEN)

        now = self._clock()
        new_selector, new_secret = generate_selector(), generate_secret()
        new_expires_at = now + self.ttl
        result = self.store.rotate(
            old_selector=selector,
            new_selector=new_selector,
            new_secret_hash=self.hasher.hash(new_secret),
            now=now,
            new_expires_at=new_expires_at,
        )

        if result == RotationResult.OK:
            logger.info(
                "Refresh token rotated",
                extra={"event": "refresh.redeem", "user_id": view.user_id, "outcome": "ok"},
            )
            return RefreshRotation(
                user_id=view.user_id,
                refresh=IssuedRefreshToken(
                    token=join_token(new_selector, new_secret), expires_at=new_expires_at
                ),
            )

        if result == RotationResult.REUSED and self.reuse_detection:
            # Replay of a consumed token: the family is compromised.
            revoked = self.store.revoke_all_for_user(view.user_id, now=now)
            logger.warning(
                "Refresh token reuse detected; revoked %d live tokens",
                revoked,
                extra={"event": "refresh.reuse", "user_id": view.user_id, "outcome": "revoked_all"},
            )
        else:
            logger.info(
                "Refresh rejected",
                extra={
                    "event": "refresh.redeem",
                    "user_id": view.user_id,
                    "outcome": result.name.lower(),
                },
            )
        raise AuthenticationError(INVALID_REFRESH_TOKEN)

    # ------------------------------------------------------------------ #
    # Revocation
    # ------------------------------------------------------------------ #

    def revoke(self, token: str) -> bool:
        """Revoke a still-issued token. Unknown or mismatched tokens are ignored."""
        parts = split_token(token)
        if parts is None:
            return False
        selector, secret = parts
        view = self.store.get(selector)
        if view is None or not self.hasher.compare(secret, view.secret_hash):
            return False
        revoked = self.store.revoke(selector, now=self._clock())
        if revoked:
            logger.info("Refresh token revoked", extra={"event": "refresh.revoke", "user_id": view.user_id})
        return revoked

    def revoke_all(self, user_id: int) -> int:
        count = self.store.revoke_all_for_user(user_id, now=self._clock())
        logger.info(
            "Revoked %d refresh tokens",
            count,
            extra={"event": "refresh.revoke_all", "user_id": user_id},
        )
        return count

    def purge(self) -> int:
        """Housekeeping: drop redeemed, revoked and expired entries."""
        return self.store.purge(now=self._clock())
