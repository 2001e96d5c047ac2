"""Unit tests for the token repositories."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from campus_auth.models.tokens import (
    EmailVerificationToken,
    PasswordResetToken,
    RefreshToken,
    TokenState,
)
from campus_auth.repositories import (
    EmailVerificationTokenRepository,
    PasswordResetTokenRepository,
    RefreshTokenRepository,
)
from tests.factories.user import UserFactory

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


def _refresh(selector: str, user_id: int, *, expires_at: datetime | None = None) -> RefreshToken:
    return RefreshToken(
        id=selector,
        user_id=user_id,
        secret_hash="hash",
        state=TokenState.ISSUED,
        expires_at=expires_at or NOW + timedelta(days=7),
    )


class TestRefreshTokenRepository:
    @pytest.fixture()
    def repo(self, session) -> RefreshTokenRepository:
        return RefreshTokenRepository(session=session)

    def test_redeem_if_issued_succeeds_once(self, repo):
        user = UserFactory()
        repo.add(_refresh("sel-a", user.id))

        assert repo.redeem_if_issued("sel-a", now=NOW, replaced_by="sel-b") is True
        assert repo.redeem_if_issued("sel-a", now=NOW, replaced_by="sel-c") is False

        row = repo.get("sel-a")
        assert row.state is TokenState.REDEEMED
        assert row.replaced_by == "sel-b"

    def test_redeem_rejects_expired(self, repo):
        user = UserFactory()
        repo.add(_refresh("sel-old", user.id, expires_at=NOW - timedelta(seconds=1)))
        assert repo.redeem_if_issued("sel-old", now=NOW, replaced_by="sel-new") is False
        assert repo.get("sel-old").state is TokenState.ISSUED

    def test_revoke_if_issued(self, repo):
        user = UserFactory()
        repo.add(_refresh("sel-r", user.id))
        assert repo.revoke_if_issued("sel-r", now=NOW) is True
        assert repo.revoke_if_issued("sel-r", now=NOW) is False
        assert repo.get("sel-r").state is TokenState.REVOKED

    def test_revoke_all_only_touches_issued(self, repo):
        user = UserFactory()
        other = UserFactory()
        for selector in ("u1", "u2", "u3"):
            repo.add(_refresh(selector, user.id))
        repo.add(_refresh("o1", other.id))
        repo.redeem_if_issued("u1", now=NOW, replaced_by="u2")

        assert repo.revoke_all_for_user(user.id, now=NOW) == 2
        states = {row.id: row.state for row in repo.list_for_user(user.id)}
        assert states == {
            "u1": TokenState.REDEEMED,
            "u2": TokenState.REVOKED,
            "u3": TokenState.REVOKED,
        }
        assert repo.get("o1").state is TokenState.ISSUED

    def test_purge_removes_terminal_and_expired(self, repo):
        user = UserFactory()
        repo.add(_refresh("live", user.id))
        repo.add(_refresh("dead", user.id, expires_at=NOW - timedelta(minutes=1)))
        repo.add(_refresh("gone", user.id))
        repo.revoke_if_issued("gone", now=NOW)

        assert repo.purge(now=NOW) == 2
        assert [row.id for row in repo.list_for_user(user.id)] == ["live"]


class TestPasswordResetTokenRepository:
    @pytest.fixture()
    def repo(self, session) -> PasswordResetTokenRepository:
        return PasswordResetTokenRepository(session=session)

    def _add(self, repo, selector, user_id, expires_at=None):
        return repo.add(
            PasswordResetToken(
                id=selector,
                user_id=user_id,
                secret_hash="hash",
                expires_at=expires_at or NOW + timedelta(hours=1),
            )
        )

    def test_delete_if_present_wins_once(self, repo):
        user = UserFactory()
        self._add(repo, "reset-1", user.id)
        assert repo.delete_if_present("reset-1") is True
        assert repo.delete_if_present("reset-1") is False
        assert repo.get("reset-1") is None

    def test_delete_for_user_allows_replacement(self, repo):
        user = UserFactory()
        self._add(repo, "first", user.id)
        assert repo.delete_for_user(user.id) == 1
        self._add(repo, "second", user.id)
        assert repo.find_one(user_id=user.id).id == "second"

    def test_purge_expired(self, repo):
        fresh, stale = UserFactory(), UserFactory()
        self._add(repo, "fresh", fresh.id)
        self._add(repo, "stale", stale.id, expires_at=NOW - timedelta(seconds=1))
        assert repo.purge_expired(now=NOW) == 1
        assert repo.get("fresh") is not None


class TestEmailVerificationTokenRepository:
    @pytest.fixture()
    def repo(self, session) -> EmailVerificationTokenRepository:
        return EmailVerificationTokenRepository(session=session)

    def _add(self, repo, user_id, digest, expires_at=None):
        return repo.add(
            EmailVerificationToken(
                user_id=user_id,
                code_digest=digest,
                expires_at=expires_at or NOW + timedelta(hours=24),
            )
        )

    def test_get_by_digest(self, repo):
        user = UserFactory()
        token = self._add(repo, user.id, "d" * 64)
        assert repo.get_by_digest("d" * 64).id == token.id
        assert repo.get_by_digest("e" * 64) is None

    def test_delete_if_present_wins_once(self, repo):
        user = UserFactory()
        token = self._add(repo, user.id, "a" * 64)
        token_id = token.id
        assert repo.delete_if_present(token_id) is True
        assert repo.delete_if_present(token_id) is False

    def test_purge_expired(self, repo):
        fresh, stale = UserFactory(), UserFactory()
        self._add(repo, fresh.id, "1" * 64)
        self._add(repo, stale.id, "2" * 64, expires_at=NOW - timedelta(hours=1))
        assert repo.purge_expired(now=NOW) == 1
        assert repo.find_one(user_id=fresh.id) is not None
        assert repo.find_one(user_id=stale.id) is None
