# tests/unit/services/test_password_reset_service.py
from __future__ import annotations

from datetime import timedelta
from urllib.parse import parse_qs, urlparse

import pytest

from campus_auth.core.security import SecretHasher, split_token
from campus_auth.models.tokens import PasswordResetToken
from campus_auth.models.user import User
from campus_auth.services._shared.errors import InvalidTokenError
from campus_auth.services._shared.ports import InMemoryNotifier
from campus_auth.services.tokens.password_reset import PasswordResetService
from tests.factories.user import DEFAULT_PASSWORD, UserFactory
from tests.helpers.clock import FakeClock

FRONTEND = "https://app.school.test/"


# ------------------------------ Fixtures ---------------------------------- #
@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def notifier() -> InMemoryNotifier:
    return InMemoryNotifier()


@pytest.fixture()
def service(notifier, clock) -> PasswordResetService:
    return PasswordResetService(
        notifier=notifier,
        frontend_url=FRONTEND,
        hasher=SecretHasher("pbkdf2:sha256:1000"),
        ttl=timedelta(hours=1),
        clock=clock,
    )


def _request_token(service, notifier, email: str) -> str:
    service.issue(email)
    message = notifier.last("password_reset", to=email)
    assert message is not None
    url = urlparse(message.payload["reset_url"])
    return parse_qs(url.query)["token"][0]


def _reload(session, user_id: int) -> User:
    session.expire_all()
    return session.get(User, user_id)


# -------------------------------- Tests ----------------------------------- #
def test_reset_url_points_at_frontend(service):
    url = service.reset_url("abc.def")
    assert url == "https://app.school.test/reset-password?token=abc.def"


def test_issue_for_unknown_email_sends_nothing(service, notifier, session):
    service.issue("nobody@school.test")
    assert notifier.outbox == []
    assert session.query(PasswordResetToken).count() == 0


def test_issue_stores_hash_and_sends_link(service, notifier, session):
    user = UserFactory(email="reset@school.test")

    token = _request_token(service, notifier, "reset@school.test")

    selector, secret = split_token(token)
    row = session.get(PasswordResetToken, selector)
    assert row.user_id == user.id
    assert secret not in row.secret_hash


def test_verify_is_non_consuming(service, notifier):
    UserFactory(email="check@school.test")
    token = _request_token(service, notifier, "check@school.test")

    first = service.verify(token)
    second = service.verify(token)

    assert first.valid and first.email == "check@school.test"
    assert second.valid


@pytest.mark.parametrize("token", ["", "garbage", "unknown.secret"])
def test_verify_rejects_bad_tokens(service, token):
    check = service.verify(token)
    assert check.valid is False
    assert check.email is None


def test_verify_rejects_wrong_secret(service, notifier):
    UserFactory(email="secret@school.test")
    token = _request_token(service, notifier, "secret@school.test")
    selector, _ = split_token(token)
    assert service.verify(f"{selector}.wrong").valid is False


def test_consume_replaces_password_once(service, notifier, session):
    user = UserFactory(email="once@school.test")
    token = _request_token(service, notifier, "once@school.test")

    done = service.consume(token, "BrandNew123!")

    assert done.user_id == user.id
    assert done.email == "once@school.test"
    reloaded = _reload(session, user.id)
    assert reloaded.verify_password("BrandNew123!")
    assert not reloaded.verify_password(DEFAULT_PASSWORD)
    with pytest.raises(InvalidTokenError):
        service.consume(token, "Another123!")
    assert service.verify(token).valid is False


def test_wrong_secret_does_not_burn_the_token(service, notifier):
    UserFactory(email="burn@school.test")
    token = _request_token(service, notifier, "burn@school.test")
    selector, _ = split_token(token)

    with pytest.raises(InvalidTokenError):
        service.consume(f"{selector}.wrong", "BrandNew123!")

    assert service.consume(token, "BrandNew123!").email == "burn@school.test"


def test_newer_token_invalidates_older(service, notifier, session):
    user = UserFactory(email="newer@school.test")
    older = _request_token(service, notifier, "newer@school.test")
    newer = _request_token(service, notifier, "newer@school.test")

    assert service.verify(older).valid is False
    with pytest.raises(InvalidTokenError):
        service.consume(older, "BrandNew123!")
    service.consume(newer, "BrandNew123!")
    assert _reload(session, user.id).verify_password("BrandNew123!")


def test_expired_token_is_rejected_and_removed(service, notifier, session, clock):
    user = UserFactory(email="late@school.test")
    token = _request_token(service, notifier, "late@school.test")
    clock.advance(hours=1)

    assert service.verify(token).valid is False
    with pytest.raises(InvalidTokenError, match="Invalid or expired reset token"):
        service.consume(token, "BrandNew123!")

    assert session.query(PasswordResetToken).filter_by(user_id=user.id).count() == 0
    assert _reload(session, user.id).verify_password(DEFAULT_PASSWORD)


def test_issue_survives_notifier_failure(service, notifier, session):
    user = UserFactory(email="fail@school.test")
    notifier.fail = True

    service.issue("fail@school.test")

    assert session.query(PasswordResetToken).filter_by(user_id=user.id).count() == 1


def test_purge_expired(service, notifier, session, clock):
    UserFactory(email="stale@school.test")
    UserFactory(email="fresh@school.test")
    _request_token(service, notifier, "stale@school.test")
    clock.advance(hours=2)
    _request_token(service, notifier, "fresh@school.test")

    assert service.purge_expired() == 1
    assert session.query(PasswordResetToken).count() == 1
