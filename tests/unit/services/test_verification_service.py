# tests/unit/services/test_verification_service.py
from __future__ import annotations

from datetime import timedelta

import pytest

from campus_auth.models.tokens import EmailVerificationToken
from campus_auth.models.user import User
from campus_auth.services._shared.errors import InvalidTokenError
from campus_auth.services._shared.ports import InMemoryNotifier
from campus_auth.services.tokens.dto import VerificationOutcome
from campus_auth.services.tokens.verification import EmailVerificationService
from tests.factories.user import UserFactory
from tests.helpers.clock import FakeClock


# ------------------------------ Fixtures ---------------------------------- #
@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def notifier() -> InMemoryNotifier:
    return InMemoryNotifier()


@pytest.fixture()
def service(notifier, clock) -> EmailVerificationService:
    return EmailVerificationService(notifier=notifier, ttl=timedelta(hours=24), clock=clock)


def _pending(session, user_id: int) -> list[EmailVerificationToken]:
    return session.query(EmailVerificationToken).filter_by(user_id=user_id).all()


# -------------------------------- Tests ----------------------------------- #
def test_issue_stores_digest_not_code(service, session):
    user = UserFactory()

    code = service.issue(user.id)

    assert code.isdigit() and len(code) == 6
    rows = _pending(session, user.id)
    assert len(rows) == 1
    assert rows[0].code_digest != code
    assert len(rows[0].code_digest) == 64


def test_consume_marks_verified_once(service, session):
    user = UserFactory()
    code = service.issue(user.id)

    assert service.consume(code) == VerificationOutcome.VERIFIED

    session.expire_all()
    assert session.get(User, user.id).email_verified is True
    assert _pending(session, user.id) == []
    with pytest.raises(InvalidTokenError):
        service.consume(code)


def test_consume_tolerates_surrounding_whitespace(service):
    user = UserFactory()
    code = service.issue(user.id)
    assert service.consume(f"  {code} ") == VerificationOutcome.VERIFIED


def test_newer_code_invalidates_older(service, session):
    user = UserFactory()
    first = service.issue(user.id)
    second = service.issue(user.id)

    assert len(_pending(session, user.id)) == 1
    if first != second:
        with pytest.raises(InvalidTokenError):
            service.consume(first)
    assert service.consume(second) == VerificationOutcome.VERIFIED


def test_unknown_code_is_rejected(service):
    with pytest.raises(InvalidTokenError, match="Invalid or expired verification code"):
        service.consume("000000")


def test_expired_code_is_rejected_and_removed(service, session, clock):
    user = UserFactory()
    code = service.issue(user.id)
    clock.advance(hours=24)

    with pytest.raises(InvalidTokenError):
        service.consume(code)

    assert _pending(session, user.id) == []
    session.expire_all()
    assert session.get(User, user.id).email_verified is False


def test_already_verified_principal(service, session):
    user = UserFactory()
    code = service.issue(user.id)
    user.email_verified = True
    session.commit()

    assert service.consume(code) == VerificationOutcome.ALREADY_VERIFIED
    assert _pending(session, user.id) == []


def test_resend_sends_a_working_code(service, notifier):
    UserFactory(email="pending@school.test")

    service.resend("Pending@School.test")

    message = notifier.last("verification_code", to="pending@school.test")
    assert message is not None
    assert service.consume(message.payload["code"]) == VerificationOutcome.VERIFIED


def test_resend_is_silent_for_unknown_and_verified(service, notifier):
    UserFactory(email="done@school.test", email_verified=True)

    service.resend("nobody@school.test")
    service.resend("done@school.test")

    assert notifier.outbox == []


def test_resend_survives_notifier_failure(service, notifier, session):
    user = UserFactory()
    notifier.fail = True

    service.resend(user.email)

    assert len(_pending(session, user.id)) == 1


def test_purge_expired(service, session, clock):
    stale, fresh = UserFactory(), UserFactory()
    service.issue(stale.id)
    clock.advance(hours=25)
    service.issue(fresh.id)

    assert service.purge_expired() == 1
    assert _pending(session, stale.id) == []
    assert len(_pending(session, fresh.id)) == 1
