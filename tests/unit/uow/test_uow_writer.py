"""Unit tests for the read-write SQLAlchemy Unit of Work."""

from __future__ import annotations

import pytest

from campus_auth.models.user import Profile, Role, User
from campus_auth.uow import SQLAlchemyUnitOfWork


def _principal(email: str) -> tuple[User, Profile]:
    user = User(email=email, role=Role.ADMIN)
    user.password = "Secret123!"
    return user, Profile(full_name="Admin", details={"school_name": "North"})


def test_exposes_repositories_on_one_session(session):
    uow = SQLAlchemyUnitOfWork()
    assert uow.users.session is uow.session
    assert uow.refresh_tokens.session is uow.session
    assert uow.verification_tokens.session is uow.session
    assert uow.reset_tokens.session is uow.session


def test_pending_rows_are_invisible_until_flushed(session):
    uow = SQLAlchemyUnitOfWork()
    user, _ = _principal("pending@school.test")
    uow.session.add(user)

    assert not uow.users.exists_by_email("pending@school.test")
    uow.users.flush()
    assert uow.users.exists_by_email("pending@school.test")
    uow.rollback()


def test_commits_on_success(session):
    with SQLAlchemyUnitOfWork() as uow:
        uow.users.add_with_profile(*_principal("commit@school.test"))

    with SQLAlchemyUnitOfWork() as uow:
        assert uow.users.exists_by_email("commit@school.test")


def test_rolls_back_on_error(session):
    with pytest.raises(RuntimeError):
        with SQLAlchemyUnitOfWork() as uow:
            uow.users.add_with_profile(*_principal("rollback@school.test"))
            raise RuntimeError("boom")

    with SQLAlchemyUnitOfWork() as uow:
        assert not uow.users.exists_by_email("rollback@school.test")
