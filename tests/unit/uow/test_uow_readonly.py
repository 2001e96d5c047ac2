"""Unit tests for the read-only SQLAlchemy Unit of Work guards."""

from __future__ import annotations

import pytest
from sqlalchemy import text

from campus_auth.models.user import User
from campus_auth.uow import SQLAlchemyReadOnlyUnitOfWork
from tests.factories.user import UserFactory


def test_reads_are_allowed(session):
    user = UserFactory(email="reader@school.test")
    with SQLAlchemyReadOnlyUnitOfWork() as uow:
        assert uow.users.get_by_email("reader@school.test").id == user.id


def test_reads_after_factory_with_custom_password(session):
    UserFactory(email="custom@school.test", password="Secret123!")
    with SQLAlchemyReadOnlyUnitOfWork() as uow:
        assert uow.users.get_by_email("custom@school.test").verify_password("Secret123!")


def test_commit_is_disallowed(session):
    with SQLAlchemyReadOnlyUnitOfWork() as uow:
        with pytest.raises(RuntimeError, match="does not allow commit"):
            uow.commit()


def test_orm_writes_are_blocked(session):
    with SQLAlchemyReadOnlyUnitOfWork() as uow:
        user = User(email="blocked@school.test")
        user.password = "Secret123!"
        uow.session.add(user)
        with pytest.raises(RuntimeError, match="ORM flush blocked"):
            uow.session.flush()


def test_raw_dml_is_blocked(session):
    UserFactory()
    with SQLAlchemyReadOnlyUnitOfWork() as uow:
        with pytest.raises(RuntimeError, match="SQL statement blocked"):
            uow.session.execute(text("DELETE FROM users"))


def test_guards_are_removed_on_exit(session):
    with SQLAlchemyReadOnlyUnitOfWork():
        pass
    user = UserFactory(email="after@school.test")
    assert user.id is not None
