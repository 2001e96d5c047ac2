"""Unit tests for :class:`UserRepository`."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from campus_auth.core.security import SecretHasher
from campus_auth.models.user import Profile, Role, User
from campus_auth.repositories.user import UserRepository
from tests.factories.user import UserFactory


@pytest.fixture()
def repo(session) -> UserRepository:
    return UserRepository(session=session)


def test_get_by_email_is_case_insensitive(repo):
    user = UserFactory(email="teacher@school.test")
    assert repo.get_by_email("  TEACHER@school.test ") is not None
    assert repo.get_by_email("teacher@school.test").id == user.id
    assert repo.get_by_email("missing@school.test") is None


def test_exists_by_email(repo):
    UserFactory(email="exists@school.test")
    assert repo.exists_by_email("Exists@School.test")
    assert not repo.exists_by_email("nobody@school.test")


def test_add_with_profile(repo, session):
    user = User(email="new@school.test", role=Role.ADMIN)
    user.password = "Secret123!"
    repo.add_with_profile(user, Profile(full_name="New Admin", details={"school_name": "North"}))
    session.expire_all()

    loaded = repo.get(user.id)
    assert loaded.profile.full_name == "New Admin"
    assert loaded.profile.details == {"school_name": "North"}


def test_update_password_hash(repo, session):
    user = UserFactory()
    new_hash = SecretHasher().hash("Another123!")

    assert repo.update_password_hash(user.id, new_hash) is True
    assert repo.get(user.id).verify_password("Another123!")
    assert repo.update_password_hash(999_999, new_hash) is False


def test_mark_email_verified_flips_once(repo):
    user = UserFactory()
    now = datetime.now(UTC)

    assert repo.mark_email_verified(user.id, now=now) is True
    assert repo.mark_email_verified(user.id, now=now) is False

    reloaded = repo.get(user.id)
    assert reloaded.email_verified is True
    assert reloaded.email_verified_at is not None


def test_filters_are_whitelisted(repo):
    UserFactory(role=Role.TEACHER)
    assert repo.exists(role=Role.TEACHER)
    with pytest.raises(ValueError):
        repo.find_one(password_hash="x")
