"""Unit tests for the principal and profile models."""

from __future__ import annotations

import pytest

from campus_auth.models.user import Profile, Role, User
from tests.factories.user import StudentFactory, UserFactory


class TestUserModel:
    def test_email_is_normalized(self, session):
        user = UserFactory(email="  Admin@School.COM ")
        assert user.email == "admin@school.com"

    @pytest.mark.parametrize("email", ["", "no-at-sign", "a@nodot"])
    def test_email_rejects_malformed(self, email):
        with pytest.raises(ValueError):
            User(email=email)

    def test_password_is_write_only_and_hashed(self, session):
        user = UserFactory(password="Secret123!")
        assert user.password_hash and user.password_hash != "Secret123!"
        assert user.verify_password("Secret123!")
        assert not user.verify_password("wrong")
        with pytest.raises(AttributeError):
            _ = user.password

    def test_factory_leaves_no_pending_changes(self, session):
        user = UserFactory(password="Secret123!")
        assert user not in session.dirty
        assert not session.new
        assert user.verify_password("Secret123!")

    def test_defaults(self, session):
        user = UserFactory()
        assert user.role is Role.ADMIN
        assert user.email_verified is False
        assert user.email_verified_at is None
        assert user.created_at is not None

    def test_profile_relationship(self, session):
        user = StudentFactory()
        session.expire_all()
        reloaded = session.get(User, user.id)
        assert reloaded.role is Role.STUDENT
        assert reloaded.profile.details == {"roll_no": "R-042", "class_id": "7B"}


class TestProfileModel:
    def test_full_name_is_required(self):
        with pytest.raises(ValueError):
            Profile(full_name="   ")

    def test_full_name_is_trimmed(self):
        assert Profile(full_name="  Ada Lovelace ").full_name == "Ada Lovelace"
