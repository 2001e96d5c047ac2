"""Operator CLI commands."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from campus_auth.models.tokens import RefreshToken, TokenState
from campus_auth.models.user import Role, User
from tests.factories.user import UserFactory


@pytest.fixture()
def runner(app):
    return app.test_cli_runner()


def test_create_user_provisions_verified_teacher(runner, session):
    result = runner.invoke(
        args=[
            "auth",
            "create-user",
            "Teacher@School.test",
            "--role",
            "teacher",
            "--name",
            "Tess Teacher",
            "--subject",
            "Biology",
            "--experience",
            "4",
            "--password",
            "Secret123!",
        ]
    )

    assert result.exit_code == 0, result.output
    assert "Created teacher" in result.output
    user = session.query(User).filter_by(email="teacher@school.test").one()
    assert user.role is Role.TEACHER
    assert user.email_verified is True
    assert user.profile.details == {"subject": "Biology", "experience": 4}


def test_create_user_rejects_duplicates(runner):
    UserFactory(email="dup@school.test")
    result = runner.invoke(
        args=["auth", "create-user", "dup@school.test", "--name", "Dup", "--password", "Secret123!"]
    )
    assert result.exit_code != 0
    assert "already registered" in result.output


def test_create_user_rejects_short_password(runner):
    result = runner.invoke(
        args=["auth", "create-user", "short@school.test", "--name", "Short", "--password", "short"]
    )
    assert result.exit_code != 0
    assert "at least 8 characters" in result.output


def test_purge_tokens(runner, session):
    user = UserFactory()
    now = datetime.now(UTC)
    session.add_all(
        [
            RefreshToken(id="live", user_id=user.id, secret_hash="h", expires_at=now + timedelta(days=1)),
            RefreshToken(
                id="revoked",
                user_id=user.id,
                secret_hash="h",
                state=TokenState.REVOKED,
                expires_at=now + timedelta(days=1),
            ),
            RefreshToken(id="stale", user_id=user.id, secret_hash="h", expires_at=now - timedelta(days=1)),
        ]
    )
    session.commit()

    result = runner.invoke(args=["auth", "purge-tokens"])

    assert result.exit_code == 0, result.output
    assert "refresh=2" in result.output
    assert session.query(RefreshToken).count() == 1
