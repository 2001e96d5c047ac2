"""Repository package exposing persistence-layer access for all models."""

from __future__ import annotations

from campus_auth.repositories.base import BaseRepository
from campus_auth.repositories.password_reset_token import PasswordResetTokenRepository
from campus_auth.repositories.refresh_token import RefreshTokenRepository
from campus_auth.repositories.user import UserRepository
from campus_auth.repositories.verification_token import EmailVerificationTokenRepository

__all__ = [
    "BaseRepository",
    "EmailVerificationTokenRepository",
    "PasswordResetTokenRepository",
    "RefreshTokenRepository",
    "UserRepository",
]
