"""Convenience exports for application schemas."""

from __future__ import annotations

from .auth import (
    ChangePasswordSchema,
    EmailSchema,
    LoginSchema,
    PrincipalSchema,
    RefreshTokenSchema,
    RegisterSchema,
    ResetPasswordSchema,
    ResetTokenCheckSchema,
    ResetTokenQuerySchema,
    TokenResponseSchema,
    VerifyEmailSchema,
)

__all__ = [
    "ChangePasswordSchema",
    "EmailSchema",
    "LoginSchema",
    "PrincipalSchema",
    "RefreshTokenSchema",
    "RegisterSchema",
    "ResetPasswordSchema",
    "ResetTokenCheckSchema",
    "ResetTokenQuerySchema",
    "TokenResponseSchema",
    "VerifyEmailSchema",
]
