"""Authentication-related Marshmallow schemas."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from marshmallow import EXCLUDE, Schema, fields, post_dump, validate

PASSWORD_RULE = validate.Length(min=8, max=128)


class _BodySchema(Schema):
    """Request bodies ignore unknown keys."""

    class Meta:
        unknown = EXCLUDE


# ------------------------------- Requests --------------------------------- #


class RegisterSchema(_BodySchema):
    """Input payload for self-service registration."""

    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = fields.String(required=True, validate=PASSWORD_RULE)
    full_name = fields.String(required=True, validate=validate.Length(min=1, max=120))
    phone = fields.String(load_default=None, allow_none=True, validate=validate.Length(max=32))
    school_name = fields.String(load_default=None, allow_none=True, validate=validate.Length(max=120))


class LoginSchema(_BodySchema):
    """Input payload for authenticating a principal."""

    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = fields.String(required=True, validate=validate.Length(min=1, max=128))


class RefreshTokenSchema(_BodySchema):
    """Input payload carrying an opaque refresh token (refresh and logout)."""

    refresh_token = fields.String(required=True, validate=validate.Length(min=1, max=512))


class EmailSchema(_BodySchema):
    """Input payload for forgot-password and resend-verification."""

    email = fields.Email(required=True, validate=validate.Length(max=254))


class ResetTokenQuerySchema(_BodySchema):
    """Query string of ``GET /verify-reset-token``."""

    token = fields.String(required=True, validate=validate.Length(min=1, max=512))


class ResetPasswordSchema(_BodySchema):
    """Input payload for completing a password reset."""

    token = fields.String(required=True, validate=validate.Length(min=1, max=512))
    new_password = fields.String(required=True, validate=PASSWORD_RULE)


class VerifyEmailSchema(_BodySchema):
    """Input payload carrying a numeric verification code."""

    code = fields.String(
        required=True,
        validate=validate.Regexp(r"^\s*\d{4,10}\s*$", error="Code must be numeric."),
    )


class ChangePasswordSchema(_BodySchema):
    """Input payload for changing the password of the current principal."""

    current_password = fields.String(required=True, validate=validate.Length(min=1, max=128))
    new_password = fields.String(required=True, validate=PASSWORD_RULE)
    revoke_all_sessions = fields.Boolean(load_default=False)


# ------------------------------- Responses -------------------------------- #


class PrincipalSchema(Schema):
    """Public principal summary with its role-specific profile."""

    id = fields.Integer(required=True)
    email = fields.Email(required=True)
    name = fields.String(required=True)
    role = fields.Function(lambda p: p.role.value)
    email_verified = fields.Boolean(required=True)
    created_at = fields.DateTime(allow_none=True)
    profile = fields.Method("dump_profile", allow_none=True)

    def dump_profile(self, principal: Any) -> dict[str, Any] | None:
        if principal.profile is None:
            return None
        data = asdict(principal.profile)
        data["type"] = data.pop("kind").value
        return data


class TokenResponseSchema(Schema):
    """Access/refresh pair returned by register, login and refresh."""

    access_token = fields.String(required=True)
    refresh_token = fields.String(required=True)
    token_type = fields.String(dump_default="bearer")
    expires_in = fields.Integer(required=True)
    refresh_expires_at = fields.DateTime(required=True)


class ResetTokenCheckSchema(Schema):
    """Non-consuming reset token check."""

    valid = fields.Boolean(required=True)
    email = fields.Email(allow_none=True)

    @post_dump
    def _drop_missing_email(self, data: dict[str, Any], **kwargs: Any) -> dict[str, Any]:
        if data.get("email") is None:
            data.pop("email", None)
        return data
