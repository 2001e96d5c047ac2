"""Authentication endpoints using the service layer."""

from __future__ import annotations

from flask import Blueprint, request

from campus_auth.api.deps import (
    build_auth_service,
    call_service,
    current_principal_id,
    json_response,
    require_auth,
    timing,
)
from campus_auth.schemas import (
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
from campus_auth.services.auth.dto import ChangePasswordIn, LoginIn, RegisterIn
from campus_auth.services.tokens.dto import VerificationOutcome

bp = Blueprint("auth", __name__)

register_schema = RegisterSchema()
login_schema = LoginSchema()
refresh_schema = RefreshTokenSchema()
email_schema = EmailSchema()
reset_query_schema = ResetTokenQuerySchema()
reset_password_schema = ResetPasswordSchema()
verify_email_schema = VerifyEmailSchema()
change_password_schema = ChangePasswordSchema()
principal_schema = PrincipalSchema()
token_schema = TokenResponseSchema()
reset_check_schema = ResetTokenCheckSchema()

FORGOT_PASSWORD_MESSAGE = "If an account exists for this email, a password reset link has been sent."
RESEND_VERIFICATION_MESSAGE = (
    "If an account with this email is awaiting verification, a new code has been sent."
)


def _body() -> dict:
    return request.get_json(silent=True) or {}


def _session_body(result) -> dict:
    return {
        "data": {
            "user": principal_schema.dump(result.principal),
            **token_schema.dump(result.tokens),
        }
    }


@bp.post("/register")
@timing
def register():
    """Register an admin principal and open a session."""

    payload = register_schema.load(_body())
    service = build_auth_service()
    result = call_service(service, service.register, RegisterIn(**payload))
    return json_response(_session_body(result), status=201)


@bp.post("/login")
@timing
def login():
    """Authenticate credentials and open a session."""

    payload = login_schema.load(_body())
    service = build_auth_service()
    result = call_service(service, service.login, LoginIn(**payload))
    return json_response(_session_body(result))


@bp.post("/refresh")
@timing
def refresh():
    """Rotate a refresh token into a new access/refresh pair."""

    payload = refresh_schema.load(_body())
    service = build_auth_service()
    tokens = call_service(service, service.refresh, payload["refresh_token"])
    return json_response({"data": token_schema.dump(tokens)})


@bp.post("/logout")
@require_auth
@timing
def logout():
    """Revoke the given refresh token; succeeds whether or not it was live."""

    payload = refresh_schema.load(_body())
    service = build_auth_service()
    call_service(service, service.logout, payload["refresh_token"])
    return json_response({"message": "Logged out successfully"})


@bp.post("/forgot-password")
@timing
def forgot_password():
    """Request a password reset link. The response never reveals whether the email exists."""

    payload = email_schema.load(_body())
    service = build_auth_service()
    call_service(service, service.forgot_password, payload["email"])
    return json_response({"message": FORGOT_PASSWORD_MESSAGE})


@bp.get("/verify-reset-token")
@timing
def verify_reset_token():
    """Check a reset token without consuming it."""

    payload = reset_query_schema.load(request.args)
    service = build_auth_service()
    check = call_service(service, service.verify_reset_token, payload["token"])
    return json_response({"data": reset_check_schema.dump(check)})


@bp.post("/reset-password")
@timing
def reset_password():
    """Consume a reset token and set a new password."""

    payload = reset_password_schema.load(_body())
    service = build_auth_service()
    call_service(service, service.reset_password, payload["token"], payload["new_password"])
    return json_response({"message": "Password has been reset successfully"})


@bp.post("/verify-email")
@timing
def verify_email():
    """Consume an email verification code."""

    payload = verify_email_schema.load(_body())
    service = build_auth_service()
    outcome = call_service(service, service.verify_email, payload["code"].strip())
    if outcome == VerificationOutcome.ALREADY_VERIFIED:
        message = "Email is already verified"
    else:
        message = "Email verified successfully"
    return json_response({"message": message, "data": {"status": outcome.value}})


@bp.post("/resend-verification")
@timing
def resend_verification():
    """Send a fresh verification code. The response is the same for every email."""

    payload = email_schema.load(_body())
    service = build_auth_service()
    call_service(service, service.resend_verification, payload["email"])
    return json_response({"message": RESEND_VERIFICATION_MESSAGE})


@bp.post("/change-password")
@require_auth
@timing
def change_password():
    """Change the password of the authenticated principal."""

    payload = change_password_schema.load(_body())
    service = build_auth_service()
    result = call_service(
        service,
        service.change_password,
        ChangePasswordIn(user_id=current_principal_id(), **payload),
    )
    message = "Password changed successfully"
    if payload["revoke_all_sessions"]:
        message += "; all sessions have been signed out"
    return json_response({"message": message, "data": {"sessions_revoked": result.sessions_revoked}})


@bp.get("/me")
@require_auth
@timing
def me():
    """Return the authenticated principal with its role-specific profile."""

    service = build_auth_service()
    principal = call_service(service, service.me, current_principal_id())
    return json_response({"data": principal_schema.dump(principal)})
