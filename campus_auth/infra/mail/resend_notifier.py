"""Notifier adapter delivering mail through Resend."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from html import escape

import resend

from campus_auth.services._shared.ports import Notifier

logger = logging.getLogger(__name__)

_LAYOUT = """
<!DOCTYPE html>
<html>
<head>
    <style>
        body {{ font-family: system-ui, -apple-system, sans-serif; line-height: 1.6; color: #1f2937; }}
        .container {{ max-width: 600px; margin: 0 auto; padding: 40px 20px; }}
        .header {{ color: #1a365d; margin-bottom: 24px; }}
        .code {{ font-size: 32px; letter-spacing: 8px; font-weight: bold; background-color: #f3f4f6; padding: 16px; border-radius: 8px; text-align: center; }}
        .button {{ display: inline-block; background-color: #1a365d; color: white; padding: 14px 28px; text-decoration: none; border-radius: 8px; margin: 24px 0; }}
        .footer {{ margin-top: 40px; padding-top: 20px; border-top: 1px solid #e5e7eb; color: #6b7280; font-size: 14px; }}
    </style>
</head>
<body>
    <div class="container">
        <h1 class="header">{title}</h1>
        {body}
        <div class="footer">
            <p>School Management System</p>
        </div>
    </div>
</body>
</html>
"""


def _domain(email: str) -> str:
    return email.rpartition("@")[2] or "unknown"


@dataclass(slots=True)
class ResendNotifier(Notifier):
    """
    Send transactional mail with the Resend SDK.

    :param api_key: Resend API key. When empty, messages are logged (without
        their secret content) instead of being sent.
    :param sender: ``From`` header, e.g. ``"School <noreply@school.dev>"``.
    :param verification_ttl_hours: Shown in the verification message.
    :param reset_ttl_minutes: Shown in the reset message.
    """

    api_key: str | None
    sender: str
    verification_ttl_hours: int = 24
    reset_ttl_minutes: int = 60

    def _send(self, to_email: str, subject: str, title: str, body: str) -> None:
        if not self.api_key:
            logger.warning("RESEND_API_KEY not set - logging email instead of sending")
            logger.info("EMAIL TO: *@%s | SUBJECT: %s", _domain(to_email), subject)
            return

        resend.api_key = self.api_key
        params: resend.Emails.SendParams = {
            "from": self.sender,
            "to": [to_email],
            "subject": subject,
            "html": _LAYOUT.format(title=title, body=body),
        }
        email = resend.Emails.send(params)
        logger.info("Email sent to *@%s, id: %s", _domain(to_email), email["id"])

    def send_verification_code(self, email: str, code: str) -> None:
        body = f"""
        <p>Use the code below to verify your email address:</p>
        <p class="code">{escape(code)}</p>
        <p><strong>This code expires in {self.verification_ttl_hours} hours.</strong></p>
        <p>If you didn't create an account, you can safely ignore this email.</p>
        """
        self._send(email, "Verify your email address", "Verify Your Email", body)

    def send_password_reset(self, email: str, reset_url: str) -> None:
        safe_url = escape(reset_url, quote=True)
        body = f"""
        <p>We received a request to reset your password. Click the button below to choose a new one:</p>
        <a href="{safe_url}" class="button">Reset Password</a>
        <p>Or copy and paste this link into your browser:</p>
        <p style="word-break: break-all; color: #3b82f6;">{safe_url}</p>
        <p><strong>This link expires in {self.reset_ttl_minutes} minutes.</strong></p>
        <p>If you didn't request a password reset, you can safely ignore this email.</p>
        """
        self._send(email, "Reset your password", "Password Reset", body)

    def send_welcome(self, email: str, name: str) -> None:
        body = f"""
        <p>Hello {escape(name)},</p>
        <p>Your account has been created. Check your inbox for a verification code to confirm your email address.</p>
        """
        self._send(email, "Welcome to the School Management System", "Welcome!", body)

    def send_password_changed(self, email: str, name: str) -> None:
        body = f"""
        <p>Hello {escape(name)},</p>
        <p>The password for your account was just changed.</p>
        <p>If you didn't make this change, reset your password immediately and contact your school administrator.</p>
        """
        self._send(email, "Your password was changed", "Password Changed", body)
