"""Persistent records backing refresh, reset and verification tokens.

Only hashes or keyed digests are stored; plaintext token material exists in
the issuing response (or outgoing message) and nowhere else.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from campus_auth.core.extensions import db

from .base import CreatedAtMixin, PKMixin, ReprMixin


class TokenState(str, Enum):
    """Stored lifecycle state of a refresh token.

    ``expired`` is not stored; it is derived from ``expires_at`` on read.
    Every state other than ``ISSUED`` is terminal.
    """

    ISSUED = "issued"
    REDEEMED = "redeemed"
    REVOKED = "revoked"


class RefreshToken(ReprMixin, CreatedAtMixin, db.Model):
    """
    Refresh token ledger entry.

    Fields
    ------
    id : str
        Random selector, the public half of ``<selector>.<secret>``.
    secret_hash : str
        Salted hash of the secret half.
    state : TokenState
        Moves from ``ISSUED`` to ``REDEEMED`` or ``REVOKED`` exactly once.
    replaced_by : str | None
        Selector of the successor issued when this token was redeemed.
    """

    __tablename__ = "refresh_tokens"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    secret_hash: Mapped[str] = mapped_column(String(254), nullable=False)
    state: Mapped[TokenState] = mapped_column(
        SAEnum(TokenState, name="enum_token_state", native_enum=True, create_constraint=True),
        nullable=False,
        default=TokenState.ISSUED,
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    redeemed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    replaced_by: Mapped[str | None] = mapped_column(String(64), nullable=True)

    __table_args__ = (
        Index("ix_refresh_tokens_user_id_state", "user_id", "state"),
        Index("ix_refresh_tokens_expires_at", "expires_at"),
    )


class EmailVerificationToken(PKMixin, ReprMixin, CreatedAtMixin, db.Model):
    """
    Pending email verification code, at most one per principal.

    ``code_digest`` is the keyed HMAC of the numeric code; it is unique so a
    code resolves to exactly one principal.
    """

    __tablename__ = "email_verification_tokens"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    code_digest: Mapped[str] = mapped_column(String(64), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", name="uq_email_verification_tokens_user_id"),
        UniqueConstraint("code_digest", name="uq_email_verification_tokens_code_digest"),
    )


class PasswordResetToken(ReprMixin, CreatedAtMixin, db.Model):
    """Pending password reset link, at most one per principal."""

    __tablename__ = "password_reset_tokens"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    secret_hash: Mapped[str] = mapped_column(String(254), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", name="uq_password_reset_tokens_user_id"),
    )
