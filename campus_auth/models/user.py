"""Principal and profile models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from campus_auth.core.extensions import db
from campus_auth.core.security import SecretHasher

from .base import PKMixin, ReprMixin, TimestampMixin


class Role(str, Enum):
    """Kinds of principal the platform knows about."""

    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"


class User(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    Authentication identity of a principal.

    Fields
    ------
    email : str
        Login email. Stored normalized (lowercase, trimmed) and unique.
    password_hash : str
        Salted hash of the password (write-only setter via ``password``).
        Only mutated by the change-password and reset-password flows.
    role : Role
        Principal kind; selects the shape of the attached profile.
    email_verified : bool
        Flips from ``False`` to ``True`` once, when a verification code is
        consumed. Never reset.
    email_verified_at : datetime | None
        When the flip happened.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(254), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(254), nullable=False)
    role: Mapped[Role] = mapped_column(
        SAEnum(Role, name="enum_role", native_enum=True, create_constraint=True),
        nullable=False,
        default=Role.ADMIN,
    )
    email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    email_verified_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    profile: Mapped[Profile | None] = relationship(
        "Profile",
        uselist=False,
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="joined",
    )

    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
        Index("ix_users_email", "email"),
    )

    # -------------------- Password API --------------------
    @property
    def password(self) -> Any:  # pragma: no cover - explicit write-only contract
        """
        Disallow reading passwords.

        :raises AttributeError: Always, to ensure password is write-only.
        """
        raise AttributeError("Password is write-only.")

    @password.setter
    def password(self, raw: str) -> None:
        if not isinstance(raw, str) or not raw:
            raise ValueError("Password must be a non-empty string.")
        self.password_hash = SecretHasher().hash(raw)

    def verify_password(self, raw: str) -> bool:
        """
        Verify a password against the stored hash.

        :param raw: Plain text password candidate.
        :type raw: str
        :returns: ``True`` if it matches; otherwise ``False``.
        :rtype: bool
        """
        return SecretHasher().compare(raw, self.password_hash)

    # -------------------- Validators --------------------
    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        """
        Normalize and validate email.

        :raises ValueError: If email is missing or malformed.
        """
        if not value or not isinstance(value, str):
            raise ValueError("Email is required.")
        v = value.strip().lower()
        # Minimal sanity check; full validation happens at API layer.
        if "@" not in v or "." not in v.split("@")[-1]:
            raise ValueError("Email format looks invalid.")
        return v


class Profile(TimestampMixin, db.Model):
    """
    Role-specific profile, one row per principal.

    Common attributes are columns; the attributes that depend on the role
    live in ``details``:

    - admin: ``school_name``
    - teacher: ``subject``, ``experience``
    - student: ``roll_no``, ``class_id``
    """

    __tablename__ = "profiles"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    full_name: Mapped[str] = mapped_column(String(120), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    details: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    user: Mapped[User] = relationship("User", back_populates="profile")

    @validates("full_name")
    def _normalize_full_name(self, key: str, value: str) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Full name is required.")
        return value.strip()

    def __repr__(self) -> str:
        return f"<Profile user_id={self.user_id}>"
