"""
DTOs for CredentialService.

Data Transfer Objects (DTOs) isolate the service layer from ORM models,
ensuring clear input/output contracts and type safety.

Profiles are a tagged union keyed by :class:`Role`; ``kind`` carries the tag
so serializers can dispatch without ``isinstance`` chains.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from campus_auth.models.user import Role

DEFAULT_SCHOOL_NAME = "Default School"

# --------------------------------------------------------------------------- #
# Profiles (tagged union)
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class AdminProfile:
    """School administrator profile."""

    full_name: str
    phone: str | None = None
    school_name: str = DEFAULT_SCHOOL_NAME
    kind: Role = field(default=Role.ADMIN, init=False)


@dataclass(frozen=True, slots=True)
class TeacherProfile:
    """Teacher profile."""

    full_name: str
    phone: str | None = None
    subject: str | None = None
    experience: int | None = None
    kind: Role = field(default=Role.TEACHER, init=False)


@dataclass(frozen=True, slots=True)
class StudentProfile:
    """Student profile."""

    full_name: str
    phone: str | None = None
    roll_no: str | None = None
    class_id: str | None = None
    kind: Role = field(default=Role.STUDENT, init=False)


ProfileOut = AdminProfile | TeacherProfile | StudentProfile

# Role -> (profile type, role-specific keys stored in ``Profile.details``)
PROFILE_TYPES: dict[Role, tuple[type[ProfileOut], tuple[str, ...]]] = {
    Role.ADMIN: (AdminProfile, ("school_name",)),
    Role.TEACHER: (TeacherProfile, ("subject", "experience")),
    Role.STUDENT: (StudentProfile, ("roll_no", "class_id")),
}


def profile_details(profile: ProfileOut) -> dict[str, Any]:
    """Extract the role-specific attributes persisted in ``Profile.details``."""
    _, keys = PROFILE_TYPES[profile.kind]
    return {key: getattr(profile, key) for key in keys if getattr(profile, key) is not None}


def build_profile(
    role: Role,
    *,
    full_name: str,
    phone: str | None = None,
    details: Mapping[str, Any] | None = None,
) -> ProfileOut:
    """
    Build the profile variant for ``role``.

    Unknown keys in ``details`` are ignored.

    :raises KeyError: If ``role`` has no profile type.
    """
    cls, keys = PROFILE_TYPES[Role(role)]
    extra = {key: details[key] for key in keys if details and details.get(key) is not None}
    return cls(full_name=full_name, phone=phone, **extra)


# --------------------------------------------------------------------------- #
# Input DTOs
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class PrincipalCreateIn:
    """
    Input DTO for creating a principal with its profile.

    :param email: Login email (normalized to lowercase by the model).
    :type email: str
    :param password: Raw password to be hashed by the model.
    :type password: str
    :param profile: Role-specific profile; its ``kind`` decides the role.
    :type profile: ProfileOut
    :param email_verified: Create the principal as already verified
        (operator provisioning).
    :type email_verified: bool
    """

    email: str
    password: str
    profile: ProfileOut
    email_verified: bool = False


# --------------------------------------------------------------------------- #
# Output DTOs
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class PrincipalOut:
    """
    Public-safe representation of a principal.

    :param id: Principal identifier.
    :param email: Login email.
    :param role: Principal kind.
    :param email_verified: Whether the email has been confirmed.
    :param profile: Role-specific profile, ``None`` for legacy rows.
    :param created_at: Creation timestamp.
    """

    id: int
    email: str
    role: Role
    email_verified: bool
    profile: ProfileOut | None = None
    created_at: datetime | None = None

    @property
    def name(self) -> str:
        return self.profile.full_name if self.profile else self.email
