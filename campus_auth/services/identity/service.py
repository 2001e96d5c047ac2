"""
CredentialService
=================

Aggregate service responsible for the principal (``User`` + ``Profile``):
- Creation with a role-specific profile
- Credential verification (no token issuance)
- Password replacement
- Retrieval for the ``me`` view
"""

from __future__ import annotations

from typing import ClassVar

from sqlalchemy.exc import IntegrityError

from campus_auth.core.security import SecretHasher
from campus_auth.models.user import Profile, User
from campus_auth.repositories.user import UserRepository
from campus_auth.services._shared.base import BaseService, Clock
from campus_auth.services._shared.errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    PasswordPolicyError,
    violates,
)
from campus_auth.services.identity.dto import (
    PrincipalCreateIn,
    PrincipalOut,
    build_profile,
    profile_details,
)
from campus_auth.uow.sqlalchemy_uow import SQLAlchemyUnitOfWork


def principal_out(user: User) -> PrincipalOut:
    """Map a loaded ``User`` (with profile) to its public DTO."""
    profile = None
    if user.profile is not None:
        profile = build_profile(
            user.role,
            full_name=user.profile.full_name,
            phone=user.profile.phone,
            details=user.profile.details,
        )
    return PrincipalOut(
        id=user.id,
        email=user.email,
        role=user.role,
        email_verified=user.email_verified,
        profile=profile,
        created_at=user.created_at,
    )


class CredentialService(BaseService):
    """
    Application service for principals and their credentials.

    Responsibilities
    ----------------
    - Create principals ensuring email uniqueness.
    - Authenticate credentials with uniform timing for unknown emails.
    - Replace password hashes.
    """

    # Per hashing method; compared against when the email is unknown.
    _dummy_digests: ClassVar[dict[str, str]] = {}

    def __init__(
        self,
        *,
        hasher: SecretHasher | None = None,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(clock=clock)
        self.hasher = hasher or SecretHasher()

    def _dummy_digest(self) -> str:
        method = self.hasher.method
        digest = self._dummy_digests.get(method)
        if digest is None:
            digest = self.hasher.hash("dummy-password-for-timing")
            self._dummy_digests[method] = digest
        return digest

    # --------------------------------------------------------------------- #
    # Creation
    # --------------------------------------------------------------------- #

    def create_in(self, uow: SQLAlchemyUnitOfWork, dto: PrincipalCreateIn) -> User:
        """
        Stage a principal and its profile inside the caller's Unit of Work.

        :raises ConflictError: If the email is already registered.
        """
        repo: UserRepository = uow.users
        if repo.exists_by_email(dto.email):
            raise ConflictError("User", "email already registered")

        user = User(
            email=dto.email,
            role=dto.profile.kind,
            email_verified=dto.email_verified,
            email_verified_at=self.now_utc() if dto.email_verified else None,
        )
        user.password_hash = self.hasher.hash(dto.password)
        profile = Profile(
            full_name=dto.profile.full_name,
            phone=dto.profile.phone,
            details=profile_details(dto.profile),
        )
        try:
            repo.add_with_profile(user, profile)
        except IntegrityError as exc:
            if violates(exc, "uq_users_email"):
                raise ConflictError("User", "email already registered") from exc
            raise
        return user

    def create(self, dto: PrincipalCreateIn) -> PrincipalOut:
        """
        Create a principal with its profile.

        :raises ConflictError: If the email is already registered.
        """
        with self.rw_uow() as uow:
            user = self.create_in(uow, dto)
            return principal_out(user)

    # --------------------------------------------------------------------- #
    # Retrieval
    # --------------------------------------------------------------------- #

    def find_by_email(self, email: str) -> PrincipalOut:
        """
        :raises NotFoundError: If no principal has this email.
        """
        with self.ro_uow() as uow:
            user = uow.users.get_by_email(email)
            if user is None:
                raise NotFoundError("User", email)
            return principal_out(user)

    def get_principal(self, user_id: int) -> PrincipalOut:
        """
        :raises NotFoundError: If the principal does not exist.
        """
        with self.ro_uow() as uow:
            user = uow.users.get(user_id)
            if user is None:
                raise NotFoundError("User", user_id)
            return principal_out(user)

    # --------------------------------------------------------------------- #
    # Authentication
    # --------------------------------------------------------------------- #

    def authenticate(self, email: str, password: str) -> PrincipalOut:
        """
        Verify ``email``/``password``.

        Unknown emails still pay for one hash comparison so response time
        does not reveal whether the account exists.

        :raises AuthenticationError: Same message for both failure modes.
        """
        with self.ro_uow() as uow:
            user = uow.users.get_by_email(email)
            if user is None:
                self.hasher.compare(password, self._dummy_digest())
                raise AuthenticationError("Invalid email or password")
            if not self.hasher.compare(password, user.password_hash):
                raise AuthenticationError("Invalid email or password")
            return principal_out(user)

    # --------------------------------------------------------------------- #
    # Password management
    # --------------------------------------------------------------------- #

    def change_password(self, user_id: int, current_password: str, new_password: str) -> PrincipalOut:
        """
        Replace the password after verifying the current one.

        :raises NotFoundError: When the principal is gone.
        :raises AuthenticationError: When ``current_password`` is wrong.
        :raises PasswordPolicyError: When the new password equals the current one.
        """
        with self.rw_uow() as uow:
            repo: UserRepository = uow.users
            user = repo.get(user_id)
            if user is None:
                raise NotFoundError("User", user_id)
            if not self.hasher.compare(current_password, user.password_hash):
                raise AuthenticationError("Current password is incorrect")
            if current_password == new_password:
                raise PasswordPolicyError("New password must be different from the current password")

            repo.update_password_hash(user_id, self.hasher.hash(new_password))
            return principal_out(user)
