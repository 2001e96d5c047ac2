"""User repository for principal lookups and credential updates."""

from __future__ import annotations

from datetime import datetime
from typing import cast

from sqlalchemy import select, update

from campus_auth.models.user import Profile, User
from campus_auth.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Persistence-only repository for :class:`User` and its profile.

    It NEVER handles JWT, refresh tokens or hashing; callers hand it
    finished hashes.
    """

    model = User

    def _filterable_fields(self):
        """Whitelist fields safe for equality filters."""
        return {
            "id": User.id,
            "email": User.email,
            "role": User.role,
            "email_verified": User.email_verified,
        }

    # ---------------------------- Lookup helpers ----------------------------

    def get_by_email(self, email: str) -> User | None:
        """Fetch a user by email (case-insensitive).

        :param email: Email address to normalise and search.
        :type email: str
        :returns: User instance or ``None`` when not found.
        :rtype: User | None
        """
        stmt = select(User).where(User.email == email.lower().strip())
        stmt = self._default_eagerload(stmt)
        result = self.session.execute(stmt).scalars().first()
        return cast(User | None, result)

    def exists_by_email(self, email: str) -> bool:
        stmt = select(User.id).where(User.email == email.lower().strip())
        return bool(self.session.execute(stmt).first())

    # ---------------------------- Writes ----------------------------

    def add_with_profile(self, user: User, profile: Profile) -> User:
        """Stage a principal together with its profile row.

        The unique constraint on ``email`` is the final arbiter of duplicates;
        a concurrent registration surfaces as ``IntegrityError`` on flush.
        """
        user.profile = profile
        return self.add(user)

    def update_password_hash(self, user_id: int, password_hash: str) -> bool:
        """Replace the stored password hash; ``False`` when the user is gone."""
        stmt = update(User).where(User.id == user_id).values(password_hash=password_hash)
        return self._execute_dml(stmt) == 1

    def mark_email_verified(self, user_id: int, *, now: datetime) -> bool:
        """Flip ``email_verified`` from false to true.

        :returns: ``True`` only for the call that performed the flip.
        """
        stmt = (
            update(User)
            .where(User.id == user_id, User.email_verified.is_(False))
            .values(email_verified=True, email_verified_at=now)
        )
        return self._execute_dml(stmt) == 1
