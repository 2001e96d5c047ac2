from campus_auth.models.tokens import (
    EmailVerificationToken,
    PasswordResetToken,
    RefreshToken,
    TokenState,
)
from campus_auth.models.user import Profile, Role, User

__all__ = [
    "EmailVerificationToken",
    "PasswordResetToken",
    "Profile",
    "RefreshToken",
    "Role",
    "TokenState",
    "User",
]
