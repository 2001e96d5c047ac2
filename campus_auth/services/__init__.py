"""Service layer public API.

Re-exports
----------
- Base primitives (from ``campus_auth.services._shared.base``)
    * :class:`BaseService`

- Credential service (from ``campus_auth.services.identity``)
    * :class:`CredentialService`

- Token services (from ``campus_auth.services.tokens``)
    * :class:`RefreshTokenLedger`
    * :class:`EmailVerificationService`
    * :class:`PasswordResetService`

- Facade (from ``campus_auth.services.auth``)
    * :class:`AuthService`
"""

from __future__ import annotations

from ._shared.base import BaseService
from .auth import AuthService
from .identity import CredentialService
from .tokens import EmailVerificationService, PasswordResetService, RefreshTokenLedger

__all__ = [
    "BaseService",
    "AuthService",
    "CredentialService",
    "EmailVerificationService",
    "PasswordResetService",
    "RefreshTokenLedger",
]
