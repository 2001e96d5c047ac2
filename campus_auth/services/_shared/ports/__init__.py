"""
campus_auth.services._shared.ports
==================================

*Ports* (hexagonal interfaces) for the infrastructure the credential
services depend on.

Modules
-------
- :mod:`access_token_issuer`:
    :class:`~.AccessTokenIssuer`: signed, stateless access tokens.

- :mod:`refresh_token_store`:
    :class:`~.RefreshTokenStore`, :class:`~.RotationResult` and
    :class:`~.RefreshTokenView`: the refresh token ledger with atomic rotation.

- :mod:`notifier`:
    :class:`~.Notifier`: fire-and-forget outbound mail.

Design Notes
------------
Concrete adapters live under ``campus_auth.infra``; in-memory doubles live
beside their port so unit tests need no infrastructure.
"""

from __future__ import annotations

from .access_token_issuer import AccessClaims, AccessTokenIssuer, IssuedAccessToken
from .notifier import InMemoryNotifier, Notifier, OutboundMessage
from .refresh_token_store import (
    InMemoryRefreshTokenStore,
    RefreshTokenStore,
    RefreshTokenView,
    RotationResult,
)

__all__ = [
    "AccessClaims",
    "AccessTokenIssuer",
    "IssuedAccessToken",
    "InMemoryNotifier",
    "Notifier",
    "OutboundMessage",
    "InMemoryRefreshTokenStore",
    "RefreshTokenStore",
    "RefreshTokenView",
    "RotationResult",
]
