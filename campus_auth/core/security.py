"""Secret hashing, keyed digests and random token material.

Passwords, refresh secrets and reset secrets are stored as salted one-way
hashes produced by :mod:`werkzeug.security`. Two hashes of the same plaintext
never match byte-for-byte, so opaque tokens carry a *selector* that locates
the stored row and a *secret* that is compared against that row's hash::

    <selector>.<secret>

Verification codes are typed by humans and have no room for a selector.
They are located through an HMAC-SHA256 digest keyed with
``TOKEN_DIGEST_KEY`` instead.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets

from flask import current_app, has_app_context
from werkzeug.security import check_password_hash, generate_password_hash

DEFAULT_HASH_METHOD = "scrypt"
TOKEN_SEPARATOR = "."
SELECTOR_BYTES = 16
SECRET_BYTES = 32


def _configured_method() -> str:
    if has_app_context():
        return str(current_app.config.get("SECRET_HASH_METHOD") or DEFAULT_HASH_METHOD)
    return DEFAULT_HASH_METHOD


class SecretHasher:
    """Hash and verify secrets with a randomized salt.

    Parameters
    ----------
    method:
        ``werkzeug.security`` method string (``"scrypt"``,
        ``"pbkdf2:sha256:600000"``...). When omitted the method is read from
        ``SECRET_HASH_METHOD`` of the active application, falling back to
        scrypt outside an application context.
    """

    def __init__(self, method: str | None = None) -> None:
        self._method = method

    @property
    def method(self) -> str:
        return self._method or _configured_method()

    def hash(self, plaintext: str) -> str:
        """Return a salted digest of ``plaintext``.

        :raises ValueError: If ``plaintext`` is empty.
        """
        if not isinstance(plaintext, str) or not plaintext:
            raise ValueError("Cannot hash an empty secret.")
        return generate_password_hash(plaintext, method=self.method)

    def compare(self, plaintext: str, digest: str | None) -> bool:
        """Check ``plaintext`` against ``digest`` in constant time."""
        if not plaintext or not digest:
            return False
        return bool(check_password_hash(digest, plaintext))


def keyed_digest(value: str, key: str | None = None) -> str:
    """Return the hex HMAC-SHA256 of ``value`` used as a lookup key."""
    if key is None:
        key = str(current_app.config["TOKEN_DIGEST_KEY"])
    return hmac.new(key.encode("utf-8"), value.encode("utf-8"), hashlib.sha256).hexdigest()


def generate_selector() -> str:
    return secrets.token_hex(SELECTOR_BYTES)


def generate_secret() -> str:
    return secrets.token_urlsafe(SECRET_BYTES)


def generate_numeric_code(length: int = 6) -> str:
    """Return a uniformly distributed string of ``length`` decimal digits."""
    if length < 1:
        raise ValueError("Code length must be positive.")
    return "".join(secrets.choice("0123456789") for _ in range(length))


def join_token(selector: str, secret: str) -> str:
    return f"{selector}{TOKEN_SEPARATOR}{secret}"


def split_token(token: str | None) -> tuple[str, str] | None:
    """Split ``<selector>.<secret>``; return ``None`` when malformed.

    ``token_urlsafe`` never emits a dot, so the first separator is the only
    one in a well-formed token.
    """
    if not token or not isinstance(token, str):
        return None
    selector, sep, secret = token.strip().partition(TOKEN_SEPARATOR)
    if not sep or not selector or not secret:
        return None
    return selector, secret


__all__ = [
    "SecretHasher",
    "keyed_digest",
    "generate_selector",
    "generate_secret",
    "generate_numeric_code",
    "join_token",
    "split_token",
]
