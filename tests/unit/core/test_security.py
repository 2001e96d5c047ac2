"""Unit tests for secret hashing and token material."""

from __future__ import annotations

import pytest

from campus_auth.core.security import (
    SecretHasher,
    generate_numeric_code,
    generate_secret,
    generate_selector,
    join_token,
    keyed_digest,
    split_token,
)


class TestSecretHasher:
    def test_hash_is_salted(self):
        hasher = SecretHasher("pbkdf2:sha256:1000")
        first, second = hasher.hash("Secret123!"), hasher.hash("Secret123!")
        assert first != second
        assert hasher.compare("Secret123!", first)
        assert hasher.compare("Secret123!", second)

    def test_compare_rejects_wrong_and_empty(self):
        hasher = SecretHasher("pbkdf2:sha256:1000")
        digest = hasher.hash("Secret123!")
        assert not hasher.compare("secret123!", digest)
        assert not hasher.compare("", digest)
        assert not hasher.compare("Secret123!", None)

    def test_hash_rejects_empty(self):
        with pytest.raises(ValueError):
            SecretHasher("pbkdf2:sha256:1000").hash("")

    def test_method_follows_app_config(self, app):
        assert SecretHasher().method == app.config["SECRET_HASH_METHOD"]
        assert SecretHasher().hash("x").startswith("pbkdf2:sha256:1000")


class TestTokenMaterial:
    def test_keyed_digest_is_deterministic_and_keyed(self):
        assert keyed_digest("123456", "k1") == keyed_digest("123456", "k1")
        assert keyed_digest("123456", "k1") != keyed_digest("123456", "k2")
        assert len(keyed_digest("123456", "k1")) == 64

    def test_keyed_digest_uses_configured_key(self, app):
        assert keyed_digest("123456") == keyed_digest("123456", app.config["TOKEN_DIGEST_KEY"])

    def test_numeric_code(self):
        code = generate_numeric_code(6)
        assert len(code) == 6 and code.isdigit()
        with pytest.raises(ValueError):
            generate_numeric_code(0)

    def test_selectors_and_secrets_are_random(self):
        assert generate_selector() != generate_selector()
        assert generate_secret() != generate_secret()
        assert "." not in generate_secret()

    @pytest.mark.parametrize("token", ["", None, "no-separator", ".secret", "selector.", "   "])
    def test_split_token_rejects_malformed(self, token):
        assert split_token(token) is None

    def test_split_token_round_trip(self):
        selector, secret = generate_selector(), generate_secret()
        assert split_token(join_token(selector, secret)) == (selector, secret)
