"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
from collections.abc import Mapping
from datetime import timedelta
from typing import Final

from dotenv import load_dotenv

# Public selector env var (keep neutral name to avoid collisions)
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'


# Load .env in development (no-op when the file is absent)
load_dotenv()


def env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean flag from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: bool, optional
        Value returned when the variable is unset. Defaults to ``False``.

    Returns
    -------
    bool
        ``True`` if the value resembles ``{"1", "true", "yes", "y", "on"}``
        ignoring case; otherwise ``False`` or ``default`` when missing.
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def env_minutes(name: str, default: int) -> timedelta:
    """Read a duration expressed in whole minutes from the environment."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return timedelta(minutes=default)
    return timedelta(minutes=int(raw))


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    API_BASE_PREFIX: str
        Root path for registering API blueprints.
    SECRET_KEY: str
        Flask secret. Must be overridden in production.
    JWT_SECRET_KEY: str
        Key used by ``flask-jwt-extended`` for signing access tokens.
    JWT_ACCESS_TOKEN_EXPIRES: timedelta
        Access token lifetime. Kept short because access tokens cannot be
        revoked before they expire.
    REFRESH_TOKEN_TTL: timedelta
        Lifetime of an issued refresh token.
    PASSWORD_RESET_TTL: timedelta
        Lifetime of a password reset link.
    EMAIL_VERIFICATION_TTL: timedelta
        Lifetime of an email verification code.
    VERIFICATION_CODE_LENGTH: int
        Number of digits in a verification code.
    TOKEN_DIGEST_KEY: str
        HMAC key for verification code lookup digests.
    SECRET_HASH_METHOD: str
        ``werkzeug.security`` hashing method for passwords and opaque secrets.
    REFRESH_TOKEN_BACKEND: str
        ``"sql"`` (default) or ``"redis"``; the latter requires ``REDIS_URL``.
    REFRESH_REUSE_DETECTION: bool
        Revoke every live refresh token of a principal when an already
        redeemed token is presented again.
    NOTIFIER_BACKEND: str
        ``"resend"`` or ``"memory"``.
    SQLALCHEMY_DATABASE_URI: str
        Database connection string consumed by SQLAlchemy.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).
    CORS_ORIGINS: str
        Comma-separated list of allowed origins for CORS.

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    API_BASE_PREFIX = "/api"
    APP_VERSION = os.getenv("APP_VERSION", "dev")
    APP_COMMIT = os.getenv("APP_COMMIT", "unknown")

    # Secrets / signing
    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "CHANGE_ME_JWT")
    TOKEN_DIGEST_KEY = os.getenv("TOKEN_DIGEST_KEY") or JWT_SECRET_KEY
    JWT_TOKEN_LOCATION = ["headers"]

    # Token lifetimes
    JWT_ACCESS_TOKEN_EXPIRES = env_minutes("ACCESS_TOKEN_TTL_MINUTES", 15)
    REFRESH_TOKEN_TTL = env_minutes("REFRESH_TOKEN_TTL_MINUTES", 7 * 24 * 60)
    PASSWORD_RESET_TTL = env_minutes("PASSWORD_RESET_TTL_MINUTES", 60)
    EMAIL_VERIFICATION_TTL = env_minutes("EMAIL_VERIFICATION_TTL_MINUTES", 24 * 60)
    VERIFICATION_CODE_LENGTH = int(os.getenv("VERIFICATION_CODE_LENGTH", "6"))

    # Hashing & session ledger
    SECRET_HASH_METHOD = os.getenv("SECRET_HASH_METHOD", "scrypt")
    REFRESH_TOKEN_BACKEND = os.getenv("REFRESH_TOKEN_BACKEND", "sql")
    REFRESH_REUSE_DETECTION = env_bool("REFRESH_REUSE_DETECTION", True)
    REDIS_URL = os.getenv("REDIS_URL")

    # Outbound mail
    NOTIFIER_BACKEND = os.getenv("NOTIFIER_BACKEND", "resend")
    RESEND_API_KEY = os.getenv("RESEND_API_KEY")
    EMAIL_FROM = os.getenv("EMAIL_FROM", "School Management <noreply@school.local>")
    FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

    # DB
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)

    # Flask & JSON
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    # Logging & CORS
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173")

    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development.

    Notes
    -----
    Without ``RESEND_API_KEY`` the Resend notifier logs that a message would
    have been sent instead of calling the API.
    """

    DEBUG = env_bool("FLASK_DEBUG", True)
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    CORS_MAX_AGE = 600  # 10 minutes


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Uses an in-memory SQLite database unless ``TEST_DATABASE_URL`` is set.
    - Swaps scrypt for a cheap pbkdf2 round count; hashing cost is irrelevant
      in tests and dominates their runtime otherwise.
    - Captures outbound mail in memory.
    """

    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    SECRET_HASH_METHOD = "pbkdf2:sha256:1000"
    NOTIFIER_BACKEND = "memory"
    REFRESH_TOKEN_BACKEND = "sql"
    REDIS_URL = None
    JWT_SECRET_KEY = "testing-jwt-secret-key-with-enough-length"
    TOKEN_DIGEST_KEY = "testing-digest-key"
    PROPAGATE_EXCEPTIONS = True


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments.

    Notes
    -----
    Keeps debug and SQL echoing disabled while relying on WSGI-level log
    configuration for noise control.
    """

    DEBUG = False
    SQLALCHEMY_ECHO = False
    PROPAGATE_EXCEPTIONS = False


CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the configuration class inferred from ``APP_ENV``.

    Returns
    -------
    type[BaseConfig]
        Class to pass to :meth:`flask.Config.from_object`.

    Notes
    -----
    Falls back to :class:`DevelopmentConfig` when ``APP_ENV`` is unset or
    unknown.
    """
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)
