"""Flask CLI commands for operators: provisioning principals and token housekeeping."""

from __future__ import annotations

import logging

import click
from flask.cli import with_appcontext

from campus_auth.api.deps import build_auth_service
from campus_auth.models.user import Role
from campus_auth.services._shared.errors import ConflictError
from campus_auth.services.identity import CredentialService
from campus_auth.services.identity.dto import PrincipalCreateIn, build_profile

LOGGER = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


@click.group("auth")
def auth_cli() -> None:
    """Credential administration commands."""


@auth_cli.command("create-user")
@click.argument("email")
@click.option(
    "--role",
    type=click.Choice([role.value for role in Role]),
    default=Role.ADMIN.value,
    show_default=True,
)
@click.option("--name", "full_name", required=True, help="Full name shown on the profile.")
@click.option("--phone", default=None)
@click.option("--school-name", default=None, help="Admin only.")
@click.option("--subject", default=None, help="Teacher only.")
@click.option("--experience", type=int, default=None, help="Teacher only, in years.")
@click.option("--roll-no", default=None, help="Student only.")
@click.option("--class-id", default=None, help="Student only.")
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
@with_appcontext
def create_user_command(
    email: str,
    role: str,
    full_name: str,
    phone: str | None,
    school_name: str | None,
    subject: str | None,
    experience: int | None,
    roll_no: str | None,
    class_id: str | None,
    password: str,
) -> None:
    """Create a principal whose email is already verified."""
    if len(password) < MIN_PASSWORD_LENGTH:
        raise click.BadParameter(
            f"must be at least {MIN_PASSWORD_LENGTH} characters", param_hint="--password"
        )

    profile = build_profile(
        Role(role),
        full_name=full_name,
        phone=phone,
        details={
            "school_name": school_name,
            "subject": subject,
            "experience": experience,
            "roll_no": roll_no,
            "class_id": class_id,
        },
    )
    dto = PrincipalCreateIn(email=email, password=password, profile=profile, email_verified=True)
    try:
        principal = CredentialService().create(dto)
    except ConflictError as exc:
        raise click.ClickException(str(exc)) from exc
    except ValueError as exc:
        raise click.ClickException(f"Invalid input: {exc}") from exc

    LOGGER.info("Principal provisioned", extra={"event": "cli.create_user", "user_id": principal.id})
    click.echo(f"Created {principal.role.value} #{principal.id} <{principal.email}>")


@auth_cli.command("purge-tokens")
@with_appcontext
def purge_tokens_command() -> None:
    """Delete redeemed, revoked and expired refresh tokens and expired codes and reset links."""
    service = build_auth_service()
    refresh = service.refresh_ledger.purge()
    codes = service.verification.purge_expired()
    resets = service.password_reset.purge_expired()
    LOGGER.info("Token purge finished", extra={"event": "cli.purge_tokens"})
    click.echo(f"Purged refresh={refresh} verification={codes} reset={resets}")
