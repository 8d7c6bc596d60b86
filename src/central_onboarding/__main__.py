"""Command-line entry point for the central onboarding client.

Lets an operator invite a single student from a shell, mainly to verify that
the onboarding endpoint and its shared secret are wired correctly:

    python -m central_onboarding config
    python -m central_onboarding invite --email jane@example.com --full-name "Jane Doe"

The shared secret is only ever taken from settings (environment or `.env`),
never from a command-line flag.
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Optional

import typer

from .client import OnboardingClient
from .config import get_settings
from .diagnostics import safe_host
from .models.onboarding import OnboardingRequest

app = typer.Typer(help="Central onboarding client CLI")


@app.callback()
def main() -> None:  # pragma: no cover - simple callback
    """central-onboarding CLI.

    Use a subcommand like 'invite' to run a call.
    """
    pass


@app.command(help="Show which onboarding settings are present (secret values are never printed).")
def config() -> None:
    settings = get_settings()
    typer.echo(f"endpoint_host={safe_host(settings.ONBOARDING_URL) if settings.ONBOARDING_URL else '-'}")
    typer.echo(f"has_key={bool(settings.ONBOARDING_KEY)}")
    typer.echo(f"timeout_ms={settings.ONBOARDING_TIMEOUT_MS}")
    typer.echo(f"max_attempts={settings.ONBOARDING_MAX_ATTEMPTS}")


@app.command(help="Create one student account through the onboarding service.")
def invite(
    email: str = typer.Option(..., help="Student email address"),
    full_name: str = typer.Option(..., "--full-name", help="Student full name"),
    phone: Optional[str] = typer.Option(None, help="Optional phone number"),
    endpoint_url: Optional[str] = typer.Option(
        None, help="Override ONBOARDING_URL for this call"
    ),
    request_id: Optional[str] = typer.Option(
        None, help="Correlation id (a UUID is generated when omitted)"
    ),
    as_json: bool = typer.Option(
        False, "--json/--no-json", help="Print the full result as JSON instead of the message"
    ),
) -> None:
    """Run a single onboarding call and exit non-zero when it fails."""
    settings = get_settings()
    logging.basicConfig(level=settings.LOG_LEVEL)
    # httpx logs full request URLs at INFO; only the host may appear in our output.
    logging.getLogger("httpx").setLevel(logging.WARNING)

    client = OnboardingClient(settings)
    result = asyncio.run(
        client.create_student(
            OnboardingRequest(email=email, full_name=full_name, phone=phone),
            endpoint_url=endpoint_url,
            request_id=request_id,
        )
    )
    if as_json:
        typer.echo(json.dumps(result.model_dump(by_alias=True, exclude_none=True)))
    else:
        typer.echo(f"{result.message} (request_id={result.request_id})")
    if not result.success:
        raise typer.Exit(code=1)


if __name__ == "__main__":  # pragma: no cover
    app()
