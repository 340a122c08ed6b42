"""CLI entry point for AttendCode."""

from __future__ import annotations

import logging
import sys
import time
from datetime import timedelta
from pathlib import Path

import click
from rich.console import Console

from attendcode.errors import AttendCodeError

console = Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def _engine():
    from attendcode.auth.totp import CodeEngine
    from attendcode.config import engine_config_from_settings

    return CodeEngine(engine_config_from_settings())


@click.group()
def main() -> None:
    """AttendCode — rotating attendance codes for clock-in verification."""


@main.command()
def status() -> None:
    """Show configuration."""
    from attendcode.config import settings

    console.print("[bold]AttendCode Status[/bold]")
    console.print(f"  Backend: {settings.backend_base_url}")
    console.print(f"  Code: {settings.code_digits} digits, {settings.code_step_seconds}s step, "
                  f"±{settings.code_drift_steps} drift, {settings.code_algorithm}")
    console.print(f"  Refresh: {settings.refresh_seconds or 'step boundary'}")
    console.print(f"  Secret store: {settings.secret_store}")
    if settings.secret_store == "postgres":
        console.print(f"  Database: {settings.database_url.split('@')[-1]}")
    console.print(f"  Policy: {settings.policy_path}")
    console.print(f"  Identity secret configured: {bool(settings.identity_token_secret)}")
    console.print(f"  Master key configured: {bool(settings.master_key)}")


@main.command("new-secret")
def new_secret() -> None:
    """Print a fresh base32 secret."""
    from attendcode.auth.totp import generate_secret

    click.echo(generate_secret())


@main.command()
@click.argument("secret")
@click.option("--at", "at_time", type=float, default=None, help="Unix time (default: now).")
@click.option("--qr", is_flag=True, help="Also render the code as a QR.")
def code(secret: str, at_time: float | None, qr: bool) -> None:
    """Print the code for SECRET."""
    try:
        generated = _engine().generate(secret, time.time() if at_time is None else at_time)
    except AttendCodeError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)
    click.echo(generated.code)
    if qr:
        from attendcode.qr import render_ascii

        click.echo(render_ascii(generated.code))


@main.command()
@click.argument("secret")
@click.argument("submitted")
@click.option("--at", "at_time", type=float, default=None, help="Unix time (default: now).")
@click.option("--drift", type=int, default=None, help="Allowed step drift.")
def verify(secret: str, submitted: str, at_time: float | None, drift: int | None) -> None:
    """Check SUBMITTED against SECRET. Exit status 1 when rejected."""
    try:
        result = _engine().verify(
            secret, submitted, time.time() if at_time is None else at_time, drift
        )
    except AttendCodeError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(2)
    if result.accepted:
        console.print(f"[green]accepted[/green] (offset {result.offset})")
    else:
        console.print("[yellow]rejected[/yellow]")
        sys.exit(1)


@main.command()
@click.argument("secret")
@click.argument("name")
@click.option("--issuer", default="AttendCode")
def uri(secret: str, name: str, issuer: str) -> None:
    """Print the otpauth:// enrollment URI."""
    from attendcode.auth.totp import get_provisioning_uri
    from attendcode.config import engine_config_from_settings

    click.echo(get_provisioning_uri(secret, name, issuer, engine_config_from_settings()))


@main.command("issue-token")
@click.argument("uid")
@click.argument("scope_id")
@click.argument("role")
@click.option("--ttl-minutes", type=int, default=60)
def issue_token(uid: str, scope_id: str, role: str, ttl_minutes: int) -> None:
    """Mint a development identity token."""
    from attendcode.auth.identity import issue_token as _issue

    try:
        click.echo(_issue(uid, scope_id, role, timedelta(minutes=ttl_minutes)))
    except AttendCodeError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)


@main.command()
@click.option("--token", envvar="ATTENDCODE_IDENTITY_TOKEN", required=True,
              help="Identity token of the presenting actor.")
@click.option("--refresh", type=float, default=None, help="UI refresh interval in seconds.")
@click.option("--png", "png_path", type=click.Path(path_type=Path), default=None,
              help="Also write the current code as a PNG QR.")
@click.option("-v", "--verbose", is_flag=True)
def present(token: str, refresh: float | None, png_path: Path | None, verbose: bool) -> None:
    """Fetch the secret and display the rotating code until Ctrl+C."""
    from attendcode.config import settings
    from attendcode.presenter import CodePresenter
    from attendcode.provisioning.client import SecretClient
    from attendcode.qr import render_ascii, save_png

    _configure_logging(verbose)
    client = SecretClient(lambda: token)
    try:
        client.fetch_secret()
    except AttendCodeError as e:
        hint = " (transient, try again)" if e.retriable else ""
        console.print(f"[red]{e}{hint}[/red]")
        sys.exit(1)

    def show(generated) -> None:
        console.clear()
        expires = time.strftime("%H:%M:%S", time.localtime(generated.expires_at))
        console.print(f"[bold]{generated.code}[/bold]  (valid until {expires})")
        console.print(render_ascii(generated.code))
        if png_path:
            save_png(generated.code, png_path)

    presenter = CodePresenter(
        _engine(),
        client.get_secret,
        show,
        refresh_seconds=refresh if refresh is not None else settings.refresh_seconds,
    )
    presenter.start()
    try:
        while presenter.running:
            time.sleep(1)
    except KeyboardInterrupt:
        pass
    finally:
        presenter.stop()
        client.sign_out()


@main.command()
@click.option("--host", default="0.0.0.0")
@click.option("--port", type=int, default=8888)
def serve(host: str, port: int) -> None:
    """Start the provisioning/verification API."""
    import uvicorn

    from attendcode.server.app import app

    _configure_logging(False)
    console.print(f"Starting AttendCode API on http://{host}:{port}")
    uvicorn.run(app, host=host, port=port, log_level="info")


@main.command("db-init")
def db_init() -> None:
    """Create database tables."""
    from attendcode.db import init_schema

    init_schema()
    console.print("[green]Schema ready[/green]")


if __name__ == "__main__":
    main()
