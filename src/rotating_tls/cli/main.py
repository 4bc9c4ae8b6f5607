"""CLI entry point for rotating-tls.

Invoked as::

    rotating-tls [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m rotating_tls.cli.main

Commands
--------
version   Show version information
inspect   Load credential files once and describe them
watch     Run a rotating credential and report each refresh
"""
from __future__ import annotations

import logging
import sys
import time

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from rotating_tls.certificates.leaf import LeafCertificate
from rotating_tls.certificates.pool import CertPool
from rotating_tls.context import LoadContext
from rotating_tls.errors import RefreshFailedError, TLSCredentialError
from rotating_tls.loader.path import PathLoader

console = Console()

_path_option = click.Path(exists=False, dir_okay=False)


def _credential_options(func):
    func = click.option("--key", "key_path", required=True, type=_path_option, help="PEM private key.")(func)
    func = click.option("--cert", "cert_path", required=True, type=_path_option, help="PEM certificate chain.")(func)
    func = click.option("--ca", "ca_path", required=True, type=_path_option, help="PEM Root CA bundle.")(func)
    return func


# ------------------------------------------------------------------
# Root group
# ------------------------------------------------------------------


@click.group()
@click.version_option(package_name="rotating-tls")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
)
def cli(log_level: str) -> None:
    """Rotating TLS credentials for long-running clients and servers"""
    logging.basicConfig(level=getattr(logging, log_level.upper()))


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from rotating_tls import __version__

    console.print(f"[bold]rotating-tls[/bold] v{__version__}")


# ------------------------------------------------------------------
# inspect
# ------------------------------------------------------------------


@cli.command(name="inspect")
@_credential_options
def inspect_command(ca_path: str, cert_path: str, key_path: str) -> None:
    """Load the credential files once and describe them."""
    loader = PathLoader(ca_path, cert_path, key_path)
    ctx = LoadContext()
    try:
        pool = loader.root_ca(ctx)
        certificate = loader.certificate(ctx)
    except TLSCredentialError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        sys.exit(1)

    console.print(_pool_table(pool))
    console.print(_certificate_table(certificate))
    if not len(pool):
        console.print("[yellow]Warning:[/yellow] Root CA bundle contains no usable certificates.")


# ------------------------------------------------------------------
# watch
# ------------------------------------------------------------------


@cli.command(name="watch")
@_credential_options
@click.option(
    "--interval",
    type=click.FloatRange(min=0, min_open=True),
    default=60.0,
    show_default=True,
    help="Refresh interval in seconds.",
)
@click.option(
    "--count",
    type=click.IntRange(min=1),
    default=None,
    help="Stop after this many intervals (default: run until interrupted).",
)
def watch_command(
    ca_path: str,
    cert_path: str,
    key_path: str,
    interval: float,
    count: int | None,
) -> None:
    """Refresh the certificate every INTERVAL seconds and report what is served."""
    from rotating_tls.credential import RotatingCredential

    try:
        credential = RotatingCredential(PathLoader(ca_path, cert_path, key_path), interval)
    except TLSCredentialError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        sys.exit(1)

    config = credential.config()
    console.print(
        f"Watching [bold]{cert_path}[/bold] every {interval:g}s "
        f"({len(config.root_ca)} root CA certificate(s))"
    )
    ticks = 0
    try:
        with credential:
            while count is None or ticks < count:
                time.sleep(interval)
                ticks += 1
                try:
                    certificate = config.get_certificate()
                except RefreshFailedError as exc:
                    console.print(f"[{ticks}] [red]refresh failed:[/red] {escape(str(exc))}")
                    continue
                console.print(
                    f"[{ticks}] serving serial={certificate.serial_number} "
                    f"subject={certificate.subject} expires={certificate.not_after.isoformat()}"
                )
    except KeyboardInterrupt:
        console.print("Interrupted.")


# ------------------------------------------------------------------
# Rendering helpers
# ------------------------------------------------------------------


def _pool_table(pool: CertPool) -> Table:
    table = Table(title=f"Root CA pool ({len(pool)})")
    table.add_column("Subject")
    table.add_column("Not after")
    for cert in pool:
        table.add_row(cert.subject.rfc4514_string(), cert.not_valid_after_utc.isoformat())
    return table


def _certificate_table(certificate: LeafCertificate) -> Table:
    table = Table(title="Leaf certificate", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Subject", certificate.subject)
    table.add_row("Serial", str(certificate.serial_number))
    table.add_row("Not before", certificate.not_before.isoformat())
    table.add_row("Not after", certificate.not_after.isoformat())
    table.add_row("Days remaining", str(certificate.days_remaining()))
    table.add_row("Chain length", str(len(certificate.chain)))
    table.add_row("SHA-256", certificate.fingerprint)
    return table


if __name__ == "__main__":
    cli()
