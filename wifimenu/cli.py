"""Typer CLI entrypoint."""

from __future__ import annotations

import logging
import sys
from dataclasses import replace

import typer

from wifimenu.core.errors import WifiMenuError
from wifimenu.core.model import CacheSnapshot
from wifimenu.core.service import WifiService
from wifimenu.frontends.menu import Menu, network_row
from wifimenu.frontends.notify import Notifier
from wifimenu.frontends.rofi import RofiPrompter

app = typer.Typer(help="Menu-driven Wi-Fi manager with a background refresh daemon")


def _build_service() -> WifiService:
    service = WifiService()
    for warning in getattr(service, "runtime_warnings", ()):
        typer.echo(f"Warning: {warning}", err=True)
    return service


def _configure_logging(verbose: bool, default: int = logging.WARNING) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else default,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        force=True,
    )


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Open the Wi-Fi menu when no command is given."""
    ctx.obj = {"verbose": verbose}
    _configure_logging(verbose)
    if ctx.invoked_subcommand is None:
        open_menu()


@app.command("open-menu")
def open_menu() -> None:
    """Show the network menu (default command)."""
    try:
        service = _build_service()
        Menu(service, RofiPrompter(service.config.rofi), Notifier()).run()
    except WifiMenuError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("daemon")
def run_daemon(ctx: typer.Context) -> None:
    """Run the refresh loop in the foreground (for a process supervisor)."""
    _configure_logging(bool(ctx.obj and ctx.obj.get("verbose")), default=logging.INFO)
    try:
        service = _build_service()
        service.build_daemon().run()
    except WifiMenuError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("daemon-stop")
def daemon_stop() -> None:
    """Stop the running daemon and wait for it to release its lock."""
    try:
        service = _build_service()
        pid = service.stop_daemon()
        typer.echo(f"Daemon stopped (PID {pid})")
    except WifiMenuError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("scan")
def scan(
    timeout: float | None = typer.Option(None, "--timeout", help="Seconds to wait for fresh results"),
) -> None:
    """Ask the daemon for an immediate scan and wait for the new snapshot."""
    try:
        service = _build_service()
        snapshot = service.request_scan(timeout_s=timeout)
        if snapshot is None:
            typer.echo("Scan requested; no fresh results before the timeout", err=True)
            raise typer.Exit(code=1)
        typer.echo(f"Scan complete: {len(snapshot.records)} networks (generation {snapshot.generation})")
    except WifiMenuError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("networks")
def list_networks() -> None:
    """Print the cached network list."""
    try:
        service = _build_service()
        snapshot = service.snapshot()
        if not isinstance(snapshot, CacheSnapshot):
            typer.echo("No data yet, scanning… (is the daemon running?)")
            return
        if service.is_stale(snapshot):
            typer.echo(f"Warning: cache is stale (last scan {int(snapshot.age())}s ago)", err=True)
        for record in snapshot.records:
            typer.echo(f"{network_row(record)}  {record.security.label}{'  saved' if record.saved else ''}")
    except WifiMenuError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("connect")
def connect(
    ssid: str,
    password_stdin: bool = typer.Option(False, "--password-stdin", help="Read the password from stdin"),
    yes: bool = typer.Option(False, "--yes", help="Confirm connecting to an open network"),
) -> None:
    """Connect to SSID without opening the menu."""
    try:
        service = _build_service()
        secret = sys.stdin.readline().rstrip("\n") if password_stdin else None
        request = service.request_for(ssid, secret=secret or None)
        if yes:
            request = replace(request, open_confirmed=True)
        result = service.connect(request, RofiPrompter(service.config.rofi))
        if not result.connected:
            typer.echo(f"Error: {result.reason}", err=True)
            raise typer.Exit(code=1)
        typer.echo(f"Connected to {result.ssid}")
        if result.vpn is not None:
            status = "started" if result.vpn.ok else f"failed: {result.vpn.error}"
            typer.echo(f"VPN {result.vpn.profile} {status}")
    except WifiMenuError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


def run() -> None:
    app()


if __name__ == "__main__":
    run()
