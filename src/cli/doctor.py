"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio

import httpx
import typer
from rich.console import Console
from rich.table import Table

from adapters.cookie_store import load_cookies
from adapters.http_client import build_async_client
from core.config import AppSettings, write_user_env_vars

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


async def _check_api(settings: AppSettings) -> tuple[bool, str]:
    try:
        async with build_async_client(settings) as client:
            response = await client.get("/me")
        return True, f"HTTP {response.status_code}"
    except httpx.HTTPError as exc:
        return False, str(exc) or exc.__class__.__name__


@app.command()
def run() -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()

    table = Table(title="gds-client Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    table.add_row("API base_url", "OK", settings.api_base_url)
    table.add_row("Timeout", "OK", f"{settings.http_timeout_seconds:.0f}s")

    # Session cache
    if settings.persist_session:
        session_file = settings.resolved_session_file()
        count = len(load_cookies(session_file).jar)
        status = "OK" if count else "EMPTY"
        table.add_row("Session file", status, f"{session_file} ({count} cookies)")
    else:
        table.add_row("Session file", "DISABLED", "Cookies are not kept between runs")

    # Connectivity (best-effort)
    ok_http, detail_http = asyncio.run(_check_api(settings))
    table.add_row("API connectivity", "OK" if ok_http else "FAIL", detail_http)

    _console.print(table)

    if not ok_http:
        _console.print("\n[yellow]Note:[/yellow] Check GDS_API_BASE_URL or run `gds doctor set-api`.")


@app.command(name="set-api")
def set_api() -> None:
    """Interactive API setup (stores config in the user config .env)."""

    current = AppSettings()
    base_url = typer.prompt("API base URL", default=current.api_base_url, show_default=True).strip()
    timeout = typer.prompt("HTTP timeout (seconds)", default=current.http_timeout_seconds, type=float)

    if not base_url.startswith(("http://", "https://")):
        raise typer.BadParameter("base URL must start with http:// or https://")
    if timeout <= 0:
        raise typer.BadParameter("timeout must be positive")

    env_path = write_user_env_vars(
        {
            "GDS_API_BASE_URL": base_url.rstrip("/"),
            "GDS_HTTP_TIMEOUT_SECONDS": f"{timeout:g}",
        }
    )

    _console.print(f"[green]Saved API config to:[/green] {env_path}")
