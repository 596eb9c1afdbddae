import argparse
import sys

import httpx
from rich import print as rprint
from rich.table import Table

from .config import Settings, get_settings

# Settings that must never be echoed to a terminal
SECRET_SETTINGS = {"GEMINI_API_KEY"}


def show_config(settings: Settings) -> int:
    """Print the effective configuration, masking secrets."""
    table = Table(title="Character Studio configuration")
    table.add_column("Setting")
    table.add_column("Value")

    for name, value in settings.model_dump().items():
        if name in SECRET_SETTINGS:
            value = "[green]set" if value else "[red]missing"
        table.add_row(name, str(value))
    rprint(table)

    if settings.AUTH_EMULATOR_BYPASS and settings.is_production:
        rprint("\n[bold red]AUTH_EMULATOR_BYPASS is enabled in production - the server will refuse to start")
        return 1
    if not settings.GEMINI_API_KEY:
        rprint("\n[bold yellow]GEMINI_API_KEY is not set - the server will refuse to start")
        return 1
    return 0


def check_health(url: str) -> int:
    """Probe a running gateway's health endpoint."""
    try:
        response = httpx.get(f"{url.rstrip('/')}/health", timeout=5.0)
    except httpx.HTTPError as e:
        rprint(f"[red]❌ Gateway (HTTP): FAILED - {e}")
        return 1

    if response.status_code != 200:
        rprint(f"[yellow]⚠️ Gateway (HTTP): status {response.status_code}")
        return 1

    body = response.json()
    rprint(f"[green]✅ {body.get('service')} {body.get('version')}: {body.get('status')}")
    return 0


def main() -> int:
    """
    Command-line interface (CLI) entry point for the Character Studio gateway.
    """
    parser = argparse.ArgumentParser(description="Character Studio API gateway")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the API gateway")
    serve_parser.add_argument("--host", type=str, default=None, help="Bind address (default: HOST)")
    serve_parser.add_argument("--port", type=int, default=None, help="Bind port (default: PORT)")
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes")

    # Config command
    subparsers.add_parser("config", help="Show the effective configuration")

    # Health command
    health_parser = subparsers.add_parser("health", help="Check a running gateway")
    health_parser.add_argument("--url", type=str, default="http://localhost:8080", help="Gateway base URL")

    args = parser.parse_args()

    if args.command == "config":
        return show_config(get_settings())
    if args.command == "health":
        return check_health(args.url)

    from .gateway.server import run

    if args.command == "serve":
        run(host=args.host, port=args.port, reload=args.reload)
    else:
        # Default to serve if no command specified
        run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
