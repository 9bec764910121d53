"""
Edge Guard CLI - Command-line interface.

Inspect rate limit presets, validate payloads against schema files and
simulate rate limit checks from the terminal.
"""

import json
from pathlib import Path
from typing import Any, Optional

import typer
import yaml
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from edge_guard.ratelimit.limiter import RateLimiter
from edge_guard.ratelimit.models import RATE_LIMIT_PRESETS
from edge_guard.validation.models import schema_from_dict
from edge_guard.validation.schema import validate_object

app = typer.Typer(
    name="edge-guard",
    help="Edge Guard - Request validation and rate limiting",
    no_args_is_help=True,
)
console = Console()


def _load_document(path: Path) -> Any:
    """Load a JSON or YAML file, picking the parser by suffix."""
    content = path.read_text()
    if path.suffix.lower() in {".yaml", ".yml"}:
        return yaml.safe_load(content)
    return json.loads(content)


@app.command()
def presets():
    """List the built-in rate limit presets."""
    table = Table(title=f"Rate Limit Presets ({len(RATE_LIMIT_PRESETS)})")
    table.add_column("Name", style="cyan")
    table.add_column("Window", justify="right")
    table.add_column("Max Requests", justify="right", style="green")
    table.add_column("Burst", justify="right", style="magenta")
    table.add_column("Key Prefix")

    for name, config in RATE_LIMIT_PRESETS.items():
        window_seconds = config.window_ms / 1000
        window = f"{window_seconds / 60:g}m" if window_seconds >= 60 else f"{window_seconds:g}s"
        table.add_row(
            name,
            window,
            str(config.max_requests),
            str(config.burst_allowance),
            config.key_prefix,
        )

    console.print(table)


@app.command()
def validate(
    schema_file: Path = typer.Argument(..., help="JSON or YAML file mapping field names to descriptors"),
    payload_file: Path = typer.Argument(..., help="JSON or YAML payload to validate"),
    strict: bool = typer.Option(False, "--strict", "-s", help="Reject fields not in the schema"),
):
    """Validate a payload against a schema file."""
    for path in (schema_file, payload_file):
        if not path.exists():
            console.print(f"[red]File does not exist: {path}[/red]")
            raise typer.Exit(1)

    try:
        schema_data = _load_document(schema_file)
        payload = _load_document(payload_file)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        console.print(f"[red]Could not parse input: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    if not isinstance(schema_data, dict):
        console.print("[red]Schema file must contain an object of field descriptors[/red]")
        raise typer.Exit(1)

    try:
        schema = schema_from_dict(schema_data)
    except ValueError as e:
        console.print(f"[red]Invalid schema: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    result = validate_object(payload, schema, strict=strict)

    if not result.valid:
        errors = "\n".join(f"- {error}" for error in (result.error or "").split("; "))
        console.print(Panel(errors, title="Validation failed", border_style="red"))
        raise typer.Exit(1)

    console.print(
        Panel(
            json.dumps(result.sanitized, indent=2, default=str),
            title="Valid",
            border_style="green",
        )
    )


@app.command("check-key")
def check_key(
    identifier: str = typer.Argument(..., help="Client identity, e.g. an IP address"),
    preset: str = typer.Option("api", "--preset", "-p", help="Rate limit preset"),
    requests: int = typer.Option(1, "--requests", "-n", min=1, help="Number of requests to simulate"),
    endpoint: Optional[str] = typer.Option(None, "--endpoint", "-e", help="Endpoint to scope the key to"),
):
    """Simulate consecutive requests against a fresh limiter."""
    if preset not in RATE_LIMIT_PRESETS:
        console.print(f"[red]Unknown preset: {preset}[/red]")
        console.print(f"Available: {', '.join(RATE_LIMIT_PRESETS)}")
        raise typer.Exit(1)

    limiter = RateLimiter()
    config = RATE_LIMIT_PRESETS[preset]

    table = Table(title=f"{requests} requests from {identifier} ({preset})")
    table.add_column("#", justify="right")
    table.add_column("Allowed")
    table.add_column("Remaining", justify="right")
    table.add_column("Retry After", justify="right")

    denied = 0
    for i in range(1, requests + 1):
        result = limiter.check(identifier, config, endpoint)
        if not result.allowed:
            denied += 1
        table.add_row(
            str(i),
            "[green]yes[/green]" if result.allowed else "[red]no[/red]",
            str(result.remaining),
            f"{result.retry_after}s" if result.retry_after is not None else "-",
        )

    console.print(table)
    console.print(f"\nAllowed: {requests - denied}  Denied: {denied}")


@app.command()
def version():
    """Show Edge Guard version."""
    from edge_guard import __version__

    console.print(f"Edge Guard v{__version__}")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
