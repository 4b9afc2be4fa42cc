"""Data service CLI.

Usage:
    dataservice serve                 Run the HTTP gateway
    dataservice validate              Compile every command descriptor
    dataservice resolve ENDPOINT      Show which artifact serves an endpoint
    dataservice config show           Show effective configuration (redacted)
"""

import logging
import os
from pathlib import Path
from typing import Optional

import typer
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from dataservice.config import CONFIG_PATH_ENV, GatewayConfig, load_config
from dataservice.errors import DataServiceError
from dataservice.services.command_compiler import compile_descriptor_file
from dataservice.services.data_source_resolver import DataSourceResolver
from dataservice.services.tenant_registry import TenantRegistry
from dataservice.utils.redaction import redact_for_logging

_log = logging.getLogger(__name__)

DESCRIPTOR_PATTERNS = ("*.xmlds", "*.jsonds", "*.sqlds")

app = typer.Typer(
    name="dataservice",
    help="Multi-tenant SQL data gateway",
    no_args_is_help=True,
)
config_app = typer.Typer(help="Configuration management")
app.add_typer(config_app, name="config")

console = Console()


def _load(config_path: str | None) -> GatewayConfig:
    try:
        return load_config(config_path=config_path)
    except FileNotFoundError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)
    except (ValidationError, yaml.YAMLError) as e:
        console.print(f"[red]Config validation failed:[/red] {escape(str(e))}")
        raise typer.Exit(1)


@app.command()
def serve(
    config: Optional[str] = typer.Option(None, "--config", help="Config file path"),
    host: Optional[str] = typer.Option(None, "--host", help="Bind address"),
    port: Optional[int] = typer.Option(None, "--port", help="Bind port"),
):
    """Run the gateway with uvicorn."""
    import uvicorn

    cfg = _load(config)
    # The app loads its own config at startup; point it at the same file
    if config:
        os.environ[CONFIG_PATH_ENV] = str(Path(config).resolve())

    final_host = host or cfg.server.host
    final_port = port or cfg.server.port
    console.print(f"[bold]Starting data service on {final_host}:{final_port}[/bold]")
    uvicorn.run(
        "dataservice.api.main:app",
        host=final_host,
        port=final_port,
        workers=1,
        log_level=cfg.server.log_level,
        lifespan="on",
    )


def _descriptor_files(root: Path) -> list[Path]:
    files: set[Path] = set()
    for pattern in DESCRIPTOR_PATTERNS:
        files.update(root.glob(pattern))
    return sorted(files)


@app.command()
def validate(
    config: Optional[str] = typer.Option(None, "--config", help="Config file path"),
):
    """Compile every command descriptor under the artifact root."""
    cfg = _load(config)
    root = cfg.artifact_path
    if not root.is_dir():
        console.print(f"[red]Artifact root not found:[/red] {escape(str(root))}")
        raise typer.Exit(1)

    files = _descriptor_files(root)
    table = Table(title=f"Command descriptors in {escape(str(root))}")
    table.add_column("File", style="cyan")
    table.add_column("Timeout", justify="right")
    table.add_column("Kind")
    table.add_column("Params", justify="right")
    table.add_column("Status")

    failures = 0
    for path in files:
        try:
            descriptor = compile_descriptor_file(path)
        except DataServiceError as e:
            failures += 1
            _log.warning("Descriptor %s failed to compile: %s", path.name, e)
            table.add_row(escape(path.name), "", "", "", f"[red]{escape(str(e))}[/red]")
            continue
        table.add_row(
            escape(path.name),
            str(descriptor.timeout_seconds),
            descriptor.command_kind.value,
            str(len(descriptor.parameters)),
            "[green]ok[/green]",
        )

    console.print(table)
    if failures:
        console.print(f"[red]{failures} of {len(files)} descriptor(s) failed to compile.[/red]")
        raise typer.Exit(1)
    console.print(f"[green]{len(files)} descriptor(s) compiled.[/green]")


@app.command()
def resolve(
    endpoint: str = typer.Argument(..., help="Endpoint name (path segment after /api)"),
    ctx: Optional[str] = typer.Option(None, "--ctx", help="Context (tenant) name"),
    accept: str = typer.Option("application/json", "--accept", help="Accept header value"),
    config: Optional[str] = typer.Option(None, "--config", help="Config file path"),
):
    """Show which artifact the gateway would serve for ENDPOINT."""
    cfg = _load(config)
    tenants = TenantRegistry.from_config(cfg)
    tenant = tenants.get(ctx)
    if ctx and tenant is None:
        console.print(f"[yellow]Context '{escape(ctx)}' is not configured; resolving without it.[/yellow]")

    artifact = DataSourceResolver(cfg.artifact_path).resolve(tenant, endpoint, accept)
    console.print(f"  endpoint:   {escape(endpoint)}")
    console.print(f"  context:    {escape(tenant.name) if tenant else '-'}")
    console.print(f"  media type: {artifact.media_type.value}")
    console.print(f"  kind:       {artifact.kind.value}")
    if not artifact.found:
        console.print("[yellow]No artifact found (404).[/yellow]")
        raise typer.Exit(1)
    console.print(f"  path:       {escape(str(artifact.path))}", soft_wrap=True)


@config_app.command("show")
def config_show(
    config: Optional[str] = typer.Option(None, "--config", help="Config file path"),
):
    """Display resolved configuration (connection strings masked)."""
    cfg = _load(config)
    data = redact_for_logging(cfg.model_dump(mode="json"))
    console.print(yaml.safe_dump(data, sort_keys=False), end="", markup=False, soft_wrap=True)
