"""realtyhost CLI - operator command line interface."""

from __future__ import annotations

import asyncio
import json
import sys

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from realtyhost import __version__
from realtyhost.core.auth import AuthContext
from realtyhost.core.config import (
    export_file_config,
    flatten_config,
    get_config,
    load_config_from_file,
)
from realtyhost.core.exceptions import RealtyHostError, format_error_for_user
from realtyhost.domains.manager import DomainManager
from realtyhost.domains.models import DomainRecord, DomainStatus, ValidationRecord
from realtyhost.observability.logging import configure_logging

console = Console()

# Operator commands act with local authority.
CLI_AUTH = AuthContext(uid="cli")

STATUS_COLORS = {
    DomainStatus.PENDING: "yellow",
    DomainStatus.ACTIVE: "green",
    DomainStatus.ERROR: "red",
}


@click.group()
@click.option(
    "--config", "-c",
    "config_file",
    type=click.Path(exists=True),
    help="Path to YAML or TOML config file",
)
@click.option(
    "--log-level",
    "-l",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Log level (default: from REALTYHOST_LOG_LEVEL, else info)",
)
@click.option("--json-logs", is_flag=True, default=False, help="Render logs as JSON lines")
@click.version_option(__version__, prog_name="realtyhost")
def main(config_file: str | None, log_level: str | None, json_logs: bool):
    """realtyhost - custom domains for tenant real-estate sites.

    Examples:

        realtyhost domain add www.acme-realty.com --tenant-id tenant-42

        realtyhost domain status --tenant-id tenant-42

        realtyhost domain remove --tenant-id tenant-42

        realtyhost serve --port 8080

    Settings come from REALTYHOST_* environment variables, a .env file,
    or a config file passed with --config.
    """
    if config_file:
        try:
            export_file_config(flatten_config(load_config_from_file(config_file)))
            console.print(f"Loaded config from {config_file}", style="dim")
        except (OSError, ValueError) as e:
            console.print(f"[red]Failed to load config: {e}[/red]")
            sys.exit(1)

    platform = get_config().platform
    configure_logging(log_level or platform.log_level, json_logs or platform.log_json)


def _build_manager() -> DomainManager:
    return DomainManager.from_config(get_config())


def _print_error(error: BaseException) -> None:
    if isinstance(error, RealtyHostError):
        console.print(
            Panel(
                f"[red]{error.message}[/red]",
                title=f"Error: {error.code}",
                border_style="red",
            )
        )
    else:
        console.print(
            Panel(
                f"[red]{format_error_for_user(error)}[/red]",
                title="Unexpected Error",
                border_style="red",
            )
        )


def _format_record(record: ValidationRecord) -> str:
    return (
        f"   Type: {record.type}\n"
        f"   Name: {record.name}\n"
        f"   Value: {record.value}"
    )


def _dns_instructions(record: DomainRecord) -> str:
    sections = []
    if record.verification_record:
        sections.append(f"[bold]Ownership[/bold]\n{_format_record(record.verification_record)}")
    if (
        record.firebase_verification
        and record.firebase_verification != record.verification_record
    ):
        sections.append(
            f"[bold]Hosting verification[/bold]\n{_format_record(record.firebase_verification)}"
        )
    for i, ssl_record in enumerate(record.ssl_validation_records, 1):
        sections.append(f"[bold]Certificate validation {i}[/bold]\n{_format_record(ssl_record)}")
    return "\n\n".join(sections)


@main.group()
def domain():
    """Manage tenant custom domains.

    A tenant has at most one custom domain. Adding one registers it with the
    DNS provider and the hosting site, and returns the DNS records the domain
    owner must publish.

    Examples:

        realtyhost domain add www.acme-realty.com --tenant-id tenant-42

        realtyhost domain status --tenant-id tenant-42

        realtyhost domain show --tenant-id tenant-42 --json

        realtyhost domain remove --tenant-id tenant-42 --yes
    """
    pass


@domain.command("add")
@click.argument("domain_name")
@click.option("--tenant-id", "-t", required=True, help="Tenant to attach the domain to")
def domain_add(domain_name: str, tenant_id: str):
    """Provision a custom domain for a tenant.

    After provisioning, you'll receive DNS records to configure.
    """
    asyncio.run(_domain_add_async(domain_name, tenant_id))


async def _domain_add_async(domain_name: str, tenant_id: str):
    """Async implementation of domain add command."""
    manager = _build_manager()
    try:
        record = await manager.provision(tenant_id, domain_name, CLI_AUTH)
    except Exception as e:
        _print_error(e)
        sys.exit(1)
    finally:
        await manager.aclose()

    if record is None:
        console.print("[yellow]The DNS provider returned no hostname; nothing was stored.[/yellow]")
        return

    content = (
        f"[green]Custom domain provisioned![/green]\n\n"
        f"[bold]Domain:[/bold] {record.domain}\n"
        f"[bold]Tenant ID:[/bold] {tenant_id}\n"
        f"[bold]Hostname ID:[/bold] {record.provider_hostname_id}\n"
        f"[bold]SSL:[/bold] {record.ssl_status}\n"
    )
    instructions = _dns_instructions(record)
    if instructions:
        content += f"\n[yellow]Configure these DNS records:[/yellow]\n\n{instructions}\n"
    content += (
        f"\nAfter configuring DNS, run:\n"
        f"  [cyan]realtyhost domain status --tenant-id {tenant_id}[/cyan]"
    )
    console.print(Panel(content, title="Domain Provisioning", border_style="green"))


@domain.command("status")
@click.option("--tenant-id", "-t", required=True, help="Tenant whose domain to check")
def domain_status(tenant_id: str):
    """Poll the DNS provider and update the stored status."""
    asyncio.run(_domain_status_async(tenant_id))


async def _domain_status_async(tenant_id: str):
    """Async implementation of domain status command."""
    manager = _build_manager()
    try:
        report = await manager.check_status(tenant_id, CLI_AUTH)
    except Exception as e:
        _print_error(e)
        sys.exit(1)
    finally:
        await manager.aclose()

    color = STATUS_COLORS.get(report.status, "white")
    ssl = report.details.get("ssl") or {}
    content = (
        f"[bold]Domain:[/bold] {report.details.get('hostname', 'N/A')}\n"
        f"[bold]Status:[/bold] [{color}]{report.status.value}[/{color}]\n"
        f"[bold]Hostname:[/bold] {report.details.get('status', 'N/A')}\n"
        f"[bold]SSL:[/bold] {ssl.get('status', 'N/A')}"
    )
    console.print(Panel(content, title=f"Domain Status: {tenant_id}", border_style=color))


@domain.command("show")
@click.option("--tenant-id", "-t", required=True, help="Tenant whose domain to show")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
def domain_show(tenant_id: str, json_output: bool):
    """Show the stored custom domain without contacting any provider."""
    asyncio.run(_domain_show_async(tenant_id, json_output))


async def _domain_show_async(tenant_id: str, json_output: bool):
    """Async implementation of domain show command."""
    manager = _build_manager()
    try:
        record = await manager.get_domain(tenant_id)
    finally:
        await manager.aclose()

    if json_output:
        click.echo(json.dumps(record.to_dict() if record else None, indent=2))
        return

    if record is None:
        console.print(f"[dim]No custom domain for tenant {tenant_id}[/dim]")
        return

    table = Table(title=f"Custom Domain: {tenant_id}")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    color = STATUS_COLORS.get(record.status, "white")
    table.add_row("Domain", record.domain)
    table.add_row("Status", f"[{color}]{record.status.value}[/{color}]")
    table.add_row("Hostname ID", record.provider_hostname_id or "N/A")
    table.add_row("Hostname Status", record.hostname_status)
    table.add_row("SSL Status", record.ssl_status)
    table.add_row("Verification Start", record.verification_start.strftime("%Y-%m-%d %H:%M"))
    console.print(table)

    instructions = _dns_instructions(record)
    if instructions:
        console.print(Panel(instructions, title="DNS Records", border_style="yellow"))


@domain.command("remove")
@click.option("--tenant-id", "-t", required=True, help="Tenant whose domain to remove")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
def domain_remove(tenant_id: str, yes: bool):
    """Remove a tenant's custom domain."""
    if not yes and not click.confirm(f"Remove the custom domain of tenant '{tenant_id}'?"):
        console.print("[dim]Cancelled[/dim]")
        return

    asyncio.run(_domain_remove_async(tenant_id))


async def _domain_remove_async(tenant_id: str):
    """Async implementation of domain remove command."""
    manager = _build_manager()
    try:
        await manager.deprovision(tenant_id, CLI_AUTH)
    except Exception as e:
        _print_error(e)
        sys.exit(1)
    finally:
        await manager.aclose()

    console.print(f"[green]Custom domain removed for tenant:[/green] {tenant_id}")


@main.command("config")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
def config_show(json_output: bool):
    """Show current configuration settings.

    Secrets are shown only as set/unset.
    """
    display = get_config().to_display_dict()

    if json_output:
        click.echo(json.dumps(display, indent=2))
        return

    for section_name, settings in display.items():
        table = Table(title=section_name.title())
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="green")
        for key, value in settings.items():
            table.add_row(key, str(value))
        console.print(table)


@main.command()
@click.option("--host", default=None, help="Bind host (default: REALTYHOST_HOST)")
@click.option("--port", "-p", type=int, default=None, help="Bind port (default: REALTYHOST_PORT)")
def serve(host: str | None, port: int | None):
    """Run the callable HTTP API."""
    import uvicorn

    from realtyhost.api.app import create_app_from_config

    cfg = get_config()
    platform = cfg.platform
    if not platform.get_api_tokens():
        console.print(
            "[yellow]No API tokens configured; every callable will answer UNAUTHENTICATED.[/yellow]"
        )

    app = create_app_from_config(cfg)
    uvicorn.run(
        app,
        host=host or platform.host,
        port=port or platform.port,
        log_level=platform.log_level.lower(),
    )


if __name__ == "__main__":
    main()
