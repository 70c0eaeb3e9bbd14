"""CLI entry point for the SSDP client."""

import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional, Tuple

import click

from .config import Config
from .discovery.discovery_service import SSDPSearchService
from .discovery.network import get_active_interfaces, get_interface_ips
from .log_setup import configure_logging
from .models.ssdp import DiscoveredService

# Exit code when no socket could be set up on any interface
EXIT_NO_SOCKETS = 2


@click.group()
@click.option(
    "--config-file", "-c",
    type=click.Path(exists=True, dir_okay=False, resolve_path=True),
    help="Path to a JSON configuration file.",
    envvar="SSDP_CLIENT_CONFIG_FILE"
)
@click.option(
    "--log-level", "-l",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default=None, # Falls back to the Config value
    help="Override the logging level (e.g., DEBUG, INFO)."
)
@click.option(
    "--log-format",
    type=click.Choice(["console", "json"], case_sensitive=False),
    default=None,
    help="Override logging format."
)
@click.pass_context
def cli(ctx: click.Context, config_file: Optional[str], log_level: Optional[str], log_format: Optional[str]) -> None:
    """SSDP Client - finds UPnP devices on the local network."""
    try:
        if config_file:
            cfg = Config.from_file(Path(config_file))
        else:
            # Environment variables (and .env if present)
            cfg = Config()
    except Exception as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        sys.exit(1)

    if log_level:
        cfg.logging.level = log_level.upper()
    if log_format:
        cfg.logging.format = log_format.lower()

    configure_logging(cfg.logging)
    ctx.ensure_object(dict)
    ctx.obj["config"] = cfg


def _format_service(service: DiscoveredService, as_json: bool) -> str:
    if as_json:
        return json.dumps(service.summary(), sort_keys=True)
    return "  ".join([
        service.host,
        service.location or "-",
        service.server or "-",
        service.usn or "-",
    ])


@cli.command()
@click.option("--duration", "-d", type=float, default=None, help="Seconds to listen for replies.")
@click.option("--search-target", "-s", default=None, help="Search target (ST), e.g. 'upnp:rootdevice'.")
@click.option("--port", "-p", type=int, default=None, help="Multicast destination port.")
@click.option(
    "--interface", "-i", "interfaces",
    multiple=True,
    help="Local address to search from. Can be used multiple times. Defaults to the system default interface."
)
@click.option("--all-interfaces", is_flag=True, default=False, help="Search from every local address.")
@click.option("--ipv6", is_flag=True, default=False, help="Include IPv6 addresses with --all-interfaces.")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print one JSON object per service.")
@click.pass_context
def discover(
    ctx: click.Context,
    duration: Optional[float],
    search_target: Optional[str],
    port: Optional[int],
    interfaces: Tuple[str, ...],
    all_interfaces: bool,
    ipv6: bool,
    as_json: bool,
) -> None:
    """Multicasts an M-SEARCH and prints every service that replies."""
    config: Config = ctx.obj["config"]
    discovery_cfg = config.discovery
    try:
        if search_target:
            discovery_cfg.search_target = search_target
        if port is not None:
            discovery_cfg.port = port
        if interfaces:
            discovery_cfg.interfaces = list(interfaces)
        if all_interfaces:
            discovery_cfg.use_all_interfaces = True
        if ipv6:
            discovery_cfg.include_ipv6 = True
        service = SSDPSearchService(app_config=config)
        service.build_request(duration)
    except ValueError as e:
        click.echo(f"Invalid discovery options: {e}", err=True)
        sys.exit(1)

    found: List[DiscoveredService] = []

    async def run_search():
        async for discovered in service.discover_services(duration=duration):
            found.append(discovered)
            click.echo(_format_service(discovered, as_json))

    try:
        asyncio.run(run_search())
    except KeyboardInterrupt:
        click.echo("\nDiscovery interrupted by user.", err=True)
        sys.exit(130)

    if service.no_sockets_available:
        click.echo("No socket could be set up on any interface; multicast may be blocked or not permitted.", err=True)
        sys.exit(EXIT_NO_SOCKETS)
    if not as_json:
        click.echo(f"\n{len(found)} response(s) received.", err=True)


@cli.command()
@click.option("--ipv6/--no-ipv6", default=True, help="Show IPv6 addresses.")
def interfaces(ipv6: bool) -> None:
    """Lists active network interfaces and their addresses."""
    active = get_active_interfaces()
    if not active:
        click.echo("No active network interfaces found.", err=True)
        return
    for iface in active:
        addresses = get_interface_ips(iface, include_ipv6=ipv6, keep_scope=True)
        click.echo(f"{iface}: {', '.join(addresses) if addresses else '-'}")


@cli.command()
def version() -> None:
    """Show version information."""
    from . import __version__
    click.echo(f"SSDP Client v{__version__}")


@cli.command()
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Show current configuration."""
    config = ctx.obj["config"]
    click.echo(json.dumps(config.model_dump(mode="json"), indent=2))


if __name__ == "__main__":
    cli()
