"""
Locksmith CLI entry point.

Usage:
    locksmith [OPTIONS] COMMAND [ARGS]...

Commands:
    serve     Run the API server
    config    Inspect and check configuration files
    version   Show version information
"""

from typing import Annotated

import typer

from locksmith.cli.output import console, print_error, print_success, print_warning
from locksmith.config import LocksmithConfig, load_config
from locksmith.nm.errors import NetworkManagerError
from locksmith.nm.registry import default_registries

DEFAULT_CONFIG_PATH = "/etc/locksmith/locksmith.yaml"

app = typer.Typer(
    name="locksmith",
    help="Locksmith VPN peer admission service",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
config_app = typer.Typer(help="Configuration commands")
app.add_typer(config_app, name="config", help="Configuration")

ConfigOption = Annotated[
    str,
    typer.Option(
        "--config", "-c", help="Configuration file", envvar="LOCKSMITH_CONFIG"
    ),
]


def _load(path: str) -> LocksmithConfig:
    """Load a configuration file or exit with an error."""
    try:
        return load_config(path)
    except (FileNotFoundError, ValueError) as e:
        print_error(str(e))
        raise typer.Exit(1)


# =============================================================================
# Server
# =============================================================================


@app.command("serve")
def serve(
    config_path: ConfigOption = DEFAULT_CONFIG_PATH,
    port: Annotated[
        int | None, typer.Option("--port", "-P", help="Override API port")
    ] = None,
):
    """Run the API server."""
    from locksmith.host.app import run

    config = _load(config_path)
    if port:
        config.PORT = port

    try:
        run(config)
    except NetworkManagerError as e:
        print_error(f"Failed to start: {e}")
        raise typer.Exit(1)


# =============================================================================
# Configuration
# =============================================================================


@config_app.command("show")
def show_config(config_path: ConfigOption = DEFAULT_CONFIG_PATH):
    """Show the service settings and configured networks."""
    from rich.table import Table

    config = _load(config_path)

    settings = Table(title="Service Configuration", show_header=True)
    settings.add_column("Setting", style="cyan")
    settings.add_column("Value", style="green")
    for key in (
        "BIND_IP",
        "PORT",
        "STATE_IMPL",
        "STATE_DIR",
        "DB_FILE",
        "DRIVER_IMPL",
        "SYNC_MAX_WORKERS",
        "SYNC_MAX_RETRIES",
        "EXPIRY_INTERVAL_SECONDS",
        "LOG_LEVEL",
    ):
        value = getattr(config, key)
        settings.add_row(key, str(getattr(value, "value", value)))
    console.print(settings)

    networks = Table(title="Networks", show_header=True)
    networks.add_column("ID", style="cyan")
    networks.add_column("Name")
    networks.add_column("Approve")
    networks.add_column("Activate")
    networks.add_column("Approve expiry")
    networks.add_column("Activate expiry")
    networks.add_column("Hooks")
    networks.add_column("IPAM")
    for net in config.NETWORKS:
        networks.add_row(
            net.id,
            net.name,
            net.approve_mode.value,
            net.activate_mode.value,
            str(net.approve_expiry) if net.approve_expiry else "never",
            str(net.activate_expiry) if net.activate_expiry else "never",
            ", ".join(net.pre_approve_hooks) or "-",
            ", ".join(net.ipam) or "-",
        )
    console.print(networks)


@config_app.command("check")
def check_config(config_path: ConfigOption = DEFAULT_CONFIG_PATH):
    """Check that every component named by the configuration is available."""
    config = _load(config_path)
    registries = default_registries()
    problems = 0

    if config.STATE_IMPL not in registries.stores:
        print_error(f"Unknown state store: {config.STATE_IMPL}")
        problems += 1
    if config.DRIVER_IMPL not in registries.drivers:
        print_error(f"Unknown driver: {config.DRIVER_IMPL}")
        problems += 1

    for net in config.NETWORKS:
        for hook in net.pre_approve_hooks:
            if hook not in registries.hooks:
                print_error(f"Network {net.id}: unknown hook '{hook}'")
                problems += 1
        for name in net.ipam:
            if name not in registries.addressers:
                # Not fatal at runtime; the network just cannot approve peers
                print_warning(f"Network {net.id}: unknown addresser '{name}'")
            elif name not in net.address_pools:
                print_warning(f"Network {net.id}: no address pool for '{name}'")

    if problems:
        raise typer.Exit(1)
    print_success(f"Configuration OK: {len(config.NETWORKS)} network(s)")


# =============================================================================
# Misc
# =============================================================================


@app.command("version")
def version():
    """Show version information."""
    from locksmith import __version__

    console.print(f"Locksmith v{__version__}")


def run():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    run()
