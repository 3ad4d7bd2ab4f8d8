"""
Main entry point for the SSH Forward application.

This module provides the command-line interface: start forwarding from a
configuration file, validate a configuration file, or write a default one.
"""

import asyncio
import sys
from typing import Optional

import typer
from loguru import logger

from .application.startup import ApplicationStartup
from .core.exceptions import ConfigurationError, ForwardError
from .infrastructure.config.loader import ConfigLoader
from .infrastructure.config.models import ApplicationConfig, DEFAULT_CONFIG_FILE
from .infrastructure.logging.setup import setup_logging

cli = typer.Typer(
    name="ssh-forward",
    help="Forward local TCP ports to remote addresses through one SSH connection"
)


@cli.command()
def start(
    config_file: str = typer.Option(
        DEFAULT_CONFIG_FILE, "--config", "-c", help="Configuration file path"
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Logging level"
    ),
    debug: bool = typer.Option(
        False, "--debug", help="Enable debug logging"
    )
) -> None:
    """Log in to the SSH server and start every configured forward."""

    try:
        config = ConfigLoader().load_config(config_file)
    except ConfigurationError as e:
        logger.error(f"Failed to load configuration: {e}")
        sys.exit(1)

    if log_level:
        config.logging.level = log_level.upper()
    if debug:
        config.logging.level = "DEBUG"

    setup_logging(config.logging)

    try:
        asyncio.run(run_application(config))
    except KeyboardInterrupt:
        logger.info("Application interrupted by user")
    except ForwardError as e:
        logger.error(f"{e.error_code}: {e.message}")
        sys.exit(1)


@cli.command()
def init_config(
    output: str = typer.Option(
        "cfg.yaml", "--output", "-o", help="Output configuration file"
    ),
    format: str = typer.Option(
        "yaml", "--format", "-f", help="Configuration format (yaml/json)"
    )
) -> None:
    """Generate a configuration file with default settings."""

    config = ApplicationConfig()
    config.ssh.address = "example.com:22"
    config.ssh.user = "user"
    config.ssh.key_path = "~/.ssh/id_ed25519"
    config.ports = {"8080": "127.0.0.1:80"}

    try:
        ConfigLoader().save_config(config, output, format)
        typer.echo(f"Default configuration saved to {output}")
        typer.echo(f"Start forwarding with: ssh-forward start --config {output}")
    except ConfigurationError as e:
        typer.echo(f"Error saving configuration: {e}", err=True)
        sys.exit(1)


@cli.command()
def validate_config(
    config_file: str = typer.Argument(..., help="Configuration file to validate")
) -> None:
    """Validate a configuration file without connecting."""

    try:
        config = ConfigLoader().load_config(config_file)
        mappings = config.port_mappings()
        credentials = config.ssh.to_credentials()
        if not credentials.has_credentials():
            raise ConfigurationError("empty private key and password")
    except ConfigurationError as e:
        typer.echo(f"Configuration validation failed: {e}", err=True)
        sys.exit(1)

    typer.echo(f"Configuration file {config_file} is valid")
    typer.echo(f"SSH server: {credentials.username}@{credentials.address}")
    for mapping in mappings:
        typer.echo(f"  {mapping}")


async def run_application(config: ApplicationConfig) -> None:
    """
    Run the forwarder until a termination signal arrives.

    Args:
        config: Application configuration
    """
    startup = ApplicationStartup(config)
    await startup.run()


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
