"""
TPS CLI.

Usage:
    tps serve
    tps help
"""

import sys

import click

from .config import OPTIONAL_VARIABLES, REQUIRED_VARIABLES, ConfigurationError, GateConfig
from .logging import get_logger, setup_logging
from .version import __version__


@click.group()
def cli():
    """Turnstile Proxy Server."""
    click.echo(f"Turnstile Proxy Server, build {__version__}\n")


@cli.command()
def serve():
    """Start the proxy using settings from the environment."""
    try:
        config = GateConfig.from_env()
    except ConfigurationError as e:
        setup_logging(service_name="tps")
        get_logger(__name__).error("cannot_start_server", error=str(e))
        sys.exit(1)

    setup_logging(service_name=config.service_name, level=config.log_level, json_output=config.log_json)

    import uvicorn

    from .app import create_app

    host, port = config.bind_host_port
    get_logger(__name__).info("starting_tps", addr=config.bind_addr)
    uvicorn.run(create_app(config), host=host, port=port, log_config=None, proxy_headers=True)


@cli.command(name="help")
def help_():
    """Describe the environment variables TPS reads."""
    click.echo("The following environment variables are required:")
    for name, description in REQUIRED_VARIABLES:
        click.echo(f"- {name}: {description}")
    click.echo("\nOptional:")
    for name, description in OPTIONAL_VARIABLES:
        click.echo(f"- {name}: {description}")
