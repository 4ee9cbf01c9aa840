"""
Command-line entry point for the upload relay.
"""

import asyncio
import sys
from typing import Optional

import aiohttp
import typer
import uvicorn
from loguru import logger

from .application.container import Container
from .application.startup import ApplicationStartup
from .infrastructure.config.loader import ConfigLoader
from .infrastructure.config.models import RelayConfig
from .infrastructure.logging.setup import setup_logging
from .presentation.api.app import create_app

cli = typer.Typer(
    name="upload-relay",
    help="Session-buffering upload relay that forwards complete file sets to a webhook"
)


@cli.command()
def start(
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help="Configuration file path"
    ),
    host: Optional[str] = typer.Option(
        None, "--host", help="Server host address"
    ),
    port: Optional[int] = typer.Option(
        None, "--port", "-p", help="Server port"
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Logging level"
    ),
    debug: bool = typer.Option(
        False, "--debug", help="Enable debug mode"
    )
) -> None:
    """Start the relay server."""
    config = ConfigLoader().load_config(config_file)

    if host:
        config.server.host = host
    if port:
        config.server.port = port
    if log_level:
        config.logging.level = log_level.upper()
    if debug:
        config.debug = True
        config.logging.level = "DEBUG"

    setup_logging(config.logging)

    logger.info(f"Starting {config.name} v{config.version} on port {config.server.port}")
    logger.info(f"Upload directory: {config.storage.upload_directory}")
    logger.info(f"Downstream webhook: {config.downstream.webhook_url}")
    logger.info(f"Session timeout: {config.session.inactivity_timeout}s")

    try:
        asyncio.run(run_application(config))
    except KeyboardInterrupt:
        logger.info("Relay interrupted by user")
    except Exception as e:
        logger.error(f"Relay failed to start: {e}")
        sys.exit(1)


@cli.command()
def init_config(
    output: str = typer.Option(
        "config.yaml", "--output", "-o", help="Output configuration file"
    ),
    format: str = typer.Option(
        "yaml", "--format", "-f", help="Configuration format (yaml/json)"
    )
) -> None:
    """Generate a default configuration file."""
    try:
        ConfigLoader(load_env_file=False).save_config(RelayConfig(), output, format)
        typer.echo(f"Default configuration saved to {output}")
    except Exception as e:
        typer.echo(f"Error saving configuration: {e}", err=True)
        sys.exit(1)


@cli.command()
def validate_config(
    config_file: str = typer.Argument(..., help="Configuration file to validate")
) -> None:
    """Validate a configuration file."""
    try:
        config = ConfigLoader().load_config(config_file)
        typer.echo(f"Configuration file {config_file} is valid")
        typer.echo(f"Webhook: {config.downstream.webhook_url}")
        typer.echo(f"Inactivity timeout: {config.session.inactivity_timeout}s")
    except Exception as e:
        typer.echo(f"Configuration validation failed: {e}", err=True)
        sys.exit(1)


@cli.command()
def health_check(
    host: str = typer.Option("localhost", "--host", help="Server host"),
    port: int = typer.Option(3000, "--port", help="Server port"),
    timeout: float = typer.Option(10.0, "--timeout", help="Request timeout")
) -> None:
    """Check the health of a running relay."""

    async def check_health() -> bool:
        url = f"http://{host}:{port}/health"
        timeout_config = aiohttp.ClientTimeout(total=timeout)

        try:
            async with aiohttp.ClientSession(timeout=timeout_config) as session:
                async with session.get(url) as response:
                    if response.status != 200:
                        typer.echo(f"Relay returned status {response.status}")
                        return False
                    data = await response.json()
                    typer.echo(
                        f"Relay is {data.get('status', 'unknown')}: "
                        f"{data.get('activeSessions', 0)} active session(s)")
                    return True
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            typer.echo(f"Health check failed: {e}")
            return False

    if not asyncio.run(check_health()):
        sys.exit(1)


async def run_application(config: RelayConfig) -> None:
    """
    Run the relay with the given configuration.

    Components are started by the app lifespan, so the startup reaper finishes
    before the listener accepts its first request.
    """
    container = Container()
    startup = ApplicationStartup(container)
    startup.configure_services(config)

    app = create_app(container, config, startup)
    server = uvicorn.Server(uvicorn.Config(
        app=app,
        host=config.server.host,
        port=config.server.port,
        log_level=config.logging.level.lower(),
        access_log=config.debug,
    ))
    await server.serve()


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
