"""
Cosmos Quickstart Command-Line Interface

Runs the getting-started scenario and shows the effective configuration.

Author: Cosmos Quickstart Contributors
Date: 2026-10-19
"""

import sys
import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import click
import yaml
from pydantic import ValidationError

from cosmos_quickstart import __version__
from cosmos_quickstart.core.config_manager import ConfigManager, QuickstartConfig
from cosmos_quickstart.core.logging_config import log_with_context, setup_logging
from cosmos_quickstart.demo import run_demo
from cosmos_quickstart.store.errors import StoreServiceError

logger = logging.getLogger("cosmos_quickstart.cli")

config_option = click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to configuration file",
)


def _load_config(config: Optional[Path], overrides: Optional[Dict[str, Any]] = None) -> QuickstartConfig:
    try:
        return ConfigManager().load(
            config_file=str(config) if config else None,
            cli_overrides=overrides,
        )
    except (ValidationError, ValueError, FileNotFoundError, yaml.YAMLError) as e:
        click.echo(f"[ERROR] Invalid configuration: {e}", err=True)
        sys.exit(2)


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="cosmos-quickstart")
@click.pass_context
def cli(ctx):
    """
    Cosmos Quickstart - Azure Cosmos DB getting-started tutorial

    Creates a database and container, seeds two families, queries,
    replaces and deletes items, then deletes the database.
    Runs the scenario when invoked without a command.
    """
    ctx.ensure_object(dict)
    if ctx.invoked_subcommand is None:
        ctx.invoke(run)


@cli.command()
@config_option
@click.option(
    "--backend",
    type=click.Choice(["azure", "memory"], case_sensitive=False),
    help="Document store backend (default: azure when an endpoint is set, else memory)",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    help="Logging level",
)
@click.option(
    "--optimistic-concurrency/--last-writer-wins",
    default=None,
    help="Send the etag as an If-Match precondition on replace",
)
def run(
    config: Optional[Path] = None,
    backend: Optional[str] = None,
    log_level: Optional[str] = None,
    optimistic_concurrency: Optional[bool] = None,
):
    """
    Run the getting-started scenario.

    Examples:
        cosmos-quickstart
        cosmos-quickstart run --backend memory
        cosmos-quickstart run --config quickstart.yaml --log-level DEBUG
    """
    overrides: Dict[str, Any] = {}
    if backend:
        overrides.setdefault("cosmos", {})["backend"] = backend.lower()
    if optimistic_concurrency is not None:
        overrides.setdefault("cosmos", {})["optimistic_concurrency"] = optimistic_concurrency
    if log_level:
        overrides.setdefault("logging", {})["level"] = log_level.upper()

    settings = _load_config(config, overrides)
    setup_logging(
        level=settings.logging.level,
        format_type=settings.logging.format,
        log_file=settings.logging.file,
        max_bytes=settings.logging.max_bytes,
        backup_count=settings.logging.backup_count,
        module_levels=settings.logging.module_levels,
        secrets=[settings.cosmos.key] if settings.cosmos.key else None,
    )

    click.echo("Beginning operations...\n")
    exit_code = 0
    try:
        asyncio.run(run_demo(settings))
    except StoreServiceError as e:
        log_with_context(logger, logging.ERROR, f"{e.status_code} error occurred: {e}", **e.to_dict())
        exit_code = 1
    except Exception as e:
        logger.exception(f"Error: {e}")
        exit_code = 1
    finally:
        click.echo("End of demo.")

    if exit_code:
        sys.exit(exit_code)


@cli.command(name="config")
@config_option
def show_config(config: Optional[Path]):
    """
    Show the effective configuration.

    Merges the configuration file, environment and defaults, and prints
    the result as YAML with the account key redacted.
    """
    settings = _load_config(config)
    click.echo(yaml.safe_dump(settings.redacted_dump(), sort_keys=False).rstrip())


def main():
    """Main entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
