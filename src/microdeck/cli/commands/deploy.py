"""CLI command for deploying a CPI-backed VM.

Implements 'microdeck deploy' and the error handling shared by every command
that touches a deployment.
"""

from __future__ import annotations

import sys
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

import click

from microdeck.config.settings import Settings
from microdeck.config.user_config import UserConfig, load_user_config
from microdeck.lib.errors import (
    ConfigError,
    DeploymentError,
    MicrodeckError,
    NoDeploymentTargetError,
    ValidationError,
)
from microdeck.lib.logging_config import get_logger, setup_logging
from microdeck.lib.ui.console import ConsoleUI
from microdeck.wiring import Dependencies, build_dependencies

logger = get_logger(__name__)


@contextmanager
def handle_deployment_errors() -> Generator[None, None, None]:
    """Context manager for consistent error handling in deployment commands.

    Exit codes:
        2: Configuration or validation error, or no deployment set
        3: Deployment/execution error
    """
    try:
        yield
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        click.secho("Error: Configuration error", fg="red", err=True)
        click.echo(f"  {e.message}", err=True)
        sys.exit(2)
    except ValidationError as e:
        logger.error(f"Validation error: {e}")
        click.secho(f"Error: Invalid {e.field}", fg="red", err=True)
        click.echo(f"  {e.message}", err=True)
        sys.exit(2)
    except NoDeploymentTargetError as e:
        click.secho(f"Error: {e.message}", fg="red", err=True)
        sys.exit(2)
    except DeploymentError as e:
        logger.error(f"Deployment error: {e}")
        click.secho(f"Error: {e.operation} failed", fg="red", err=True)
        click.echo(f"  {e.message}", err=True)
        sys.exit(3)
    except MicrodeckError as e:
        logger.error(f"Deployment error: {e}")
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(3)
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(3)


def prepare_command(verbose: bool, quiet: bool) -> tuple[Dependencies, UserConfig]:
    """Configure logging and build the collaborators for a command.

    Raises:
        ConfigError: If settings or the user config are invalid
    """
    setup_logging(verbose=verbose, quiet=quiet)
    settings = Settings.from_env()
    user_config = load_user_config(settings.user_config_path)
    return build_dependencies(settings, ConsoleUI(quiet=quiet)), user_config


@click.command()
@click.argument(
    "cpi_release",
    type=click.Path(dir_okay=False, path_type=Path),
)
@click.argument(
    "stemcell",
    type=click.Path(dir_okay=False, path_type=Path),
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose debug logging",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    help="Suppress progress output",
)
def deploy(cpi_release: Path, stemcell: Path, verbose: bool, quiet: bool) -> None:
    """Deploy the current deployment manifest.

    CPI_RELEASE is the CPI release tarball; STEMCELL is the stemcell tarball
    the VM boots from.

    Example:

        microdeck deploy cpi-release.tgz stemcell.tgz
    """
    with handle_deployment_errors():
        deps, user_config = prepare_command(verbose, quiet)
        manifest_path = user_config.require_deployment_file()
        deps.new_preparer(manifest_path).deploy(cpi_release, stemcell)
        if not quiet:
            click.secho(f"Deployed '{manifest_path}'", fg="green")
