"""CLI command for selecting the current deployment manifest."""

from __future__ import annotations

from pathlib import Path

import click

from microdeck.cli.commands.deploy import handle_deployment_errors
from microdeck.config.settings import Settings
from microdeck.config.user_config import load_user_config, save_user_config
from microdeck.lib.logging_config import get_logger, setup_logging

logger = get_logger(__name__)


@click.command()
@click.argument(
    "manifest",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=False,
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose debug logging",
)
def deployment(manifest: Path | None, verbose: bool) -> None:
    """Set or show the current deployment manifest.

    With MANIFEST, later `deploy` and `delete` commands operate on it. The
    deployment state is kept in deployment.json next to the manifest.

    Example:

        microdeck deployment ./micro/manifest.yml
    """
    with handle_deployment_errors():
        setup_logging(verbose=verbose)
        settings = Settings.from_env()
        user_config = load_user_config(settings.user_config_path)

        if manifest is None:
            current = user_config.require_deployment_file()
            click.echo(f"Current deployment is '{current}'")
            return

        resolved = manifest.resolve()
        updated = user_config.model_copy(update={"deployment_file": str(resolved)})
        save_user_config(settings.user_config_path, updated)
        logger.debug(f"Saved deployment selection to {settings.user_config_path}")
        click.echo(f"Deployment set to '{resolved}'")
