"""CLI command for deleting a deployment."""

from __future__ import annotations

from pathlib import Path

import click

from microdeck.cli.commands.deploy import handle_deployment_errors, prepare_command


@click.command()
@click.argument(
    "cpi_release",
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
def delete(cpi_release: Path, verbose: bool, quiet: bool) -> None:
    """Delete the current deployment and everything it created.

    Removes the VM, persistent disks and stemcells recorded for the
    deployment. Safe to re-run after a failure: resources already removed
    are not touched again.

    Example:

        microdeck delete cpi-release.tgz
    """
    with handle_deployment_errors():
        deps, user_config = prepare_command(verbose, quiet)
        manifest_path = user_config.require_deployment_file()
        deps.new_deleter(manifest_path).delete(cpi_release)
