"""microdeck command-line entry point."""

from __future__ import annotations

import click
from dotenv import load_dotenv

from microdeck import __version__
from microdeck.cli.commands.delete import delete
from microdeck.cli.commands.deploy import deploy
from microdeck.cli.commands.deployment import deployment


@click.group()
@click.version_option(version=__version__, prog_name="microdeck")
def main() -> None:
    """Create and delete single-VM deployments through a CPI release.

    Select a deployment manifest with `microdeck deployment`, then run
    `microdeck deploy` or `microdeck delete`. Only one microdeck process may
    operate on a deployment at a time.
    """
    # Values from .env never override the real environment
    load_dotenv(override=False)


main.add_command(deployment)
main.add_command(deploy)
main.add_command(delete)


if __name__ == "__main__":  # pragma: no cover
    main()
