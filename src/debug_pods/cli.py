"""Main CLI entry points for debug pods."""

import click

from . import __version__
from .commands import cleanup, deploy


@click.group()
@click.version_option(version=__version__)
def main():
    """debug-pods - deploy and clean up ephemeral debugging pods."""
    pass


main.add_command(deploy.deploy)
main.add_command(deploy.list_images)
main.add_command(cleanup.cleanup)

# Standalone commands installed as deploy-debug-pod / cleanup-debug-pods.
deploy_debug_pod = deploy.deploy
cleanup_debug_pods = cleanup.cleanup


if __name__ == "__main__":
    main()
