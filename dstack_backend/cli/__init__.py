import click

from dstack_backend import __version__
from dstack_backend.cli.identity import identity
from dstack_backend.cli.whitelist import whitelist


@click.group()
@click.version_option(version=__version__)
def main():
    """Manage a dstack-backend worker node and its whitelist."""
    pass  # pragma: no cover


main.add_command(identity)
main.add_command(whitelist)
