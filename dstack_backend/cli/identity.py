import click

from dstack_backend.models import IdentityStore
from dstack_backend import errors


@click.command(name="identity")
@click.option('-d', '--data-dir', envvar='DATA_DIR', default='./data',
              show_default=True, help="node data directory")
def identity(data_dir):
    """Display the node public key, creating the key if necessary."""
    try:
        node_identity = IdentityStore(data_dir).acquire()
    except (errors.StorageError, errors.CorruptKeyError) as e:
        raise click.ClickException(str(e))
    click.echo(node_identity.public_key)
