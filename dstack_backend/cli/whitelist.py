import asyncio
import os

import click
from tabulate import tabulate

from dstack_backend.cli.config import Config, pass_config
from dstack_backend.models.allowlist import read_whitelist, write_whitelist
from dstack_backend import errors

FILE_OPTION = click.option('-f', '--file', 'whitelist_file', envvar='WHITELIST_FILE',
                           default='./whitelist.json', show_default=True,
                           help="whitelist file")


@click.group(name="whitelist")
@click.option('-u', '--url', envvar='WHITELIST_URL', default='http://localhost:8082',
              show_default=True, help="whitelist service URL")
@pass_config
def whitelist(config: Config, url):
    """Query and edit the pubkey whitelist."""
    config.set_url(url)


@whitelist.command(name="list")
@pass_config
def whitelist_list(config: Config):
    """List whitelisted pubkeys from the service."""
    try:
        pubkeys = asyncio.run(_run(config, config.client.list()))
    except errors.ApiError as e:
        raise click.ClickException(str(e))
    if len(pubkeys) == 0:
        click.echo("the whitelist is empty")
        return
    click.echo(tabulate([[pubkey] for pubkey in pubkeys],
                        headers=["Pubkey"],
                        tablefmt="fancy_grid"))


@whitelist.command(name="check")
@click.argument("pubkey")
@pass_config
def whitelist_check(config: Config, pubkey):
    """Check if PUBKEY is whitelisted."""
    try:
        allowed = asyncio.run(_run(config, config.client.is_whitelisted(pubkey)))
    except errors.ApiError as e:
        raise click.ClickException(str(e))
    if allowed:
        click.echo("%s is whitelisted" % pubkey)
    else:
        click.echo("%s is NOT whitelisted" % pubkey)
        # non-zero exit so scripts can test the result
        click.get_current_context().exit(2)


@whitelist.command(name="add")
@click.argument("pubkey")
@FILE_OPTION
def whitelist_add(pubkey, whitelist_file):
    """Add PUBKEY to the whitelist file."""
    pubkeys = _read(whitelist_file, missing_ok=True)
    if pubkey in pubkeys:
        click.echo("%s is already whitelisted" % pubkey)
        return
    pubkeys.append(pubkey)
    _write(whitelist_file, pubkeys)
    click.echo("Added %s" % pubkey)


@whitelist.command(name="remove")
@click.argument("pubkey")
@FILE_OPTION
def whitelist_remove(pubkey, whitelist_file):
    """Remove PUBKEY from the whitelist file."""
    pubkeys = _read(whitelist_file, missing_ok=False)
    if pubkey not in pubkeys:
        raise click.ClickException("%s is not in the whitelist" % pubkey)
    _write(whitelist_file, [p for p in pubkeys if p != pubkey])
    click.echo("Removed %s" % pubkey)


async def _run(config: Config, coro):
    try:
        return await coro
    finally:
        await config.close_client()


def _read(whitelist_file, missing_ok):
    if missing_ok and not os.path.exists(whitelist_file):
        return []
    try:
        return read_whitelist(whitelist_file)
    except errors.LoadError as e:
        raise click.ClickException(str(e))


def _write(whitelist_file, pubkeys):
    try:
        write_whitelist(whitelist_file, pubkeys)
    except OSError as e:
        raise click.ClickException("cannot write [%s]: %s" % (whitelist_file, e))
