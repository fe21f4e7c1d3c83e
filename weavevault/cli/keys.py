"""
weavevault keygen — write a new Ed25519 private key as PEM.
"""

import sys
from pathlib import Path

import click

from weavevault.core.crypto import Ed25519KeyManager


@click.command(name="keygen")
@click.argument("path", type=click.Path(dir_okay=False))
@click.option(
    "--force",
    is_flag=True,
    default=False,
    help="Overwrite an existing key file.",
)
def keygen_command(path: str, force: bool) -> None:
    """
    Generate a key and save it to PATH. Prints the public key (hex),
    which is the identity other parties configure.
    """
    key_path = Path(path)
    if key_path.exists() and not force:
        click.echo(f"Error: {key_path} already exists (use --force)", err=True)
        sys.exit(2)

    key = Ed25519KeyManager.generate()
    try:
        key.save(key_path)
    except RuntimeError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)
    click.echo(key.public_key_hex)
