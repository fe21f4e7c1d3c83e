"""
weavevault/cli/__init__.py

WeaveVault CLI — root Click command group.

Registered in pyproject.toml as:

    [project.scripts]
    weavevault = "weavevault.cli:cli"

Exit codes, shared by every command:
    0  success / valid
    1  rejected or invalid input (bad signature, broken chain, ...)
    2  usage or I/O error (missing file, unreadable key, bad hex)
"""

import logging

import click

from weavevault.cli.authorize import authorize_command
from weavevault.cli.decode import inspect_command
from weavevault.cli.keys import keygen_command
from weavevault.cli.verify import journal_group


@click.group()
@click.version_option(package_name="weavevault")
@click.option(
    "-v", "--verbose",
    count=True,
    help="Log to stderr (-v INFO, -vv DEBUG).",
)
def cli(verbose: int) -> None:
    """
    WeaveVault — custodial settlement tooling.

    \b
    Commands:
      keygen      Generate an Ed25519 key (admin, referee or operator).
      authorize   Issue a referee-signed settlement authorization.
      inspect     Decode and check a signature artifact.
      journal     Settlement journal tools.

    \b
    Quick start:
      weavevault keygen referee.pem
      weavevault authorize --key referee.pem --player <hex> --requested 150 \\
          --vault 100 --treasury 1000
      weavevault journal verify .weavevault/journal.jsonl
    """
    if verbose:
        logging.basicConfig(
            level=  logging.DEBUG if verbose > 1 else logging.INFO,
            format= "%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


cli.add_command(keygen_command)
cli.add_command(authorize_command)
cli.add_command(inspect_command)
cli.add_command(journal_group)
