"""
weavevault authorize — issue a referee settlement authorization.

The referee key comes from --key, or from referee_key_file in a
settings file given with --settings. Output is one JSON object:

    {"player": ..., "authorized_amount": ..., "nonce": ..., "expiry": ...,
     "artifact": "<hex>", "referee_key": "<hex>"}
"""

import json
import sys
from typing import Optional

import click

from weavevault.admin.settings import ProgramSettings
from weavevault.core.crypto import Ed25519KeyManager
from weavevault.core.exceptions import ConfigurationError
from weavevault.core.models import parse_identity
from weavevault.referee.signer import RefereeSigner


@click.command(name="authorize")
@click.option("--player", required=True, metavar="HEX", help="Player public key (64 hex chars).")
@click.option("--requested", required=True, type=click.IntRange(min=0), help="Amount the game result entitles the player to.")
@click.option("--vault", "vault_amount", required=True, type=click.IntRange(min=0), help="Observed vault holdings.")
@click.option("--treasury", "treasury_amount", required=True, type=click.IntRange(min=0), help="Observed treasury holdings.")
@click.option("--key", "key_path", type=click.Path(dir_okay=False), default=None, help="Referee private key (PEM).")
@click.option("--settings", "settings_path", type=click.Path(dir_okay=False), default=None, help="Settings YAML (referee_key_file, ttl, multiplier).")
@click.option("--ttl", type=click.IntRange(min=1), default=None, help="Authorization lifetime in seconds.")
def authorize_command(
    player:          str,
    requested:       int,
    vault_amount:    int,
    treasury_amount: int,
    key_path:        Optional[str],
    settings_path:   Optional[str],
    ttl:             Optional[int],
) -> None:
    """Cap, sign and print a settlement authorization."""
    try:
        settings = (
            ProgramSettings.from_yaml(settings_path) if settings_path
            else ProgramSettings()
        )
    except ConfigurationError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    key_file = key_path or settings.referee_key_path
    if key_file is None:
        click.echo("Error: no referee key (use --key or referee_key_file)", err=True)
        sys.exit(2)

    try:
        key = Ed25519KeyManager.from_file(key_file)
    except (FileNotFoundError, ValueError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    try:
        player_key = parse_identity(player)
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    signer = RefereeSigner(
        key,
        ttl_seconds=           ttl or settings.settlement_ttl_seconds,
        max_payout_multiplier= settings.max_payout_multiplier,
    )
    try:
        authorization = signer.authorize(
            player_key, requested, vault_amount, treasury_amount
        )
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    click.echo(json.dumps(authorization.to_dict(), indent=2))
