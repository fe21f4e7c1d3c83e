"""
weavevault inspect — decode a signature artifact and check it.

Exit codes:
    0  artifact decodes and the signature verifies
       (and matches --referee when given)
    1  malformed artifact, bad signature or wrong signer
    2  ARTIFACT is not hex
"""

import json
import sys
from typing import Any, Dict, Optional

import click

from weavevault.core.artifact import parse_artifact, parse_header
from weavevault.core.canonical import decode_settlement_message
from weavevault.core.exceptions import AuthorizationError


@click.command(name="inspect")
@click.argument("artifact")
@click.option("--referee", default=None, metavar="HEX", help="Expected referee public key.")
@click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json"], case_sensitive=False),
    default="human",
    show_default=True,
)
def inspect_command(artifact: str, referee: Optional[str], fmt: str) -> None:
    """Decode ARTIFACT (hex) and report its fields and validity."""
    try:
        data = bytes.fromhex(artifact.strip())
    except ValueError:
        click.echo("Error: ARTIFACT must be hex", err=True)
        sys.exit(2)

    report: Dict[str, Any] = {"length": len(data)}
    try:
        header = parse_header(data)
        report["header"] = {
            "signature_count":   header.signature_count,
            "signature_offset":  header.signature_offset,
            "public_key_offset": header.public_key_offset,
            "message_offset":    header.message_offset,
            "message_length":    header.message_length,
            "self_contained":    header.self_contained,
        }
        parsed = parse_artifact(data)
    except AuthorizationError as exc:
        report["valid"] = False
        report["error"] = f"{exc.code}: {exc}"
        _emit(report, fmt)
        sys.exit(1)

    player, amount, nonce, expiry = decode_settlement_message(parsed.message)
    report["public_key"]        = parsed.public_key.hex()
    report["player"]            = player.hex()
    report["authorized_amount"] = amount
    report["nonce"]             = nonce
    report["expiry"]            = expiry
    report["signature_valid"]   = parsed.verify()

    valid = report["signature_valid"]
    if referee is not None:
        report["referee_match"] = parsed.public_key.hex() == referee.strip().lower()
        valid = valid and report["referee_match"]
    report["valid"] = valid

    _emit(report, fmt)
    sys.exit(0 if valid else 1)


def _emit(report: Dict[str, Any], fmt: str) -> None:
    if fmt == "json":
        click.echo(json.dumps(report, indent=2))
        return
    for key, value in report.items():
        if isinstance(value, dict):
            click.echo(f"{key}:")
            for sub_key, sub_value in value.items():
                click.echo(f"  {sub_key:<18} {sub_value}")
        else:
            click.echo(f"{key:<20} {value}")
