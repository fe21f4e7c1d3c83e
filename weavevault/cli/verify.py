"""
weavevault journal verify — settlement journal integrity check.

Usage:
    weavevault journal verify <journal>                       Human output
    weavevault journal verify <journal> --format json         Machine-readable
    weavevault journal verify <journal> --require-signatures  Reject unsigned entries
    weavevault journal verify <journal> --signer <hex>        Only accept this operator key
    weavevault journal verify <journal> --quiet               Exit code only

Exit codes:
    0  journal valid (sequence, chain, signatures)
    1  journal has violations
    2  error (file missing, malformed line)
"""

import json
import sys
from pathlib import Path
from typing import Optional

import click

from weavevault.core.exceptions import LedgerError
from weavevault.ledger.journal import JournalVerification, SettlementJournal


@click.group(name="journal")
def journal_group() -> None:
    """Settlement journal tools."""


@journal_group.command(name="verify")
@click.argument("journal", type=click.Path(exists=False, dir_okay=False))
@click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json"], case_sensitive=False),
    default="human",
    show_default=True,
)
@click.option(
    "--require-signatures",
    is_flag=True,
    default=False,
    help="Treat unsigned entries as violations.",
)
@click.option(
    "--signer",
    default=None,
    metavar="HEX",
    help="Operator public key (hex). Entries signed by any other key are violations.",
)
@click.option(
    "--quiet",
    is_flag=True,
    default=False,
    help="Suppress output. Use exit code only (0=valid, 1=invalid, 2=error).",
)
def verify_command(
    journal:            str,
    fmt:                str,
    require_signatures: bool,
    signer:             Optional[str],
    quiet:              bool,
) -> None:
    """
    Verify JOURNAL: sequence continuity, causal hashes, signatures.
    """
    journal_path = Path(journal)
    if not journal_path.exists():
        _emit_error(f"Journal not found: {journal}", fmt, quiet)
        sys.exit(2)

    try:
        result = SettlementJournal(journal_path).verify(
            require_signatures= require_signatures,
            expected_signer=    signer.lower() if signer else None,
        )
    except LedgerError as exc:
        _emit_error(str(exc), fmt, quiet)
        sys.exit(2)

    if not quiet:
        if fmt == "json":
            data = result.to_dict()
            data["journal"] = str(journal_path)
            click.echo(json.dumps(data, indent=2))
        else:
            _output_human(result, journal_path)

    sys.exit(0 if result.valid else 1)


def _output_human(result: JournalVerification, journal_path: Path) -> None:
    click.echo(f"Journal     {journal_path}")
    click.echo(f"Entries     {result.total_entries}")
    click.echo(f"Signed      {result.signed}")
    if result.valid:
        click.echo("Status      VALID")
        return
    click.echo(f"Status      INVALID ({len(result.errors)} violation(s))")
    for error in result.errors:
        click.echo(f"  - {error}")


def _emit_error(message: str, fmt: str, quiet: bool) -> None:
    if quiet:
        return
    if fmt == "json":
        click.echo(json.dumps({"valid": False, "error": message}, indent=2))
    else:
        click.echo(f"Error: {message}", err=True)
