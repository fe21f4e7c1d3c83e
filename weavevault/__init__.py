"""
weavevault/__init__.py

WeaveVault: custodial vault settlement with referee-signed withdrawals.

Players deposit into per-player vaults; a trusted referee signs the
amount each player may withdraw when a session ends; the settlement
engine verifies that authorization and splits the vault between the
player, a shared treasury and a burn.
"""

__version__ = "0.1.0"

from weavevault.core.artifact import SignatureArtifact, parse_artifact
from weavevault.core.canonical import settlement_message
from weavevault.core.crypto import Ed25519KeyManager
from weavevault.core.exceptions import WeaveError
from weavevault.core.models import (
    Config,
    PlayerLedger,
    SettlementOutcome,
    SettlementRequest,
)
from weavevault.admin.settings import ProgramSettings
from weavevault.ledger.journal import GENESIS_HASH, SettlementJournal
from weavevault.ledger.store import LedgerStore
from weavevault.referee.signer import RefereeSigner, SettlementAuthorization
from weavevault.runtime.program import WeaveProgram, open_program

__all__ = [
    # Program surface
    "WeaveProgram",
    "open_program",
    "ProgramSettings",
    "LedgerStore",
    "SettlementJournal",
    # Authorization
    "Ed25519KeyManager",
    "RefereeSigner",
    "SettlementAuthorization",
    "SignatureArtifact",
    "parse_artifact",
    "settlement_message",
    # Data model
    "Config",
    "PlayerLedger",
    "SettlementOutcome",
    "SettlementRequest",
    # Errors
    "WeaveError",
    # Constants
    "GENESIS_HASH",
]
