"""
weavevault/core/models.py

WeaveVault Data Model

═══════════════════════════════════════════════════════════════════
CONTRACTS
═══════════════════════════════════════════════════════════════════

CONTRACT 1 — Identities
    players, admins and referee keys are raw 32-byte Ed25519 public keys.
    text form = 64-char lowercase hex.

CONTRACT 2 — Integers
    amounts, nonces and expiries are unsigned 64-bit.
    SettlementRequest rejects anything outside [0, 2**64 - 1] with ValueError.

CONTRACT 3 — Config
    0 <= burn_bps <= 10_000, checked at every write (InvalidBurnBps).
    Config is frozen; updates replace the whole object.

CONTRACT 4 — PlayerLedger
    last_nonce never decreases.
    session_balance is deposit bookkeeping only; settlement never reads it.

CONTRACT 5 — Accounts
    wallet:<player hex>   owned by the player identity
    vault:<player hex>    owned by the engine's vault authority
    treasury              owned by the treasury authority
═══════════════════════════════════════════════════════════════════
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List

from weavevault.core.canonical import (
    IDENTITY_LENGTH,
    U64_MAX,
    settlement_message,
)
from weavevault.core.exceptions import InvalidBurnBps


# ─────────────────────────────────────────────────────────────
# Constants
# ─────────────────────────────────────────────────────────────

BPS_DENOMINATOR = 10_000

VAULT_AUTHORITY    = "vault"
TREASURY_AUTHORITY = "treasury"
MINT_AUTHORITY     = "mint"

TREASURY_ACCOUNT = "treasury"


def wallet_address(player: bytes) -> str:
    return f"wallet:{bytes(player).hex()}"


def vault_address(player: bytes) -> str:
    return f"vault:{bytes(player).hex()}"


def identity_label(identity: bytes) -> str:
    """Owner label stored on accounts held by an identity (hex)."""
    return bytes(identity).hex()


def parse_identity(value: str) -> bytes:
    """
    Parse a 64-char hex identity.
    Raises ValueError on wrong length or non-hex input.
    """
    try:
        raw = bytes.fromhex(value)
    except (TypeError, ValueError):
        raise ValueError(f"identity is not valid hex: {value!r}")
    if len(raw) != IDENTITY_LENGTH:
        raise ValueError(
            f"identity must be {IDENTITY_LENGTH} bytes, got {len(raw)}"
        )
    return raw


def check_identity(value: bytes, name: str = "identity") -> bytes:
    if not isinstance(value, (bytes, bytearray)) or len(value) != IDENTITY_LENGTH:
        raise ValueError(f"{name} must be {IDENTITY_LENGTH} raw bytes")
    return bytes(value)


def check_u64(value: int, name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"{name} must be int, got {type(value).__name__}")
    if value < 0 or value > U64_MAX:
        raise ValueError(f"{name} out of u64 range: {value}")
    return value


def check_burn_bps(burn_bps: int) -> int:
    if (
        not isinstance(burn_bps, int)
        or isinstance(burn_bps, bool)
        or not 0 <= burn_bps <= BPS_DENOMINATOR
    ):
        raise InvalidBurnBps(
            "burn_bps must be within [0, 10000]",
            {"burn_bps": burn_bps},
        )
    return burn_bps


# ─────────────────────────────────────────────────────────────
# Config
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Config:
    """Admin-owned singleton configuration."""

    admin:            bytes
    referee_key:      bytes
    mint:             str
    burn_bps:         int
    treasury_account: str = TREASURY_ACCOUNT

    def __post_init__(self) -> None:
        check_identity(self.admin, "admin")
        check_identity(self.referee_key, "referee_key")
        check_burn_bps(self.burn_bps)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "admin":            self.admin.hex(),
            "referee_key":      self.referee_key.hex(),
            "mint":             self.mint,
            "burn_bps":         self.burn_bps,
            "treasury_account": self.treasury_account,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        return cls(
            admin=            parse_identity(data["admin"]),
            referee_key=      parse_identity(data["referee_key"]),
            mint=             data["mint"],
            burn_bps=         data["burn_bps"],
            treasury_account= data.get("treasury_account", TREASURY_ACCOUNT),
        )


# ─────────────────────────────────────────────────────────────
# PlayerLedger
# ─────────────────────────────────────────────────────────────

@dataclass
class PlayerLedger:
    """Per-player bookkeeping. Created lazily, never deleted."""

    player:          bytes
    session_balance: int = 0
    last_nonce:      int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "player":          self.player.hex(),
            "session_balance": self.session_balance,
            "last_nonce":      self.last_nonce,
        }


# ─────────────────────────────────────────────────────────────
# SettlementRequest
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SettlementRequest:
    """
    What the referee authorized: (player, amount, nonce, expiry).

    Construction enforces CONTRACT 1 and CONTRACT 2, so message() can
    never fail once an instance exists.
    """

    player:            bytes
    authorized_amount: int
    nonce:             int
    expiry:            int

    def __post_init__(self) -> None:
        check_identity(self.player, "player")
        check_u64(self.authorized_amount, "authorized_amount")
        check_u64(self.nonce, "nonce")
        check_u64(self.expiry, "expiry")

    def message(self) -> bytes:
        """The canonical 56-byte message the referee signs."""
        return settlement_message(
            self.player, self.authorized_amount, self.nonce, self.expiry
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "player":            self.player.hex(),
            "authorized_amount": self.authorized_amount,
            "nonce":             self.nonce,
            "expiry":            self.expiry,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SettlementRequest":
        return cls(
            player=            parse_identity(data["player"]),
            authorized_amount= int(data["authorized_amount"]),
            nonce=             int(data["nonce"]),
            expiry=            int(data["expiry"]),
        )


# ─────────────────────────────────────────────────────────────
# Settlement results
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Transfer:
    """One executed token movement. destination is None for a burn."""

    source:      str
    destination: Any
    amount:      int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source":      self.source,
            "destination": self.destination,
            "amount":      self.amount,
        }


@dataclass(frozen=True)
class SettlementPlan:
    """
    The three-way split, computed before any funds move.

    Exactly one of (sweep_to_treasury, pay_from_treasury) can be non-zero.
    """

    vault_amount:      int
    authorized_amount: int
    pay_from_vault:    int
    sweep_to_treasury: int
    burn:              int
    pay_from_treasury: int

    @property
    def player_receives(self) -> int:
        return self.pay_from_vault + self.pay_from_treasury

    @property
    def treasury_delta(self) -> int:
        """Net change of treasury holdings (negative on shortfall)."""
        return self.sweep_to_treasury - self.burn - self.pay_from_treasury


@dataclass(frozen=True)
class SettlementOutcome:
    """Returned by a successful settlement."""

    player:    bytes
    nonce:     int
    plan:      SettlementPlan
    transfers: List[Transfer] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "player":            self.player.hex(),
            "nonce":             self.nonce,
            "vault_amount":      self.plan.vault_amount,
            "authorized_amount": self.plan.authorized_amount,
            "player_receives":   self.plan.player_receives,
            "swept":             self.plan.sweep_to_treasury,
            "burned":            self.plan.burn,
            "from_treasury":     self.plan.pay_from_treasury,
            "transfers":         [t.to_dict() for t in self.transfers],
        }
