"""
WeaveProgram — the external operation surface.

Every public method is one request. Caller identities are raw 32-byte
public keys the transport has already authenticated.

    initialize      admin (first call only)
    set_referee_key admin
    set_burn_bps    admin
    deposit         player
    withdraw        deprecated, always rejected
    withdraw_v2     player, with a referee-signed authorization

Provisioning helpers (create_mint, open_player, fund_wallet) stand in
for the account setup a hosting environment would do.
"""

import logging
from pathlib import Path
from typing import Callable, Optional

from weavevault.admin.config import ConfigManager
from weavevault.admin.settings import ProgramSettings
from weavevault.core.crypto import Ed25519KeyManager
from weavevault.core.exceptions import (
    ArithmeticOverflow,
    DeprecatedInstruction,
    InvalidMint,
)
from weavevault.core.canonical import U64_MAX
from weavevault.core.models import (
    MINT_AUTHORITY,
    Config,
    PlayerLedger,
    SettlementOutcome,
    SettlementRequest,
    check_identity,
    check_u64,
    identity_label,
    vault_address,
    wallet_address,
)
from weavevault.core.time import unix_timestamp
from weavevault.ledger.journal import SettlementJournal
from weavevault.ledger.store import LedgerStore
from weavevault.settlement.engine import SettlementEngine

logger = logging.getLogger(__name__)


class WeaveProgram:
    """Custodial settlement program over one LedgerStore."""

    def __init__(
        self,
        store: LedgerStore,
        clock: Callable[[], int] = unix_timestamp,
    ) -> None:
        self.store  = store
        self.engine = SettlementEngine(store, clock=clock)
        self.admin  = ConfigManager(store, self.engine.treasury)
        self._mint_authority = store.bank.issue_authority(MINT_AUTHORITY)

    # ── Admin ─────────────────────────────────────────────────

    def initialize(
        self,
        caller:      bytes,
        referee_key: bytes,
        mint:        str,
        burn_bps:    int,
    ) -> Config:
        return self.admin.initialize(caller, referee_key, mint, burn_bps)

    def set_referee_key(self, caller: bytes, referee_key: bytes) -> Config:
        return self.admin.set_referee_key(caller, referee_key)

    def set_burn_bps(self, caller: bytes, burn_bps: int) -> Config:
        return self.admin.set_burn_bps(caller, burn_bps)

    # ── Provisioning ──────────────────────────────────────────

    def create_mint(self, mint: str) -> None:
        with self.store.transaction("create_mint") as uow:
            uow.create_mint(mint)

    def open_player(self, player: bytes, mint: Optional[str] = None) -> None:
        """Open the player's wallet and vault accounts if missing."""
        player = check_identity(player, "player")
        mint   = mint or self.store.require_config().mint
        bank   = self.store.bank
        with self.store.transaction("open_player", player=player) as uow:
            if not bank.has_account(wallet_address(player)):
                uow.open_account(wallet_address(player), identity_label(player), mint)
            if not bank.has_account(vault_address(player)):
                self.engine.open_vault(uow, player, mint)

    def fund_wallet(self, player: bytes, amount: int) -> None:
        """Mint tokens into a player's wallet."""
        check_u64(amount, "amount")
        with self.store.transaction("fund_wallet", player=player) as uow:
            uow.mint_to(wallet_address(player), amount, self._mint_authority)

    def fund_treasury(self, amount: int) -> None:
        """Mint tokens into the treasury (liquidity for shortfalls)."""
        check_u64(amount, "amount")
        with self.store.transaction("fund_treasury", treasury=True) as uow:
            uow.mint_to(self.engine.treasury.address, amount, self._mint_authority)

    # ── Player operations ─────────────────────────────────────

    def deposit(self, player: bytes, amount: int) -> PlayerLedger:
        """
        Move amount from the player's wallet into their vault and add it
        to session_balance. Overflow is fatal and rolls the call back.
        """
        player = check_identity(player, "player")
        check_u64(amount, "amount")
        with self.store.transaction("deposit", player=player) as uow:
            uow.transfer(wallet_address(player), vault_address(player), amount, player)
            ledger  = uow.ledger(player)
            balance = ledger.session_balance + amount
            if balance > U64_MAX:
                raise ArithmeticOverflow(
                    "session balance overflow", {"player": player.hex()}
                )
            uow.set_session_balance(player, balance)
            snapshot = PlayerLedger(
                player=          player,
                session_balance= ledger.session_balance,
                last_nonce=      ledger.last_nonce,
            )
        logger.info("deposit player=%s amount=%d", player.hex()[:16], amount)
        return snapshot

    def withdraw(self, player: bytes, amount: int, legacy_signature: bytes) -> None:
        """Legacy withdrawal. Kept so old clients get a definite answer."""
        raise DeprecatedInstruction(
            "withdraw is deprecated; use withdraw_v2 with a referee authorization"
        )

    def withdraw_v2(
        self,
        player:            bytes,
        authorized_amount: int,
        nonce:             int,
        expiry:            int,
        artifact:          Optional[bytes],
        mint:              Optional[str] = None,
        treasury_account:  Optional[str] = None,
    ) -> SettlementOutcome:
        """Settle the player's whole session under a referee authorization."""
        request = SettlementRequest(
            player=            player,
            authorized_amount= authorized_amount,
            nonce=             nonce,
            expiry=            expiry,
        )
        return self.engine.process(
            request, artifact, mint=mint, treasury_account=treasury_account
        )

    settle = withdraw_v2

    # ── Reads ─────────────────────────────────────────────────

    def player_ledger(self, player: bytes) -> Optional[PlayerLedger]:
        return self.store.player_ledger(player)

    def wallet_balance(self, player: bytes) -> int:
        return self.store.bank.balance(wallet_address(player))

    def vault_balance(self, player: bytes) -> int:
        return self.store.vault_balance(player)

    def treasury_balance(self) -> int:
        return self.engine.treasury.balance()

    def supply(self, mint: Optional[str] = None) -> int:
        mint = mint or self.store.require_config().mint
        if not self.store.bank.has_mint(mint):
            raise InvalidMint("unknown mint", {"mint": mint})
        return self.store.bank.supply[mint]


def open_program(
    settings: ProgramSettings,
    clock:    Callable[[], int] = unix_timestamp,
) -> WeaveProgram:
    """
    Build journal, store and program from settings, replaying any
    existing journal under settings.state_dir.
    """
    Path(settings.state_dir).mkdir(parents=True, exist_ok=True)
    key_path    = settings.operator_key_path
    key_manager = Ed25519KeyManager.from_file(key_path) if key_path else None
    journal     = SettlementJournal(settings.journal_path, key_manager=key_manager)
    return WeaveProgram(LedgerStore(journal=journal), clock=clock)
