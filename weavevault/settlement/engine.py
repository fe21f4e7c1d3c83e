"""
Settlement engine: authorized withdrawal of a player's whole session.

Critical invariants:
- Funds move only after AuthorizationVerifier accepted the request
- The split reads real vault holdings, never session_balance
- The vault is empty when settle() returns
- Everything (nonce advance included) is one unit of work
"""

import logging
from typing import Callable, List, Optional

from weavevault.core.exceptions import InvalidMint, LedgerError, WeaveError
from weavevault.core.models import (
    BPS_DENOMINATOR,
    VAULT_AUTHORITY,
    Config,
    SettlementOutcome,
    SettlementPlan,
    SettlementRequest,
    Transfer,
    vault_address,
    wallet_address,
)
from weavevault.core.time import unix_timestamp
from weavevault.ledger.store import LedgerStore, UnitOfWork
from weavevault.settlement.treasury import TreasuryManager
from weavevault.verification.verifier import AuthorizationVerifier

logger = logging.getLogger(__name__)


def compute_burn(loss: int, burn_bps: int) -> int:
    """floor(loss × burn_bps / 10000). Never exceeds loss for bps ≤ 10000."""
    return loss * burn_bps // BPS_DENOMINATOR


def plan_settlement(
    vault_amount:      int,
    authorized_amount: int,
    burn_bps:          int,
) -> SettlementPlan:
    """
    Compute the three-way split between player, treasury and burn.

    authorized ≤ vault → player gets authorized from the vault, the
                         remainder is swept to treasury and partly burned
    authorized > vault → player gets the whole vault plus the shortfall
                         from treasury
    """
    if authorized_amount <= vault_amount:
        loss = vault_amount - authorized_amount
        return SettlementPlan(
            vault_amount=      vault_amount,
            authorized_amount= authorized_amount,
            pay_from_vault=    authorized_amount,
            sweep_to_treasury= loss,
            burn=              compute_burn(loss, burn_bps),
            pay_from_treasury= 0,
        )
    return SettlementPlan(
        vault_amount=      vault_amount,
        authorized_amount= authorized_amount,
        pay_from_vault=    vault_amount,
        sweep_to_treasury= 0,
        burn=              0,
        pay_from_treasury= authorized_amount - vault_amount,
    )


class SettlementEngine:
    """
    Verifies settlement authorizations and executes the fund split.

    The engine is the sole holder of the vault authority; the treasury
    authority lives in its TreasuryManager.
    """

    def __init__(
        self,
        store:    LedgerStore,
        clock:    Callable[[], int] = unix_timestamp,
        verifier: Optional[AuthorizationVerifier] = None,
    ) -> None:
        self.store    = store
        self.verifier = verifier or AuthorizationVerifier()
        self.treasury = TreasuryManager(store.bank)
        self._clock   = clock
        self._vault_authority = store.bank.issue_authority(VAULT_AUTHORITY)

    def open_vault(self, uow: UnitOfWork, player: bytes, mint: str) -> None:
        uow.open_account(vault_address(player), VAULT_AUTHORITY, mint)

    # ── Full withdrawal ───────────────────────────────────────

    def process(
        self,
        request:          SettlementRequest,
        artifact:         Optional[bytes],
        mint:             Optional[str] = None,
        treasury_account: Optional[str] = None,
    ) -> SettlementOutcome:
        """
        Verify and settle one request atomically.

        Args:
            request:          Player, authorized amount, nonce and expiry.
            artifact:         Encoded referee signature artifact.
            mint:             Asset the caller expects (checked if given).
            treasury_account: Treasury the caller expects (checked if given).

        Raises:
            NotInitialized, InvalidMint, InvalidTreasuryAccount,
            SettlementExpired, NonceAlreadyUsed, MissingEd25519Instruction,
            InvalidEd25519Instruction, InsufficientFunds
        """
        config = self.store.committed_config()
        player = request.player
        try:
            with self.store.transaction("settle", player=player) as uow:
                self._check_accounts(config, mint, treasury_account)
                ledger = uow.ledger(player)
                self.verifier.verify(
                    request,
                    artifact,
                    now=          self._clock(),
                    referee_key=  config.referee_key,
                    last_nonce=   ledger.last_nonce,
                    accept_nonce= lambda nonce: uow.set_last_nonce(player, nonce),
                )
                outcome = self.settle(
                    uow, player, request.authorized_amount, config.burn_bps,
                    nonce=request.nonce,
                )
        except WeaveError as exc:
            logger.warning(
                "settlement rejected player=%s nonce=%d: %s",
                player.hex()[:16], request.nonce, exc.code,
            )
            raise

        logger.info(
            "settled player=%s nonce=%d paid=%d swept=%d burned=%d from_treasury=%d",
            player.hex()[:16], request.nonce,
            outcome.plan.player_receives, outcome.plan.sweep_to_treasury,
            outcome.plan.burn, outcome.plan.pay_from_treasury,
        )
        return outcome

    # ── Fund split ────────────────────────────────────────────

    def settle(
        self,
        uow:               UnitOfWork,
        player:            bytes,
        authorized_amount: int,
        burn_bps:          int,
        nonce:             int = 0,
    ) -> SettlementOutcome:
        """
        Move funds for an already verified authorization and reset the
        session. Must run inside the player's unit of work.
        """
        uow.acquire_treasury()

        vault  = vault_address(player)
        wallet = wallet_address(player)
        plan   = plan_settlement(uow.balance(vault), authorized_amount, burn_bps)

        transfers: List[Transfer] = []
        if plan.pay_from_vault > 0:
            transfers.append(
                uow.transfer(vault, wallet, plan.pay_from_vault, self._vault_authority)
            )
        if plan.sweep_to_treasury > 0:
            transfers.append(
                self.treasury.receive(
                    uow, vault, plan.sweep_to_treasury, self._vault_authority
                )
            )
            if plan.burn > 0:
                transfers.append(self.treasury.burn(uow, plan.burn))
        if plan.pay_from_treasury > 0:
            transfers.append(
                self.treasury.pay_out(uow, wallet, plan.pay_from_treasury)
            )

        uow.set_session_balance(player, 0)

        if uow.balance(vault) != 0:
            raise LedgerError(
                "vault not empty after settlement",
                {"player": player.hex(), "remaining": uow.balance(vault)},
            )

        return SettlementOutcome(
            player=    player,
            nonce=     nonce,
            plan=      plan,
            transfers= transfers,
        )

    # ── Internal ──────────────────────────────────────────────

    def _check_accounts(
        self,
        config:           Config,
        mint:             Optional[str],
        treasury_account: Optional[str],
    ) -> None:
        self.treasury.check_account(treasury_account, config.mint)
        if mint is not None and mint != config.mint:
            raise InvalidMint(
                "mint does not match configuration",
                {"supplied": mint, "expected": config.mint},
            )
