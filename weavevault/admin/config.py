"""
Admin operations on the Config singleton.

initialize() is one-time and makes the caller the admin. Every later
change must come from that admin. burn_bps is re-validated on every
write; a rejected write leaves Config untouched.
"""

import dataclasses
import logging

from weavevault.core.exceptions import (
    AlreadyInitialized,
    InvalidMint,
    Unauthorized,
)
from weavevault.core.models import Config, check_burn_bps, check_identity
from weavevault.ledger.store import LedgerStore
from weavevault.settlement.treasury import TreasuryManager

logger = logging.getLogger(__name__)


class ConfigManager:
    """Owner-gated configuration updates."""

    def __init__(self, store: LedgerStore, treasury: TreasuryManager) -> None:
        self.store    = store
        self.treasury = treasury

    def initialize(
        self,
        caller:      bytes,
        referee_key: bytes,
        mint:        str,
        burn_bps:    int,
    ) -> Config:
        """
        Create Config and the treasury account.

        Raises:
            InvalidBurnBps, InvalidMint (unknown asset), AlreadyInitialized
        """
        check_burn_bps(burn_bps)
        caller = check_identity(caller, "caller")
        with self.store.transaction("initialize", treasury=True, config=True) as uow:
            if self.store.config is not None:
                raise AlreadyInitialized("program already initialized")
            if not self.store.bank.has_mint(mint):
                raise InvalidMint("unknown mint", {"mint": mint})

            config = Config(
                admin=            caller,
                referee_key=      check_identity(referee_key, "referee_key"),
                mint=             mint,
                burn_bps=         burn_bps,
                treasury_account= self.treasury.address,
            )
            uow.set_config(config)
            if not self.treasury.is_open():
                self.treasury.open(uow, mint)

        logger.info(
            "initialized admin=%s mint=%s burn_bps=%d",
            caller.hex()[:16], mint, burn_bps,
        )
        return config

    def set_referee_key(self, caller: bytes, referee_key: bytes) -> Config:
        referee_key = check_identity(referee_key, "referee_key")
        with self.store.transaction("set_referee_key", config=True) as uow:
            config = self._require_admin(caller)
            updated = dataclasses.replace(config, referee_key=referee_key)
            uow.set_config(updated)
        logger.info("referee key rotated to %s", referee_key.hex()[:16])
        return updated

    def set_burn_bps(self, caller: bytes, burn_bps: int) -> Config:
        with self.store.transaction("set_burn_bps", config=True) as uow:
            config = self._require_admin(caller)
            check_burn_bps(burn_bps)
            updated = dataclasses.replace(config, burn_bps=burn_bps)
            uow.set_config(updated)
        logger.info("burn_bps set to %d", burn_bps)
        return updated

    def _require_admin(self, caller: bytes) -> Config:
        config = self.store.require_config()
        if bytes(caller) != config.admin:
            raise Unauthorized(
                "caller is not the admin", {"caller": bytes(caller).hex()}
            )
        return config
