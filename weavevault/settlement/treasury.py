"""
Treasury manager.

Holds swept losses, pays settlement shortfalls and burns the configured
share of losses. It owns the treasury's DelegatedAuthority; nothing else
in the process can move treasury funds.
"""

import logging
from typing import Optional

from weavevault.core.exceptions import InvalidTreasuryAccount
from weavevault.core.models import TREASURY_ACCOUNT, TREASURY_AUTHORITY, Transfer
from weavevault.ledger.store import UnitOfWork
from weavevault.ledger.tokens import Authority, TokenBank

logger = logging.getLogger(__name__)


class TreasuryManager:
    """The shared, protocol-owned treasury account."""

    def __init__(self, bank: TokenBank, address: str = TREASURY_ACCOUNT) -> None:
        self.address    = address
        self._bank      = bank
        self._authority = bank.issue_authority(TREASURY_AUTHORITY)

    def balance(self) -> int:
        return self._bank.balance(self.address)

    def is_open(self) -> bool:
        return self._bank.has_account(self.address)

    def open(self, uow: UnitOfWork, mint: str) -> None:
        """Create the treasury account (initialize only)."""
        uow.open_account(self.address, TREASURY_AUTHORITY, mint)

    def check_account(self, address: Optional[str], mint: str) -> None:
        """
        Reject a caller-supplied treasury account that is not this one,
        not owned by the treasury authority, or holds another asset.
        """
        if address is None:
            return
        if address != self.address or not self._bank.has_account(address):
            raise InvalidTreasuryAccount(
                "treasury account does not match configuration",
                {"supplied": address, "expected": self.address},
            )
        account = self._bank.get(address)
        if account.owner != TREASURY_AUTHORITY or account.mint != mint:
            raise InvalidTreasuryAccount(
                "treasury account has the wrong owner or mint",
                {"owner": account.owner, "mint": account.mint},
            )

    # ── Movements ─────────────────────────────────────────────

    def receive(
        self,
        uow:              UnitOfWork,
        source:           str,
        amount:           int,
        source_authority: Authority,
    ) -> Transfer:
        """Sweep amount from source into the treasury."""
        uow.acquire_treasury()
        return uow.transfer(source, self.address, amount, source_authority)

    def burn(self, uow: UnitOfWork, amount: int) -> Transfer:
        """Destroy amount of treasury holdings, reducing supply."""
        uow.acquire_treasury()
        transfer = uow.burn(self.address, amount, self._authority)
        logger.debug("treasury burned %d", amount)
        return transfer

    def pay_out(self, uow: UnitOfWork, destination: str, amount: int) -> Transfer:
        """
        Pay amount from the treasury. Solvency is not pre-checked:
        an insolvent treasury raises InsufficientFunds and the unit rolls back.
        """
        uow.acquire_treasury()
        return uow.transfer(self.address, destination, amount, self._authority)
