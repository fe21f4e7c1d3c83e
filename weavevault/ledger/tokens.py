"""
Token bank: mints, token accounts and delegated authorities.

Accounts are owned either by an identity (a player's wallet, the hex of
their public key) or by a named DelegatedAuthority (vaults, treasury,
mint). A DelegatedAuthority is a capability object: the bank issues each
name exactly once, and only that object can move funds out of the
accounts it owns. No private key ever backs it.

The bank performs no locking of its own beyond registry changes.
Balance mutation is serialized by LedgerStore's per-player and treasury
locks, and every mutation goes through a UnitOfWork so it can be undone.
"""

import threading
from dataclasses import dataclass
from typing import Dict, Union

from weavevault.core.canonical import U64_MAX
from weavevault.core.exceptions import (
    AccountNotFound,
    ArithmeticOverflow,
    InsufficientFunds,
    InvalidMint,
    LedgerError,
    Unauthorized,
)
from weavevault.core.models import MINT_AUTHORITY, identity_label


class DelegatedAuthority:
    """Unforgeable signing capability for protocol-owned accounts."""

    __slots__ = ("name",)

    def __init__(self, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return f"DelegatedAuthority({self.name!r})"


Authority = Union[bytes, DelegatedAuthority]


@dataclass
class TokenAccount:
    """A single token holding."""
    address: str
    owner:   str
    mint:    str
    amount:  int = 0

    def to_dict(self) -> dict:
        return {
            "address": self.address,
            "owner":   self.owner,
            "mint":    self.mint,
            "amount":  self.amount,
        }


class TokenBank:
    """
    In-process token program.

    Invariant: for every mint, the sum of account amounts equals supply.
    """

    def __init__(self) -> None:
        self.accounts: Dict[str, TokenAccount] = {}
        self.supply:   Dict[str, int]          = {}

        self._authorities: Dict[str, DelegatedAuthority] = {}
        self._registry_lock = threading.Lock()
        self._supply_lock   = threading.Lock()

    # ── Authorities ───────────────────────────────────────────

    def issue_authority(self, name: str) -> DelegatedAuthority:
        """
        Issue the capability for name. Each name is issued once per bank.
        Raises Unauthorized on a second request.
        """
        with self._registry_lock:
            if name in self._authorities:
                raise Unauthorized(
                    "authority already issued", {"authority": name}
                )
            authority = DelegatedAuthority(name)
            self._authorities[name] = authority
            return authority

    def _owner_label(self, authority: Authority) -> str:
        if isinstance(authority, DelegatedAuthority):
            if self._authorities.get(authority.name) is not authority:
                raise Unauthorized(
                    "authority was not issued by this bank",
                    {"authority": authority.name},
                )
            return authority.name
        return identity_label(authority)

    # ── Registry ──────────────────────────────────────────────

    def has_mint(self, mint: str) -> bool:
        return mint in self.supply

    def has_account(self, address: str) -> bool:
        return address in self.accounts

    def get(self, address: str) -> TokenAccount:
        try:
            return self.accounts[address]
        except KeyError:
            raise AccountNotFound("unknown token account", {"address": address})

    def balance(self, address: str) -> int:
        return self.get(address).amount

    def create_mint(self, mint: str) -> None:
        with self._registry_lock:
            if mint in self.supply:
                raise LedgerError("mint already exists", {"mint": mint})
            self.supply[mint] = 0

    def open_account(self, address: str, owner: str, mint: str) -> TokenAccount:
        with self._registry_lock:
            if mint not in self.supply:
                raise InvalidMint("unknown mint", {"mint": mint})
            if address in self.accounts:
                raise LedgerError("account already exists", {"address": address})
            account = TokenAccount(address=address, owner=owner, mint=mint)
            self.accounts[address] = account
            return account

    def close_account(self, address: str) -> None:
        """Used only to undo open_account inside a failed unit of work."""
        with self._registry_lock:
            self.accounts.pop(address, None)

    # ── Movements ─────────────────────────────────────────────

    def transfer(
        self,
        source:      str,
        destination: str,
        amount:      int,
        authority:   Authority,
    ) -> None:
        src = self.get(source)
        dst = self.get(destination)
        if src.owner != self._owner_label(authority):
            raise Unauthorized(
                "authority does not own source account", {"source": source}
            )
        if src.mint != dst.mint:
            raise InvalidMint(
                "mint mismatch", {"source": src.mint, "destination": dst.mint}
            )
        if src.amount < amount:
            raise InsufficientFunds(
                "insufficient funds",
                {"account": source, "balance": src.amount, "amount": amount},
            )
        if dst.amount + amount > U64_MAX:
            raise ArithmeticOverflow("balance overflow", {"account": destination})
        src.amount -= amount
        dst.amount += amount

    def burn(self, address: str, amount: int, authority: Authority) -> None:
        account = self.get(address)
        if account.owner != self._owner_label(authority):
            raise Unauthorized(
                "authority does not own burn account", {"account": address}
            )
        if account.amount < amount:
            raise InsufficientFunds(
                "insufficient funds to burn",
                {"account": address, "balance": account.amount, "amount": amount},
            )
        with self._supply_lock:
            account.amount -= amount
            self.supply[account.mint] -= amount

    def mint_to(self, address: str, amount: int, authority: DelegatedAuthority) -> None:
        account = self.get(address)
        if self._owner_label(authority) != MINT_AUTHORITY:
            raise Unauthorized("not the mint authority", {"account": address})
        with self._supply_lock:
            if (
                account.amount + amount > U64_MAX
                or self.supply[account.mint] + amount > U64_MAX
            ):
                raise ArithmeticOverflow("supply overflow", {"mint": account.mint})
            account.amount += amount
            self.supply[account.mint] += amount

    # ── Replay ────────────────────────────────────────────────

    def apply_balance(self, address: str, amount: int) -> None:
        """
        Set an account balance directly, adjusting supply by the delta.
        Used by journal replay and undo only.
        """
        account = self.get(address)
        with self._supply_lock:
            self.supply[account.mint] += amount - account.amount
            account.amount = amount
