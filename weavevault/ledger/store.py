"""
LedgerStore — persisted custody state with atomic units of work.

Holds Config, every PlayerLedger and the TokenBank (wallets, vaults,
treasury). All mutation goes through ``store.transaction(...)``, which
yields a UnitOfWork:

    with store.transaction("deposit", player=player) as uow:
        uow.transfer(...)
        uow.set_session_balance(...)

Guarantees:
    - all-or-nothing: any exception restores every touched record
      (balances, player ledgers, config, opened accounts) and nothing
      is journaled
    - write-ahead: on success the unit's effects are appended to the
      journal as ONE line before the with-block exits
    - exclusivity: one in-flight unit per player; the shared treasury
      (and mint supply it burns) is serialized by its own lock

Lock order is fixed: config → player → treasury → journal.
"""

import logging
import threading
from contextlib import contextmanager
from copy import copy
from typing import Any, Dict, Iterator, List, Optional

from weavevault.core.canonical import U64_MAX
from weavevault.core.exceptions import (
    ArithmeticOverflow,
    LedgerError,
    NotInitialized,
)
from weavevault.core.models import (
    TREASURY_ACCOUNT,
    Config,
    PlayerLedger,
    Transfer,
    check_identity,
    parse_identity,
    vault_address,
)
from weavevault.ledger.journal import SettlementJournal
from weavevault.ledger.tokens import Authority, TokenBank

logger = logging.getLogger(__name__)

_UNSET = object()


class UnitOfWork:
    """
    One atomic call against the store.

    Every write records an undo image on first touch and a journal
    effect. Locks acquired through the unit are released when it ends.
    """

    def __init__(self, store: "LedgerStore", op: str) -> None:
        self.store   = store
        self.op      = op
        self.effects: List[Dict[str, Any]] = []

        self._saved_balances: Dict[str, int]                      = {}
        self._saved_ledgers:  Dict[bytes, Optional[PlayerLedger]] = {}
        self._opened:         List[str]                           = []
        self._created_mints:  List[str]                           = []
        self._saved_config                                         = _UNSET
        self._held:           List[threading.Lock]                = []

    # ── Locks ─────────────────────────────────────────────────

    def hold(self, lock: threading.Lock) -> None:
        if any(held is lock for held in self._held):
            return
        lock.acquire()
        self._held.append(lock)

    def acquire_treasury(self) -> None:
        """Take the treasury lock for the rest of this unit."""
        self.hold(self.store._treasury_lock)

    def release(self) -> None:
        while self._held:
            self._held.pop().release()

    # ── Reads ─────────────────────────────────────────────────

    @property
    def bank(self) -> TokenBank:
        return self.store.bank

    def balance(self, address: str) -> int:
        return self.store.bank.balance(address)

    def ledger(self, player: bytes) -> PlayerLedger:
        """Return the live PlayerLedger, creating it lazily."""
        ledgers = self.store._players
        with self.store._registry_lock:
            ledger = ledgers.get(player)
            if ledger is None:
                ledger = PlayerLedger(player=player)
                ledgers[player] = ledger
                self._saved_ledgers.setdefault(player, None)
            else:
                self._saved_ledgers.setdefault(player, copy(ledger))
        return ledger

    # ── Writes ────────────────────────────────────────────────

    def set_last_nonce(self, player: bytes, nonce: int) -> None:
        ledger = self.ledger(player)
        ledger.last_nonce = nonce
        self._record_ledger(ledger)

    def set_session_balance(self, player: bytes, value: int) -> None:
        if value < 0 or value > U64_MAX:
            raise ArithmeticOverflow(
                "session balance out of u64 range",
                {"player": player.hex(), "value": value},
            )
        ledger = self.ledger(player)
        ledger.session_balance = value
        self._record_ledger(ledger)

    def transfer(
        self,
        source:      str,
        destination: str,
        amount:      int,
        authority:   Authority,
    ) -> Transfer:
        self._save_balance(source)
        self._save_balance(destination)
        self.store.bank.transfer(source, destination, amount, authority)
        self.effects.append({
            "kind":        "transfer",
            "source":      source,
            "destination": destination,
            "amount":      amount,
        })
        return Transfer(source=source, destination=destination, amount=amount)

    def burn(self, address: str, amount: int, authority: Authority) -> Transfer:
        self._save_balance(address)
        self.store.bank.burn(address, amount, authority)
        self.effects.append({"kind": "burn", "account": address, "amount": amount})
        return Transfer(source=address, destination=None, amount=amount)

    def mint_to(self, address: str, amount: int, authority: Authority) -> None:
        self._save_balance(address)
        self.store.bank.mint_to(address, amount, authority)
        self.effects.append({"kind": "mint_to", "account": address, "amount": amount})

    def create_mint(self, mint: str) -> None:
        self.store.bank.create_mint(mint)
        self._created_mints.append(mint)
        self.effects.append({"kind": "create_mint", "mint": mint})

    def open_account(self, address: str, owner: str, mint: str) -> None:
        self.store.bank.open_account(address, owner, mint)
        self._opened.append(address)
        self.effects.append({
            "kind":    "open_account",
            "address": address,
            "owner":   owner,
            "mint":    mint,
        })

    def set_config(self, config: Config) -> None:
        if self._saved_config is _UNSET:
            self._saved_config = self.store._config
        self.store._config = config
        self.effects.append({"kind": "config", "config": config.to_dict()})

    # ── Rollback ──────────────────────────────────────────────

    def rollback(self) -> None:
        """Restore every record this unit touched. Never raises."""
        bank = self.store.bank
        for address, amount in self._saved_balances.items():
            if bank.has_account(address):
                bank.apply_balance(address, amount)
        for address in reversed(self._opened):
            bank.close_account(address)
        for mint in self._created_mints:
            bank.supply.pop(mint, None)
        with self.store._registry_lock:
            for player, saved in self._saved_ledgers.items():
                if saved is None:
                    self.store._players.pop(player, None)
                else:
                    self.store._players[player] = saved
        if self._saved_config is not _UNSET:
            self.store._config = self._saved_config
        self.effects = []
        logger.debug("rolled back %s", self.op)

    # ── Internal ──────────────────────────────────────────────

    def _save_balance(self, address: str) -> None:
        if address not in self._saved_balances:
            self._saved_balances[address] = self.store.bank.balance(address)

    def _record_ledger(self, ledger: PlayerLedger) -> None:
        self.effects.append({"kind": "ledger", **ledger.to_dict()})


class LedgerStore:
    """
    Custody state plus the journal that makes it durable.

    Constructed over an existing journal, the store verifies the chain
    and replays every committed effect before accepting new work.
    """

    def __init__(self, journal: Optional[SettlementJournal] = None) -> None:
        self.bank    = TokenBank()
        self.journal = journal

        self._config:  Optional[Config]         = None
        self._players: Dict[bytes, PlayerLedger] = {}

        self._registry_lock = threading.Lock()
        self._config_lock   = threading.Lock()
        self._treasury_lock = threading.Lock()
        self._player_locks: Dict[bytes, threading.Lock] = {}

        if journal is not None:
            self._restore(journal)

    # ── Units of work ─────────────────────────────────────────

    @contextmanager
    def transaction(
        self,
        op:       str,
        player:   Optional[bytes] = None,
        treasury: bool = False,
        config:   bool = False,
    ) -> Iterator[UnitOfWork]:
        """
        Run one atomic unit of work.

        Args:
            op:       Journal operation name.
            player:   Lock this player's ledger, wallet and vault.
            treasury: Lock the treasury from the start (otherwise the
                      unit may take it later via acquire_treasury()).
            config:   Lock Config for an admin update.
        """
        uow = UnitOfWork(self, op)
        try:
            if config:
                uow.hold(self._config_lock)
            if player is not None:
                uow.hold(self._player_lock(player))
            if treasury:
                uow.acquire_treasury()
            yield uow
            self._commit(uow)
        except BaseException:
            uow.rollback()
            raise
        finally:
            uow.release()

    # ── Reads ─────────────────────────────────────────────────

    @property
    def config(self) -> Optional[Config]:
        return self._config

    def require_config(self) -> Config:
        config = self._config
        if config is None:
            raise NotInitialized("program has not been initialized")
        return config

    def committed_config(self) -> Config:
        """
        require_config() after any in-flight admin unit has finished.
        Takes the config lock only for the read, so callers may go on to
        take player or treasury locks.
        """
        with self._config_lock:
            return self.require_config()

    def player_ledger(self, player: bytes) -> Optional[PlayerLedger]:
        """Snapshot copy of a player's ledger, or None if never created."""
        with self._registry_lock:
            ledger = self._players.get(bytes(player))
            return copy(ledger) if ledger is not None else None

    def vault_balance(self, player: bytes) -> int:
        return self.bank.balance(vault_address(player))

    def treasury_balance(self) -> int:
        return self.bank.balance(TREASURY_ACCOUNT)

    def players(self) -> List[bytes]:
        with self._registry_lock:
            return list(self._players)

    # ── Internal ──────────────────────────────────────────────

    def _player_lock(self, player: bytes) -> threading.Lock:
        player = check_identity(player, "player")
        with self._registry_lock:
            lock = self._player_locks.get(player)
            if lock is None:
                lock = threading.Lock()
                self._player_locks[player] = lock
            return lock

    def _commit(self, uow: UnitOfWork) -> None:
        if self.journal is not None and uow.effects:
            self.journal.append(uow.op, uow.effects)
        logger.debug("committed %s (%d effects)", uow.op, len(uow.effects))

    def _restore(self, journal: SettlementJournal) -> None:
        journal.verify_or_raise()
        entries = journal.read_entries()
        for entry in entries:
            for effect in entry.effects:
                self._apply(effect)
        if entries:
            logger.info(
                "restored %d journal entries from %s", len(entries), journal.path
            )

    def _apply(self, effect: Dict[str, Any]) -> None:
        """Re-apply one committed effect. Trusted input: no authority checks."""
        bank = self.bank
        kind = effect["kind"]
        if kind == "create_mint":
            bank.create_mint(effect["mint"])
        elif kind == "open_account":
            bank.open_account(effect["address"], effect["owner"], effect["mint"])
        elif kind == "mint_to":
            address = effect["account"]
            bank.apply_balance(address, bank.balance(address) + effect["amount"])
        elif kind == "transfer":
            source, destination = effect["source"], effect["destination"]
            bank.apply_balance(source, bank.balance(source) - effect["amount"])
            bank.apply_balance(destination, bank.balance(destination) + effect["amount"])
        elif kind == "burn":
            address = effect["account"]
            bank.apply_balance(address, bank.balance(address) - effect["amount"])
        elif kind == "ledger":
            player = parse_identity(effect["player"])
            self._players[player] = PlayerLedger(
                player=          player,
                session_balance= effect["session_balance"],
                last_nonce=      effect["last_nonce"],
            )
        elif kind == "config":
            self._config = Config.from_dict(effect["config"])
        else:
            raise LedgerError("unknown journal effect", {"kind": kind})
