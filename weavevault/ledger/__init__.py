"""
WeaveVault Ledger - custody state, token accounts and the settlement journal.

The journal is the source of truth for recovery: LedgerStore rebuilds
every balance, player ledger and the Config by replaying it.
"""

from weavevault.ledger.journal import JournalEntry, SettlementJournal
from weavevault.ledger.store import LedgerStore, UnitOfWork
from weavevault.ledger.tokens import DelegatedAuthority, TokenAccount, TokenBank

__all__ = [
    "DelegatedAuthority",
    "JournalEntry",
    "LedgerStore",
    "SettlementJournal",
    "TokenAccount",
    "TokenBank",
    "UnitOfWork",
]
