"""
Settlement journal — append-only, hash-chained JSONL.

One line per committed unit of work. The journal is both the audit trail
and the write-ahead log LedgerStore replays on start-up.

Entry contract:
    causal_hash  = SHA-256(JCS(prev.to_chain_dict())), first entry = GENESIS_HASH
    sequence     = 0, 1, 2, ... with no gaps
    signature    = Ed25519 over JCS(to_chain_dict()), base64url, no padding
                   (present only when the journal has an operator key)

append() MUST, in this order:
  1. Acquire lock
  2. Build entry chained to the last entry
  3. Sign (when an operator key is configured)
  4. Write + flush + fsync one line
  5. Advance internal state, only after the write succeeded
"""

import json
import logging
import os
import threading
import uuid
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from weavevault.core.canonical import canonical_hash, canonicalize
from weavevault.core.crypto import Ed25519KeyManager
from weavevault.core.exceptions import LedgerError
from weavevault.core.time import weave_timestamp

logger = logging.getLogger(__name__)

GENESIS_HASH = "0" * 64


@dataclass
class JournalEntry:
    """A single committed unit of work."""
    sequence:          int
    entry_id:          str
    op:                str
    timestamp:         str
    causal_hash:       str
    effects:           List[Dict[str, Any]] = field(default_factory=list)
    signer_public_key: Optional[str] = None
    signature:         Optional[str] = None

    def to_chain_dict(self) -> Dict[str, Any]:
        """Everything except the signature. Hashed and signed."""
        return {
            "sequence":          self.sequence,
            "entry_id":          self.entry_id,
            "op":                self.op,
            "timestamp":         self.timestamp,
            "causal_hash":       self.causal_hash,
            "effects":           self.effects,
            "signer_public_key": self.signer_public_key,
        }

    def to_dict(self) -> Dict[str, Any]:
        data = self.to_chain_dict()
        data["signature"] = self.signature
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JournalEntry":
        return cls(
            sequence=          data["sequence"],
            entry_id=          data["entry_id"],
            op=                data["op"],
            timestamp=         data["timestamp"],
            causal_hash=       data["causal_hash"],
            effects=           data.get("effects", []),
            signer_public_key= data.get("signer_public_key"),
            signature=         data.get("signature"),
        )

    def compute_hash(self) -> str:
        """Hash of this entry for chaining."""
        return canonical_hash(self.to_chain_dict())

    def verify_signature(self) -> bool:
        if not self.signature or not self.signer_public_key:
            return False
        return Ed25519KeyManager.verify_b64(
            canonicalize(self.to_chain_dict()),
            self.signature,
            self.signer_public_key,
        )


@dataclass
class JournalVerification:
    """Result of SettlementJournal.verify(). bool(result) is True iff valid."""
    valid:         bool
    total_entries: int
    signed:        int
    errors:        List[str]

    def __bool__(self) -> bool:
        return self.valid

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid":         self.valid,
            "total_entries": self.total_entries,
            "signed":        self.signed,
            "errors":        self.errors,
        }


class SettlementJournal:
    """
    Thread-safe journal writer/reader (single process).

    State survives restart: sequence and last hash are restored from the
    final line of an existing file.
    """

    def __init__(
        self,
        path:        Path,
        key_manager: Optional[Ed25519KeyManager] = None,
    ) -> None:
        self.path        = Path(path)
        self.key_manager = key_manager

        self._lock:      threading.Lock = threading.Lock()
        self._sequence:  int            = 0
        self._last_hash: str            = GENESIS_HASH

        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._restore_state()

    # ── Public API ────────────────────────────────────────────

    def append(self, op: str, effects: List[Dict[str, Any]]) -> JournalEntry:
        """
        Append one committed unit of work.
        Raises LedgerError on write failure. State does not advance then.
        """
        with self._lock:
            entry = JournalEntry(
                sequence=    self._sequence,
                entry_id=    f"wv-{uuid.uuid4()}",
                op=          op,
                timestamp=   weave_timestamp(),
                causal_hash= self._last_hash,
                effects=     effects,
            )
            if self.key_manager is not None:
                entry.signer_public_key = self.key_manager.public_key_hex
                entry.signature = self.key_manager.sign_b64(
                    canonicalize(entry.to_chain_dict())
                )

            self._write_entry(entry)

            self._sequence  += 1
            self._last_hash  = entry.compute_hash()
            logger.debug("journal %s seq=%d op=%s", self.path, entry.sequence, op)
            return entry

    def read_entries(self) -> List[JournalEntry]:
        """
        Load every entry from disk.
        Raises LedgerError on malformed lines.
        """
        entries: List[JournalEntry] = []
        if not self.path.exists():
            return entries
        with open(self.path, "r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    entries.append(JournalEntry.from_dict(json.loads(line)))
                except (json.JSONDecodeError, KeyError, TypeError) as e:
                    raise LedgerError(
                        f"Invalid journal entry at line {line_num}: {e}"
                    ) from e
        return entries

    def verify(
        self,
        require_signatures: bool = False,
        expected_signer:    Optional[str] = None,
    ) -> JournalVerification:
        """
        Check sequence continuity, causal hashes and signatures.

        Unsigned entries are accepted unless require_signatures is set;
        a present signature must always verify. With expected_signer
        (public key hex), every signature must also come from that key.
        """
        entries = self.read_entries()
        errors: List[str] = []
        signed = 0
        expected_hash = GENESIS_HASH

        for i, entry in enumerate(entries):
            if entry.sequence != i:
                errors.append(f"sequence gap at line {i + 1}: got {entry.sequence}")
            if entry.causal_hash != expected_hash:
                errors.append(
                    f"chain break at sequence {entry.sequence}: "
                    f"expected ...{expected_hash[-12:]}, got ...{entry.causal_hash[-12:]}"
                )
            if entry.signature is not None:
                if (
                    expected_signer is not None
                    and entry.signer_public_key != expected_signer
                ):
                    errors.append(f"unexpected signer at sequence {entry.sequence}")
                elif entry.verify_signature():
                    signed += 1
                else:
                    errors.append(f"invalid signature at sequence {entry.sequence}")
            elif require_signatures:
                errors.append(f"missing signature at sequence {entry.sequence}")
            expected_hash = entry.compute_hash()

        return JournalVerification(
            valid=         not errors,
            total_entries= len(entries),
            signed=        signed,
            errors=        errors,
        )

    def verify_or_raise(self) -> None:
        """
        Integrity gate used before replay. A journal with an operator key
        only accepts entries signed by that key.
        """
        if self.key_manager is not None:
            result = self.verify(
                require_signatures= True,
                expected_signer=    self.key_manager.public_key_hex,
            )
        else:
            result = self.verify()
        if not result:
            raise LedgerError(
                "journal integrity check failed",
                {"path": str(self.path), "first_error": result.errors[0]},
            )

    # ── Internal ──────────────────────────────────────────────

    def _restore_state(self) -> None:
        """
        Restore sequence and last hash from the final line.
        A corrupted final line leaves genesis defaults and issues a
        RuntimeWarning; LedgerStore's replay will then refuse the file.
        """
        if not self.path.exists():
            return

        last_line = None
        with open(self.path, "r", encoding="utf-8") as f:
            for line in f:
                stripped = line.strip()
                if stripped:
                    last_line = stripped

        if not last_line:
            return

        try:
            entry = JournalEntry.from_dict(json.loads(last_line))
        except (json.JSONDecodeError, KeyError, TypeError) as exc:
            warnings.warn(
                f"SettlementJournal: could not restore state from {self.path}: {exc}. "
                "Last line may be corrupted. Run verify() before appending.",
                RuntimeWarning,
                stacklevel=3,
            )
            return

        self._sequence  = entry.sequence + 1
        self._last_hash = entry.compute_hash()

    def _write_entry(self, entry: JournalEntry) -> None:
        """
        Append one newline-terminated JSON line and fsync it.
        On failure the file is cut back to its previous length, so a
        rolled-back unit never leaves a line behind.
        """
        line  = (json.dumps(entry.to_dict(), ensure_ascii=False) + "\n").encode("utf-8")
        start = self.path.stat().st_size if self.path.exists() else 0
        try:
            with open(self.path, "ab") as f:
                f.write(line)
                f.flush()
                os.fsync(f.fileno())
        except OSError as exc:
            self._truncate(start)
            raise LedgerError(f"Failed to write journal entry: {exc}") from exc

    def _truncate(self, length: int) -> None:
        try:
            os.truncate(self.path, length)
        except OSError as exc:
            logger.error(
                "could not discard failed journal write in %s: %s", self.path, exc
            )
