"""
Referee-side settlement authorization.

The referee observes a finished game, decides what the player may take
home and signs a SettlementRequest for it. The amount is capped twice:

    payout ≤ vault × max_payout_multiplier   (win size)
    payout ≤ vault + treasury                (liquidity actually available)

Nonces are time-derived, (unix_ms << 16) + 16 random bits, and forced
strictly above the last nonce this signer issued so two authorizations
in the same millisecond never collide.
"""

import logging
import secrets
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict

from weavevault.core.artifact import SignatureArtifact
from weavevault.core.canonical import U64_MAX
from weavevault.core.crypto import Ed25519KeyManager
from weavevault.core.models import SettlementRequest, check_identity, check_u64
from weavevault.core.time import unix_millis

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS   = 120
DEFAULT_MAX_MULTIPLIER = 20


@dataclass(frozen=True)
class SettlementAuthorization:
    """A signed request, ready to hand to the player."""

    request:     SettlementRequest
    artifact:    bytes
    referee_key: bytes

    def to_dict(self) -> Dict[str, Any]:
        data = self.request.to_dict()
        data["artifact"]    = self.artifact.hex()
        data["referee_key"] = self.referee_key.hex()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SettlementAuthorization":
        return cls(
            request=     SettlementRequest.from_dict(data),
            artifact=    bytes.fromhex(data["artifact"]),
            referee_key= bytes.fromhex(data["referee_key"]),
        )


class RefereeSigner:
    """
    Issues settlement authorizations under one referee key.

    Args:
        key_manager:           The referee's Ed25519 key.
        clock_ms:              Millisecond clock (injectable for tests).
        ttl_seconds:           Lifetime of an authorization.
        max_payout_multiplier: Cap on payout relative to vault holdings.
        random_bits:           Source of the 16 low nonce bits.
    """

    def __init__(
        self,
        key_manager:           Ed25519KeyManager,
        clock_ms:              Callable[[], int] = unix_millis,
        ttl_seconds:           int = DEFAULT_TTL_SECONDS,
        max_payout_multiplier: int = DEFAULT_MAX_MULTIPLIER,
        random_bits:           Callable[[], int] = lambda: secrets.randbits(16),
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_payout_multiplier <= 0:
            raise ValueError("max_payout_multiplier must be positive")
        self.key_manager           = key_manager
        self.ttl_seconds           = ttl_seconds
        self.max_payout_multiplier = max_payout_multiplier
        self._clock_ms    = clock_ms
        self._random_bits = random_bits
        self._last_nonce  = 0
        self._lock        = threading.Lock()

    @property
    def referee_key(self) -> bytes:
        return self.key_manager.public_key_bytes

    def cap_amount(self, requested: int, vault_amount: int, treasury_amount: int) -> int:
        return min(
            requested,
            vault_amount * self.max_payout_multiplier,
            vault_amount + treasury_amount,
            U64_MAX,
        )

    def next_nonce(self) -> int:
        with self._lock:
            nonce = (self._clock_ms() << 16) + (self._random_bits() & 0xFFFF)
            if nonce <= self._last_nonce:
                nonce = self._last_nonce + 1
            self._last_nonce = nonce
            return nonce

    def authorize(
        self,
        player:          bytes,
        requested:       int,
        vault_amount:    int,
        treasury_amount: int,
    ) -> SettlementAuthorization:
        """Cap, stamp and sign one settlement for player."""
        player = check_identity(player, "player")
        for name, value in (
            ("requested", requested),
            ("vault_amount", vault_amount),
            ("treasury_amount", treasury_amount),
        ):
            check_u64(value, name)

        nonce   = self.next_nonce()
        request = SettlementRequest(
            player=            player,
            authorized_amount= self.cap_amount(requested, vault_amount, treasury_amount),
            nonce=             nonce,
            expiry=            self._clock_ms() // 1000 + self.ttl_seconds,
        )
        artifact = SignatureArtifact.sign(self.key_manager, request.message())

        logger.info(
            "authorized player=%s amount=%d (requested %d) nonce=%d",
            player.hex()[:16], request.authorized_amount, requested, nonce,
        )
        return SettlementAuthorization(
            request=     request,
            artifact=    artifact.encode(),
            referee_key= self.referee_key,
        )
