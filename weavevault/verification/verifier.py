"""
Settlement authorization verifier.

PROTOCOL INVARIANT: check order is fixed and fail-fast.
Order: Expiry → Nonce → Artifact shape → Signer → Message → Signature
(cheapest to most expensive, clearest to most opaque).

The verifier owns no state. The only mutation it triggers is the nonce
advance, handed back to the caller through ``accept_nonce`` as soon as
the nonce check passes, before the signature is examined. The caller's
unit of work undoes it if a later check fails.
"""

import logging
from typing import Callable, Optional

from weavevault.core.artifact import SignatureArtifact, parse_artifact
from weavevault.core.exceptions import (
    InvalidEd25519Instruction,
    NonceAlreadyUsed,
    SettlementExpired,
)
from weavevault.core.models import SettlementRequest

logger = logging.getLogger(__name__)


class AuthorizationVerifier:
    """Validates referee-signed settlement authorizations."""

    def check_expiry(self, request: SettlementRequest, now: int) -> None:
        if now > request.expiry:
            raise SettlementExpired(
                "settlement authorization expired",
                {"expiry": request.expiry, "now": now},
            )

    def check_nonce(self, request: SettlementRequest, last_nonce: int) -> None:
        if request.nonce <= last_nonce:
            raise NonceAlreadyUsed(
                "nonce already used",
                {"nonce": request.nonce, "last_nonce": last_nonce},
            )

    def check_signature(
        self,
        request:     SettlementRequest,
        artifact:    Optional[bytes],
        referee_key: bytes,
    ) -> SignatureArtifact:
        """
        Decode the artifact and prove it is the referee's signature over
        exactly this request's canonical message.
        """
        parsed = parse_artifact(artifact)

        if parsed.public_key != referee_key:
            raise InvalidEd25519Instruction(
                "artifact is not signed by the configured referee",
                {"signer": parsed.public_key.hex()},
            )
        if parsed.message != request.message():
            raise InvalidEd25519Instruction(
                "signed message does not match the settlement request",
                {"player": request.player.hex(), "nonce": request.nonce},
            )
        if not parsed.verify():
            raise InvalidEd25519Instruction("Ed25519 signature verification failed")
        return parsed

    def verify(
        self,
        request:      SettlementRequest,
        artifact:     Optional[bytes],
        now:          int,
        referee_key:  bytes,
        last_nonce:   int,
        accept_nonce: Optional[Callable[[int], None]] = None,
    ) -> SignatureArtifact:
        """
        Run every check in protocol order.

        Args:
            request:      What the player claims was authorized.
            artifact:     Encoded signature artifact (None if absent).
            now:          Current UNIX seconds.
            referee_key:  Configured 32-byte referee public key.
            last_nonce:   The player's last accepted nonce.
            accept_nonce: Called with request.nonce once the nonce is fresh.

        Returns:
            The decoded artifact.

        Raises:
            SettlementExpired, NonceAlreadyUsed,
            MissingEd25519Instruction, InvalidEd25519Instruction
        """
        self.check_expiry(request, now)
        self.check_nonce(request, last_nonce)
        if accept_nonce is not None:
            accept_nonce(request.nonce)
        parsed = self.check_signature(request, artifact, referee_key)
        logger.debug(
            "authorization verified player=%s nonce=%d",
            request.player.hex()[:16], request.nonce,
        )
        return parsed
