"""
weavevault/core/artifact.py

Self-contained Ed25519 signature artifact.

The layout is the Ed25519 verify-instruction data format, so artifacts
produced by existing signers are accepted byte-for-byte:

    offset  size  field
    0       1     signature count            (must be 1)
    1       1     padding
    2       2     signature offset           (u16 LE)
    4       2     signature source index     (must be 0xFFFF = self)
    6       2     public-key offset
    8       2     public-key source index    (must be 0xFFFF = self)
    10      2     message offset
    12      2     message length             (must be 56)
    14      2     message source index       (must be 0xFFFF = self)
    16      32    public key                 ┐
    48      64    signature                  ├ layout written by encode();
    112     56    message                    ┘ parse() honours the offsets

parse() only decodes and bounds-checks. Key, message and signature
checks belong to AuthorizationVerifier.
"""

import struct
from dataclasses import dataclass
from typing import Optional

from weavevault.core.canonical import SETTLEMENT_MESSAGE_LEN
from weavevault.core.crypto import (
    PUBLIC_KEY_LENGTH,
    SIGNATURE_LENGTH,
    Ed25519KeyManager,
)
from weavevault.core.exceptions import (
    InvalidEd25519Instruction,
    MissingEd25519Instruction,
)


SELF_INDEX    = 0xFFFF
HEADER_LENGTH = 16

_HEADER = struct.Struct("<BBHHHHHHH")

_PUBLIC_KEY_OFFSET = HEADER_LENGTH
_SIGNATURE_OFFSET  = _PUBLIC_KEY_OFFSET + PUBLIC_KEY_LENGTH
_MESSAGE_OFFSET    = _SIGNATURE_OFFSET + SIGNATURE_LENGTH


@dataclass(frozen=True)
class ArtifactHeader:
    """Decoded 16-byte header. Exposed for diagnostics (CLI inspect)."""

    signature_count:        int
    signature_offset:       int
    signature_index:        int
    public_key_offset:      int
    public_key_index:       int
    message_offset:         int
    message_length:         int
    message_index:          int

    @property
    def self_contained(self) -> bool:
        return (
            self.signature_index == SELF_INDEX
            and self.public_key_index == SELF_INDEX
            and self.message_index == SELF_INDEX
        )


@dataclass(frozen=True)
class SignatureArtifact:
    """Key, signature and message carried together as one unit."""

    public_key: bytes
    signature:  bytes
    message:    bytes

    # ── Construction ──────────────────────────────────────────

    @classmethod
    def sign(
        cls,
        key_manager: Ed25519KeyManager,
        message:     bytes,
    ) -> "SignatureArtifact":
        """Sign message with key_manager and bundle the result."""
        return cls(
            public_key= key_manager.public_key_bytes,
            signature=  key_manager.sign(message),
            message=    bytes(message),
        )

    # ── Wire format ───────────────────────────────────────────

    def encode(self) -> bytes:
        if len(self.public_key) != PUBLIC_KEY_LENGTH:
            raise ValueError("public_key must be 32 bytes")
        if len(self.signature) != SIGNATURE_LENGTH:
            raise ValueError("signature must be 64 bytes")
        if len(self.message) > 0xFFFF:
            raise ValueError("message too long for a u16 length field")

        header = _HEADER.pack(
            1,
            0,
            _SIGNATURE_OFFSET,
            SELF_INDEX,
            _PUBLIC_KEY_OFFSET,
            SELF_INDEX,
            _MESSAGE_OFFSET,
            len(self.message),
            SELF_INDEX,
        )
        return header + self.public_key + self.signature + self.message

    def verify(self) -> bool:
        """Ed25519 check of the embedded signature. Never raises."""
        return Ed25519KeyManager.verify_detached(
            self.message, self.signature, self.public_key
        )


def parse_header(data: bytes) -> ArtifactHeader:
    """
    Decode the fixed header.
    Raises InvalidEd25519Instruction if data is not longer than the header.
    """
    if len(data) <= HEADER_LENGTH:
        raise InvalidEd25519Instruction(
            "signature artifact shorter than its header",
            {"length": len(data)},
        )
    (
        count, _padding,
        sig_off, sig_ix,
        pk_off, pk_ix,
        msg_off, msg_len, msg_ix,
    ) = _HEADER.unpack_from(data, 0)
    return ArtifactHeader(
        signature_count=   count,
        signature_offset=  sig_off,
        signature_index=   sig_ix,
        public_key_offset= pk_off,
        public_key_index=  pk_ix,
        message_offset=    msg_off,
        message_length=    msg_len,
        message_index=     msg_ix,
    )


def parse_artifact(
    data:            Optional[bytes],
    expected_length: int = SETTLEMENT_MESSAGE_LEN,
) -> SignatureArtifact:
    """
    Decode a self-contained, single-signature artifact.

    Raises:
        MissingEd25519Instruction  — data is None or empty
        InvalidEd25519Instruction  — wrong count, foreign index sentinel,
                                     wrong message length, out-of-bounds range
    """
    if not data:
        raise MissingEd25519Instruction("no signature artifact supplied")

    data   = bytes(data)
    header = parse_header(data)

    if header.signature_count != 1:
        raise InvalidEd25519Instruction(
            "signature artifact must carry exactly one signature",
            {"count": header.signature_count},
        )
    if not header.self_contained:
        raise InvalidEd25519Instruction(
            "signature artifact references data outside itself",
            {
                "signature_index":  header.signature_index,
                "public_key_index": header.public_key_index,
                "message_index":    header.message_index,
            },
        )
    if header.message_length != expected_length:
        raise InvalidEd25519Instruction(
            "signed message has the wrong length",
            {"expected": expected_length, "got": header.message_length},
        )

    ranges = (
        ("public_key", header.public_key_offset, PUBLIC_KEY_LENGTH),
        ("signature",  header.signature_offset,  SIGNATURE_LENGTH),
        ("message",    header.message_offset,    header.message_length),
    )
    for name, offset, size in ranges:
        if offset + size > len(data):
            raise InvalidEd25519Instruction(
                f"{name} range exceeds artifact",
                {"offset": offset, "size": size, "length": len(data)},
            )

    pk_off, sig_off, msg_off = (
        header.public_key_offset,
        header.signature_offset,
        header.message_offset,
    )
    return SignatureArtifact(
        public_key= data[pk_off:pk_off + PUBLIC_KEY_LENGTH],
        signature=  data[sig_off:sig_off + SIGNATURE_LENGTH],
        message=    data[msg_off:msg_off + header.message_length],
    )
