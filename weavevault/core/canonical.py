"""
WeaveVault: Canonical Encodings

Two canonical forms exist and both live here:

    settlement_message()  — the exact 56-byte message a referee signs:
                            player(32) ‖ amount(u64 LE) ‖ nonce(u64 LE) ‖ expiry(u64 LE)
    canonicalize()        — RFC 8785 (JCS) JSON bytes, used for journal
                            chain hashing and journal signatures

RFC 8785: https://www.rfc-editor.org/rfc/rfc8785
"""

import hashlib
import struct
from typing import Tuple

try:
    import jcs as _jcs
except ImportError as exc:
    raise ImportError(
        "WeaveVault requires the 'jcs' package for RFC 8785 compliance.\n"
        "Install with: pip install jcs\n"
        f"Original error: {exc}"
    ) from exc


U64_MAX = 2 ** 64 - 1

IDENTITY_LENGTH        = 32
SETTLEMENT_MESSAGE_LEN = IDENTITY_LENGTH + 8 + 8 + 8   # 56

_U64_LE = struct.Struct("<Q")


def encode_u64(value: int) -> bytes:
    """
    Little-endian unsigned 64-bit encoding.
    Raises ValueError outside [0, 2**64 - 1].
    """
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"u64 value must be int, got {type(value).__name__}")
    if value < 0 or value > U64_MAX:
        raise ValueError(f"u64 value out of range: {value}")
    return _U64_LE.pack(value)


def settlement_message(
    player:            bytes,
    authorized_amount: int,
    nonce:             int,
    expiry:            int,
) -> bytes:
    """
    Build the canonical settlement message.

    This is the ONLY byte sequence a settlement signature may cover.
    """
    if len(player) != IDENTITY_LENGTH:
        raise ValueError(
            f"player identity must be {IDENTITY_LENGTH} bytes, got {len(player)}"
        )
    return (
        bytes(player)
        + encode_u64(authorized_amount)
        + encode_u64(nonce)
        + encode_u64(expiry)
    )


def decode_settlement_message(message: bytes) -> Tuple[bytes, int, int, int]:
    """
    Split a canonical message back into (player, amount, nonce, expiry).
    Raises ValueError if message is not exactly 56 bytes.
    """
    if len(message) != SETTLEMENT_MESSAGE_LEN:
        raise ValueError(
            f"settlement message must be {SETTLEMENT_MESSAGE_LEN} bytes, "
            f"got {len(message)}"
        )
    player = bytes(message[:IDENTITY_LENGTH])
    amount, nonce, expiry = struct.unpack_from("<QQQ", message, IDENTITY_LENGTH)
    return player, amount, nonce, expiry


def canonicalize(obj: dict) -> bytes:
    """
    Encode a dict to RFC 8785 canonical JSON bytes.

    Output is deterministic regardless of key insertion order.
    All values must be JSON-primitive (str, int, bool, None, list, dict).
    """
    return _jcs.canonicalize(obj)


def canonical_hash(obj: dict) -> str:
    """
    SHA-256 of the RFC 8785 canonical form, lowercase hex (64 chars).

    Used for journal causal_hash chaining.
    """
    return hashlib.sha256(canonicalize(obj)).hexdigest()
