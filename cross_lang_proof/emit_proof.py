"""
cross_lang_proof/emit_proof.py

WeaveVault Settlement Vector — Python Emitter
=============================================

Emits ONE settlement authorization with a deterministic referee seed,
then dumps every intermediate value to settlement_vector.json.

The vector contains:
    - referee_public_key_hex  (raw Ed25519 public key, 32 bytes)
    - player_hex              (fixed 32-byte player identity)
    - authorized_amount / nonce / expiry
    - message_hex             (canonical 56-byte message)
    - signature_hex           (raw 64-byte Ed25519 signature)
    - artifact_hex            (168-byte self-contained artifact)
    - header                  (decoded artifact header fields)

An external signer (the game server, a Rust or TypeScript port) must
produce byte-identical message_hex and artifact_hex from the same seed
and inputs. Ed25519 is deterministic, so the signature matches too.

Usage:
    cd cross_lang_proof
    python emit_proof.py
"""

import json
from pathlib import Path

from weavevault.core.artifact import SignatureArtifact, parse_header
from weavevault.core.crypto import Ed25519KeyManager
from weavevault.core.models import SettlementRequest


# ── Deterministic inputs ──────────────────────────────────────────────────────
# FIXED seed → deterministic referee key → reproducible vector.
# Not a security key.
REFEREE_SEED = bytes.fromhex(
    "deadbeefdeadbeefdeadbeefdeadbeef"
    "cafebabecafebabecafebabecafebabe"
)
PLAYER = bytes(range(32))

AUTHORIZED_AMOUNT = 60
NONCE             = (1_700_000_000_000 << 16) + 0x1234
EXPIRY            = 1_700_000_120


def build_vector() -> dict:
    key     = Ed25519KeyManager.from_private_bytes(REFEREE_SEED)
    request = SettlementRequest(
        player=            PLAYER,
        authorized_amount= AUTHORIZED_AMOUNT,
        nonce=             NONCE,
        expiry=            EXPIRY,
    )
    artifact = SignatureArtifact.sign(key, request.message())
    encoded  = artifact.encode()
    header   = parse_header(encoded)

    return {
        "_description": (
            "WeaveVault settlement vector. "
            "Any conforming signer must reproduce message_hex and artifact_hex."
        ),
        "referee_public_key_hex": key.public_key_hex,
        "player_hex":             PLAYER.hex(),
        "authorized_amount":      AUTHORIZED_AMOUNT,
        "nonce":                  NONCE,
        "expiry":                 EXPIRY,
        "message_hex":            request.message().hex(),
        "signature_hex":          artifact.signature.hex(),
        "artifact_hex":           encoded.hex(),
        "header": {
            "signature_count":   header.signature_count,
            "signature_offset":  header.signature_offset,
            "public_key_offset": header.public_key_offset,
            "message_offset":    header.message_offset,
            "message_length":    header.message_length,
            "self_contained":    header.self_contained,
        },
        "expected_results": {
            "signature_valid": artifact.verify(),
        },
    }


def main():
    out_path = Path(__file__).parent / "settlement_vector.json"
    vector   = build_vector()

    out_path.write_text(json.dumps(vector, indent=2), encoding="utf-8")
    print(f"Referee key (hex) : {vector['referee_public_key_hex']}")
    print(f"Vector written to : {out_path}")
    print()
    print(f"  message_hex   : {vector['message_hex']}")
    print(f"  artifact_hex  : {vector['artifact_hex'][:64]}...")
    print(f"  signature_ok  : {vector['expected_results']['signature_valid']}")


if __name__ == "__main__":
    main()
