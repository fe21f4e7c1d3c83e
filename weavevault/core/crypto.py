"""
weavevault/core/crypto.py

Ed25519 key handling for referees and journal operators.

Key contracts:
    public_key_bytes        : @property → raw 32-byte public key
    public_key_hex          : @property → 64-char lowercase hex  (NO parentheses)
    sign(data)              : bytes → raw 64-byte signature (artifact form)
    sign_b64(data)          : bytes → base64url str, no padding (journal form)
    verify_detached(...)    : @staticmethod — raw signature, raw public key
    verify_b64(...)         : @staticmethod — base64url signature, hex public key

Both verify functions return False for ANY failure and never raise.
"""

import base64
from pathlib import Path

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
    load_pem_private_key,
)


PUBLIC_KEY_LENGTH = 32
SIGNATURE_LENGTH  = 64


class Ed25519KeyManager:
    """
    Ed25519 key manager.

    Public surface:
        Ed25519KeyManager.generate()                        → new random key
        Ed25519KeyManager.from_file(path)                   → load PEM private key
        Ed25519KeyManager.from_private_bytes(seed)          → load from raw 32-byte seed
        Ed25519KeyManager.verify_detached(data, sig, pk)    → @staticmethod, raw bytes
        Ed25519KeyManager.verify_b64(data, sig_b64, pk_hex) → @staticmethod, text forms

        key.public_key_bytes / key.public_key_hex   (@property)
        key.sign(data) / key.sign_b64(data)
        key.save(path)
        key.private_bytes_raw()
    """

    def __init__(self, private_key: Ed25519PrivateKey) -> None:
        self._private_key: Ed25519PrivateKey = private_key
        self._public_key:  Ed25519PublicKey  = private_key.public_key()
        # cached, never recomputed
        self._public_key_bytes: bytes = self._public_key.public_bytes(
            Encoding.Raw, PublicFormat.Raw
        )

    # ── Construction ──────────────────────────────────────────

    @classmethod
    def generate(cls) -> "Ed25519KeyManager":
        """Generate a new random Ed25519 key pair."""
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_file(cls, path: Path) -> "Ed25519KeyManager":
        """
        Load an Ed25519 private key from a PEM file.
        Raises FileNotFoundError if path does not exist.
        Raises ValueError if the file is not a valid Ed25519 PEM key.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Key file not found: {path}")
        pem_bytes = path.read_bytes()
        try:
            private_key = load_pem_private_key(pem_bytes, password=None)
        except (ValueError, TypeError) as exc:
            raise ValueError(
                f"Failed to load Ed25519 key from {path}: {exc}"
            ) from exc
        if not isinstance(private_key, Ed25519PrivateKey):
            raise ValueError(
                f"Key file {path} does not contain an Ed25519 private key"
            )
        return cls(private_key)

    @classmethod
    def from_private_bytes(cls, seed: bytes) -> "Ed25519KeyManager":
        """
        Load an Ed25519 key from a raw 32-byte seed.
        Raises ValueError if seed is not exactly 32 bytes.
        """
        if len(seed) != 32:
            raise ValueError(
                f"Ed25519 seed must be 32 bytes, got {len(seed)}"
            )
        return cls(Ed25519PrivateKey.from_private_bytes(seed))

    # ── Public Key ────────────────────────────────────────────

    @property
    def public_key_bytes(self) -> bytes:
        """Raw 32-byte Ed25519 public key. This is also the signer identity."""
        return self._public_key_bytes

    @property
    def public_key_hex(self) -> str:
        """64-character lowercase hex of public_key_bytes."""
        return self._public_key_bytes.hex()

    # ── Signing ───────────────────────────────────────────────

    def sign(self, data: bytes) -> bytes:
        """Sign data with Ed25519. Returns the raw 64-byte signature."""
        return self._private_key.sign(data)

    def sign_b64(self, data: bytes) -> str:
        """Sign data. Returns base64url string, no '=' padding (86 chars)."""
        return base64.urlsafe_b64encode(self.sign(data)).rstrip(b"=").decode("ascii")

    # ── Verification ──────────────────────────────────────────

    @staticmethod
    def verify_detached(
        data:       bytes,
        signature:  bytes,
        public_key: bytes,
    ) -> bool:
        """
        Verify a raw Ed25519 signature with a raw public key.

        Returns True only if the signature is valid over data.
        False for wrong key, wrong length or forged signature. Never raises.
        """
        if len(public_key) != PUBLIC_KEY_LENGTH or len(signature) != SIGNATURE_LENGTH:
            return False
        try:
            pub = Ed25519PublicKey.from_public_bytes(bytes(public_key))
            pub.verify(bytes(signature), bytes(data))
            return True
        except (InvalidSignature, ValueError):
            return False

    @staticmethod
    def verify_b64(
        data:           bytes,
        signature_b64:  str,
        public_key_hex: str,
    ) -> bool:
        """
        Verify a base64url signature (padding optional) against a hex key.
        Never raises.
        """
        try:
            if not isinstance(public_key_hex, str) or len(public_key_hex) != 64:
                return False
            raw_pub = bytes.fromhex(public_key_hex)

            # Re-add base64url padding if stripped
            padding    = 4 - len(signature_b64) % 4
            padded_sig = signature_b64 + "=" * (padding % 4)
            raw_sig    = base64.urlsafe_b64decode(padded_sig)
        except (TypeError, ValueError):
            return False
        return Ed25519KeyManager.verify_detached(data, raw_sig, raw_pub)

    # ── Persistence ───────────────────────────────────────────

    def save(self, path: Path) -> None:
        """
        Write the private key to disk as a PEM file.
        Creates parent directories if needed.
        Raises RuntimeError on write failure.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            pem = self._private_key.private_bytes(
                encoding=             Encoding.PEM,
                format=               PrivateFormat.PKCS8,
                encryption_algorithm= NoEncryption(),
            )
            path.write_bytes(pem)
        except OSError as exc:
            raise RuntimeError(
                f"Failed to save Ed25519 key to {path}: {exc}"
            ) from exc

    def private_bytes_raw(self) -> bytes:
        """
        Return the raw 32-byte private key seed.
        Use only for secure backup — never log or transmit.
        """
        return self._private_key.private_bytes(
            encoding=             Encoding.Raw,
            format=               PrivateFormat.Raw,
            encryption_algorithm= NoEncryption(),
        )

    def __repr__(self) -> str:
        return (
            f"Ed25519KeyManager(public_key_hex={self.public_key_hex[:16]}...)"
        )
