"""
WeaveVault Exception Hierarchy

All exceptions inherit from WeaveError for easy catching.
Every error kind carries a stable ``code`` so callers and the CLI can
report the exact rejection without string matching.
"""


class WeaveError(Exception):
    """Base exception for all WeaveVault errors"""

    code = "WeaveError"

    def __init__(self, message: str = None, details: dict = None):
        message = message or self.code
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


# ── Authority ─────────────────────────────────────────────────

class Unauthorized(WeaveError):
    """Raised when the caller lacks admin or ownership authority"""
    code = "Unauthorized"


class DeprecatedInstruction(WeaveError):
    """Raised whenever the legacy withdrawal path is invoked"""
    code = "DeprecatedInstruction"


# ── Settlement authorization ──────────────────────────────────

class AuthorizationError(WeaveError):
    """Raised when a settlement authorization is rejected"""
    code = "AuthorizationError"


class MissingEd25519Instruction(AuthorizationError):
    """Raised when no signature artifact accompanies a settlement"""
    code = "MissingEd25519Instruction"


class InvalidEd25519Instruction(AuthorizationError):
    """Raised when the signature artifact is malformed, foreign or forged"""
    code = "InvalidEd25519Instruction"


class SettlementExpired(AuthorizationError):
    """Raised when the authorization expiry is in the past"""
    code = "SettlementExpired"


class NonceAlreadyUsed(AuthorizationError):
    """Raised when the nonce is not above the player's last nonce (replay)"""
    code = "NonceAlreadyUsed"


# ── Configuration ─────────────────────────────────────────────

class InvalidBurnBps(WeaveError):
    """Raised when burn basis points fall outside [0, 10000]"""
    code = "InvalidBurnBps"


class InvalidTreasuryAccount(WeaveError):
    """Raised when a supplied treasury account does not match configuration"""
    code = "InvalidTreasuryAccount"


class InvalidMint(WeaveError):
    """Raised when a supplied asset identity does not match configuration"""
    code = "InvalidMint"


class AlreadyInitialized(WeaveError):
    """Raised when initialize() is called a second time"""
    code = "AlreadyInitialized"


class NotInitialized(WeaveError):
    """Raised when an operation needs Config before initialize() ran"""
    code = "NotInitialized"


class ConfigurationError(WeaveError):
    """Raised when a settings file is missing, malformed or inconsistent"""
    code = "ConfigurationError"


# ── Funds ─────────────────────────────────────────────────────

class InsufficientFunds(WeaveError):
    """Raised when a token account cannot cover a transfer or burn"""
    code = "InsufficientFunds"


class ArithmeticOverflow(WeaveError):
    """Raised when a balance would leave the unsigned 64-bit range"""
    code = "ArithmeticOverflow"


class AccountNotFound(WeaveError):
    """Raised when a token account address is unknown"""
    code = "AccountNotFound"


# ── Storage ───────────────────────────────────────────────────

class LedgerError(WeaveError):
    """Raised when journal or store integrity checks fail"""
    code = "LedgerError"
