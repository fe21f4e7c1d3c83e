"""
Shared fixtures for the WeaveVault test suite.

Time is pinned with a FixedClock so expiry checks are deterministic.
"""

import pytest

from weavevault.core.artifact import SignatureArtifact
from weavevault.core.crypto import Ed25519KeyManager
from weavevault.core.models import SettlementRequest
from weavevault.ledger.store import LedgerStore
from weavevault.runtime.program import WeaveProgram


NOW  = 1_700_000_000
MINT = "WEAVE"


class FixedClock:
    """Callable clock returning a settable UNIX time."""

    def __init__(self, now: int = NOW) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def admin():
    return Ed25519KeyManager.generate()


@pytest.fixture
def referee():
    return Ed25519KeyManager.generate()


@pytest.fixture
def player():
    """A player identity (raw 32-byte public key)."""
    return Ed25519KeyManager.generate().public_key_bytes


@pytest.fixture
def sign(referee):
    """sign(player, amount, nonce, expiry=NOW+120, key=referee) -> artifact bytes"""
    def _sign(player, amount, nonce, expiry=NOW + 120, key=None):
        request = SettlementRequest(
            player=            player,
            authorized_amount= amount,
            nonce=             nonce,
            expiry=            expiry,
        )
        return SignatureArtifact.sign(key or referee, request.message()).encode()
    return _sign


@pytest.fixture
def make_program(clock, admin, referee):
    """make_program(burn_bps=1000, journal=None) -> initialized WeaveProgram"""
    def _make(burn_bps=1000, journal=None):
        program = WeaveProgram(LedgerStore(journal=journal), clock=clock)
        program.create_mint(MINT)
        program.initialize(
            admin.public_key_bytes, referee.public_key_bytes, MINT, burn_bps
        )
        return program
    return _make


@pytest.fixture
def program(make_program):
    """Initialized in-memory program, burn_bps = 1000 (10%)."""
    return make_program()


@pytest.fixture
def seat_on():
    """
    seat_on(program, player, deposit=0, wallet=0, treasury=0)

    Open the player's accounts, fund their wallet with deposit + wallet,
    deposit `deposit` into the vault, and top the treasury up by `treasury`.
    """
    def _seat(program, player, deposit=0, wallet=0, treasury=0):
        program.open_player(player)
        if deposit + wallet:
            program.fund_wallet(player, deposit + wallet)
        if deposit:
            program.deposit(player, deposit)
        if treasury:
            program.fund_treasury(treasury)
    return _seat


@pytest.fixture
def seat(program, seat_on):
    """seat(player, ...) = seat_on(program, player, ...) on the default program."""
    def _seat(player, **amounts):
        seat_on(program, player, **amounts)
    return _seat
