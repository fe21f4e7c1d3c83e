"""
tests/test_admin.py

initialize / set_referee_key / set_burn_bps.
"""

import pytest

from weavevault.core.crypto import Ed25519KeyManager
from weavevault.core.exceptions import (
    AlreadyInitialized,
    InvalidBurnBps,
    InvalidEd25519Instruction,
    InvalidMint,
    NotInitialized,
    Unauthorized,
)
from weavevault.ledger.store import LedgerStore
from weavevault.runtime.program import WeaveProgram


@pytest.fixture
def bare(clock):
    program = WeaveProgram(LedgerStore(), clock=clock)
    program.create_mint("WEAVE")
    return program


class TestInitialize:

    def test_caller_becomes_admin(self, bare, admin, referee):
        config = bare.initialize(
            admin.public_key_bytes, referee.public_key_bytes, "WEAVE", 250
        )
        assert config.admin == admin.public_key_bytes
        assert config.referee_key == referee.public_key_bytes
        assert config.burn_bps == 250
        assert config.treasury_account == "treasury"
        assert bare.treasury_balance() == 0

    def test_second_initialize_rejected(self, program, admin, referee):
        with pytest.raises(AlreadyInitialized):
            program.initialize(
                admin.public_key_bytes, referee.public_key_bytes, "WEAVE", 0
            )

    def test_unknown_mint(self, bare, admin, referee):
        with pytest.raises(InvalidMint):
            bare.initialize(admin.public_key_bytes, referee.public_key_bytes, "NOPE", 0)
        assert bare.store.config is None

    @pytest.mark.parametrize("bps", [-1, 10_001])
    def test_bad_bps(self, bare, admin, referee, bps):
        with pytest.raises(InvalidBurnBps):
            bare.initialize(admin.public_key_bytes, referee.public_key_bytes, "WEAVE", bps)
        assert bare.store.config is None

    def test_short_referee_key(self, bare, admin):
        with pytest.raises(ValueError):
            bare.initialize(admin.public_key_bytes, b"\x01" * 31, "WEAVE", 0)

    def test_operations_require_initialization(self, bare, player):
        with pytest.raises(NotInitialized):
            bare.withdraw_v2(player, 1, 1, 1, b"")


class TestConfigUpdates:

    def test_rotate_referee_key(self, program, admin):
        new_key = Ed25519KeyManager.generate().public_key_bytes
        config  = program.set_referee_key(admin.public_key_bytes, new_key)
        assert config.referee_key == new_key
        assert program.store.config.referee_key == new_key

    def test_rotate_referee_key_non_admin(self, program, referee):
        before = program.store.config
        with pytest.raises(Unauthorized):
            program.set_referee_key(
                referee.public_key_bytes, Ed25519KeyManager.generate().public_key_bytes
            )
        assert program.store.config == before

    @pytest.mark.parametrize("bps", [0, 1, 9999, 10_000])
    def test_set_burn_bps(self, program, admin, bps):
        assert program.set_burn_bps(admin.public_key_bytes, bps).burn_bps == bps

    @pytest.mark.parametrize("bps", [10_001, -5])
    def test_set_burn_bps_out_of_range_leaves_state(self, program, admin, bps):
        before = program.store.config
        with pytest.raises(InvalidBurnBps):
            program.set_burn_bps(admin.public_key_bytes, bps)
        assert program.store.config == before

    def test_set_burn_bps_non_admin(self, program, player):
        with pytest.raises(Unauthorized):
            program.set_burn_bps(player, 0)
        assert program.store.config.burn_bps == 1000

    def test_rotated_key_governs_settlement(self, program, seat, sign, admin, player):
        new_referee = Ed25519KeyManager.generate()
        program.set_referee_key(admin.public_key_bytes, new_referee.public_key_bytes)
        seat(player, deposit=10)

        with pytest.raises(InvalidEd25519Instruction):
            program.withdraw_v2(player, 10, 1, 1_700_000_120, sign(player, 10, 1))
        program.withdraw_v2(
            player, 10, 1, 1_700_000_120, sign(player, 10, 1, key=new_referee)
        )
        assert program.wallet_balance(player) == 10
