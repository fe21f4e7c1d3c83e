"""
tests/test_referee.py

RefereeSigner: amount capping, nonce derivation and end-to-end
acceptance of what it signs.
"""

import pytest

from weavevault.core.artifact import parse_artifact
from weavevault.referee.signer import RefereeSigner, SettlementAuthorization


NOW_MS = 1_700_000_000_000


@pytest.fixture
def signer(referee):
    return RefereeSigner(referee, clock_ms=lambda: NOW_MS, random_bits=lambda: 0x1234)


class TestCapping:

    @pytest.mark.parametrize("requested,vault,treasury,expected", [
        (60, 100, 0, 60),        # ordinary loss
        (150, 100, 1000, 150),   # win within both caps
        (5000, 100, 10_000, 2000),  # capped by 20x multiplier
        (500, 100, 50, 150),     # capped by liquidity
        (10, 0, 1000, 0),        # empty vault caps to zero
    ])
    def test_cap(self, signer, requested, vault, treasury, expected):
        assert signer.cap_amount(requested, vault, treasury) == expected

    def test_custom_multiplier(self, referee):
        signer = RefereeSigner(referee, max_payout_multiplier=2)
        assert signer.cap_amount(1000, 100, 1000) == 200

    @pytest.mark.parametrize("kwargs", [{"ttl_seconds": 0}, {"max_payout_multiplier": 0}])
    def test_invalid_construction(self, referee, kwargs):
        with pytest.raises(ValueError):
            RefereeSigner(referee, **kwargs)


class TestNonces:

    def test_nonce_is_time_shifted_plus_random(self, signer):
        assert signer.next_nonce() == (NOW_MS << 16) + 0x1234

    def test_nonces_strictly_increase_within_same_millisecond(self, referee):
        signer = RefereeSigner(referee, clock_ms=lambda: NOW_MS, random_bits=lambda: 0xFFFF)
        first  = signer.next_nonce()
        second = signer.next_nonce()
        assert second == first + 1

    def test_nonce_fits_u64(self, signer):
        assert signer.next_nonce() < 2 ** 64


class TestAuthorize:

    def test_authorization_fields(self, signer, referee, player):
        auth = signer.authorize(player, 150, 100, 1000)
        assert auth.request.player == player
        assert auth.request.authorized_amount == 150
        assert auth.request.expiry == NOW_MS // 1000 + 120
        assert auth.referee_key == referee.public_key_bytes

        parsed = parse_artifact(auth.artifact)
        assert parsed.message == auth.request.message()
        assert parsed.verify()

    def test_dict_round_trip(self, signer, player):
        auth = signer.authorize(player, 10, 10, 0)
        assert SettlementAuthorization.from_dict(auth.to_dict()) == auth

    def test_bad_player_rejected(self, signer):
        with pytest.raises(ValueError):
            signer.authorize(b"\x00" * 31, 1, 1, 1)

    def test_program_accepts_signed_authorization(self, program, seat, referee, player):
        seat(player, deposit=100, treasury=1000)
        signer = RefereeSigner(referee, clock_ms=lambda: 1_700_000_000_000)
        auth   = signer.authorize(
            player, 150, program.vault_balance(player), program.treasury_balance()
        )
        req = auth.request
        program.withdraw_v2(
            player, req.authorized_amount, req.nonce, req.expiry, auth.artifact
        )
        assert program.wallet_balance(player) == 150
        assert program.player_ledger(player).last_nonce == req.nonce
