"""
tests/test_verifier.py

AuthorizationVerifier in isolation: check order and every rejection.
"""

import pytest

from weavevault.core.artifact import SignatureArtifact
from weavevault.core.crypto import Ed25519KeyManager
from weavevault.core.exceptions import (
    InvalidEd25519Instruction,
    MissingEd25519Instruction,
    NonceAlreadyUsed,
    SettlementExpired,
)
from weavevault.core.models import SettlementRequest
from weavevault.verification.verifier import AuthorizationVerifier


NOW = 1_700_000_000


@pytest.fixture
def verifier():
    return AuthorizationVerifier()


@pytest.fixture
def request_(player):
    return SettlementRequest(player, 60, 5, NOW + 120)


@pytest.fixture
def artifact(referee, request_):
    return SignatureArtifact.sign(referee, request_.message()).encode()


def _verify(verifier, request, artifact, referee, now=NOW, last_nonce=0, accept=None):
    return verifier.verify(
        request, artifact,
        now=          now,
        referee_key=  referee.public_key_bytes,
        last_nonce=   last_nonce,
        accept_nonce= accept,
    )


class TestAcceptance:

    def test_valid_authorization_passes(self, verifier, request_, artifact, referee):
        parsed = _verify(verifier, request_, artifact, referee)
        assert parsed.public_key == referee.public_key_bytes
        assert parsed.message == request_.message()

    def test_expiry_equal_to_now_is_accepted(self, verifier, player, referee):
        request  = SettlementRequest(player, 1, 1, NOW)
        artifact = SignatureArtifact.sign(referee, request.message()).encode()
        _verify(verifier, request, artifact, referee, now=NOW)

    def test_accept_nonce_called_with_request_nonce(
        self, verifier, request_, artifact, referee
    ):
        seen = []
        _verify(verifier, request_, artifact, referee, accept=seen.append)
        assert seen == [5]


class TestRejections:

    def test_expired(self, verifier, request_, artifact, referee):
        with pytest.raises(SettlementExpired):
            _verify(verifier, request_, artifact, referee, now=NOW + 121)

    @pytest.mark.parametrize("last_nonce", [5, 6])
    def test_replayed_or_stale_nonce(self, verifier, request_, artifact, referee, last_nonce):
        with pytest.raises(NonceAlreadyUsed):
            _verify(verifier, request_, artifact, referee, last_nonce=last_nonce)

    def test_missing_artifact(self, verifier, request_, referee):
        with pytest.raises(MissingEd25519Instruction):
            _verify(verifier, request_, None, referee)

    def test_wrong_signer(self, verifier, request_, referee):
        impostor = Ed25519KeyManager.generate()
        artifact = SignatureArtifact.sign(impostor, request_.message()).encode()
        with pytest.raises(InvalidEd25519Instruction):
            _verify(verifier, request_, artifact, referee)

    def test_message_for_different_amount(self, verifier, request_, referee):
        other    = SettlementRequest(request_.player, 61, 5, NOW + 120)
        artifact = SignatureArtifact.sign(referee, other.message()).encode()
        with pytest.raises(InvalidEd25519Instruction):
            _verify(verifier, request_, artifact, referee)

    def test_forged_signature(self, verifier, request_, artifact, referee):
        tampered = bytearray(artifact)
        tampered[60] ^= 0xFF
        with pytest.raises(InvalidEd25519Instruction):
            _verify(verifier, request_, bytes(tampered), referee)


class TestCheckOrder:

    def test_expiry_checked_before_nonce(self, verifier, request_, artifact, referee):
        with pytest.raises(SettlementExpired):
            _verify(verifier, request_, artifact, referee, now=NOW + 500, last_nonce=99)

    def test_nonce_checked_before_artifact(self, verifier, request_, referee):
        with pytest.raises(NonceAlreadyUsed):
            _verify(verifier, request_, None, referee, last_nonce=99)

    def test_nonce_accepted_before_signature_fails(self, verifier, request_, referee):
        seen = []
        with pytest.raises(MissingEd25519Instruction):
            _verify(verifier, request_, None, referee, accept=seen.append)
        assert seen == [5]
