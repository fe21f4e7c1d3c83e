"""
tests/test_settings.py

ProgramSettings YAML loading and open_program().
"""

import pytest

from weavevault.admin.settings import ProgramSettings
from weavevault.core.crypto import Ed25519KeyManager
from weavevault.core.exceptions import ConfigurationError, LedgerError
from weavevault.runtime.program import open_program


class TestProgramSettings:

    def test_defaults(self):
        settings = ProgramSettings()
        assert settings.settlement_ttl_seconds == 120
        assert settings.max_payout_multiplier == 20
        assert settings.operator_key_path is None
        assert str(settings.journal_path).endswith("journal.jsonl")

    def test_from_yaml(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text(
            f"state_dir: {tmp_path / 'state'}\n"
            "referee_key_file: referee.pem\n"
            "settlement_ttl_seconds: 60\n"
        )
        settings = ProgramSettings.from_yaml(path)
        assert settings.settlement_ttl_seconds == 60
        assert settings.referee_key_path == tmp_path / "state" / "referee.pem"

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("")
        assert ProgramSettings.from_yaml(path) == ProgramSettings()

    def test_absolute_paths_kept(self, tmp_path):
        key = tmp_path / "op.pem"
        settings = ProgramSettings(state_dir="state", operator_key_file=str(key))
        assert settings.operator_key_path == key

    @pytest.mark.parametrize("content", [
        "unknown_key: 1\n",
        "settlement_ttl_seconds: -1\n",
        "max_payout_multiplier: many\n",
        "state_dir: ''\n",
        "- a list\n",
        "state_dir: [unclosed\n",
    ])
    def test_invalid_files(self, tmp_path, content):
        path = tmp_path / "settings.yaml"
        path.write_text(content)
        with pytest.raises(ConfigurationError):
            ProgramSettings.from_yaml(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            ProgramSettings.from_yaml(tmp_path / "nope.yaml")


class TestOpenProgram:

    def test_reopen_replays_journal(self, tmp_path, clock, admin, referee, player):
        operator = Ed25519KeyManager.generate()
        operator.save(tmp_path / "state" / "operator.pem")
        settings = ProgramSettings(
            state_dir=         str(tmp_path / "state"),
            operator_key_file= "operator.pem",
        )

        program = open_program(settings, clock=clock)
        program.create_mint("WEAVE")
        program.initialize(admin.public_key_bytes, referee.public_key_bytes, "WEAVE", 0)
        program.open_player(player)
        program.fund_wallet(player, 42)

        reopened = open_program(settings, clock=clock)
        assert reopened.wallet_balance(player) == 42
        assert reopened.store.config.admin == admin.public_key_bytes
        assert reopened.store.journal.verify(require_signatures=True).valid

    def test_unsigned_journal_refused_with_operator_key(
        self, tmp_path, clock, admin, referee
    ):
        state = tmp_path / "state"
        unsigned = open_program(ProgramSettings(state_dir=str(state)), clock=clock)
        unsigned.create_mint("WEAVE")
        unsigned.initialize(admin.public_key_bytes, referee.public_key_bytes, "WEAVE", 0)

        Ed25519KeyManager.generate().save(state / "operator.pem")
        settings = ProgramSettings(state_dir=str(state), operator_key_file="operator.pem")
        with pytest.raises(LedgerError):
            open_program(settings, clock=clock)
