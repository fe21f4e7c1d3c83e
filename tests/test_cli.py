"""
tests/test_cli.py

Click CLI: keygen, authorize, inspect, journal verify.
Exit code contract: 0 ok, 1 invalid, 2 error.
"""

import json

import pytest
from click.testing import CliRunner

from weavevault.cli import cli
from weavevault.core.crypto import Ed25519KeyManager
from weavevault.ledger.journal import SettlementJournal


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def referee_pem(tmp_path, referee):
    path = tmp_path / "referee.pem"
    referee.save(path)
    return path


def _authorize(runner, referee_pem, player, *extra):
    return runner.invoke(cli, [
        "authorize",
        "--key", str(referee_pem),
        "--player", player.hex(),
        "--requested", "150",
        "--vault", "100",
        "--treasury", "1000",
        *extra,
    ])


class TestKeygen:

    def test_writes_loadable_key(self, runner, tmp_path):
        path   = tmp_path / "k.pem"
        result = runner.invoke(cli, ["keygen", str(path)])
        assert result.exit_code == 0, result.output
        key = Ed25519KeyManager.from_file(path)
        assert result.output.strip() == key.public_key_hex

    def test_refuses_overwrite(self, runner, tmp_path):
        path = tmp_path / "k.pem"
        runner.invoke(cli, ["keygen", str(path)])
        result = runner.invoke(cli, ["keygen", str(path)])
        assert result.exit_code == 2
        assert runner.invoke(cli, ["keygen", str(path), "--force"]).exit_code == 0


class TestAuthorize:

    def test_emits_signed_json(self, runner, referee_pem, referee, player):
        result = _authorize(runner, referee_pem, player)
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["player"] == player.hex()
        assert data["authorized_amount"] == 150
        assert data["referee_key"] == referee.public_key_hex
        assert len(bytes.fromhex(data["artifact"])) == 168

    def test_missing_key_file(self, runner, tmp_path, player):
        result = _authorize(runner, tmp_path / "absent.pem", player)
        assert result.exit_code == 2

    def test_bad_player_hex(self, runner, referee_pem):
        result = runner.invoke(cli, [
            "authorize", "--key", str(referee_pem), "--player", "zz",
            "--requested", "1", "--vault", "1", "--treasury", "1",
        ])
        assert result.exit_code == 1

    def test_key_from_settings(self, runner, tmp_path, referee_pem, player):
        settings = tmp_path / "settings.yaml"
        settings.write_text(
            f"state_dir: {tmp_path}\nreferee_key_file: referee.pem\n"
            "max_payout_multiplier: 1\n"
        )
        result = runner.invoke(cli, [
            "authorize", "--settings", str(settings), "--player", player.hex(),
            "--requested", "150", "--vault", "100", "--treasury", "1000",
        ])
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["authorized_amount"] == 100


class TestInspect:

    def test_valid_artifact(self, runner, referee_pem, referee, player):
        artifact = json.loads(_authorize(runner, referee_pem, player).output)["artifact"]
        result = runner.invoke(
            cli, ["inspect", artifact, "--referee", referee.public_key_hex, "--format", "json"]
        )
        assert result.exit_code == 0, result.output
        report = json.loads(result.output)
        assert report["valid"] is True
        assert report["player"] == player.hex()
        assert report["authorized_amount"] == 150

    def test_wrong_referee(self, runner, referee_pem, player):
        artifact = json.loads(_authorize(runner, referee_pem, player).output)["artifact"]
        other    = Ed25519KeyManager.generate().public_key_hex
        result   = runner.invoke(cli, ["inspect", artifact, "--referee", other])
        assert result.exit_code == 1

    def test_truncated_artifact(self, runner):
        result = runner.invoke(cli, ["inspect", "01" * 16])
        assert result.exit_code == 1

    def test_not_hex(self, runner):
        assert runner.invoke(cli, ["inspect", "xyz"]).exit_code == 2


class TestJournalVerify:

    def test_valid_journal(self, runner, tmp_path):
        path = tmp_path / "journal.jsonl"
        journal = SettlementJournal(path, key_manager=Ed25519KeyManager.generate())
        journal.append("a", [])
        journal.append("b", [])
        result = runner.invoke(
            cli, ["journal", "verify", str(path), "--require-signatures", "--format", "json"]
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["valid"] is True
        assert data["total_entries"] == 2

    def test_broken_chain(self, runner, tmp_path):
        path = tmp_path / "journal.jsonl"
        journal = SettlementJournal(path)
        journal.append("a", [])
        journal.append("b", [])
        lines = path.read_text().splitlines()
        entry = json.loads(lines[0])
        entry["op"] = "tampered"
        path.write_text(json.dumps(entry) + "\n" + lines[1] + "\n")

        result = runner.invoke(cli, ["journal", "verify", str(path)])
        assert result.exit_code == 1
        assert "INVALID" in result.output

    def test_signer_pins_operator_key(self, runner, tmp_path):
        path     = tmp_path / "journal.jsonl"
        operator = Ed25519KeyManager.generate()
        SettlementJournal(path, key_manager=operator).append("a", [])

        ok = runner.invoke(
            cli, ["journal", "verify", str(path), "--signer", operator.public_key_hex]
        )
        assert ok.exit_code == 0, ok.output

        other = Ed25519KeyManager.generate().public_key_hex
        bad   = runner.invoke(cli, ["journal", "verify", str(path), "--signer", other])
        assert bad.exit_code == 1
        assert "unexpected signer" in bad.output

    def test_missing_journal(self, runner, tmp_path):
        result = runner.invoke(cli, ["journal", "verify", str(tmp_path / "none.jsonl"), "--quiet"])
        assert result.exit_code == 2
        assert result.output == ""
