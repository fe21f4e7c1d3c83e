"""
tests/test_concurrency.py

Concurrency safety of the program and its journal.
Many threads depositing and settling at once must not lose updates,
double-spend a nonce, corrupt the journal or break the supply identity.

Run:
    pytest tests/test_concurrency.py -v --tb=short
"""

import dataclasses
import threading

import pytest

from weavevault.core.crypto import Ed25519KeyManager
from weavevault.core.exceptions import NonceAlreadyUsed
from weavevault.ledger.journal import SettlementJournal
from weavevault.ledger.store import LedgerStore
from weavevault.runtime.program import WeaveProgram


NOW = 1_700_000_000


def _total_balances(program):
    return sum(a.amount for a in program.store.bank.accounts.values())


def _run(targets):
    errors = []

    def wrap(fn):
        def runner():
            try:
                fn()
            except Exception as e:
                errors.append(e)
        return runner

    threads = [threading.Thread(target=wrap(t)) for t in targets]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return errors


class TestConcurrency:

    def test_concurrent_deposits_same_player(self, program, seat, player):
        seat(player, wallet=1000)

        def deposit_10():
            for _ in range(10):
                program.deposit(player, 5)

        errors = _run([deposit_10] * 4)
        assert errors == [], f"Concurrent deposits raised: {errors}"
        assert program.vault_balance(player) == 200
        assert program.player_ledger(player).session_balance == 200
        assert program.wallet_balance(player) == 800

    def test_concurrent_settlements_disjoint_players(
        self, tmp_path, clock, admin, referee, sign
    ):
        journal = SettlementJournal(tmp_path / "journal.jsonl")
        program = WeaveProgram(LedgerStore(journal=journal), clock=clock)
        program.create_mint("WEAVE")
        program.initialize(
            admin.public_key_bytes, referee.public_key_bytes, "WEAVE", 2500
        )
        program.fund_treasury(10_000)

        players = [Ed25519KeyManager.generate().public_key_bytes for _ in range(8)]
        for i, p in enumerate(players):
            program.open_player(p)
            program.fund_wallet(p, 100)
            program.deposit(p, 100)

        # half the players lose, half win more than they deposited
        def settle(p, amount):
            return lambda: program.withdraw_v2(p, amount, 1, NOW + 120, sign(p, amount, 1))

        amounts = [40 if i % 2 else 180 for i in range(len(players))]
        errors  = _run([settle(p, a) for p, a in zip(players, amounts)])

        assert errors == [], f"Concurrent settlements raised: {errors}"
        for p, amount in zip(players, amounts):
            assert program.vault_balance(p) == 0
            assert program.wallet_balance(p) == amount
        assert _total_balances(program) == program.supply()
        assert journal.verify().valid

    def test_same_nonce_settles_once(self, program, seat, sign, player):
        seat(player, deposit=100)
        artifact = sign(player, 50, 1)

        results = []
        lock    = threading.Lock()

        def attempt():
            try:
                program.withdraw_v2(player, 50, 1, NOW + 120, artifact)
                outcome = "ok"
            except NonceAlreadyUsed:
                outcome = "replay"
            with lock:
                results.append(outcome)

        errors = _run([attempt] * 6)
        assert errors == []
        assert results.count("ok") == 1
        assert results.count("replay") == 5
        assert program.wallet_balance(player) == 50

    @pytest.mark.parametrize("rounds", [5])
    def test_supply_identity_under_mixed_load(self, program, seat, sign, rounds):
        players = [Ed25519KeyManager.generate().public_key_bytes for _ in range(4)]
        for p in players:
            seat(p, wallet=rounds * 20, treasury=200)

        def play(p):
            def run():
                for nonce in range(1, rounds + 1):
                    program.deposit(p, 20)
                    program.withdraw_v2(p, 15, nonce, NOW + 120, sign(p, 15, nonce))
            return run

        errors = _run([play(p) for p in players])
        assert errors == [], f"Mixed load raised: {errors}"
        assert _total_balances(program) == program.supply()
        for p in players:
            assert program.player_ledger(p).last_nonce == rounds
            assert program.vault_balance(p) == 0

    def test_settlement_waits_for_in_flight_admin_unit(self, program, seat, sign, player):
        seat(player, deposit=10)
        config = program.store.config
        rogue  = Ed25519KeyManager.generate()
        result = {}

        # An admin unit that swaps the referee and is later abandoned.
        unit = program.store.transaction("set_referee_key", config=True)
        uow  = unit.__enter__()
        uow.set_config(dataclasses.replace(config, referee_key=rogue.public_key_bytes))

        def settle():
            try:
                result["outcome"] = program.withdraw_v2(
                    player, 10, 1, NOW + 120, sign(player, 10, 1)
                )
            except Exception as e:
                result["error"] = e

        thread = threading.Thread(target=settle, daemon=True)
        thread.start()
        thread.join(timeout=0.2)
        blocked = thread.is_alive()

        aborted = RuntimeError("admin unit abandoned")
        assert unit.__exit__(RuntimeError, aborted, None) is False
        thread.join(timeout=5)

        assert blocked
        assert "error" not in result, result.get("error")
        assert program.store.config == config
        assert program.wallet_balance(player) == 10
