"""
WeaveVault: Basic Usage Example

Demonstrates:
- Program setup (mint, initialize, treasury liquidity)
- Player deposit
- Referee-signed settlement for a losing and a winning session
- Journal verification
"""

import tempfile
from pathlib import Path

from weavevault import (
    Ed25519KeyManager,
    LedgerStore,
    RefereeSigner,
    SettlementJournal,
    WeaveProgram,
)


def settle(program, signer, player, requested):
    auth = signer.authorize(
        player,
        requested,
        program.vault_balance(player),
        program.treasury_balance(),
    )
    req = auth.request
    return program.withdraw_v2(
        player, req.authorized_amount, req.nonce, req.expiry, auth.artifact
    )


def main():
    """Basic WeaveVault usage."""

    print("=" * 60)
    print("WeaveVault: Basic Usage Example")
    print("=" * 60)
    print()

    journal_path = Path(tempfile.mkdtemp()) / "journal.jsonl"

    # 1. Program
    admin   = Ed25519KeyManager.generate()
    referee = Ed25519KeyManager.generate()
    program = WeaveProgram(LedgerStore(journal=SettlementJournal(journal_path)))
    program.create_mint("WEAVE")
    program.initialize(admin.public_key_bytes, referee.public_key_bytes, "WEAVE", 1000)
    program.fund_treasury(1_000)
    print(f"Program initialized, burn 10%, treasury {program.treasury_balance()}")

    # 2. Players deposit
    alice = Ed25519KeyManager.generate().public_key_bytes
    bob   = Ed25519KeyManager.generate().public_key_bytes
    for player in (alice, bob):
        program.open_player(player)
        program.fund_wallet(player, 100)
        program.deposit(player, 100)
    print("Alice and Bob each deposited 100")
    print()

    # 3. Settle
    signer = RefereeSigner(referee)

    outcome = settle(program, signer, alice, 60)
    print(f"Alice lost 40: receives {outcome.plan.player_receives}, "
          f"burned {outcome.plan.burn}, treasury {program.treasury_balance()}")

    outcome = settle(program, signer, bob, 250)
    print(f"Bob won: receives {outcome.plan.player_receives} "
          f"({outcome.plan.pay_from_treasury} from treasury), "
          f"treasury {program.treasury_balance()}")
    print()

    # 4. Journal
    result = program.store.journal.verify()
    print(f"Journal: {result.total_entries} entries, valid={result.valid}")
    print(f"  {journal_path}")


if __name__ == "__main__":
    main()
