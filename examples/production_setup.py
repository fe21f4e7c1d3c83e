"""
WeaveVault: Production Setup Example

Demonstrates:
- Key generation for admin, referee and journal operator
- settings.yaml driven start-up with open_program()
- Signed journal, replayed on every restart
"""

from pathlib import Path

import yaml

from weavevault import Ed25519KeyManager, ProgramSettings, open_program


def setup_production(state_dir: Path = Path(".weavevault")):
    """Create keys and settings, then start (or resume) the program."""

    print("=" * 60)
    print("WeaveVault: Production Setup")
    print("=" * 60)
    print()

    state_dir.mkdir(exist_ok=True)
    keys = {}
    for name in ("admin", "referee", "operator"):
        path = state_dir / f"{name}.pem"
        if not path.exists():
            Ed25519KeyManager.generate().save(path)
        keys[name] = Ed25519KeyManager.from_file(path)
        print(f"  {name:<9} {keys[name].public_key_hex[:16]}...  ({path})")
    print()

    settings_path = state_dir / "settings.yaml"
    if not settings_path.exists():
        settings_path.write_text(yaml.safe_dump({
            "state_dir":              str(state_dir),
            "operator_key_file":      "operator.pem",
            "referee_key_file":       "referee.pem",
            "settlement_ttl_seconds": 120,
            "max_payout_multiplier":  20,
        }))
    settings = ProgramSettings.from_yaml(settings_path)

    program = open_program(settings)
    if program.store.config is None:
        program.create_mint("WEAVE")
        program.initialize(
            keys["admin"].public_key_bytes,
            keys["referee"].public_key_bytes,
            "WEAVE",
            500,
        )
        print("Initialized new program (burn 5%)")
    else:
        print(f"Resumed program, {len(program.store.players())} known players")

    result = program.store.journal.verify(require_signatures=True)
    print(f"Journal: {result.total_entries} entries, signed={result.signed}, valid={result.valid}")
    return program


if __name__ == "__main__":
    setup_production()
