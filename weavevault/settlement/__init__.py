"""
WeaveVault Settlement Engine

The engine adjudicates a pre-computed, referee-signed outcome:
- AuthorizationVerifier decides whether funds may move
- plan_settlement() decides how much goes where
- SettlementEngine moves it, atomically, under the player's lock

Design Philosophy:
- Real vault holdings are the only input to the split
- Integer floor division only, no rounding choices
- No retries: a rejected request must be re-issued by the referee
"""

from weavevault.settlement.engine import (
    SettlementEngine,
    compute_burn,
    plan_settlement,
)
from weavevault.settlement.treasury import TreasuryManager

__all__ = [
    "SettlementEngine",
    "TreasuryManager",
    "compute_burn",
    "plan_settlement",
]
