"""
WeaveVault referee - issues signed settlement authorizations.
"""

from weavevault.referee.signer import RefereeSigner, SettlementAuthorization

__all__ = ["RefereeSigner", "SettlementAuthorization"]
