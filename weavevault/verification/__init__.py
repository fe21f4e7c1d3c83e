"""
WeaveVault verification - referee authorization checks.
"""

from weavevault.verification.verifier import AuthorizationVerifier

__all__ = ["AuthorizationVerifier"]
