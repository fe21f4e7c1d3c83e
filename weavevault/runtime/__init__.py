"""
WeaveVault runtime - the program surface over a LedgerStore.
"""

from weavevault.runtime.program import WeaveProgram, open_program

__all__ = ["WeaveProgram", "open_program"]
