"""
WeaveVault admin - Config ownership and program settings.
"""

from weavevault.admin.config import ConfigManager
from weavevault.admin.settings import ProgramSettings

__all__ = ["ConfigManager", "ProgramSettings"]
