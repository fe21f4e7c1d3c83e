"""
Program settings loaded from YAML.

Example settings.yaml:

    state_dir: .weavevault
    journal_file: journal.jsonl
    operator_key_file: operator.pem      # optional, signs journal entries
    referee_key_file: referee.pem        # used by the referee signer
    settlement_ttl_seconds: 120
    max_payout_multiplier: 20

Relative key and journal paths are resolved against state_dir.
"""

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from weavevault.core.exceptions import ConfigurationError


DEFAULT_STATE_DIR          = ".weavevault"
DEFAULT_JOURNAL_FILE       = "journal.jsonl"
DEFAULT_SETTLEMENT_TTL     = 120
DEFAULT_PAYOUT_MULTIPLIER  = 20


@dataclass(frozen=True)
class ProgramSettings:
    state_dir:              str           = DEFAULT_STATE_DIR
    journal_file:           str           = DEFAULT_JOURNAL_FILE
    operator_key_file:      Optional[str] = None
    referee_key_file:       Optional[str] = None
    settlement_ttl_seconds: int           = DEFAULT_SETTLEMENT_TTL
    max_payout_multiplier:  int           = DEFAULT_PAYOUT_MULTIPLIER

    def __post_init__(self) -> None:
        for name in ("state_dir", "journal_file"):
            if not isinstance(getattr(self, name), str) or not getattr(self, name):
                raise ConfigurationError(f"{name} must be a non-empty string")
        for name in ("operator_key_file", "referee_key_file"):
            value = getattr(self, name)
            if value is not None and not isinstance(value, str):
                raise ConfigurationError(f"{name} must be a string path")
        for name in ("settlement_ttl_seconds", "max_payout_multiplier"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                raise ConfigurationError(
                    f"{name} must be a positive integer", {name: value}
                )

    # ── Loading ───────────────────────────────────────────────

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProgramSettings":
        known   = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(
                "unknown settings keys", {"keys": ", ".join(unknown)}
            )
        return cls(**data)

    @classmethod
    def from_yaml(cls, path: Path) -> "ProgramSettings":
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except OSError as exc:
            raise ConfigurationError(
                f"cannot read settings file: {exc}", {"path": str(path)}
            ) from exc
        except yaml.YAMLError as exc:
            raise ConfigurationError(
                f"settings file is not valid YAML: {exc}", {"path": str(path)}
            ) from exc

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                "settings file must contain a mapping", {"path": str(path)}
            )
        return cls.from_dict(data)

    # ── Paths ─────────────────────────────────────────────────

    def _resolve(self, name: str) -> Path:
        path = Path(name)
        return path if path.is_absolute() else Path(self.state_dir) / path

    @property
    def journal_path(self) -> Path:
        return self._resolve(self.journal_file)

    @property
    def operator_key_path(self) -> Optional[Path]:
        return self._resolve(self.operator_key_file) if self.operator_key_file else None

    @property
    def referee_key_path(self) -> Optional[Path]:
        return self._resolve(self.referee_key_file) if self.referee_key_file else None
