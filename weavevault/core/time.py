"""
weavevault/core/time.py

Clock helpers. Two representations are used:

    unix_timestamp()   — integer seconds, compared against settlement expiry
    weave_timestamp()  — journal wire format YYYY-MM-DDTHH:MM:SS.mmmZ
                         (milliseconds, explicit Z, no +00:00)

Components that compare against expiry take an injectable clock that
defaults to unix_timestamp, so tests can pin time.
"""

import time
from datetime import datetime, timezone


def unix_timestamp() -> int:
    """Current wall-clock time as whole UNIX seconds."""
    return int(time.time())


def unix_millis() -> int:
    """Current wall-clock time as UNIX milliseconds."""
    return time.time_ns() // 1_000_000


def weave_timestamp() -> str:
    """
    Return current UTC time in journal wire format.
    Format: YYYY-MM-DDTHH:MM:SS.mmmZ  (exactly 3 fractional digits, Z suffix)
    """
    now = datetime.now(timezone.utc)
    ms  = now.microsecond // 1000
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{ms:03d}Z"
