"""
salvo/core/time.py

THE ONLY TIMESTAMP FUNCTION IN SALVO.

Wire Format: YYYY-MM-DDTHH:MM:SS.mmmZ
             (milliseconds, explicit Z, no +00:00, no microseconds)

Session records stamp created_at / settled_at with utc_timestamp().
Timestamps never enter a journal or a board commitment.
"""

from datetime import datetime, timezone


def utc_timestamp() -> str:
    """
    Return current UTC time in wire format.
    Format: YYYY-MM-DDTHH:MM:SS.mmmZ  (exactly 3 fractional digits, Z suffix)
    """
    now = datetime.now(timezone.utc)
    ms  = now.microsecond // 1000
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{ms:03d}Z"
