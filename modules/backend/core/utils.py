"""
Shared helpers for the backend.
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """
    Current time in UTC with tzinfo stripped.

    Model columns, event payloads and receipts all store naive UTC, so
    compare only against values produced here.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)
