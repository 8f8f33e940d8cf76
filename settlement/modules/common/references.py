"""Human-readable unique references for orders, top-ups and transfers."""

from __future__ import annotations

import secrets
import time


def new_reference(prefix: str) -> str:
    """``ORD-1760870000123-9F2A1C``: millisecond timestamp plus random suffix."""
    return f"{prefix}-{int(time.time() * 1000)}-{secrets.token_hex(3).upper()}"
