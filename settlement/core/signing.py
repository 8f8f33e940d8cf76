"""HMAC helpers for the supply provider and payment gateway."""

from __future__ import annotations

import hashlib
import hmac
import time


def supplier_message(timestamp: str, method: str, path: str, body: str) -> str:
    """Canonical string signed by the supply provider: ``ts\\nMETHOD\\npath\\nbody``."""
    return f"{timestamp}\n{method.upper()}\n{path}\n{body}"


def sign_supplier_request(secret: str, method: str, path: str, body: str, timestamp: str | None = None) -> tuple[str, str]:
    """Return ``(timestamp, hex signature)`` for a supply provider request."""
    ts = timestamp or str(int(time.time()))
    digest = hmac.new(
        secret.encode("utf-8"),
        supplier_message(ts, method, path, body).encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    return ts, digest


def verify_supplier_signature(secret: str, method: str, path: str, body: str, timestamp: str, signature: str) -> bool:
    if not secret or not signature or not timestamp:
        return False
    _, expected = sign_supplier_request(secret, method, path, body, timestamp)
    return hmac.compare_digest(expected, signature)


def paystack_signature(secret: str, raw_body: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha512).hexdigest()


def verify_paystack_signature(secret: str, raw_body: bytes, signature: str | None) -> bool:
    """Validate ``x-paystack-signature`` against the raw request body."""
    if not secret or not signature:
        return False
    return hmac.compare_digest(paystack_signature(secret, raw_body), signature)


__all__ = [
    "supplier_message",
    "sign_supplier_request",
    "verify_supplier_signature",
    "paystack_signature",
    "verify_paystack_signature",
]
