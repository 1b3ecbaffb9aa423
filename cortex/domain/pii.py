# cortex/domain/pii.py
from __future__ import annotations

import hashlib


def normalize_pii(value: str) -> str:
    return value.strip().lower()


def hash_pii(value: str | None) -> str:
    """
    One-way SHA-256 hex digest of a normalized email/phone.

    Same input (after trim + lowercase) always gives the same digest, which is
    what dedupe and the privacy-compliant lookups rely on.
    """
    if value is None or not str(value).strip():
        raise ValueError("cannot hash an empty value")
    return hashlib.sha256(normalize_pii(str(value)).encode("utf-8")).hexdigest()
