"""Deterministic identifiers derived from source data."""

import hashlib


def hash_string(value: str) -> str:
    """Short, stable hash of a string. Same input always yields the same id."""
    return hashlib.sha256(value.encode()).hexdigest()[:16]


def make_id(prefix: str, *parts: object) -> str:
    """Build ``<prefix>_<hash(parts)>`` for records without a natural source id."""
    return f"{prefix}_{hash_string('_'.join(str(p) for p in parts))}"
