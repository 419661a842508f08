"""Utility functions for hashing and time handling."""

from .hashing import compute_job_hash, fingerprint, hash_string
from .timestamps import (
    days_since,
    ensure_utc,
    format_timestamp,
    freshness_cutoff,
    parse_iso_datetime,
    utc_now,
)

__all__ = [
    # Hashing
    "compute_job_hash",
    "fingerprint",
    "hash_string",
    # Timestamps
    "utc_now",
    "ensure_utc",
    "parse_iso_datetime",
    "format_timestamp",
    "days_since",
    "freshness_cutoff",
]
