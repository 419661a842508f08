"""Hashing utilities for job identity and cache fingerprints."""

import hashlib
import re
from typing import Iterable, Optional


def compute_job_hash(
    title: str, company: str, city: Optional[str] = None, job_url: Optional[str] = None
) -> str:
    """Compute the content-derived stable identifier for a job posting.

    SHA256 over normalized title, company, city and URL, so the same posting
    scraped twice maps onto one row.

    Example:
        >>> compute_job_hash("Data Analyst", "Acme", "Berlin") == compute_job_hash(
        ...     "  data analyst ", "ACME", "berlin")
        True
    """
    parts = [_normalize_text(title), _normalize_text(company)]
    parts.append(_normalize_text(city) if city else "")
    parts.append(job_url.strip() if job_url else "")
    return hash_string("|".join(parts))


def fingerprint(*parts: Iterable[str]) -> str:
    """Hash several string sequences into one order-sensitive key."""
    joined = "\x1f".join("\x1e".join(part) for part in parts)
    return hash_string(joined)


def _normalize_text(text: str) -> str:
    return re.sub(r"\s+", " ", text.lower().strip())


def hash_string(value: str) -> str:
    """Compute SHA256 hex digest of a string value."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()
