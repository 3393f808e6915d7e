"""Utility helpers shared across resolver modules.

The functions here are pure so the decoders, strategies and the orchestrator
can consume them without dragging in network or cache side effects.

Updates: v0.1 - 2026-10-15 - Seeded module with URL, base64 and backoff helpers.
"""

from __future__ import annotations

import base64
import binascii
import os
import re
from typing import Any, Mapping, Optional, Tuple
from urllib.parse import urlparse

from .config import AGGREGATOR_DOMAIN, AGGREGATOR_HOST, ARTICLE_PATH_MARKERS

EMBEDDED_URL_PATTERN = re.compile(r"https?://[^\s\"'<>\x00-\x1f]+")


def read_optional_env(name: str, environ: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """Return the trimmed value of ``name`` or ``None`` when unset or blank.

    ``environ`` defaults to the process environment; pass a mapping to read
    from injected settings instead.
    """

    source = os.environ if environ is None else environ
    value = source.get(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def is_aggregator_url(url: Any) -> bool:
    """Return whether ``url`` points at the aggregator at all."""

    return isinstance(url, str) and AGGREGATOR_HOST in url


def is_valid_resolution(candidate: Any) -> bool:
    """Accept only non-empty ``http`` URLs that do not reference the aggregator."""

    return (
        isinstance(candidate, str)
        and bool(candidate)
        and candidate.startswith("http")
        and AGGREGATOR_DOMAIN not in candidate
    )


def extract_article_id(url: str) -> Optional[str]:
    """Return the opaque identifier following ``/articles/`` or ``/read/``."""

    try:
        path = urlparse(url).path
    except ValueError:
        return None
    parts = [part for part in path.split("/") if part]
    if len(parts) < 2 or parts[-2] not in ARTICLE_PATH_MARKERS:
        return None
    return parts[-1]


def pad_base64(text: str) -> str:
    return text + "=" * (-len(text) % 4)


def urlsafe_b64decode_lenient(text: str) -> Optional[bytes]:
    """Decode URL-safe or standard base64, correcting missing padding."""

    normalised = text.replace("-", "+").replace("_", "/")
    try:
        return base64.b64decode(pad_base64(normalised))
    except (binascii.Error, ValueError):
        return None


def find_embedded_url(text: str) -> Optional[str]:
    match = EMBEDDED_URL_PATTERN.search(text)
    return match.group(0) if match else None


def backoff_delay(attempt: int, policy: Tuple[float, float]) -> float:
    """Exponential backoff for 1-based ``attempt`` capped at the policy ceiling."""

    base, ceiling = policy
    return min(base * (2 ** max(0, attempt - 1)), ceiling)


__all__ = [
    "EMBEDDED_URL_PATTERN",
    "backoff_delay",
    "extract_article_id",
    "find_embedded_url",
    "is_aggregator_url",
    "is_valid_resolution",
    "pad_base64",
    "read_optional_env",
    "urlsafe_b64decode_lenient",
]
