"""Cheap pattern-matching fallback for embedded publisher URLs.

False negatives are fine here; returning an aggregator URL is not, so every
candidate goes through ``is_valid_resolution`` before it is returned.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
from typing import Callable, Iterable, List, Optional
from urllib.parse import parse_qs, unquote, urlparse

from .config import (
    CURRENT_FORMAT_MARKER,
    LEGACY_FORMAT_MARKER,
    REDIRECT_QUERY_PARAMS,
)
from .utils import (
    extract_article_id,
    find_embedded_url,
    is_valid_resolution,
    urlsafe_b64decode_lenient,
)

logger = logging.getLogger(__name__)

_MARKER_PATTERNS = (
    re.compile(r"https?://[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}[^\s\"'<>]*"),
    re.compile(re.escape(LEGACY_FORMAT_MARKER) + r"[a-zA-Z0-9+/=]*?(https?://[^\s\"'<>]+)"),
    re.compile(re.escape(CURRENT_FORMAT_MARKER) + r"[a-zA-Z0-9+/=]*?(https?://[^\s\"'<>]+)"),
)


def _from_query_params(url: str) -> Optional[str]:
    try:
        parsed = urlparse(url)
    except ValueError:
        return None
    if not parsed.query:
        return None
    params = parse_qs(parsed.query)
    for name in REDIRECT_QUERY_PARAMS:
        for value in params.get(name, ()):
            candidate = unquote(value)
            if is_valid_resolution(candidate):
                return candidate
    return None


def _from_standard_base64(identifier: str) -> Optional[str]:
    try:
        decoded = base64.b64decode(identifier, validate=True)
    except (binascii.Error, ValueError):
        return None
    return find_embedded_url(decoded.decode("utf-8", errors="ignore"))


def _from_urlsafe_base64(identifier: str) -> Optional[str]:
    decoded = urlsafe_b64decode_lenient(identifier)
    if decoded is None:
        return None
    return find_embedded_url(decoded.decode("utf-8", errors="ignore"))


def _from_marker_patterns(identifier: str) -> Optional[str]:
    text = unquote(identifier)
    for pattern in _MARKER_PATTERNS:
        for match in pattern.finditer(text):
            candidate = match.group(match.lastindex or 0)
            if is_valid_resolution(candidate):
                return candidate
    return None


def _first_valid(attempts: Iterable[Callable[[], Optional[str]]]) -> Optional[str]:
    for attempt in attempts:
        candidate = attempt()
        if is_valid_resolution(candidate):
            return candidate
    return None


def extract_embedded_url(identifier_or_url: str) -> Optional[str]:
    """Find a publisher URL hidden in an identifier or its container URL."""

    if not isinstance(identifier_or_url, str) or not identifier_or_url:
        return None

    identifier = extract_article_id(identifier_or_url)
    container_url: Optional[str] = identifier_or_url if identifier else None
    if identifier is None:
        if "://" in identifier_or_url:
            container_url = identifier_or_url
        else:
            identifier = identifier_or_url

    attempts: List[Callable[[], Optional[str]]] = []
    if container_url:
        attempts.append(lambda: _from_query_params(container_url))
    if identifier:
        attempts.extend(
            [
                lambda: _from_standard_base64(identifier),
                lambda: _from_urlsafe_base64(identifier),
                lambda: _from_marker_patterns(identifier),
            ]
        )

    candidate = _first_valid(attempts)
    if candidate:
        logger.debug("Heuristic extraction found %s", candidate)
    return candidate


__all__ = ["extract_embedded_url"]
