"""Offline decoder for legacy Google News article identifiers.

Older identifiers are base64-encoded protobuf messages whose first field is
the publisher URL as a length-prefixed string::

    08 13 22 <varint length> <url bytes> d2 01 00

Identifiers carrying the current-format marker wrap an opaque token instead
and can only be resolved through the batch endpoint.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from .config import CURRENT_FORMAT_MARKER, LEGACY_PREFIX, LEGACY_SUFFIX
from .utils import is_valid_resolution, urlsafe_b64decode_lenient

logger = logging.getLogger(__name__)


def _read_length_prefix(payload: bytes) -> Optional[Tuple[int, int]]:
    """Return ``(length, header_size)`` for the leading varint."""

    if not payload:
        return None
    first = payload[0]
    if first < 0x80:
        return first, 1
    if len(payload) < 2:
        return None
    return (first & 0x7F) | (payload[1] << 7), 2


def decode_legacy_identifier(identifier: str) -> Optional[str]:
    """Decode a legacy identifier to its publisher URL, or ``None``."""

    if not identifier or identifier.startswith(CURRENT_FORMAT_MARKER):
        return None

    raw = urlsafe_b64decode_lenient(identifier)
    if raw is None:
        logger.debug("Legacy identifier is not valid base64: %s", identifier)
        return None

    if raw.startswith(LEGACY_PREFIX):
        raw = raw[len(LEGACY_PREFIX):]
    if raw.endswith(LEGACY_SUFFIX):
        raw = raw[: -len(LEGACY_SUFFIX)]

    header = _read_length_prefix(raw)
    if header is None:
        return None
    length, offset = header
    try:
        candidate = raw[offset:offset + length].decode("utf-8")
    except UnicodeDecodeError:
        logger.debug("Legacy payload is not UTF-8 text")
        return None

    if candidate.startswith(CURRENT_FORMAT_MARKER):
        logger.debug("Legacy wrapper holds a current-format token")
        return None
    if not is_valid_resolution(candidate):
        return None
    return candidate


__all__ = ["decode_legacy_identifier"]
