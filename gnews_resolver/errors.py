"""Internal failure types raised inside resolution strategies.

None of these ever reach the caller of ``GoogleNewsResolver.resolve_url``;
strategies translate them into "no candidate" and the orchestrator moves on.
"""

from __future__ import annotations

from typing import Optional


class ResolutionError(Exception):
    """Base class for failures inside the resolution engine."""


class TransportError(ResolutionError):
    """Timeouts, connection resets and other network-level failures."""


class HttpStatusError(ResolutionError):
    def __init__(self, status_code: int, url: str, message: Optional[str] = None) -> None:
        self.status_code = int(status_code)
        self.url = url
        super().__init__(message or f"HTTP {self.status_code} from {url}")


class BlockedError(HttpStatusError):
    """Rate limiting or anti-bot responses (403/429/502/503)."""


class PermanentRequestError(HttpStatusError):
    """Malformed-request responses (400/404); retrying cannot help."""


class ResponseShapeError(ResolutionError):
    """The response body did not have the expected envelope."""


__all__ = [
    "BlockedError",
    "HttpStatusError",
    "PermanentRequestError",
    "ResolutionError",
    "ResponseShapeError",
    "TransportError",
]
