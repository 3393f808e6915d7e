"""Domain models backing the Google News resolver.

The dataclasses here are shared by the cache, the strategies and the
orchestrator so that none of those layers needs to import another just for
its types.

Updates: v0.1 - 2026-10-15 - Collected cache, signing and context models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Mapping, Optional

from .config import (
    CLOUD_BATCH_TIMEOUT,
    CLOUD_BATCH_TIMEOUT_MULTIPLIER,
    CLOUD_ENV_MARKERS,
    CLOUD_MAX_RETRIES,
    DEFAULT_BATCH_TIMEOUT,
    DEFAULT_PAGE_TIMEOUT,
    LOCAL_MAX_RETRIES,
    PRODUCTION_ENV_VAR,
)
from .utils import is_valid_resolution, read_optional_env

ProfileName = Literal["standard", "mobile", "rss", "minimal"]


@dataclass
class CacheEntry:
    """A single resolved link held by the resolution cache.

    ``hit_count`` carries the resolver request counter at insert time and is
    persisted as ``requestCount``. Reads never touch it.
    """

    original_key: str
    resolved_url: str
    created_at: float
    hit_count: int = 0

    def is_expired(self, now: float, ttl_seconds: float) -> bool:
        return now - self.created_at > ttl_seconds

    def to_payload(self) -> Dict[str, Any]:
        return {
            "resolvedUrl": self.resolved_url,
            "timestamp": int(self.created_at * 1000),
            "requestCount": self.hit_count,
        }

    @classmethod
    def from_payload(
        cls, key: str, payload: Any, *, default_created_at: float
    ) -> Optional["CacheEntry"]:
        if isinstance(payload, str):
            # Older snapshots stored the resolved URL directly.
            if not is_valid_resolution(payload):
                return None
            return cls(key, payload, default_created_at, 0)
        if not isinstance(payload, Mapping):
            return None
        resolved = payload.get("resolvedUrl")
        if not is_valid_resolution(resolved):
            return None
        raw_timestamp = payload.get("timestamp")
        if isinstance(raw_timestamp, (int, float)) and not isinstance(raw_timestamp, bool):
            created_at = float(raw_timestamp) / 1000.0
        else:
            created_at = default_created_at
        raw_count = payload.get("requestCount")
        hit_count = int(raw_count) if isinstance(raw_count, int) else 0
        return cls(key, resolved, created_at, hit_count)


@dataclass(frozen=True)
class CacheStats:
    size: int
    valid_count: int
    expired_count: int


@dataclass(frozen=True)
class SigningParams:
    """Short-lived signature pair scraped from an article page. Never cached."""

    article_id: str
    signature: str
    timestamp: int
    strategy_used: ProfileName = "standard"


@dataclass(frozen=True)
class RequestProfile:
    name: ProfileName
    url_template: str
    headers: Mapping[str, str]

    def url_for(self, article_id: str) -> str:
        return self.url_template.format(article_id=article_id)


@dataclass(frozen=True)
class ProxyConfig:
    proxy_url: Optional[str] = None
    timeout: Optional[float] = None
    retry_policy: Optional[Mapping[str, Any]] = None

    @classmethod
    def from_mapping(cls, payload: Optional[Mapping[str, Any]]) -> "ProxyConfig":
        if not payload:
            return cls()
        proxy_url = payload.get("proxy_url") or payload.get("proxyUrl")
        timeout = payload.get("timeout")
        retry_policy = payload.get("retry_policy") or payload.get("retryPolicy")
        return cls(
            proxy_url=proxy_url if isinstance(proxy_url, str) and proxy_url else None,
            timeout=float(timeout) if isinstance(timeout, (int, float)) else None,
            retry_policy=retry_policy if isinstance(retry_policy, Mapping) else None,
        )

    def as_requests_proxies(self) -> Optional[Dict[str, str]]:
        if not self.proxy_url:
            return None
        return {"http": self.proxy_url, "https": self.proxy_url}


@dataclass(frozen=True)
class CostEnvironment:
    """Process-wide tuning derived once from the hosting environment."""

    is_cloud: bool = False

    @classmethod
    def detect(cls, environ: Optional[Mapping[str, str]] = None) -> "CostEnvironment":
        if any(read_optional_env(name, environ) for name in CLOUD_ENV_MARKERS):
            return cls(is_cloud=True)
        marker = read_optional_env(PRODUCTION_ENV_VAR, environ) or ""
        return cls(is_cloud=marker.lower() == "production")

    @classmethod
    def for_cloud(cls, is_cloud: bool) -> "CostEnvironment":
        return cls(is_cloud=bool(is_cloud))

    @property
    def max_retries(self) -> int:
        return CLOUD_MAX_RETRIES if self.is_cloud else LOCAL_MAX_RETRIES

    @property
    def batch_timeout(self) -> float:
        if self.is_cloud:
            return CLOUD_BATCH_TIMEOUT * CLOUD_BATCH_TIMEOUT_MULTIPLIER
        return DEFAULT_BATCH_TIMEOUT

    @property
    def page_timeout(self) -> float:
        return DEFAULT_PAGE_TIMEOUT

    @property
    def heuristics_first(self) -> bool:
        return self.is_cloud


@dataclass
class ResolutionAttemptContext:
    """Per-call record owned by exactly one in-flight resolution."""

    identifier: Optional[str]
    request_url: str
    proxy_provider: Optional[Any] = None
    browser: Optional[Any] = None
    attempt: int = 1
    tried: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ResolverStats:
    total_entries: int
    valid_entries: int
    expired_entries: int
    request_count: int
    success_count: int
    cache_hits: int = 0

    @property
    def success_rate(self) -> str:
        return _percentage(self.success_count, self.request_count)

    @property
    def cache_hit_rate(self) -> str:
        return _percentage(self.cache_hits, self.request_count)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "total_entries": self.total_entries,
            "valid_entries": self.valid_entries,
            "expired_entries": self.expired_entries,
            "request_count": self.request_count,
            "success_count": self.success_count,
            "cache_hits": self.cache_hits,
            "success_rate": self.success_rate,
            "cache_hit_rate": self.cache_hit_rate,
        }


def _percentage(part: int, whole: int) -> str:
    if whole <= 0:
        return "0%"
    return f"{part / whole * 100:.1f}%"


__all__ = [
    "CacheEntry",
    "CacheStats",
    "CostEnvironment",
    "ProfileName",
    "ProxyConfig",
    "RequestProfile",
    "ResolutionAttemptContext",
    "ResolverStats",
    "SigningParams",
]
