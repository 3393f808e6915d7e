"""Public entry point turning Google News links into publisher URLs.

``GoogleNewsResolver.resolve_url`` is total: it always returns a string and
never raises. When nothing works the aggregator link comes back unchanged,
which callers treat as "crawl the aggregator link directly".

Per call::

    START -> CACHE_CHECK -> HIT: DONE
                         -> MISS: RATE_LIMIT_WAIT -> strategy 1 .. N -> DONE

Updates: v0.1 - 2026-10-15 - Strategy chain orchestration with cache and rate limiting.
Updates: v0.2 - 2026-10-15 - Snapshot persistence, statistics and cleanup hook.
"""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import Any, Callable, List, Optional

from .browser import BrowserPage, BrowserResolver
from .cache import RedisMirror, ResolutionCache, get_redis_client
from .config import (
    CACHE_FILE,
    CACHE_MAX_SIZE,
    CACHE_TTL_SECONDS,
    MIN_REQUEST_INTERVAL_MS,
    PERSISTENCE_ENABLED,
    PERSIST_INTERVAL_SECONDS,
)
from .models import CostEnvironment, ResolutionAttemptContext, ResolverStats
from .persistence import PersistenceTimer, load_snapshot, remove_snapshot, save_snapshot
from .rate_limit import RateLimiter
from .rpc import RpcResolver
from .strategies import ResolutionStrategy, build_strategy_chain
from .utils import extract_article_id, is_aggregator_url, is_valid_resolution

logger = logging.getLogger(__name__)


class GoogleNewsResolver:
    """Cached, rate-limited, multi-strategy resolver for aggregator links."""

    def __init__(
        self,
        proxy_provider: Optional[Any] = None,
        *,
        environment: Optional[CostEnvironment] = None,
        cache: Optional[ResolutionCache] = None,
        rate_limiter: Optional[RateLimiter] = None,
        rpc: Optional[RpcResolver] = None,
        session: Optional[Any] = None,
        strategies: Optional[List[ResolutionStrategy]] = None,
        browser_resolver: Optional[BrowserResolver] = None,
        cache_file: Path = CACHE_FILE,
        enable_persistence: bool = PERSISTENCE_ENABLED,
        persist_interval: float = PERSIST_INTERVAL_SECONDS,
        cache_ttl_seconds: float = CACHE_TTL_SECONDS,
        max_cache_size: int = CACHE_MAX_SIZE,
        min_request_interval_ms: int = MIN_REQUEST_INTERVAL_MS,
        use_redis: bool = True,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.proxy_provider = proxy_provider
        self.environment = environment or CostEnvironment.detect()

        if cache is None:
            mirror = None
            client = get_redis_client() if use_redis else None
            if client is not None:
                mirror = RedisMirror(client, ttl_seconds=cache_ttl_seconds)
            cache = ResolutionCache(
                ttl_seconds=cache_ttl_seconds, max_size=max_cache_size, mirror=mirror
            )
        self.cache = cache
        self.rate_limiter = rate_limiter or RateLimiter(min_request_interval_ms, sleep=sleep)
        self.rpc = rpc or RpcResolver(
            session=session,
            proxy_provider=proxy_provider,
            environment=self.environment,
            sleep=sleep,
        )
        if strategies is None:
            strategies = build_strategy_chain(
                self.environment,
                self.rpc,
                with_proxy_retry=proxy_provider is not None,
                browser=browser_resolver,
            )
        self.strategies: List[ResolutionStrategy] = list(strategies)

        self.cache_file = Path(cache_file)
        self.enable_persistence = bool(enable_persistence)
        self.request_count = 0
        self.success_count = 0
        self.cache_hits = 0
        self._counter_lock = threading.Lock()
        self._persistence_timer: Optional[PersistenceTimer] = None

        if self.enable_persistence:
            self._load_cache_from_disk()
            self._persistence_timer = PersistenceTimer(persist_interval, self.save_cache)
            self._persistence_timer.start()

        logger.debug(
            "Resolver ready (cloud=%s, strategies=%s)",
            self.environment.is_cloud,
            [strategy.name for strategy in self.strategies],
        )

    def __enter__(self) -> "GoogleNewsResolver":
        return self

    def __exit__(self, *_exc: Any) -> None:
        self.cleanup()

    # --- resolution ------------------------------------------------------------------------

    def resolve_url(self, url: str, browser: Optional[BrowserPage] = None) -> str:
        """Return the publisher URL behind ``url``, or ``url`` when unresolved."""

        try:
            return self._resolve(url, browser)
        except Exception as exc:
            logger.error("Error resolving Google News URL %s: %s", url, exc)
            return url if isinstance(url, str) else ""

    def _resolve(self, url: str, browser: Optional[BrowserPage]) -> str:
        if not isinstance(url, str):
            return "" if url is None else str(url)
        if not is_aggregator_url(url):
            return url

        with self._counter_lock:
            self.request_count += 1
            request_number = self.request_count

        cached = self.cache.get(url)
        if cached:
            with self._counter_lock:
                self.cache_hits += 1
            logger.debug("Using cached resolution: %s", cached)
            return cached

        logger.info("Resolving Google News URL (%d): %s", request_number, url)
        self.rate_limiter.wait()

        context = ResolutionAttemptContext(
            identifier=extract_article_id(url),
            request_url=url,
            proxy_provider=self.proxy_provider,
            browser=browser,
        )
        for strategy in self.strategies:
            context.tried.append(strategy.name)
            try:
                candidate = strategy.attempt(context)
            except Exception as exc:
                logger.debug("Strategy %s raised: %s", strategy.name, exc)
                continue
            if is_valid_resolution(candidate):
                self.cache.set(url, candidate, hit_count=request_number)
                with self._counter_lock:
                    self.success_count += 1
                logger.info("Resolved with %s: %s", strategy.name, candidate)
                return candidate

        logger.warning(
            "Could not resolve Google News URL (tried %s): %s", ", ".join(context.tried), url
        )
        return url

    # --- persistence and housekeeping ------------------------------------------------------

    def _load_cache_from_disk(self) -> None:
        snapshot = load_snapshot(self.cache_file)
        if snapshot is None:
            return
        self.cache.restore(snapshot.entries)
        with self._counter_lock:
            self.request_count = snapshot.request_count
            self.success_count = snapshot.success_count

    def save_cache(self) -> bool:
        if not self.enable_persistence:
            return False
        entries = self.cache.snapshot()
        with self._counter_lock:
            request_count = self.request_count
            success_count = self.success_count
        return save_snapshot(
            self.cache_file,
            entries,
            request_count=request_count,
            success_count=success_count,
        )

    def clear_cache(self) -> None:
        """Drop every cached resolution, including the snapshot on disk."""

        self.cache.clear()
        if self.enable_persistence:
            remove_snapshot(self.cache_file)

    def get_stats(self) -> ResolverStats:
        cache_stats = self.cache.stats()
        with self._counter_lock:
            return ResolverStats(
                total_entries=cache_stats.size,
                valid_entries=cache_stats.valid_count,
                expired_entries=cache_stats.expired_count,
                request_count=self.request_count,
                success_count=self.success_count,
                cache_hits=self.cache_hits,
            )

    def cleanup(self) -> None:
        """Stop the persistence timer and write one final snapshot."""

        if self._persistence_timer is not None:
            self._persistence_timer.cancel()
            self._persistence_timer = None
        if self.enable_persistence:
            self.save_cache()
        logger.info("Google News resolver cleanup completed. Final stats: %s", self.get_stats().as_dict())


__all__ = ["GoogleNewsResolver"]
