"""Proxy provider interface consumed by the RPC resolver.

``get_proxy_config`` returns a mapping with ``proxy_url``, ``timeout`` and
``retry_policy`` keys, or an empty mapping meaning "connect directly".

The RPC resolver owns rotation: on a block status it reports the error and
then calls ``rotate_proxy`` once. Providers only record reported errors.
"""

from __future__ import annotations

import itertools
import logging
import threading
from typing import Any, Dict, Mapping, Optional, Protocol, Sequence, runtime_checkable

from .config import PROXY_URLS

logger = logging.getLogger(__name__)


@runtime_checkable
class ProxyProvider(Protocol):
    def get_proxy_config(self, target_url: str = "") -> Mapping[str, Any]:
        ...

    def rotate_proxy(self) -> None:
        ...

    def report_proxy_error(
        self, target_url: str, error: BaseException, status_code: Optional[int] = None
    ) -> None:
        ...


class NullProxyProvider:
    """Provider that always connects directly."""

    def get_proxy_config(self, target_url: str = "") -> Mapping[str, Any]:
        return {}

    def rotate_proxy(self) -> None:
        return None

    def report_proxy_error(
        self, target_url: str, error: BaseException, status_code: Optional[int] = None
    ) -> None:
        logger.debug("Proxy error for %s without a proxy (status %s): %s", target_url, status_code, error)


class RotatingProxyProvider:
    """Round-robin over a fixed proxy list; advances only on ``rotate_proxy``."""

    def __init__(self, proxy_urls: Sequence[str], *, timeout: Optional[float] = None) -> None:
        self._proxy_urls = [url for url in proxy_urls if url]
        self._timeout = timeout
        self._cycle = itertools.cycle(self._proxy_urls) if self._proxy_urls else None
        self._lock = threading.Lock()
        self._current: Optional[str] = None
        self.stats: Dict[str, int] = {"requests": 0, "errors": 0, "rotations": 0}
        self.errors_by_status: Dict[int, int] = {}

    @classmethod
    def from_env(cls) -> Optional["RotatingProxyProvider"]:
        if not PROXY_URLS:
            return None
        return cls(PROXY_URLS)

    def get_proxy_config(self, target_url: str = "") -> Mapping[str, Any]:
        with self._lock:
            if self._cycle is None:
                return {}
            if self._current is None:
                self._current = next(self._cycle)
            self.stats["requests"] += 1
            config: Dict[str, Any] = {"proxy_url": self._current}
        if self._timeout is not None:
            config["timeout"] = self._timeout
        return config

    def rotate_proxy(self) -> None:
        with self._lock:
            if self._cycle is None:
                return
            self._current = next(self._cycle)
            self.stats["rotations"] += 1
        logger.debug("Rotated to next proxy")

    def report_proxy_error(
        self, target_url: str, error: BaseException, status_code: Optional[int] = None
    ) -> None:
        with self._lock:
            self.stats["errors"] += 1
            if status_code is not None:
                self.errors_by_status[status_code] = self.errors_by_status.get(status_code, 0) + 1
        logger.debug("Proxy error reported for %s: %s (status: %s)", target_url, error, status_code)


__all__ = ["NullProxyProvider", "ProxyProvider", "RotatingProxyProvider"]
