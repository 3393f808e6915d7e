"""Resolution strategies and their environment-dependent ordering.

Every strategy exposes ``attempt(context) -> Optional[str]`` and must not
raise. The orchestrator walks the list returned by ``build_strategy_chain``
and accepts the first valid candidate.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Protocol

from .browser import BrowserResolver
from .heuristics import extract_embedded_url
from .legacy import decode_legacy_identifier
from .models import CostEnvironment, ResolutionAttemptContext
from .rpc import RpcResolver

logger = logging.getLogger(__name__)


class ResolutionStrategy(Protocol):
    name: str

    def attempt(self, context: ResolutionAttemptContext) -> Optional[str]:
        ...


class HeuristicStrategy:
    name = "heuristic"

    def attempt(self, context: ResolutionAttemptContext) -> Optional[str]:
        return extract_embedded_url(context.request_url)


class RpcStrategy:
    name = "batchexecute"

    def __init__(self, rpc: RpcResolver) -> None:
        self.rpc = rpc

    def attempt(self, context: ResolutionAttemptContext) -> Optional[str]:
        if not context.identifier:
            logger.debug("No article identifier in %s; skipping batch call", context.request_url)
            return None
        return self.rpc.resolve_identifier(context.identifier)


class RpcRetryStrategy(RpcStrategy):
    """Repeat the batch resolution once on a freshly rotated proxy."""

    name = "batchexecute-retry"

    def attempt(self, context: ResolutionAttemptContext) -> Optional[str]:
        if not context.identifier or context.proxy_provider is None:
            return None
        logger.debug("Rotating proxy and retrying batch resolution")
        try:
            context.proxy_provider.rotate_proxy()
        except Exception as exc:
            logger.warning("Proxy rotation failed before batch retry: %s", exc)
        context.attempt += 1
        return self.rpc.resolve_identifier(context.identifier)


class LegacyStrategy:
    name = "legacy"

    def attempt(self, context: ResolutionAttemptContext) -> Optional[str]:
        if not context.identifier:
            return None
        return decode_legacy_identifier(context.identifier)


class BrowserStrategy:
    name = "browser"

    def __init__(self, browser: Optional[BrowserResolver] = None) -> None:
        self.browser = browser or BrowserResolver()

    def attempt(self, context: ResolutionAttemptContext) -> Optional[str]:
        if context.browser is None:
            return None
        return self.browser.resolve(context.request_url, context.browser)


def build_strategy_chain(
    environment: CostEnvironment,
    rpc: RpcResolver,
    *,
    with_proxy_retry: bool = True,
    browser: Optional[BrowserResolver] = None,
) -> List[ResolutionStrategy]:
    """Order strategies for ``environment``.

    Cloud: heuristic, batch, batch retry, legacy, browser.
    Local: batch, batch retry, heuristic, legacy, browser.
    """

    rpc_chain: List[ResolutionStrategy] = [RpcStrategy(rpc)]
    if with_proxy_retry:
        rpc_chain.append(RpcRetryStrategy(rpc))

    heuristic: List[ResolutionStrategy] = [HeuristicStrategy()]
    if environment.heuristics_first:
        chain = heuristic + rpc_chain
    else:
        chain = rpc_chain + heuristic
    chain.append(LegacyStrategy())
    chain.append(BrowserStrategy(browser))
    return chain


__all__ = [
    "BrowserStrategy",
    "HeuristicStrategy",
    "LegacyStrategy",
    "ResolutionStrategy",
    "RpcRetryStrategy",
    "RpcStrategy",
    "build_strategy_chain",
]
