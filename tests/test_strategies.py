"""Unit tests for individual resolution strategies."""

from __future__ import annotations

from conftest import FakeResponse, FakeSession, RecordingProxyProvider, batch_body, legacy_identifier

from gnews_resolver.models import CostEnvironment, ResolutionAttemptContext
from gnews_resolver.rpc import RpcResolver
from gnews_resolver.strategies import (
    BrowserStrategy,
    HeuristicStrategy,
    LegacyStrategy,
    RpcRetryStrategy,
    RpcStrategy,
)

PUBLISHER_URL = "https://www.example.com/world/story-42"


def _context(identifier, proxy=None) -> ResolutionAttemptContext:
    return ResolutionAttemptContext(
        identifier=identifier,
        request_url=f"https://news.google.com/rss/articles/{identifier}",
        proxy_provider=proxy,
    )


def _rpc(session: FakeSession, proxy=None) -> RpcResolver:
    return RpcResolver(
        session=session,
        proxy_provider=proxy,
        environment=CostEnvironment.for_cloud(True),
        sleep=lambda _seconds: None,
    )


def test_retry_strategy_rotates_before_retrying() -> None:
    proxy = RecordingProxyProvider()
    session = FakeSession(post_responses=[FakeResponse(200, batch_body(PUBLISHER_URL))])
    context = _context("AU_yqLabc", proxy)
    assert RpcRetryStrategy(_rpc(session, proxy)).attempt(context) == PUBLISHER_URL
    assert proxy.rotations == 1
    assert context.attempt == 2


def test_retry_strategy_needs_a_proxy_provider() -> None:
    session = FakeSession()
    assert RpcRetryStrategy(_rpc(session)).attempt(_context("AU_yqLabc")) is None
    assert session.calls == []


def test_rpc_strategy_without_identifier() -> None:
    session = FakeSession()
    context = ResolutionAttemptContext(identifier=None, request_url="https://news.google.com/")
    assert RpcStrategy(_rpc(session)).attempt(context) is None
    assert session.calls == []


def test_offline_strategies() -> None:
    identifier = legacy_identifier(PUBLISHER_URL)
    assert LegacyStrategy().attempt(_context(identifier)) == PUBLISHER_URL
    assert HeuristicStrategy().attempt(_context(identifier)) == PUBLISHER_URL
    assert BrowserStrategy().attempt(_context(identifier)) is None
