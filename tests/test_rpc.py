"""Unit tests for gnews_resolver.rpc.

Covers:
- batch payload encoding and response envelope parsing
- signing-parameter extraction and profile fallback
- retry ceiling, permanent-error abort and proxy rotation on block statuses
"""

from __future__ import annotations

import json
from typing import List, Optional
from urllib.parse import unquote

import requests

from conftest import (
    SIGNED_PAGE,
    UNSIGNED_PAGE,
    FakeResponse,
    FakeSession,
    RecordingProxyProvider,
    batch_body,
)

from gnews_resolver.config import BATCH_ENDPOINT, BATCH_USER_AGENTS
from gnews_resolver.models import CostEnvironment, SigningParams
from gnews_resolver.proxy import RotatingProxyProvider
from gnews_resolver.rpc import (
    RPC_METHOD_ID,
    RpcResolver,
    build_batch_payload,
    parse_batch_response,
    parse_signing_params,
)

PUBLISHER_URL = "https://www.example.com/world/story-42"
ARTICLE_ID = "AU_yqLNf3kHd7ZcZ9bL0q"
PARAMS = SigningParams(article_id=ARTICLE_ID, signature="SIG123", timestamp=1712345678)


def _resolver(
    session: FakeSession, *, cloud: bool = True, proxy=None, sleeps: Optional[List[float]] = None
) -> RpcResolver:
    recorded = sleeps if sleeps is not None else []
    return RpcResolver(
        session=session,
        proxy_provider=proxy,
        environment=CostEnvironment.for_cloud(cloud),
        sleep=recorded.append,
    )


def test_batch_payload_shape() -> None:
    """The form body decodes back to the garturlreq envelope."""
    body = build_batch_payload(PARAMS)
    assert body.startswith("f.req=")
    assert "%2C" in body and "%22" in body
    envelope = json.loads(unquote(body[len("f.req="):]))
    assert envelope[0][0][0] == RPC_METHOD_ID
    inner = json.loads(envelope[0][0][1])
    assert inner[0] == "garturlreq"
    assert inner[-3:] == [ARTICLE_ID, 1712345678, "SIG123"]


def test_parse_batch_response() -> None:
    assert parse_batch_response(batch_body(PUBLISHER_URL)) == PUBLISHER_URL


def test_parse_batch_response_rejects_bad_bodies() -> None:
    """Malformed envelopes and aggregator candidates yield None."""
    assert parse_batch_response("no separator") is None
    assert parse_batch_response(")]}'\n\n{not json") is None
    assert parse_batch_response(")]}'\n\n[]") is None
    assert parse_batch_response(batch_body("https://news.google.com/articles/x")) is None
    assert parse_batch_response(batch_body(None)) is None


def test_parse_signing_params() -> None:
    params = parse_signing_params(SIGNED_PAGE, ARTICLE_ID, "rss")
    assert params == SigningParams(ARTICLE_ID, "SIG123", 1712345678, "rss")
    assert parse_signing_params(UNSIGNED_PAGE, ARTICLE_ID, "standard") is None


def test_signing_falls_back_to_next_profile() -> None:
    """A page without the signed container moves on to the mobile profile."""
    pages = iter([FakeResponse(200, UNSIGNED_PAGE), FakeResponse(200, SIGNED_PAGE)])
    session = FakeSession(get_handler=lambda _url: next(pages))
    params = _resolver(session).fetch_signing_params(ARTICLE_ID)
    assert params is not None
    assert params.strategy_used == "mobile"
    assert session.count("get") == 2


def test_signing_gives_up_after_all_profiles() -> None:
    session = FakeSession(get_handler=lambda _url: FakeResponse(200, UNSIGNED_PAGE))
    assert _resolver(session).fetch_signing_params(ARTICLE_ID) is None
    assert session.count("get") == 4


def test_blocked_profile_reports_and_rotates() -> None:
    """A 403 on a page fetch reports the error and rotates the proxy."""
    pages = iter([FakeResponse(403, ""), FakeResponse(200, SIGNED_PAGE)])
    session = FakeSession(get_handler=lambda _url: next(pages))
    proxy = RecordingProxyProvider()
    params = _resolver(session, proxy=proxy).fetch_signing_params(ARTICLE_ID)
    assert params is not None
    assert proxy.rotations == 1
    assert proxy.errors[0][1] == 403


def test_transport_error_on_profile_moves_on() -> None:
    responses = iter([requests.ConnectionError("reset"), FakeResponse(200, SIGNED_PAGE)])
    session = FakeSession(get_handler=lambda _url: next(responses))
    assert _resolver(session).fetch_signing_params(ARTICLE_ID) is not None


def test_batch_success() -> None:
    session = FakeSession(post_responses=[FakeResponse(200, batch_body(PUBLISHER_URL))])
    assert _resolver(session).call_batch_endpoint(PARAMS) == PUBLISHER_URL
    method, url, kwargs = session.calls[0]
    assert (method, url) == ("post", BATCH_ENDPOINT)
    assert kwargs["data"] == build_batch_payload(PARAMS)
    assert kwargs["timeout"] == 5.0


def test_permanent_status_aborts_retries() -> None:
    """A 404 is not retried."""
    sleeps: List[float] = []
    session = FakeSession(post_responses=[FakeResponse(404, "")])
    assert _resolver(session, sleeps=sleeps).call_batch_endpoint(PARAMS) is None
    assert session.count("post") == 1
    assert sleeps == []


def test_block_status_hits_retry_ceiling_in_cloud() -> None:
    """Three 503s in a cloud environment exhaust the retries with error backoff."""
    sleeps: List[float] = []
    proxy = RecordingProxyProvider()
    session = FakeSession(post_responses=[FakeResponse(503, "")])
    assert _resolver(session, proxy=proxy, sleeps=sleeps).call_batch_endpoint(PARAMS) is None
    assert session.count("post") == 3
    assert sleeps == [2.0, 4.0]
    assert proxy.rotations == 3
    assert [status for _, status in proxy.errors] == [503, 503, 503]


def test_local_environment_retries_five_times() -> None:
    session = FakeSession(post_responses=[FakeResponse(500, "")])
    assert _resolver(session, cloud=False).call_batch_endpoint(PARAMS) is None
    assert session.count("post") == 5


def test_empty_result_uses_short_backoff() -> None:
    """A well-formed envelope without a usable URL backs off gently."""
    sleeps: List[float] = []
    session = FakeSession(
        post_responses=[
            FakeResponse(200, batch_body("https://news.google.com/articles/x")),
            FakeResponse(200, batch_body(PUBLISHER_URL)),
        ]
    )
    assert _resolver(session, sleeps=sleeps).call_batch_endpoint(PARAMS) == PUBLISHER_URL
    assert sleeps == [1.0]


def test_transport_error_is_retried() -> None:
    session = FakeSession(
        post_responses=[requests.Timeout("slow"), FakeResponse(200, batch_body(PUBLISHER_URL))]
    )
    assert _resolver(session).call_batch_endpoint(PARAMS) == PUBLISHER_URL
    assert session.count("post") == 2


def test_user_agent_rotates_per_attempt() -> None:
    session = FakeSession(post_responses=[FakeResponse(500, "")])
    _resolver(session).call_batch_endpoint(PARAMS)
    agents = [kwargs["headers"]["User-Agent"] for _, _, kwargs in session.calls]
    assert agents == [BATCH_USER_AGENTS[1], BATCH_USER_AGENTS[2], BATCH_USER_AGENTS[0]]


def test_proxy_config_is_applied() -> None:
    proxy = RecordingProxyProvider("http://proxy.local:8000")
    session = FakeSession(post_responses=[FakeResponse(200, batch_body(PUBLISHER_URL))])
    resolver = _resolver(session, proxy=proxy)
    assert resolver.resolve("https://news.google.com/rss/articles/" + ARTICLE_ID) == PUBLISHER_URL
    for _, _, kwargs in session.calls:
        assert kwargs["proxies"] == {"http": "http://proxy.local:8000", "https": "http://proxy.local:8000"}
    assert BATCH_ENDPOINT in proxy.config_requests


def test_resolve_returns_input_for_non_article_url() -> None:
    session = FakeSession()
    url = "https://news.google.com/topics/abc"
    assert _resolver(session).resolve(url) == url
    assert session.calls == []


def test_blocked_batch_attempt_moves_to_next_proxy() -> None:
    """After a 503 the retry goes out through a different proxy, not the blocked one."""
    proxy = RotatingProxyProvider(["http://a:1", "http://b:2"])
    session = FakeSession(
        post_responses=[FakeResponse(503, ""), FakeResponse(200, batch_body(PUBLISHER_URL))]
    )
    assert _resolver(session, proxy=proxy).call_batch_endpoint(PARAMS) == PUBLISHER_URL
    used = [kwargs["proxies"]["https"] for _, _, kwargs in session.calls]
    assert used == ["http://a:1", "http://b:2"]
    assert proxy.stats["rotations"] == 1
    assert proxy.errors_by_status == {503: 1}


def test_blocked_profile_fetch_moves_to_next_proxy() -> None:
    proxy = RotatingProxyProvider(["http://a:1", "http://b:2", "http://c:3"])
    pages = iter([FakeResponse(429, ""), FakeResponse(200, SIGNED_PAGE)])
    session = FakeSession(get_handler=lambda _url: next(pages))
    assert _resolver(session, proxy=proxy).fetch_signing_params(ARTICLE_ID) is not None
    used = [kwargs["proxies"]["https"] for _, _, kwargs in session.calls]
    assert used == ["http://a:1", "http://b:2"]
