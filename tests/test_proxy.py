"""Unit tests for the bundled proxy providers."""

from __future__ import annotations

from gnews_resolver.proxy import NullProxyProvider, ProxyProvider, RotatingProxyProvider


def test_null_provider_connects_directly() -> None:
    provider = NullProxyProvider()
    assert isinstance(provider, ProxyProvider)
    assert provider.get_proxy_config("https://news.google.com") == {}
    provider.rotate_proxy()
    provider.report_proxy_error("https://news.google.com", RuntimeError("x"), 403)


def test_rotating_provider_cycles() -> None:
    provider = RotatingProxyProvider(["http://a:1", "", "http://b:2"], timeout=9)
    assert provider.get_proxy_config() == {"proxy_url": "http://a:1", "timeout": 9}
    assert provider.get_proxy_config()["proxy_url"] == "http://a:1"
    provider.rotate_proxy()
    assert provider.get_proxy_config()["proxy_url"] == "http://b:2"
    provider.rotate_proxy()
    assert provider.get_proxy_config()["proxy_url"] == "http://a:1"
    assert provider.stats["rotations"] == 2


def test_reported_errors_are_counted_without_rotating() -> None:
    """Rotation is left to the caller; a report only updates the counters."""
    provider = RotatingProxyProvider(["http://a:1", "http://b:2"])
    provider.get_proxy_config()
    provider.report_proxy_error("https://news.google.com", RuntimeError("blocked"), 429)
    provider.report_proxy_error("https://news.google.com", RuntimeError("blocked"), 429)
    provider.report_proxy_error("https://news.google.com", RuntimeError("gone"), 404)
    assert provider.get_proxy_config()["proxy_url"] == "http://a:1"
    assert provider.stats["errors"] == 3
    assert provider.stats["rotations"] == 0
    assert provider.errors_by_status == {429: 2, 404: 1}


def test_empty_rotating_provider() -> None:
    provider = RotatingProxyProvider([])
    assert provider.get_proxy_config() == {}
    provider.rotate_proxy()
