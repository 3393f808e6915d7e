"""Pytest configuration and shared fakes for resolver tests.

- Prepend project root to sys.path so 'gnews_resolver' is importable with testpaths.
- Provide scripted HTTP session and response doubles so no test touches the network.
"""

from __future__ import annotations

import base64
import json
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple


def _ensure_project_root_on_syspath() -> None:
    """Prepend repository root to sys.path for package imports."""
    tests_dir = Path(__file__).resolve().parent
    project_root = tests_dir.parent
    root_str = str(project_root)
    if root_str not in sys.path:
        sys.path.insert(0, root_str)


_ensure_project_root_on_syspath()

import pytest  # noqa: E402

SIGNED_PAGE = (
    "<html><body><c-wiz><div jscontroller=\"x\" data-n-a-sg=\"SIG123\" "
    "data-n-a-ts=\"1712345678\"></div></c-wiz></body></html>"
)
UNSIGNED_PAGE = "<html><body><c-wiz><div>consent</div></c-wiz></body></html>"


class FakeResponse:
    def __init__(self, status_code: int = 200, text: str = "") -> None:
        self.status_code = status_code
        self.text = text


class FakeSession:
    """Scripted stand-in for ``requests.Session``.

    ``get_handler`` maps a URL to a response; POST responses are popped from
    ``post_responses`` (the last one repeats once the queue runs dry).
    """

    def __init__(
        self,
        get_handler: Optional[Callable[[str], Any]] = None,
        post_responses: Optional[List[Any]] = None,
    ) -> None:
        self.get_handler = get_handler or (lambda _url: FakeResponse(200, SIGNED_PAGE))
        self.post_responses = list(post_responses or [])
        self.calls: List[Tuple[str, str, Dict[str, Any]]] = []

    def _resolve(self, value: Any) -> Any:
        if isinstance(value, BaseException):
            raise value
        return value

    def get(self, url: str, **kwargs: Any) -> Any:
        self.calls.append(("get", url, kwargs))
        return self._resolve(self.get_handler(url))

    def post(self, url: str, **kwargs: Any) -> Any:
        self.calls.append(("post", url, kwargs))
        if not self.post_responses:
            return FakeResponse(500, "")
        value = self.post_responses.pop(0) if len(self.post_responses) > 1 else self.post_responses[0]
        return self._resolve(value)

    def count(self, method: str) -> int:
        return sum(1 for call in self.calls if call[0] == method)


class RecordingProxyProvider:
    def __init__(self, proxy_url: Optional[str] = "http://proxy.local:8000") -> None:
        self.proxy_url = proxy_url
        self.config_requests: List[str] = []
        self.rotations = 0
        self.errors: List[Tuple[str, Optional[int]]] = []

    def get_proxy_config(self, target_url: str = "") -> Dict[str, Any]:
        self.config_requests.append(target_url)
        return {"proxy_url": self.proxy_url} if self.proxy_url else {}

    def rotate_proxy(self) -> None:
        self.rotations += 1

    def report_proxy_error(self, target_url: str, error: BaseException, status_code: Optional[int] = None) -> None:
        self.errors.append((target_url, status_code))


def batch_body(url: Any) -> str:
    """Build a batch endpoint body the way the aggregator returns it."""
    nested = json.dumps(["garturlres", url, 1])
    envelope = [
        ["wrb.fr", "Fbv4je", nested, None, None, None, "generic"],
        ["di", 42],
        ["af.httprm", 41, "-123", 7],
    ]
    return ")]}'\n\n" + json.dumps(envelope)


def legacy_identifier(url: str) -> str:
    """Encode ``url`` in the legacy length-prefixed identifier layout."""
    payload = url.encode("utf-8")
    length = len(payload)
    if length < 0x80:
        header = bytes([length])
    else:
        header = bytes([(length & 0x7F) | 0x80, length >> 7])
    raw = b"\x08\x13\x22" + header + payload + b"\xd2\x01\x00"
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


class FakeClock:
    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def no_sleep() -> Callable[[float], None]:
    return lambda _seconds: None
