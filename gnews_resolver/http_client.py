"""Pooled HTTP sessions for calls to the aggregator.

Transport-level retries are switched off: the RPC resolver decides when a
status is worth retrying and how long to back off, so urllib3 must not
retry underneath it.

Updates: v0.1 - 2026-10-15 - Thread-local sessions for page fetches and batch calls.
"""

from __future__ import annotations

import atexit
import threading
from typing import List, Optional

import requests
from requests import Session
from requests.adapters import HTTPAdapter
from urllib3.util import Retry

from .config import AGGREGATOR_ORIGIN

_local = threading.local()
_registry_lock = threading.Lock()
_open_sessions: List[Session] = []

# Sent with every request unless a request profile overrides it.
SESSION_HEADERS = {
    "Accept-Language": "en-US,en;q=0.5",
    "Referer": AGGREGATOR_ORIGIN + "/",
}


def _no_transport_retries() -> Retry:
    return Retry(total=0, connect=0, read=0, redirect=5, raise_on_status=False)


def _new_session() -> Session:
    session = requests.Session()
    session.headers.update(SESSION_HEADERS)
    adapter = HTTPAdapter(pool_connections=2, pool_maxsize=8, max_retries=_no_transport_retries())
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def get_http_session() -> Session:
    """Return the calling thread's session, creating it on first use."""

    session: Optional[Session] = getattr(_local, "session", None)
    if session is None:
        session = _new_session()
        with _registry_lock:
            _open_sessions.append(session)
        _local.session = session
    return session


def close_all_sessions() -> None:
    """Close every session handed out so far; later calls get fresh ones."""

    with _registry_lock:
        sessions = list(_open_sessions)
        _open_sessions.clear()
    for session in sessions:
        try:
            session.close()
        except Exception:  # pragma: no cover - close at interpreter exit
            continue
    _local.session = None


atexit.register(close_all_sessions)


__all__ = ["SESSION_HEADERS", "close_all_sessions", "get_http_session"]
