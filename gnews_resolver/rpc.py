"""Batch-endpoint client for current-format Google News identifiers.

Resolution is a two-phase protocol:

1. Fetch the article page under up to four request profiles until one
   response carries the signed container (``data-n-a-sg`` signature and
   ``data-n-a-ts`` timestamp attributes).
2. POST a ``garturlreq`` call to the internal batch endpoint with those
   parameters and dig the publisher URL out of the response envelope.

Neither phase raises to its caller; a failed phase yields ``None`` so the
orchestrator can fall through to the next strategy.

Updates: v0.1 - 2026-10-15 - Profile-based signing fetch and batch decoding.
Updates: v0.2 - 2026-10-15 - Proxy rotation on block responses and bounded retries.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable, Dict, Mapping, Optional, Tuple
from urllib.parse import quote

import requests
from bs4 import BeautifulSoup

from .config import (
    BATCH_ENDPOINT,
    BATCH_HEADERS,
    BATCH_USER_AGENTS,
    BLOCK_STATUSES,
    EMPTY_RESULT_BACKOFF,
    ERROR_BACKOFF,
    PERMANENT_STATUSES,
    REQUEST_PROFILES,
    SIGNATURE_ATTRIBUTE,
    SIGNED_CONTAINER_SELECTOR,
    TIMESTAMP_ATTRIBUTE,
)
from .errors import (
    BlockedError,
    HttpStatusError,
    PermanentRequestError,
    ResolutionError,
    ResponseShapeError,
    TransportError,
)
from .http_client import get_http_session
from .models import CostEnvironment, ProxyConfig, RequestProfile, SigningParams
from .utils import backoff_delay, extract_article_id, is_valid_resolution

logger = logging.getLogger(__name__)

RPC_METHOD_ID = "Fbv4je"
_GARTURLREQ_TEMPLATE = (
    '["garturlreq",[["X","X",["X","X"],null,null,1,1,"US:en",null,1,null,null,null,'
    'null,null,0,1],"X","X",1,[1,1,1],1,1,null,0,0,null,0],"{article_id}",{timestamp},'
    '"{signature}"]'
)
# Characters left untouched by JavaScript's encodeURIComponent.
_URI_COMPONENT_SAFE = "-_.!~*'()"

DEFAULT_PROFILES: Tuple[RequestProfile, ...] = tuple(
    RequestProfile(name, template, dict(headers))  # type: ignore[arg-type]
    for name, template, headers in REQUEST_PROFILES
)


def build_batch_payload(params: SigningParams) -> str:
    """Return the form body exactly as the aggregator frontend sends it."""

    inner = (
        _GARTURLREQ_TEMPLATE.replace("{article_id}", params.article_id)
        .replace("{timestamp}", str(int(params.timestamp)))
        .replace("{signature}", params.signature)
    )
    envelope = json.dumps([[[RPC_METHOD_ID, inner]]], separators=(",", ":"))
    return "f.req=" + quote(envelope, safe=_URI_COMPONENT_SAFE)


def parse_batch_response(body: str) -> Optional[str]:
    """Extract the candidate URL from a batch response body.

    The body is an anti-XSSI envelope line, a blank line, then a JSON array.
    The last two elements of that array are bookkeeping; the first remaining
    element holds a JSON-encoded ``["garturlres", url, ...]`` payload.
    """

    segments = body.split("\n\n")
    if len(segments) < 2:
        logger.debug("Invalid batch response format - insufficient segments")
        return None
    try:
        envelope = json.loads(segments[1])
    except ValueError as exc:
        logger.debug("Failed to parse batch JSON response: %s", exc)
        return None
    if not isinstance(envelope, list) or not envelope:
        logger.debug("Empty or invalid batch JSON response")
        return None

    records = envelope[:-2]
    if not records or not isinstance(records[0], list) or len(records[0]) <= 2:
        logger.debug("Batch response data structure is invalid")
        return None
    nested = records[0][2]
    if not isinstance(nested, str):
        logger.debug("Batch response payload is not a JSON string")
        return None
    try:
        decoded = json.loads(nested)
    except ValueError as exc:
        logger.debug("Failed to parse decoded batch payload: %s", exc)
        return None
    if not isinstance(decoded, list) or len(decoded) < 2:
        logger.debug("Decoded batch payload is empty or invalid")
        return None

    candidate = decoded[1]
    if not is_valid_resolution(candidate):
        logger.debug("Decoded URL appears invalid: %r", candidate)
        return None
    return candidate


def parse_signing_params(html: str, article_id: str, profile: str) -> Optional[SigningParams]:
    soup = BeautifulSoup(html, "html.parser")
    container = soup.select_one(SIGNED_CONTAINER_SELECTOR)
    if container is None:
        logger.debug("Could not find signed container with %s profile", profile)
        return None
    signature = container.get(SIGNATURE_ATTRIBUTE)
    raw_timestamp = container.get(TIMESTAMP_ATTRIBUTE)
    if not isinstance(signature, str) or not signature or not isinstance(raw_timestamp, str):
        return None
    try:
        timestamp = int(raw_timestamp.strip())
    except ValueError:
        logger.debug("Non-numeric signing timestamp %r with %s profile", raw_timestamp, profile)
        return None
    return SigningParams(
        article_id=article_id,
        signature=signature,
        timestamp=timestamp,
        strategy_used=profile,  # type: ignore[arg-type]
    )


class RpcResolver:
    """Resolve current-format identifiers through the batch endpoint."""

    def __init__(
        self,
        *,
        session: Optional[Any] = None,
        proxy_provider: Optional[Any] = None,
        environment: Optional[CostEnvironment] = None,
        profiles: Tuple[RequestProfile, ...] = DEFAULT_PROFILES,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._session = session
        self.proxy_provider = proxy_provider
        self.environment = environment or CostEnvironment.detect()
        self.profiles = profiles
        self._sleep = sleep

    @property
    def session(self) -> Any:
        return self._session if self._session is not None else get_http_session()

    # --- public entry points ---------------------------------------------------------------

    def resolve(self, url: str) -> str:
        """Return the publisher URL for ``url``, or ``url`` itself on failure."""

        article_id = extract_article_id(url)
        if article_id is None:
            logger.debug("Not a valid Google News article URL format: %s", url)
            return url
        candidate = self.resolve_identifier(article_id)
        return candidate if candidate else url

    def resolve_identifier(self, article_id: str) -> Optional[str]:
        try:
            params = self.fetch_signing_params(article_id)
            if params is None:
                logger.debug("Failed to get signing parameters for %s", article_id)
                return None
            return self.call_batch_endpoint(params)
        except Exception as exc:  # pragma: no cover - last-resort guard
            logger.debug("Batch resolution failed for %s: %s", article_id, exc)
            return None

    # --- phase 1 ---------------------------------------------------------------------------

    def fetch_signing_params(self, article_id: str) -> Optional[SigningParams]:
        for profile in self.profiles:
            target_url = profile.url_for(article_id)
            try:
                params = self._fetch_with_profile(article_id, profile, target_url)
            except BlockedError as exc:
                logger.warning("Proxy error %s on %s profile - rotating proxy", exc.status_code, profile.name)
                self._signal_block(target_url, exc)
                continue
            except ResolutionError as exc:
                logger.debug("Signing params fetch failed with %s profile: %s", profile.name, exc)
                continue
            if params is not None:
                logger.debug("Got signing params with %s profile", profile.name)
                return params
        return None

    def _fetch_with_profile(
        self, article_id: str, profile: RequestProfile, target_url: str
    ) -> Optional[SigningParams]:
        proxies, timeout = self._proxy_settings(target_url, self.environment.page_timeout)
        logger.debug("Trying %s profile for signing params: %s", profile.name, target_url)
        response = self._send(
            "get",
            target_url,
            headers=dict(profile.headers),
            timeout=timeout,
            proxies=proxies,
            allow_redirects=True,
        )
        if not 200 <= response.status_code < 300:
            raise HttpStatusError(response.status_code, target_url)
        return parse_signing_params(response.text or "", article_id, profile.name)

    # --- phase 2 ---------------------------------------------------------------------------

    def call_batch_endpoint(self, params: SigningParams) -> Optional[str]:
        max_attempts = self.environment.max_retries
        last_error: Optional[BaseException] = None

        for attempt in range(1, max_attempts + 1):
            logger.debug("Batch attempt %d/%d for article: %s", attempt, max_attempts, params.article_id)
            try:
                candidate = self._call_batch_once(params, attempt)
            except PermanentRequestError as exc:
                logger.debug("Non-retryable batch error, aborting retries: %s", exc)
                last_error = exc
                break
            except BlockedError as exc:
                logger.warning("Proxy error %s in batch call - rotating proxy", exc.status_code)
                last_error = exc
                self._signal_block(BATCH_ENDPOINT, exc)
                self._backoff(attempt, max_attempts, ERROR_BACKOFF)
                continue
            except ResolutionError as exc:
                logger.debug("Batch attempt %d failed: %s", attempt, exc)
                last_error = exc
                self._backoff(attempt, max_attempts, ERROR_BACKOFF)
                continue

            if candidate:
                logger.debug("Batch call succeeded on attempt %d", attempt)
                return candidate
            self._backoff(attempt, max_attempts, EMPTY_RESULT_BACKOFF)

        logger.debug("All batch attempts failed. Last error: %s", last_error or "none")
        return None

    def _call_batch_once(self, params: SigningParams, attempt: int) -> Optional[str]:
        headers: Dict[str, str] = dict(BATCH_HEADERS)
        headers["User-Agent"] = BATCH_USER_AGENTS[attempt % len(BATCH_USER_AGENTS)]
        proxies, timeout = self._proxy_settings(BATCH_ENDPOINT, self.environment.batch_timeout)

        started = time.monotonic()
        response = self._send(
            "post",
            BATCH_ENDPOINT,
            headers=headers,
            data=build_batch_payload(params),
            timeout=timeout,
            proxies=proxies,
        )
        elapsed_ms = (time.monotonic() - started) * 1000
        logger.debug("Batch response in %.0fms (status: %s)", elapsed_ms, response.status_code)

        if response.status_code != 200:
            raise HttpStatusError(response.status_code, BATCH_ENDPOINT)
        body = response.text
        if not body:
            raise ResponseShapeError("Empty response body")
        return parse_batch_response(body)

    # --- plumbing --------------------------------------------------------------------------

    def _send(self, method: str, url: str, **kwargs: Any) -> Any:
        try:
            response = getattr(self.session, method)(url, **kwargs)
        except requests.RequestException as exc:
            raise TransportError(str(exc)) from exc
        status = int(response.status_code)
        if status in PERMANENT_STATUSES:
            raise PermanentRequestError(status, url)
        if status in BLOCK_STATUSES:
            raise BlockedError(status, url)
        return response

    def _proxy_settings(
        self, target_url: str, default_timeout: float
    ) -> Tuple[Optional[Mapping[str, str]], float]:
        if self.proxy_provider is None:
            return None, default_timeout
        try:
            config = ProxyConfig.from_mapping(self.proxy_provider.get_proxy_config(target_url))
        except Exception as exc:
            logger.warning("Failed to get proxy config for %s: %s", target_url, exc)
            return None, default_timeout
        if config.proxy_url is None:
            logger.debug("No proxy available for %s; connecting directly", target_url)
        return config.as_requests_proxies(), config.timeout or default_timeout

    def _signal_block(self, target_url: str, error: HttpStatusError) -> None:
        if self.proxy_provider is None:
            return
        try:
            self.proxy_provider.report_proxy_error(target_url, error, error.status_code)
            self.proxy_provider.rotate_proxy()
        except Exception as exc:
            logger.warning("Proxy rotation failed: %s", exc)

    def _backoff(self, attempt: int, max_attempts: int, policy: Tuple[float, float]) -> None:
        if attempt >= max_attempts:
            return
        delay = backoff_delay(attempt, policy)
        logger.debug("Waiting %.1fs before batch attempt %d", delay, attempt + 1)
        self._sleep(delay)


__all__ = [
    "DEFAULT_PROFILES",
    "RPC_METHOD_ID",
    "RpcResolver",
    "build_batch_payload",
    "parse_batch_response",
    "parse_signing_params",
]
