"""Configuration primitives and static data for the Google News resolver.

This module centralises aggregator constants, request fingerprints, retry
tuning and cache paths so the strategies and the orchestrator can import
them without side effects beyond loading an optional ``.env`` file.

Updates: v0.1 - 2026-10-15 - Seeded module with aggregator, cache and proxy settings.
Updates: v0.2 - 2026-10-15 - Added Redis mirror settings.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Tuple

from dotenv import load_dotenv

load_dotenv()

# --- Aggregator endpoints ----------------------------------------------------------------------

AGGREGATOR_HOST = "news.google.com"
# Candidates containing this are treated as self-references and rejected.
AGGREGATOR_DOMAIN = "google.com"
AGGREGATOR_ORIGIN = f"https://{AGGREGATOR_HOST}"
BATCH_ENDPOINT = f"{AGGREGATOR_ORIGIN}/_/DotsSplashUi/data/batchexecute"
ARTICLE_PATH_MARKERS: Tuple[str, ...] = ("articles", "read")

CURRENT_FORMAT_MARKER = "AU_yqL"
LEGACY_FORMAT_MARKER = "CBM"
LEGACY_PREFIX = bytes([0x08, 0x13, 0x22])
LEGACY_SUFFIX = bytes([0xD2, 0x01, 0x00])

REDIRECT_QUERY_PARAMS: Tuple[str, ...] = ("url", "u", "link", "target", "redirect")

# --- Request fingerprints ----------------------------------------------------------------------

DESKTOP_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)
MAC_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)
LINUX_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)
MOBILE_USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 14_7_1 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/14.1.2 Mobile/15E148 Safari/604.1"
)
FEED_READER_USER_AGENT = "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)"
MINIMAL_USER_AGENT = "curl/7.68.0"

# Rotated across batch attempts by ``attempt % 3``.
BATCH_USER_AGENTS: Tuple[str, ...] = (LINUX_USER_AGENT, DESKTOP_USER_AGENT, MAC_USER_AGENT)

REQUEST_PROFILES: Tuple[Tuple[str, str, Dict[str, str]], ...] = (
    (
        "standard",
        AGGREGATOR_ORIGIN + "/articles/{article_id}",
        {
            "User-Agent": DESKTOP_USER_AGENT,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.5",
            "Referer": AGGREGATOR_ORIGIN + "/",
        },
    ),
    (
        "mobile",
        AGGREGATOR_ORIGIN + "/articles/{article_id}",
        {
            "User-Agent": MOBILE_USER_AGENT,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.5",
        },
    ),
    (
        "rss",
        AGGREGATOR_ORIGIN + "/rss/articles/{article_id}",
        {
            "User-Agent": FEED_READER_USER_AGENT,
            "Accept": "application/rss+xml, application/xml, text/xml",
            "Accept-Language": "en-US,en;q=0.5",
        },
    ),
    (
        "minimal",
        AGGREGATOR_ORIGIN + "/articles/{article_id}",
        {"User-Agent": MINIMAL_USER_AGENT, "Accept": "*/*"},
    ),
)

BATCH_HEADERS: Dict[str, str] = {
    "Content-Type": "application/x-www-form-urlencoded;charset=UTF-8",
    "Accept": "*/*",
    "Accept-Language": "en-US,en;q=0.5",
    "Referer": AGGREGATOR_ORIGIN + "/",
    "Origin": AGGREGATOR_ORIGIN,
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
}

SIGNED_CONTAINER_SELECTOR = "c-wiz > div[data-n-a-sg][data-n-a-ts]"
SIGNATURE_ATTRIBUTE = "data-n-a-sg"
TIMESTAMP_ATTRIBUTE = "data-n-a-ts"

# --- Status handling and retry tuning ----------------------------------------------------------

BLOCK_STATUSES = frozenset({403, 429, 502, 503})
PERMANENT_STATUSES = frozenset({400, 404})

CLOUD_MAX_RETRIES = 3
LOCAL_MAX_RETRIES = 5
DEFAULT_BATCH_TIMEOUT = 20.0
CLOUD_BATCH_TIMEOUT = 10.0
CLOUD_BATCH_TIMEOUT_MULTIPLIER = 0.5
DEFAULT_PAGE_TIMEOUT = 15.0

# (base seconds, ceiling seconds) for exponential backoff.
EMPTY_RESULT_BACKOFF = (1.0, 5.0)
ERROR_BACKOFF = (2.0, 10.0)

CLOUD_ENV_MARKERS: Tuple[str, ...] = (
    "APIFY_ACTOR_ID",
    "AWS_LAMBDA_FUNCTION_NAME",
    "GOOGLE_CLOUD_PROJECT",
    "AZURE_FUNCTIONS_WORKER_RUNTIME",
    "VERCEL",
    "NETLIFY",
    "HEROKU_APP_NAME",
)
PRODUCTION_ENV_VAR = "RESOLVER_ENV"

# --- Browser fallback --------------------------------------------------------------------------

BROWSER_NAVIGATION_TIMEOUT_MS = 15_000
BROWSER_SETTLE_MS = 2_000
BROWSER_PRIMARY_SELECTOR = 'article a[href*="http"]:not([href*="google.com"])'
BROWSER_ALTERNATIVE_SELECTORS: Tuple[str, ...] = (
    "a[data-n-tid]",
    "a[jsname]",
    'a[href]:not([href*="google.com"])',
    '[role="link"]',
)

# --- Cache and persistence ---------------------------------------------------------------------

CACHE_FILE = Path(os.getenv("RESOLVER_CACHE_FILE", "storage/google-news-cache.json"))
CACHE_SNAPSHOT_VERSION = "1.0"

try:
    CACHE_TTL_HOURS = max(1.0, float(os.getenv("RESOLVER_CACHE_TTL_HOURS", "24")))
except ValueError:
    CACHE_TTL_HOURS = 24.0
CACHE_TTL_SECONDS = CACHE_TTL_HOURS * 3600

try:
    CACHE_MAX_SIZE = max(1, int(os.getenv("RESOLVER_CACHE_MAX_SIZE", "10000")))
except ValueError:
    CACHE_MAX_SIZE = 10000

try:
    PERSIST_INTERVAL_SECONDS = max(5.0, float(os.getenv("RESOLVER_PERSIST_INTERVAL", "300")))
except ValueError:
    PERSIST_INTERVAL_SECONDS = 300.0

PERSISTENCE_ENABLED = os.getenv("RESOLVER_PERSISTENCE", "1").strip().lower() not in {
    "0",
    "false",
    "no",
    "off",
}

# --- Rate limiting and proxies -----------------------------------------------------------------

try:
    MIN_REQUEST_INTERVAL_MS = max(0, int(os.getenv("RESOLVER_MIN_REQUEST_INTERVAL_MS", "1000")))
except ValueError:
    MIN_REQUEST_INTERVAL_MS = 1000

PROXY_URLS: Tuple[str, ...] = tuple(
    candidate.strip()
    for candidate in os.getenv("RESOLVER_PROXY_URLS", "").split(",")
    if candidate.strip()
)

# --- Redis mirror ------------------------------------------------------------------------------

REDIS_URL = os.getenv("REDIS_URL")
REDIS_KEY_PREFIX = os.getenv("RESOLVER_REDIS_PREFIX", "gnews:resolved")


__all__ = [
    "AGGREGATOR_DOMAIN",
    "AGGREGATOR_HOST",
    "AGGREGATOR_ORIGIN",
    "ARTICLE_PATH_MARKERS",
    "BATCH_ENDPOINT",
    "BATCH_HEADERS",
    "BATCH_USER_AGENTS",
    "BLOCK_STATUSES",
    "BROWSER_ALTERNATIVE_SELECTORS",
    "BROWSER_NAVIGATION_TIMEOUT_MS",
    "BROWSER_PRIMARY_SELECTOR",
    "BROWSER_SETTLE_MS",
    "CACHE_FILE",
    "CACHE_MAX_SIZE",
    "CACHE_SNAPSHOT_VERSION",
    "CACHE_TTL_SECONDS",
    "CLOUD_BATCH_TIMEOUT",
    "CLOUD_BATCH_TIMEOUT_MULTIPLIER",
    "CLOUD_ENV_MARKERS",
    "CLOUD_MAX_RETRIES",
    "CURRENT_FORMAT_MARKER",
    "DEFAULT_BATCH_TIMEOUT",
    "DEFAULT_PAGE_TIMEOUT",
    "EMPTY_RESULT_BACKOFF",
    "ERROR_BACKOFF",
    "LEGACY_FORMAT_MARKER",
    "LEGACY_PREFIX",
    "LEGACY_SUFFIX",
    "LOCAL_MAX_RETRIES",
    "MIN_REQUEST_INTERVAL_MS",
    "PERMANENT_STATUSES",
    "PERSISTENCE_ENABLED",
    "PERSIST_INTERVAL_SECONDS",
    "PRODUCTION_ENV_VAR",
    "PROXY_URLS",
    "REDIRECT_QUERY_PARAMS",
    "REDIS_KEY_PREFIX",
    "REDIS_URL",
    "REQUEST_PROFILES",
    "SIGNATURE_ATTRIBUTE",
    "SIGNED_CONTAINER_SELECTOR",
    "TIMESTAMP_ATTRIBUTE",
]
