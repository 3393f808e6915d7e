"""Disk persistence for the resolution cache.

The snapshot is a versioned JSON document::

    {"version": "1.0", "timestamp": <ms>,
     "stats": {"requestCount": n, "successCount": n, "cacheSize": n},
     "entries": {"<link>": {"resolvedUrl": ..., "timestamp": <ms>, "requestCount": n}}}

A missing file is a normal cold start; anything else that goes wrong while
reading or writing is logged as a warning and never raised.

Updates: v0.1 - 2026-10-15 - Adapted the JSON settings store for cache snapshots.
Updates: v0.2 - 2026-10-15 - Added the periodic persistence timer.
"""

from __future__ import annotations

import json
import logging
import os
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from .config import CACHE_SNAPSHOT_VERSION
from .models import CacheEntry

logger = logging.getLogger(__name__)


@dataclass
class CacheSnapshot:
    entries: List[CacheEntry] = field(default_factory=list)
    request_count: int = 0
    success_count: int = 0


def _coerce_count(stats: Mapping[str, Any], name: str) -> int:
    value = stats.get(name)
    return value if isinstance(value, int) and value >= 0 else 0


def load_snapshot(path: Path, *, now: Optional[float] = None) -> Optional[CacheSnapshot]:
    """Read a snapshot from ``path``; ``None`` when absent or unreadable.

    Entries whose resolved URL is not a valid publisher URL are dropped. The
    rest are returned ordered by their stored timestamp rather than by their
    position in the JSON document, so FIFO eviction after a restart follows
    creation time.
    """

    loaded_at = time.time() if now is None else now
    try:
        with Path(path).open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except FileNotFoundError:
        logger.debug("No cache snapshot at %s; starting cold.", path)
        return None
    except Exception as exc:
        logger.warning("Failed to load cache from disk: %s", exc)
        return None

    if not isinstance(data, dict):
        logger.warning("Cache snapshot %s is not a JSON object; ignoring it.", path)
        return None

    snapshot = CacheSnapshot()
    raw_entries = data.get("entries")
    if isinstance(raw_entries, dict):
        for key, payload in raw_entries.items():
            entry = CacheEntry.from_payload(key, payload, default_created_at=loaded_at)
            if entry is not None:
                snapshot.entries.append(entry)
    snapshot.entries.sort(key=lambda entry: entry.created_at)

    stats = data.get("stats")
    if isinstance(stats, dict):
        snapshot.request_count = _coerce_count(stats, "requestCount")
        snapshot.success_count = _coerce_count(stats, "successCount")

    logger.info("Loaded %d cached URL resolutions from disk", len(snapshot.entries))
    return snapshot


def build_snapshot_payload(
    entries: Sequence[CacheEntry],
    *,
    request_count: int,
    success_count: int,
    now: Optional[float] = None,
) -> Dict[str, Any]:
    timestamp = time.time() if now is None else now
    return {
        "version": CACHE_SNAPSHOT_VERSION,
        "timestamp": int(timestamp * 1000),
        "stats": {
            "requestCount": request_count,
            "successCount": success_count,
            "cacheSize": len(entries),
        },
        "entries": {entry.original_key: entry.to_payload() for entry in entries},
    }


def save_snapshot(
    path: Path,
    entries: Sequence[CacheEntry],
    *,
    request_count: int,
    success_count: int,
) -> bool:
    """Write the snapshot atomically; returns whether it was written."""

    target = Path(path)
    payload = build_snapshot_payload(
        entries, request_count=request_count, success_count=success_count
    )
    temp_path = target.with_name(target.name + ".tmp")
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        with temp_path.open("w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2)
        os.replace(temp_path, target)
    except Exception as exc:
        logger.warning("Failed to save cache to disk: %s", exc)
        return False
    logger.debug("Saved %d cached URL resolutions to disk", len(entries))
    return True


def remove_snapshot(path: Path) -> None:
    try:
        Path(path).unlink()
    except FileNotFoundError:
        return
    except OSError as exc:
        logger.warning("Unable to remove cache snapshot %s: %s", path, exc)


class PersistenceTimer:
    """Invoke ``callback`` every ``interval`` seconds on a daemon thread."""

    def __init__(self, interval: float, callback: Callable[[], None]) -> None:
        self.interval = float(interval)
        self._callback = callback
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="gnews-cache-persistence", daemon=True
        )
        self._thread.start()

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self._callback()
            except Exception as exc:  # pragma: no cover - callback guards itself
                logger.warning("Periodic cache save failed: %s", exc)

    def cancel(self, timeout: Optional[float] = 5.0) -> None:
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        self._thread = None


__all__ = [
    "CacheSnapshot",
    "PersistenceTimer",
    "build_snapshot_payload",
    "load_snapshot",
    "remove_snapshot",
    "save_snapshot",
]
