"""
Extracted Text Cache

In-memory mapping from a document URL to previously extracted text.

Design choices
--------------
- In-memory only (no persistence across process restarts).
- Per-entry expiry derived from the URL: signed-access URLs carrying an
  ``se`` (signed expiry) query parameter live until that instant, capped at
  seven days; every other URL lives for 24 hours.
- Lazy eviction: expired entries are removed by the lookup that finds them.
- Thread-safe access using a re-entrant lock.
- Injectable clock so expiry can be tested without sleeping.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from threading import RLock
from typing import Callable, Dict, NamedTuple, Optional
from urllib.parse import parse_qs, urlparse

logger = logging.getLogger("docqa.cache")

Clock = Callable[[], datetime]

DEFAULT_TTL = timedelta(hours=24)
MAX_TTL = timedelta(days=7)
EXPIRY_PARAM = "se"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_signed_expiry(url: str) -> Optional[datetime]:
    """
    Return the signed-access expiry carried by ``url``, if any.

    Naive timestamps are interpreted as UTC.
    """
    try:
        query = parse_qs(urlparse(url).query)
    except ValueError:
        return None

    values = query.get(EXPIRY_PARAM)
    if not values:
        return None

    # parse_qs decodes an unescaped "+" offset as a space.
    raw = values[0].strip().replace(" ", "+")
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        expiry = datetime.fromisoformat(raw)
    except ValueError:
        return None

    if expiry.tzinfo is None:
        expiry = expiry.replace(tzinfo=timezone.utc)
    return expiry


class CacheEntry(NamedTuple):
    text: str
    expires_at: datetime


class TextCache:
    """
    Process-wide cache of extracted document text.

    Writers only touch their own document's key, so no cross-key locking is
    needed beyond the internal lock protecting the dictionary itself.
    """

    def __init__(self, clock: Optional[Clock] = None) -> None:
        """
        Parameters
        ----------
        clock : Optional[Clock]
            Callable returning the current aware datetime. Defaults to UTC now.
        """
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = RLock()
        self._clock = clock or _utcnow

    # ------------------------------------------------------------------
    # Core operations
    # ------------------------------------------------------------------

    def ttl_for(self, document_id: str) -> timedelta:
        """
        Compute the time-to-live for ``document_id``.
        """
        expiry = parse_signed_expiry(document_id)
        if expiry is None:
            return DEFAULT_TTL

        remaining = expiry - self._clock()
        if remaining < timedelta(0):
            return timedelta(0)
        return min(remaining, MAX_TTL)

    def get(self, document_id: str) -> Optional[str]:
        """
        Return cached text, or None when absent or expired.
        """
        with self._lock:
            entry = self._entries.get(document_id)
            if entry is None:
                return None

            if self._clock() >= entry.expires_at:
                del self._entries[document_id]
                logger.debug("Evicted expired cache entry for %s", document_id)
                return None

            return entry.text

    def set(self, document_id: str, text: str) -> None:
        """
        Store ``text`` for ``document_id``, overwriting any previous entry.
        """
        ttl = self.ttl_for(document_id)
        with self._lock:
            self._entries[document_id] = CacheEntry(
                text=text,
                expires_at=self._clock() + ttl,
            )
        logger.debug("Cached %d chars for %s (ttl=%s)", len(text), document_id, ttl)

    # ------------------------------------------------------------------
    # Utility operations
    # ------------------------------------------------------------------

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
