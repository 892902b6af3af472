"""
Text Cache Tests

TTL derivation from signed-expiry URLs, expiry with an injected clock, and
basic set/get behavior.
"""

from datetime import datetime, timedelta, timezone

from docqa_server.extraction.cache import (
    DEFAULT_TTL,
    MAX_TTL,
    TextCache,
    parse_signed_expiry,
)


NOW = datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, delta):
        self.now = self.now + delta


def _signed_url(expiry):
    stamp = expiry.strftime("%Y-%m-%dT%H:%M:%SZ")
    return f"https://files.example.com/doc.pdf?sv=2023-01-03&se={stamp}&sig=abc"


class TestParseSignedExpiry:
    def test_zulu_timestamp(self):
        url = _signed_url(NOW)
        assert parse_signed_expiry(url) == NOW

    def test_url_encoded_timestamp(self):
        url = "https://x/doc.pdf?se=2025-03-01T12%3A00%3A00Z"
        assert parse_signed_expiry(url) == NOW

    def test_unescaped_offset(self):
        url = "https://x/doc.pdf?se=2025-03-01T12:00:00+00:00"
        assert parse_signed_expiry(url) == NOW

    def test_naive_timestamp_is_utc(self):
        url = "https://x/doc.pdf?se=2025-03-01T12:00:00"
        assert parse_signed_expiry(url) == NOW

    def test_missing_or_garbage(self):
        assert parse_signed_expiry("https://x/doc.pdf") is None
        assert parse_signed_expiry("https://x/doc.pdf?se=tomorrow") is None


class TestTtl:
    def test_plain_url_gets_default(self):
        cache = TextCache(clock=FakeClock())
        assert cache.ttl_for("https://x/doc.pdf") == DEFAULT_TTL == timedelta(hours=24)

    def test_signed_expiry_two_hours_ahead(self):
        cache = TextCache(clock=FakeClock())
        url = _signed_url(NOW + timedelta(hours=2))

        assert cache.ttl_for(url) == timedelta(hours=2)

    def test_signed_expiry_is_capped(self):
        cache = TextCache(clock=FakeClock())
        url = _signed_url(NOW + timedelta(days=30))

        assert cache.ttl_for(url) == MAX_TTL == timedelta(days=7)

    def test_past_expiry_is_zero(self):
        cache = TextCache(clock=FakeClock())
        url = _signed_url(NOW - timedelta(minutes=5))

        assert cache.ttl_for(url) == timedelta(0)


class TestGetSet:
    def test_set_then_get(self):
        cache = TextCache(clock=FakeClock())
        cache.set("https://x/a.pdf", "hello world")

        assert cache.get("https://x/a.pdf") == "hello world"
        assert cache.get("https://x/b.pdf") is None
        assert len(cache) == 1

    def test_overwrite(self):
        cache = TextCache(clock=FakeClock())
        cache.set("https://x/a.pdf", "old")
        cache.set("https://x/a.pdf", "new")

        assert cache.get("https://x/a.pdf") == "new"

    def test_entry_expires(self):
        clock = FakeClock()
        cache = TextCache(clock=clock)
        url = _signed_url(NOW + timedelta(hours=2))
        cache.set(url, "text")

        clock.advance(timedelta(hours=1, minutes=59))
        assert cache.get(url) == "text"

        clock.advance(timedelta(minutes=1))
        assert cache.get(url) is None
        assert len(cache) == 0

    def test_default_ttl_expiry(self):
        clock = FakeClock()
        cache = TextCache(clock=clock)
        cache.set("https://x/a.pdf", "text")

        clock.advance(DEFAULT_TTL)
        assert cache.get("https://x/a.pdf") is None

    def test_clear(self):
        cache = TextCache(clock=FakeClock())
        cache.set("https://x/a.pdf", "a")
        cache.set("https://x/b.pdf", "b")

        cache.clear()

        assert len(cache) == 0
