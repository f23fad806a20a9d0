"""Тесты SpotPriceBook: обновление фида и fallback."""

import logging
from datetime import datetime, timedelta, timezone

import pytest

from bullion.core.domain.metal import Metal
from bullion.pricing.spot_book import SpotBookConfig, SpotPriceBook

T0 = datetime(2025, 3, 14, 12, 0, tzinfo=timezone.utc)


class _Clock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    return _Clock(T0)


@pytest.fixture
def book(clock):
    return SpotPriceBook(clock=clock)


def _failing_feed():
    raise ConnectionError("feed down")


class TestDefaults:
    """Тесты до первого успешного обновления."""

    def test_static_defaults(self, book):
        snapshot = book.snapshot()
        assert snapshot.source == "default"
        assert book.price(Metal.GOLD) == 4617.30
        assert book.price(Metal.SILVER) == 88.36

    def test_custom_defaults(self, clock):
        book = SpotPriceBook(SpotBookConfig(default_prices={"gold": 2000.0}), clock=clock)
        assert book.price(Metal.GOLD) == 2000.0
        assert book.price(Metal.PLATINUM) == 0.0

    def test_stale_without_feed_data(self, book):
        assert book.is_stale()

    def test_feed_failure_keeps_defaults(self, book, caplog):
        with caplog.at_level(logging.WARNING, logger="bullion.pricing.spot_book"):
            snapshot = book.refresh(_failing_feed)

        assert snapshot.source == "default"
        assert snapshot.price(Metal.GOLD) == 4617.30
        assert "Spot feed unavailable" in caplog.text


class TestFeedUpdates:
    """Тесты применения снапшотов фида."""

    def test_refresh_applies_prices(self, book):
        snapshot = book.refresh(lambda: {"gold": 2000.0, Metal.SILVER: 25.0})

        assert snapshot.source == "feed"
        assert snapshot.price(Metal.GOLD) == 2000.0
        assert snapshot.price(Metal.SILVER) == 25.0
        # Металлы без обновления сохраняют прежнюю цену
        assert snapshot.price(Metal.PLATINUM) == 2370.00
        assert not book.is_stale()

    def test_invalid_values_skipped(self, book):
        snapshot = book.update(
            {"gold": 2000.0, "silver": float("nan"), "platinum": -5.0, "rhodium": 4500.0, "palladium": "n/a"}
        )

        assert snapshot.price(Metal.GOLD) == 2000.0
        assert snapshot.price(Metal.SILVER) == 88.36
        assert snapshot.price(Metal.PLATINUM) == 2370.00
        assert snapshot.price(Metal.PALLADIUM) == 1882.00

    def test_failure_after_success_serves_cache(self, book):
        book.refresh(lambda: {"gold": 2000.0})
        snapshot = book.refresh(_failing_feed)

        assert snapshot.source == "cache"
        assert snapshot.price(Metal.GOLD) == 2000.0

    def test_snapshot_unaffected_by_later_updates(self, book):
        """Снапшот, переданный в сделку, не меняется при обновлении книги."""
        locked = book.update({"gold": 2000.0})
        book.update({"gold": 2100.0})

        assert locked.price(Metal.GOLD) == 2000.0
        assert book.price(Metal.GOLD) == 2100.0

    def test_staleness_by_age(self, book, clock):
        book.update({"gold": 2000.0})
        clock.now = T0 + timedelta(seconds=299)
        assert not book.is_stale()
        clock.now = T0 + timedelta(seconds=301)
        assert book.is_stale()
