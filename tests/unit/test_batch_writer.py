"""Tests for ListingBatchWriter — per-listing isolation of discount writes."""

import asyncio

import pytest

from src.mp_listing.application.batch_writer import ListingBatchWriter
from src.mp_listing.domain.models import CLEARED, Listing, PriceChange
from src.mp_listing.domain.pricing import percentage_change


def _ten_percent(listing: Listing) -> PriceChange:
    return percentage_change(listing.price, 10)


class TestWrite:
    async def test_updates_every_listing(self, store, session_factory) -> None:
        store.add(id="A", price=1000)
        store.add(id="B", price=2000)
        writer = ListingBatchWriter(repo=store, concurrency=4)
        listings = [Listing(id="A", price=1000), Listing(id="B", price=2000)]

        result = await writer.write(session_factory, listings, _ten_percent, "test")

        assert sorted(result.updated) == ["A", "B"]
        assert result.skipped == []
        assert result.failed == []
        assert store.listings["A"].discounted_price == 900
        assert store.listings["B"].discounted_price == 1800

    async def test_one_session_per_listing_each_committed(self, store, session_factory) -> None:
        for i in range(3):
            store.add(id=f"L{i}", price=1000)
        writer = ListingBatchWriter(repo=store, concurrency=2)
        listings = [Listing(id=f"L{i}", price=1000) for i in range(3)]

        await writer.write(session_factory, listings, _ten_percent, "test")

        assert len(session_factory.sessions) == 3
        assert all(s.committed for s in session_factory.sessions)

    async def test_failure_is_isolated(self, store, session_factory) -> None:
        store.add(id="A", price=1000)
        store.add(id="B", price=1000)
        store.add(id="C", price=1000)
        store.fail_ids.add("B")
        writer = ListingBatchWriter(repo=store, concurrency=4)
        listings = [Listing(id=i, price=1000) for i in ("A", "B", "C")]

        result = await writer.write(session_factory, listings, _ten_percent, "test")

        assert sorted(result.updated) == ["A", "C"]
        assert [f.listing_id for f in result.failed] == ["B"]
        assert "ConnectionResetError" in result.failed[0].error
        assert store.listings["A"].discounted_price == 900
        assert store.listings["C"].discounted_price == 900
        assert store.listings["B"].discounted_price is None
        rolled_back = [s for s in session_factory.sessions if s.rolled_back]
        assert len(rolled_back) == 1

    async def test_missing_listing_is_failed(self, store, session_factory) -> None:
        writer = ListingBatchWriter(repo=store, concurrency=4)

        result = await writer.write(
            session_factory, [Listing(id="GONE", price=1000)], _ten_percent, "test"
        )

        assert result.updated == []
        assert result.failed[0].listing_id == "GONE"
        assert "ListingNotFoundError" in result.failed[0].error

    async def test_none_change_is_skipped_not_failed(self, store, session_factory) -> None:
        store.add(id="A", price=1000)
        writer = ListingBatchWriter(repo=store, concurrency=4)

        result = await writer.write(
            session_factory, [Listing(id="A", price=1000)], lambda _: None, "noop"
        )

        assert result.skipped == ["A"]
        assert result.updated == []
        assert result.failed == []
        assert session_factory.sessions == []
        assert store.listings["A"].version == 0

    async def test_inconsistent_change_is_failed(self, store, session_factory) -> None:
        store.add(id="A", price=1000)
        writer = ListingBatchWriter(repo=store, concurrency=4)
        bad = PriceChange(discount=None, discounted_price=5)

        result = await writer.write(
            session_factory, [Listing(id="A", price=1000)], lambda _: bad, "bad"
        )

        assert result.failed[0].listing_id == "A"
        assert store.saves == []

    async def test_updates_in_memory_listing(self, store, session_factory) -> None:
        store.add(id="A", price=1000)
        writer = ListingBatchWriter(repo=store, concurrency=4)
        listing = Listing(id="A", price=1000)

        await writer.write(session_factory, [listing], _ten_percent, "test")

        assert listing.discounted_price == 900
        assert listing.version == 1

    async def test_clear(self, store, session_factory) -> None:
        store.add(id="A", price=1000)
        writer = ListingBatchWriter(repo=store, concurrency=4)
        await writer.write(session_factory, [Listing(id="A", price=1000)], _ten_percent, "a")

        result = await writer.write(
            session_factory, [Listing(id="A", price=1000)], lambda _: CLEARED, "clear"
        )

        assert result.updated == ["A"]
        assert store.listings["A"].discount is None
        assert store.listings["A"].discounted_price is None
        assert store.listings["A"].version == 2

    async def test_empty_batch(self, store, session_factory) -> None:
        writer = ListingBatchWriter(repo=store, concurrency=4)
        result = await writer.write(session_factory, [], _ten_percent, "empty")
        assert result.total == 0


class TestConcurrencyBound:
    @pytest.mark.asyncio
    async def test_in_flight_saves_capped(self, session_factory) -> None:
        in_flight = 0
        peak = 0

        class SlowRepo:
            async def save_discount(self, db, listing_id, change) -> bool:
                nonlocal in_flight, peak
                in_flight += 1
                peak = max(peak, in_flight)
                await asyncio.sleep(0.01)
                in_flight -= 1
                return True

        writer = ListingBatchWriter(repo=SlowRepo(), concurrency=3)
        listings = [Listing(id=f"L{i}", price=1000) for i in range(10)]

        result = await writer.write(session_factory, listings, _ten_percent, "slow")

        assert len(result.updated) == 10
        assert peak <= 3
