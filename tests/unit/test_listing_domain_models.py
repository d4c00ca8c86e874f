"""Tests for mp_listing domain models: Listing, ListingFilter, BatchResult."""

from src.mp_common.enums import DiscountKind
from src.mp_listing.domain.models import (
    CLEARED,
    BatchResult,
    Discount,
    FailedListing,
    Listing,
    ListingFilter,
    PriceChange,
)


def _make_listing(**kwargs) -> Listing:
    defaults = dict(
        id="LST-1", price=25000, user_id="u1", category="SUV", location="Warszawa",
    )
    defaults.update(kwargs)
    return Listing(**defaults)


class TestListing:
    def test_effective_price_without_discount(self) -> None:
        assert _make_listing().effective_price == 25000

    def test_apply_sets_fields_and_bumps_version(self) -> None:
        listing = _make_listing()
        listing.apply(PriceChange(Discount(DiscountKind.PERCENTAGE, 10), 22500))
        assert listing.discount == Discount(DiscountKind.PERCENTAGE, 10)
        assert listing.discounted_price == 22500
        assert listing.effective_price == 22500
        assert listing.version == 1

    def test_apply_never_touches_price(self) -> None:
        listing = _make_listing()
        listing.apply(PriceChange(Discount(DiscountKind.FIXED, 25000), 0))
        listing.apply(CLEARED)
        assert listing.price == 25000
        assert listing.discount is None
        assert listing.discounted_price is None
        assert listing.version == 2


class TestListingFilterMatchesNothing:
    def test_default_filter_matches_everything(self) -> None:
        assert ListingFilter().matches_nothing is False

    def test_empty_user_set_matches_nothing(self) -> None:
        assert ListingFilter(user_ids=frozenset()).matches_nothing is True

    def test_empty_category_set_matches_nothing(self) -> None:
        assert ListingFilter(categories=frozenset()).matches_nothing is True

    def test_inverted_price_range_matches_nothing(self) -> None:
        assert ListingFilter(min_price=10, max_price=5).matches_nothing is True

    def test_equal_bounds_is_fine(self) -> None:
        assert ListingFilter(min_price=10, max_price=10).matches_nothing is False


class TestListingFilterMatches:
    def test_unconstrained(self) -> None:
        assert ListingFilter().matches(_make_listing())

    def test_price_bounds_inclusive(self) -> None:
        flt = ListingFilter(min_price=25000, max_price=25000)
        assert flt.matches(_make_listing(price=25000))
        assert not flt.matches(_make_listing(price=24999))
        assert not flt.matches(_make_listing(price=25001))

    def test_category(self) -> None:
        flt = ListingFilter(categories=frozenset({"SUV", "Sedan"}))
        assert flt.matches(_make_listing(category="Sedan"))
        assert not flt.matches(_make_listing(category="Truck"))

    def test_location(self) -> None:
        flt = ListingFilter(locations=frozenset({"Kraków"}))
        assert not flt.matches(_make_listing(location="Warszawa"))

    def test_user_ids(self) -> None:
        flt = ListingFilter(user_ids=frozenset({"u1"}))
        assert flt.matches(_make_listing(user_id="u1"))
        assert not flt.matches(_make_listing(user_id="u2"))

    def test_empty_set_matches_no_listing(self) -> None:
        assert not ListingFilter(user_ids=frozenset()).matches(_make_listing())

    def test_conjunction(self) -> None:
        flt = ListingFilter(min_price=20000, categories=frozenset({"SUV"}))
        assert flt.matches(_make_listing(price=25000, category="SUV"))
        assert not flt.matches(_make_listing(price=15000, category="SUV"))
        assert not flt.matches(_make_listing(price=25000, category="Sedan"))


class TestBatchResult:
    def test_empty(self) -> None:
        result = BatchResult()
        assert result.total == 0
        assert result.ok is True

    def test_counts(self) -> None:
        result = BatchResult(
            updated=["a", "b"], skipped=["c"], failed=[FailedListing("d", "boom")]
        )
        assert result.total == 4
        assert result.ok is False
