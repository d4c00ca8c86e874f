"""Domain models for mp_listing — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass, field
from datetime import datetime

from src.mp_common.enums import DiscountKind


@dataclass(frozen=True)
class Discount:
    """Currently applied discount descriptor."""

    kind: DiscountKind
    value: int   # percentage points for PERCENTAGE, PLN for FIXED


@dataclass(frozen=True)
class PriceChange:
    """New values for a listing's discount fields; price itself is never in here."""

    discount: Discount | None
    discounted_price: int | None


CLEARED = PriceChange(discount=None, discounted_price=None)


@dataclass
class Listing:
    id: str
    price: int
    discount: Discount | None = None
    discounted_price: int | None = None
    # Not loaded by the promotion targeting projection
    user_id: str | None = None
    title: str | None = None
    category: str | None = None
    location: str | None = None
    status: str | None = None
    version: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def effective_price(self) -> int:
        return self.price if self.discounted_price is None else self.discounted_price

    def apply(self, change: PriceChange) -> None:
        self.discount = change.discount
        self.discounted_price = change.discounted_price
        self.version += 1


@dataclass(frozen=True)
class ListingFilter:
    """Conjunctive listing query.

    For the set fields, ``None`` means "no constraint" while an empty
    frozenset means "matches nothing". The two must never be conflated.
    """

    min_price: int | None = None
    max_price: int | None = None
    categories: frozenset[str] | None = None
    locations: frozenset[str] | None = None
    user_ids: frozenset[str] | None = None
    listing_ids: frozenset[str] | None = None

    @property
    def matches_nothing(self) -> bool:
        sets = (self.categories, self.locations, self.user_ids, self.listing_ids)
        if any(s is not None and not s for s in sets):
            return True
        return (
            self.min_price is not None
            and self.max_price is not None
            and self.min_price > self.max_price
        )

    def matches(self, listing: Listing) -> bool:
        """In-memory evaluation; same semantics as the SQL in persistence.py."""
        if self.min_price is not None and listing.price < self.min_price:
            return False
        if self.max_price is not None and listing.price > self.max_price:
            return False
        if self.categories is not None and listing.category not in self.categories:
            return False
        if self.locations is not None and listing.location not in self.locations:
            return False
        if self.user_ids is not None and listing.user_id not in self.user_ids:
            return False
        if self.listing_ids is not None and listing.id not in self.listing_ids:
            return False
        return True


@dataclass
class FailedListing:
    listing_id: str
    error: str


@dataclass
class BatchResult:
    """Outcome of a discount fan-out. Skipped is not failed."""

    updated: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[FailedListing] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.updated) + len(self.skipped) + len(self.failed)

    @property
    def ok(self) -> bool:
        return not self.failed
