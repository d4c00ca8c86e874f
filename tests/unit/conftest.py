"""In-memory stand-ins for the listing store, sessions and user directory.

They follow the repository Protocols closely enough to run the targeting and
discount fan-out end to end without PostgreSQL.
"""

import dataclasses

import pytest

from src.mp_listing.domain.models import Listing, ListingFilter, PriceChange


class FakeSession:
    def __init__(self) -> None:
        self.committed = False
        self.rolled_back = False

    async def __aenter__(self) -> "FakeSession":
        return self

    async def __aexit__(self, *exc_info: object) -> bool:
        return False

    async def commit(self) -> None:
        self.committed = True

    async def rollback(self) -> None:
        self.rolled_back = True


class FakeSessionFactory:
    def __init__(self) -> None:
        self.sessions: list[FakeSession] = []

    def __call__(self) -> FakeSession:
        session = FakeSession()
        self.sessions.append(session)
        return session


class FakeListingStore:
    """ListingRepositoryProtocol over a dict; save_discount fails for fail_ids."""

    def __init__(self) -> None:
        self.listings: dict[str, Listing] = {}
        self.fail_ids: set[str] = set()
        self.filters: list[ListingFilter] = []
        self.saves: list[tuple[str, PriceChange]] = []

    def add(self, **kwargs: object) -> Listing:
        listing = Listing(**kwargs)  # type: ignore[arg-type]
        self.listings[listing.id] = listing
        return listing

    async def get_listing_by_id(self, db: object, listing_id: str) -> Listing | None:
        listing = self.listings.get(listing_id)
        return dataclasses.replace(listing) if listing else None

    async def find_listings(self, db: object, flt: ListingFilter) -> list[Listing]:
        self.filters.append(flt)
        return [
            Listing(
                id=listing.id,
                price=listing.price,
                discount=listing.discount,
                discounted_price=listing.discounted_price,
                version=listing.version,
            )
            for listing in sorted(self.listings.values(), key=lambda item: item.id)
            if flt.matches(listing)
        ]

    async def save_discount(self, db: object, listing_id: str, change: PriceChange) -> bool:
        if listing_id in self.fail_ids:
            raise ConnectionResetError("connection reset by peer")
        listing = self.listings.get(listing_id)
        if listing is None:
            return False
        listing.apply(change)
        self.saves.append((listing_id, change))
        return True


class FakeUserDirectory:
    def __init__(self, roles_by_user: dict[str, str] | None = None) -> None:
        self.roles_by_user = roles_by_user or {}
        self.calls: list[tuple[str, ...]] = []

    async def find_user_ids_by_role(self, db: object, roles: tuple[str, ...]) -> frozenset[str]:
        self.calls.append(tuple(roles))
        return frozenset(uid for uid, role in self.roles_by_user.items() if role in roles)


@pytest.fixture
def session_factory() -> FakeSessionFactory:
    return FakeSessionFactory()


@pytest.fixture
def store() -> FakeListingStore:
    return FakeListingStore()


@pytest.fixture
def user_directory() -> FakeUserDirectory:
    return FakeUserDirectory()
