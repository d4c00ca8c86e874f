"""Repository Protocol — dependency inversion for testability.

Unit tests inject a mock that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_listing.domain.models import Listing, ListingFilter, PriceChange


class ListingRepositoryProtocol(Protocol):
    async def get_listing_by_id(
        self, db: AsyncSession, listing_id: str
    ) -> Listing | None: ...

    async def find_listings(
        self, db: AsyncSession, flt: ListingFilter
    ) -> list[Listing]:
        """Price projection only: id, price, discount fields, version."""
        ...

    async def save_discount(
        self, db: AsyncSession, listing_id: str, change: PriceChange
    ) -> bool:
        """Whole-row write of the discount fields. False if the listing is gone."""
        ...

    async def list_discounted(
        self,
        db: AsyncSession,
        category: str | None,
        min_percent: int | None,
        max_percent: int | None,
        cursor_ts: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Listing]: ...
