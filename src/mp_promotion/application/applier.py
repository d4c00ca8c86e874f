"""Discount application and revocation over resolved listings.

Both delegate persistence to ListingBatchWriter: one independent write per
listing, failures collected rather than raised.
"""

from collections.abc import Iterable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.mp_common.enums import PromotionType
from src.mp_listing.application.batch_writer import ListingBatchWriter
from src.mp_listing.domain.models import CLEARED, BatchResult, Listing, PriceChange
from src.mp_listing.domain.pricing import fixed_change, free_change, percentage_change
from src.mp_promotion.domain.models import Promotion


def change_for_promotion(promotion: Promotion, listing: Listing) -> PriceChange | None:
    """None for promotion types that do not touch price (skipped, not failed)."""
    if promotion.type == PromotionType.PERCENTAGE:
        return percentage_change(listing.price, promotion.value)
    if promotion.type == PromotionType.FIXED_AMOUNT:
        return fixed_change(listing.price, promotion.value)
    if promotion.type == PromotionType.FREE_LISTING:
        return free_change(listing.price)
    return None


class DiscountApplicator:
    def __init__(self, writer: ListingBatchWriter | None = None) -> None:
        self._writer = writer or ListingBatchWriter()

    async def apply(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        promotion: Promotion,
        listings: Iterable[Listing],
    ) -> BatchResult:
        return await self._writer.write(
            session_factory,
            listings,
            lambda listing: change_for_promotion(promotion, listing),
            operation=f"apply promotion {promotion.id} ({promotion.type.value})",
        )


class DiscountRevoker:
    def __init__(self, writer: ListingBatchWriter | None = None) -> None:
        self._writer = writer or ListingBatchWriter()

    async def revoke(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        listings: Iterable[Listing],
        label: str = "revoke",
    ) -> BatchResult:
        return await self._writer.write(
            session_factory, listings, lambda _listing: CLEARED, operation=label
        )
