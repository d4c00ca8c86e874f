"""ListingApplicationService — listing price views and manual admin discounts.

Single-listing writes commit on the request session. Multi-listing writes go
through ListingBatchWriter, which opens one session per listing.
"""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.mp_common.errors import (
    InvalidDiscountError,
    ListingNotFoundError,
    NoListingsMatchedError,
)
from src.mp_listing.application.batch_writer import ListingBatchWriter
from src.mp_listing.application.schemas import (
    BatchResultOut,
    DiscountedListingPage,
    ListingDetail,
    cursor_decode,
    cursor_encode,
)
from src.mp_listing.domain.models import CLEARED, ListingFilter, PriceChange
from src.mp_listing.domain.pricing import manual_percentage_change
from src.mp_listing.domain.repository import ListingRepositoryProtocol
from src.mp_listing.infrastructure.persistence import ListingRepository


class ListingApplicationService:
    def __init__(
        self,
        repo: ListingRepositoryProtocol | None = None,
        writer: ListingBatchWriter | None = None,
    ) -> None:
        self._repo: ListingRepositoryProtocol = repo or ListingRepository()
        self._writer = writer or ListingBatchWriter(repo=self._repo)

    async def get_listing(self, db: AsyncSession, listing_id: str) -> ListingDetail:
        listing = await self._repo.get_listing_by_id(db, listing_id)
        if listing is None:
            raise ListingNotFoundError(listing_id)
        return ListingDetail.from_domain(listing)

    async def list_discounted(
        self,
        db: AsyncSession,
        category: str | None,
        min_discount: int | None,
        max_discount: int | None,
        cursor: str | None,
        limit: int,
    ) -> DiscountedListingPage:
        if min_discount is not None and max_discount is not None and min_discount > max_discount:
            raise InvalidDiscountError("min_discount is greater than max_discount")
        cursor_ts, cursor_id = cursor_decode(cursor)

        # Fetch limit+1 to detect has_more without COUNT(*)
        listings = await self._repo.list_discounted(
            db, category, min_discount, max_discount, cursor_ts, cursor_id, limit + 1
        )
        has_more = len(listings) > limit
        page = listings[:limit]
        return DiscountedListingPage(
            items=[ListingDetail.from_domain(item) for item in page],
            next_cursor=cursor_encode(page[-1]) if has_more and page else None,
            has_more=has_more,
        )

    async def set_discount(
        self, db: AsyncSession, listing_id: str, percent: int
    ) -> ListingDetail:
        listing = await self._repo.get_listing_by_id(db, listing_id)
        if listing is None:
            raise ListingNotFoundError(listing_id)
        try:
            change = manual_percentage_change(listing.price, percent)
        except ValueError as e:
            raise InvalidDiscountError(str(e)) from None
        await self._save(db, listing_id, change)
        listing.apply(change)
        return ListingDetail.from_domain(listing)

    async def clear_discount(self, db: AsyncSession, listing_id: str) -> ListingDetail:
        listing = await self._repo.get_listing_by_id(db, listing_id)
        if listing is None:
            raise ListingNotFoundError(listing_id)
        await self._save(db, listing_id, CLEARED)
        listing.apply(CLEARED)
        return ListingDetail.from_domain(listing)

    async def bulk_discount(
        self,
        db: AsyncSession,
        session_factory: async_sessionmaker[AsyncSession],
        flt: ListingFilter,
        percent: int,
        require_match: bool = False,
    ) -> BatchResultOut:
        """Apply one manual percentage to every listing matching ``flt``."""
        if not (0 <= percent <= 99):
            raise InvalidDiscountError(f"percent must be 0-99, got {percent}")
        listings = [] if flt.matches_nothing else await self._repo.find_listings(db, flt)
        if require_match and not listings:
            raise NoListingsMatchedError(_describe_filter(flt))

        result = await self._writer.write(
            session_factory,
            listings,
            lambda listing: manual_percentage_change(listing.price, percent),
            operation=f"manual discount {percent}%",
        )
        return BatchResultOut.from_result(result)

    async def _save(self, db: AsyncSession, listing_id: str, change: PriceChange) -> None:
        try:
            if not await self._repo.save_discount(db, listing_id, change):
                raise ListingNotFoundError(listing_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise


def _describe_filter(flt: ListingFilter) -> str:
    if flt.user_ids:
        return f"user {', '.join(sorted(flt.user_ids))}"
    if flt.categories:
        return f"category {', '.join(sorted(flt.categories))}"
    return "filter"
