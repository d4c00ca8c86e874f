"""Concurrent, failure-isolated persistence of listing discount changes.

Each listing is written in its own session and committed on its own: a
failed save is rolled back and recorded in BatchResult.failed, and never
undoes or blocks its siblings. There is no cross-listing transaction and no
ordering between listings. Concurrent batches touching the same listing are
last-write-wins (every write bumps listings.version).

The semaphore caps in-flight sessions so a large campaign cannot drain the
connection pool; it does not serialize anything.
"""

import asyncio
import logging
from collections.abc import Callable, Iterable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.settings import settings
from src.mp_common.errors import ListingNotFoundError
from src.mp_listing.domain.models import BatchResult, FailedListing, Listing, PriceChange
from src.mp_listing.domain.pricing import check_consistent
from src.mp_listing.domain.repository import ListingRepositoryProtocol
from src.mp_listing.infrastructure.persistence import ListingRepository

logger = logging.getLogger(__name__)

# Returns None to skip the listing (deliberate no-op, not a failure)
ChangeFor = Callable[[Listing], PriceChange | None]


class ListingBatchWriter:
    def __init__(
        self,
        repo: ListingRepositoryProtocol | None = None,
        concurrency: int | None = None,
    ) -> None:
        self._repo: ListingRepositoryProtocol = repo or ListingRepository()
        self._concurrency = concurrency or settings.PROMOTION_APPLY_CONCURRENCY

    async def write(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        listings: Iterable[Listing],
        change_for: ChangeFor,
        operation: str,
    ) -> BatchResult:
        result = BatchResult()
        planned: list[tuple[Listing, PriceChange]] = []
        for listing in listings:
            change = change_for(listing)
            if change is None:
                result.skipped.append(listing.id)
                continue
            planned.append((listing, change))

        semaphore = asyncio.Semaphore(self._concurrency)
        outcomes = await asyncio.gather(
            *(
                self._save_one(session_factory, semaphore, listing, change)
                for listing, change in planned
            ),
            return_exceptions=True,
        )

        for (listing, change), outcome in zip(planned, outcomes):
            if isinstance(outcome, BaseException):
                logger.warning(
                    "%s: listing %s not saved: %r", operation, listing.id, outcome
                )
                result.failed.append(FailedListing(listing.id, _describe(outcome)))
            else:
                listing.apply(change)
                result.updated.append(listing.id)

        logger.info(
            "%s: %d updated, %d skipped, %d failed",
            operation,
            len(result.updated),
            len(result.skipped),
            len(result.failed),
        )
        return result

    async def _save_one(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        semaphore: asyncio.Semaphore,
        listing: Listing,
        change: PriceChange,
    ) -> None:
        check_consistent(listing.price, change)
        async with semaphore, session_factory() as db:
            try:
                if not await self._repo.save_discount(db, listing.id, change):
                    raise ListingNotFoundError(listing.id)
                await db.commit()
            except Exception:
                await db.rollback()
                raise


def _describe(exc: BaseException) -> str:
    message = str(exc)
    return f"{type(exc).__name__}: {message}" if message else type(exc).__name__
