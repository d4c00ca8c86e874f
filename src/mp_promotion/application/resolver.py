"""TargetResolver — Promotion -> candidate listings.

Read-only and uncached: resolving twice against the same store state yields
the same candidates. Store errors propagate unchanged.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.mp_listing.domain.models import Listing
from src.mp_listing.domain.repository import ListingRepositoryProtocol
from src.mp_listing.infrastructure.persistence import ListingRepository
from src.mp_promotion.domain.lifecycle import validate_promotion
from src.mp_promotion.domain.models import Promotion
from src.mp_promotion.domain.repository import UserDirectoryProtocol
from src.mp_promotion.domain.targeting import build_listing_filter, requires_role_lookup
from src.mp_promotion.infrastructure.user_directory import UserDirectory

logger = logging.getLogger(__name__)


class TargetResolver:
    def __init__(
        self,
        listings: ListingRepositoryProtocol | None = None,
        users: UserDirectoryProtocol | None = None,
    ) -> None:
        self._listings: ListingRepositoryProtocol = listings or ListingRepository()
        self._users: UserDirectoryProtocol = users or UserDirectory()

    async def resolve(self, db: AsyncSession, promotion: Promotion) -> list[Listing]:
        validate_promotion(promotion, settings.FIXED_AMOUNT_MAX_VALUE)

        role_user_ids: frozenset[str] | None = None
        if requires_role_lookup(promotion):
            role_user_ids = await self._users.find_user_ids_by_role(
                db, promotion.target_criteria.roles
            )

        flt = build_listing_filter(promotion, role_user_ids)
        if flt.matches_nothing:
            logger.debug("promotion %s: filter matches nothing", promotion.id)
            return []

        listings = await self._listings.find_listings(db, flt)
        logger.debug(
            "promotion %s (%s): %d candidate listings",
            promotion.id,
            promotion.target_type.value,
            len(listings),
        )
        return listings
