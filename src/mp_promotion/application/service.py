"""PromotionApplicationService — promotion administration and promo codes.

Activation flow:
  1. lifecycle checks (status transition, validity window)
  2. TargetResolver.resolve      — read-only, on the request session
  3. DiscountApplicator.apply    — fan-out, one session per listing
  4. remember the updated listing ids, set status, commit

Withdrawal (deactivate / cancel / expire) revokes the remembered listing
ids and sets the final status. Listings whose revocation failed stay
remembered so a later withdrawal or re-activation picks them up again.
"""

import dataclasses
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.settings import settings
from src.mp_common.datetime_utils import utc_now
from src.mp_common.enums import PromotionStatus
from src.mp_common.errors import (
    InvalidPromoCodeError,
    PromoCodeExistsError,
    PromoCodeNotUsableError,
    PromotionNotFoundError,
    PromotionStatusError,
)
from src.mp_common.id_generator import PROMOTION_PREFIX, generate_id
from src.mp_listing.application.schemas import BatchResultOut
from src.mp_listing.domain.models import BatchResult, ListingFilter
from src.mp_listing.domain.repository import ListingRepositoryProtocol
from src.mp_listing.infrastructure.persistence import ListingRepository
from src.mp_promotion.application.applier import DiscountApplicator, DiscountRevoker
from src.mp_promotion.application.resolver import TargetResolver
from src.mp_promotion.application.schemas import (
    ExpireDueResponse,
    PromoCodeResponse,
    PromotionCreate,
    PromotionDetail,
    PromotionListResponse,
    PromotionRunResponse,
    PromotionUpdate,
    RedemptionResponse,
    TargetsPreview,
    cursor_decode,
    cursor_encode,
    normalize_code,
)
from src.mp_promotion.domain.lifecycle import (
    ensure_transition,
    ensure_within_window,
    is_within_window,
    remaining_uses,
    usage_exhausted,
    validate_promotion,
)
from src.mp_promotion.domain.models import Promotion
from src.mp_promotion.domain.repository import PromotionRepositoryProtocol
from src.mp_promotion.infrastructure.persistence import PromotionRepository

logger = logging.getLogger(__name__)

# PATCH fields that may be explicitly set to null
_NULLABLE_FIELDS = frozenset({"promo_code", "usage_limit"})
_FINAL_STATUSES = frozenset({PromotionStatus.EXPIRED, PromotionStatus.CANCELLED})

SessionFactory = async_sessionmaker[AsyncSession]


class PromotionApplicationService:
    def __init__(
        self,
        repo: PromotionRepositoryProtocol | None = None,
        listing_repo: ListingRepositoryProtocol | None = None,
        resolver: TargetResolver | None = None,
        applicator: DiscountApplicator | None = None,
        revoker: DiscountRevoker | None = None,
    ) -> None:
        self._repo: PromotionRepositoryProtocol = repo or PromotionRepository()
        self._listing_repo: ListingRepositoryProtocol = listing_repo or ListingRepository()
        self._resolver = resolver or TargetResolver(listings=self._listing_repo)
        self._applicator = applicator or DiscountApplicator()
        self._revoker = revoker or DiscountRevoker()

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    async def list_promotions(
        self,
        db: AsyncSession,
        status: str | None,
        search: str | None,
        cursor: str | None,
        limit: int,
    ) -> PromotionListResponse:
        cursor_ts, cursor_id = cursor_decode(cursor)
        search = search.strip() if search else None

        # Fetch limit+1 to detect has_more without COUNT(*)
        promotions = await self._repo.list_promotions(
            db, status, search or None, cursor_ts, cursor_id, limit + 1
        )
        has_more = len(promotions) > limit
        page = promotions[:limit]
        now = utc_now()
        return PromotionListResponse(
            items=[PromotionDetail.from_domain(p, now) for p in page],
            next_cursor=cursor_encode(page[-1]) if has_more and page else None,
            has_more=has_more,
        )

    async def get_promotion(self, db: AsyncSession, promotion_id: str) -> PromotionDetail:
        return PromotionDetail.from_domain(await self._get(db, promotion_id))

    async def create_promotion(
        self, db: AsyncSession, body: PromotionCreate, admin_id: str
    ) -> PromotionDetail:
        promotion = Promotion(
            id=generate_id(PROMOTION_PREFIX),
            title=body.title,
            description=body.description,
            type=body.type,
            value=body.value,
            target_type=body.target_type,
            target_criteria=body.target_criteria.to_domain(),
            valid_from=body.valid_from,
            valid_to=body.valid_to,
            status=PromotionStatus.DRAFT,
            promo_code=body.promo_code,
            usage_limit=body.usage_limit,
            max_usage_per_user=body.max_usage_per_user,
            priority=body.priority,
            created_by=admin_id,
            last_modified_by=admin_id,
        )
        validate_promotion(promotion, settings.FIXED_AMOUNT_MAX_VALUE)
        try:
            if promotion.promo_code and await self._repo.code_exists(db, promotion.promo_code):
                raise PromoCodeExistsError(promotion.promo_code)
            created = await self._repo.create(db, promotion)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("promotion %s created by %s", created.id, admin_id)
        return PromotionDetail.from_domain(created)

    async def update_promotion(
        self,
        db: AsyncSession,
        promotion_id: str,
        body: PromotionUpdate,
        admin_id: str,
    ) -> PromotionDetail:
        """Edits are stored only; an active promotion is re-applied by activating it again."""
        current = await self._get(db, promotion_id)
        if current.status in _FINAL_STATUSES:
            raise PromotionStatusError(promotion_id, current.status.value, "updated")

        changes = {
            name: value
            for name, value in body.model_dump(exclude_unset=True).items()
            if value is not None or name in _NULLABLE_FIELDS
        }
        if body.target_criteria is not None and "target_criteria" in changes:
            changes["target_criteria"] = body.target_criteria.to_domain()
        updated = dataclasses.replace(current, **changes, last_modified_by=admin_id)
        validate_promotion(updated, settings.FIXED_AMOUNT_MAX_VALUE)

        try:
            if updated.promo_code and await self._repo.code_exists(
                db, updated.promo_code, exclude_id=promotion_id
            ):
                raise PromoCodeExistsError(updated.promo_code)
            saved = await self._repo.update(db, updated)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return PromotionDetail.from_domain(saved)

    async def delete_promotion(self, db: AsyncSession, promotion_id: str) -> None:
        """An active promotion must be withdrawn first so no discount is orphaned."""
        promotion = await self._get(db, promotion_id)
        if promotion.status == PromotionStatus.ACTIVE:
            raise PromotionStatusError(promotion_id, promotion.status.value, "deleted")
        try:
            await self._repo.delete(db, promotion_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("promotion %s deleted", promotion_id)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def activate(
        self,
        db: AsyncSession,
        session_factory: SessionFactory,
        promotion_id: str,
        admin_id: str | None,
    ) -> PromotionRunResponse:
        promotion = await self._get(db, promotion_id)
        ensure_transition(promotion, "activated")
        ensure_within_window(promotion, utc_now())

        listings = await self._resolver.resolve(db, promotion)
        result = await self._applicator.apply(session_factory, promotion, listings)

        # Re-activation: anything applied before and not re-applied now loses the
        # old discount (untargeted, skipped, or failed); failed revokes stay remembered
        previously = await self._repo.get_applied_listing_ids(db, promotion_id)
        reapplied = set(result.updated)
        stale = [lid for lid in previously if lid not in reapplied]
        stale_result = await self._revoke_ids(
            db, session_factory, stale, f"revoke stale listings of {promotion_id}"
        )

        remembered = result.updated + [f.listing_id for f in stale_result.failed]
        try:
            await self._repo.replace_applied_listings(db, promotion_id, remembered)
            await self._repo.set_status(db, promotion_id, PromotionStatus.ACTIVE, admin_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "promotion %s activated: %d matched, %d updated, %d skipped, %d failed",
            promotion_id,
            len(listings),
            len(result.updated),
            len(result.skipped),
            len(result.failed),
        )
        return PromotionRunResponse(
            promotion_id=promotion_id,
            status=PromotionStatus.ACTIVE.value,
            matched=len(listings),
            result=BatchResultOut.from_result(result),
        )

    async def deactivate(
        self,
        db: AsyncSession,
        session_factory: SessionFactory,
        promotion_id: str,
        admin_id: str | None,
    ) -> PromotionRunResponse:
        promotion = await self._get(db, promotion_id)
        ensure_transition(promotion, "deactivated")
        return await self._withdraw(
            db, session_factory, promotion, PromotionStatus.PAUSED, admin_id
        )

    async def cancel(
        self,
        db: AsyncSession,
        session_factory: SessionFactory,
        promotion_id: str,
        admin_id: str | None,
    ) -> PromotionRunResponse:
        promotion = await self._get(db, promotion_id)
        ensure_transition(promotion, "cancelled")
        return await self._withdraw(
            db, session_factory, promotion, PromotionStatus.CANCELLED, admin_id
        )

    async def expire_due(
        self,
        db: AsyncSession,
        session_factory: SessionFactory,
        admin_id: str | None = None,
    ) -> ExpireDueResponse:
        """Withdraw every active promotion past its window or usage limit."""
        due = await self._repo.list_due_for_expiry(db, utc_now())
        expired = []
        for promotion in due:
            ensure_transition(promotion, "expired")
            expired.append(
                await self._withdraw(
                    db, session_factory, promotion, PromotionStatus.EXPIRED, admin_id
                )
            )
        if expired:
            logger.info("expired %d promotions", len(expired))
        return ExpireDueResponse(expired=expired)

    async def preview_targets(self, db: AsyncSession, promotion_id: str) -> TargetsPreview:
        """Dry run of targeting; nothing is written."""
        promotion = await self._get(db, promotion_id)
        listings = await self._resolver.resolve(db, promotion)
        return TargetsPreview(
            promotion_id=promotion_id,
            count=len(listings),
            listing_ids=[listing.id for listing in listings],
        )

    # ------------------------------------------------------------------
    # Promo codes
    # ------------------------------------------------------------------

    async def validate_promo_code(
        self, db: AsyncSession, code: str, user_id: str
    ) -> PromoCodeResponse:
        promotion = await self._usable_promotion(db, code, user_id)
        return PromoCodeResponse.from_domain(promotion)

    async def redeem_promo_code(
        self, db: AsyncSession, code: str, user_id: str
    ) -> RedemptionResponse:
        """Checks and the usage increment run in one transaction under a row lock."""
        try:
            promotion = await self._usable_promotion(db, code, user_id, for_update=True)
            used_count = await self._repo.record_redemption(db, promotion.id, user_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        promotion.used_count = used_count
        logger.info(
            "promo code %s redeemed by %s (%d used)",
            promotion.promo_code,
            user_id,
            used_count,
        )
        return RedemptionResponse(
            code=promotion.promo_code or "",
            promotion_id=promotion.id,
            used_count=used_count,
            remaining_uses=remaining_uses(promotion),
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _get(self, db: AsyncSession, promotion_id: str) -> Promotion:
        promotion = await self._repo.get_by_id(db, promotion_id)
        if promotion is None:
            raise PromotionNotFoundError(promotion_id)
        return promotion

    async def _usable_promotion(
        self,
        db: AsyncSession,
        code: str,
        user_id: str,
        for_update: bool = False,
    ) -> Promotion:
        normalized = normalize_code(code)
        if normalized is None:
            raise InvalidPromoCodeError()
        promotion = await self._repo.get_by_code(db, normalized, for_update=for_update)
        if promotion is None or promotion.status != PromotionStatus.ACTIVE:
            raise InvalidPromoCodeError()
        if not is_within_window(promotion, utc_now()):
            raise PromoCodeNotUsableError("code has expired or is not valid yet")
        if usage_exhausted(promotion):
            raise PromoCodeNotUsableError("usage limit reached")
        used_by_user = await self._repo.count_user_redemptions(db, promotion.id, user_id)
        if used_by_user >= promotion.max_usage_per_user:
            raise PromoCodeNotUsableError(
                f"limit of {promotion.max_usage_per_user} uses per user reached"
            )
        return promotion

    async def _revoke_ids(
        self,
        db: AsyncSession,
        session_factory: SessionFactory,
        listing_ids: list[str],
        label: str,
    ) -> BatchResult:
        if not listing_ids:
            return BatchResult()
        listings = await self._listing_repo.find_listings(
            db, ListingFilter(listing_ids=frozenset(listing_ids))
        )
        return await self._revoker.revoke(session_factory, listings, label=label)

    async def _withdraw(
        self,
        db: AsyncSession,
        session_factory: SessionFactory,
        promotion: Promotion,
        status: PromotionStatus,
        admin_id: str | None,
    ) -> PromotionRunResponse:
        applied = await self._repo.get_applied_listing_ids(db, promotion.id)
        result = await self._revoke_ids(
            db, session_factory, applied, f"revoke promotion {promotion.id}"
        )
        try:
            if result.failed:
                await self._repo.replace_applied_listings(
                    db, promotion.id, [f.listing_id for f in result.failed]
                )
            else:
                await self._repo.clear_applied_listings(db, promotion.id)
            await self._repo.set_status(db, promotion.id, status, admin_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "promotion %s -> %s: %d revoked, %d failed",
            promotion.id,
            status.value,
            len(result.updated),
            len(result.failed),
        )
        return PromotionRunResponse(
            promotion_id=promotion.id,
            status=status.value,
            matched=len(applied),
            result=BatchResultOut.from_result(result),
        )
