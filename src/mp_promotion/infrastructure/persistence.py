"""PromotionRepository — concrete implementation of PromotionRepositoryProtocol.

All queries use raw text() SQL (no ORM).
asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.
target_criteria is stored as JSONB.

Transaction ownership: the CALLER commits.
"""

import json
from datetime import datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.enums import PromotionStatus, PromotionType, TargetType
from src.mp_promotion.domain.models import Promotion, TargetCriteria

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_PROMOTION_COLUMNS = """
    id, title, description, type, value, target_type, target_criteria,
    valid_from, valid_to, status, promo_code,
    usage_limit, used_count, max_usage_per_user, priority,
    created_by, last_modified_by, created_at, updated_at
"""

_INSERT_PROMOTION_SQL = text(f"""
    INSERT INTO promotions (
        id, title, description, type, value, target_type, target_criteria,
        valid_from, valid_to, status, promo_code,
        usage_limit, used_count, max_usage_per_user, priority,
        created_by, last_modified_by
    ) VALUES (
        :id, :title, :description, :type, :value, :target_type,
        CAST(:target_criteria AS JSONB),
        :valid_from, :valid_to, :status, :promo_code,
        :usage_limit, :used_count, :max_usage_per_user, :priority,
        CAST(:created_by AS UUID), CAST(:last_modified_by AS UUID)
    )
    RETURNING {_PROMOTION_COLUMNS}
""")

_GET_PROMOTION_SQL = f"""
    SELECT {_PROMOTION_COLUMNS}
    FROM promotions
    WHERE id = :promotion_id
"""

_GET_BY_CODE_SQL = f"""
    SELECT {_PROMOTION_COLUMNS}
    FROM promotions
    WHERE promo_code = :code
"""

_GET_PROMOTION = text(_GET_PROMOTION_SQL)
_GET_PROMOTION_FOR_UPDATE = text(_GET_PROMOTION_SQL + " FOR UPDATE")
_GET_BY_CODE = text(_GET_BY_CODE_SQL)
_GET_BY_CODE_FOR_UPDATE = text(_GET_BY_CODE_SQL + " FOR UPDATE")

_CODE_EXISTS_SQL = text("""
    SELECT 1
    FROM promotions
    WHERE promo_code = :code
      AND (CAST(:exclude_id AS TEXT) IS NULL OR id <> CAST(:exclude_id AS TEXT))
    LIMIT 1
""")

_LIST_PROMOTIONS_SQL = text(f"""
    SELECT {_PROMOTION_COLUMNS}
    FROM promotions
    WHERE
        (CAST(:status AS TEXT) IS NULL OR status = CAST(:status AS TEXT))
        AND (
            CAST(:pattern AS TEXT) IS NULL
            OR title ILIKE CAST(:pattern AS TEXT)
            OR promo_code ILIKE CAST(:pattern AS TEXT)
            OR description ILIKE CAST(:pattern AS TEXT)
        )
        AND (
            CAST(:cursor_ts AS TIMESTAMPTZ) IS NULL
            OR created_at < CAST(:cursor_ts AS TIMESTAMPTZ)
            OR (
                created_at = CAST(:cursor_ts AS TIMESTAMPTZ)
                AND id < CAST(:cursor_id AS TEXT)
            )
        )
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")

_UPDATE_PROMOTION_SQL = text(f"""
    UPDATE promotions
    SET title = :title,
        description = :description,
        type = :type,
        value = :value,
        target_type = :target_type,
        target_criteria = CAST(:target_criteria AS JSONB),
        valid_from = :valid_from,
        valid_to = :valid_to,
        promo_code = :promo_code,
        usage_limit = :usage_limit,
        max_usage_per_user = :max_usage_per_user,
        priority = :priority,
        last_modified_by = CAST(:last_modified_by AS UUID),
        updated_at = NOW()
    WHERE id = :id
    RETURNING {_PROMOTION_COLUMNS}
""")

_DELETE_PROMOTION_SQL = text("""
    DELETE FROM promotions WHERE id = :promotion_id RETURNING id
""")

_SET_STATUS_SQL = text("""
    UPDATE promotions
    SET status = :status,
        last_modified_by = COALESCE(CAST(:modified_by AS UUID), last_modified_by),
        updated_at = NOW()
    WHERE id = :promotion_id
""")

_DUE_FOR_EXPIRY_SQL = text(f"""
    SELECT {_PROMOTION_COLUMNS}
    FROM promotions
    WHERE status = 'active'
      AND (
          valid_to < :now
          OR (usage_limit IS NOT NULL AND used_count >= usage_limit)
      )
    ORDER BY valid_to, id
""")

_DELETE_APPLIED_SQL = text("""
    DELETE FROM promotion_listings WHERE promotion_id = :promotion_id
""")

_INSERT_APPLIED_SQL = text("""
    INSERT INTO promotion_listings (promotion_id, listing_id)
    SELECT :promotion_id, unnest(CAST(:listing_ids AS TEXT[]))
    ON CONFLICT DO NOTHING
""")

_GET_APPLIED_SQL = text("""
    SELECT listing_id
    FROM promotion_listings
    WHERE promotion_id = :promotion_id
    ORDER BY listing_id
""")

_COUNT_USER_REDEMPTIONS_SQL = text("""
    SELECT COUNT(*) AS cnt
    FROM promotion_redemptions
    WHERE promotion_id = :promotion_id AND user_id = CAST(:user_id AS UUID)
""")

_INSERT_REDEMPTION_SQL = text("""
    INSERT INTO promotion_redemptions (promotion_id, user_id)
    VALUES (:promotion_id, CAST(:user_id AS UUID))
""")

_INCREMENT_USED_COUNT_SQL = text("""
    UPDATE promotions
    SET used_count = used_count + 1,
        updated_at = NOW()
    WHERE id = :promotion_id
    RETURNING used_count
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _load_criteria(raw: object) -> TargetCriteria:
    # the asyncpg JSONB codec decodes to dict; plain drivers hand back text
    if isinstance(raw, str):
        raw = json.loads(raw)
    return TargetCriteria.from_dict(raw)  # type: ignore[arg-type]


def _opt_str(value: object) -> str | None:
    return str(value) if value is not None else None


def _row_to_promotion(row: object) -> Promotion:
    return Promotion(
        id=row.id,  # type: ignore[attr-defined]
        title=row.title,  # type: ignore[attr-defined]
        description=row.description or "",  # type: ignore[attr-defined]
        type=PromotionType(row.type),  # type: ignore[attr-defined]
        value=row.value,  # type: ignore[attr-defined]
        target_type=TargetType(row.target_type),  # type: ignore[attr-defined]
        target_criteria=_load_criteria(row.target_criteria),  # type: ignore[attr-defined]
        valid_from=row.valid_from,  # type: ignore[attr-defined]
        valid_to=row.valid_to,  # type: ignore[attr-defined]
        status=PromotionStatus(row.status),  # type: ignore[attr-defined]
        promo_code=row.promo_code,  # type: ignore[attr-defined]
        usage_limit=row.usage_limit,  # type: ignore[attr-defined]
        used_count=row.used_count,  # type: ignore[attr-defined]
        max_usage_per_user=row.max_usage_per_user,  # type: ignore[attr-defined]
        priority=row.priority,  # type: ignore[attr-defined]
        created_by=_opt_str(row.created_by),  # type: ignore[attr-defined]
        last_modified_by=_opt_str(row.last_modified_by),  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _editable_params(promotion: Promotion) -> dict[str, object]:
    return {
        "id": promotion.id,
        "title": promotion.title,
        "description": promotion.description,
        "type": promotion.type.value,
        "value": promotion.value,
        "target_type": promotion.target_type.value,
        "target_criteria": json.dumps(promotion.target_criteria.to_dict()),
        "valid_from": promotion.valid_from,
        "valid_to": promotion.valid_to,
        "promo_code": promotion.promo_code,
        "usage_limit": promotion.usage_limit,
        "max_usage_per_user": promotion.max_usage_per_user,
        "priority": promotion.priority,
        "last_modified_by": promotion.last_modified_by,
    }


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class PromotionRepository:
    async def create(self, db: AsyncSession, promotion: Promotion) -> Promotion:
        params = _editable_params(promotion)
        params.update(
            status=promotion.status.value,
            used_count=promotion.used_count,
            created_by=promotion.created_by,
        )
        result = await db.execute(_INSERT_PROMOTION_SQL, params)
        return _row_to_promotion(result.fetchone())

    async def get_by_id(
        self, db: AsyncSession, promotion_id: str, for_update: bool = False
    ) -> Promotion | None:
        sql = _GET_PROMOTION_FOR_UPDATE if for_update else _GET_PROMOTION
        result = await db.execute(sql, {"promotion_id": promotion_id})
        row = result.fetchone()
        return _row_to_promotion(row) if row else None

    async def get_by_code(
        self, db: AsyncSession, code: str, for_update: bool = False
    ) -> Promotion | None:
        sql = _GET_BY_CODE_FOR_UPDATE if for_update else _GET_BY_CODE
        result = await db.execute(sql, {"code": code})
        row = result.fetchone()
        return _row_to_promotion(row) if row else None

    async def code_exists(
        self, db: AsyncSession, code: str, exclude_id: str | None = None
    ) -> bool:
        result = await db.execute(
            _CODE_EXISTS_SQL, {"code": code, "exclude_id": exclude_id}
        )
        return result.fetchone() is not None

    async def list_promotions(
        self,
        db: AsyncSession,
        status: str | None,
        search: str | None,
        cursor_ts: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Promotion]:
        # asyncpg requires a real datetime object for TIMESTAMPTZ parameters
        cursor_ts_dt: datetime | None = None
        if cursor_ts is not None:
            cursor_ts_dt = datetime.fromisoformat(cursor_ts)

        result = await db.execute(
            _LIST_PROMOTIONS_SQL,
            {
                "status": status,
                "pattern": f"%{search}%" if search else None,
                "cursor_ts": cursor_ts_dt,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )
        return [_row_to_promotion(row) for row in result.fetchall()]

    async def update(self, db: AsyncSession, promotion: Promotion) -> Promotion:
        result = await db.execute(_UPDATE_PROMOTION_SQL, _editable_params(promotion))
        return _row_to_promotion(result.fetchone())

    async def delete(self, db: AsyncSession, promotion_id: str) -> bool:
        result = await db.execute(_DELETE_PROMOTION_SQL, {"promotion_id": promotion_id})
        return result.fetchone() is not None

    async def set_status(
        self,
        db: AsyncSession,
        promotion_id: str,
        status: PromotionStatus,
        modified_by: str | None,
    ) -> None:
        await db.execute(
            _SET_STATUS_SQL,
            {
                "promotion_id": promotion_id,
                "status": status.value,
                "modified_by": modified_by,
            },
        )

    async def list_due_for_expiry(
        self, db: AsyncSession, now: datetime
    ) -> list[Promotion]:
        result = await db.execute(_DUE_FOR_EXPIRY_SQL, {"now": now})
        return [_row_to_promotion(row) for row in result.fetchall()]

    async def replace_applied_listings(
        self, db: AsyncSession, promotion_id: str, listing_ids: list[str]
    ) -> None:
        await db.execute(_DELETE_APPLIED_SQL, {"promotion_id": promotion_id})
        if listing_ids:
            await db.execute(
                _INSERT_APPLIED_SQL,
                {"promotion_id": promotion_id, "listing_ids": list(listing_ids)},
            )

    async def get_applied_listing_ids(
        self, db: AsyncSession, promotion_id: str
    ) -> list[str]:
        result = await db.execute(_GET_APPLIED_SQL, {"promotion_id": promotion_id})
        return [row.listing_id for row in result.fetchall()]

    async def clear_applied_listings(
        self, db: AsyncSession, promotion_id: str
    ) -> None:
        await db.execute(_DELETE_APPLIED_SQL, {"promotion_id": promotion_id})

    async def count_user_redemptions(
        self, db: AsyncSession, promotion_id: str, user_id: str
    ) -> int:
        result = await db.execute(
            _COUNT_USER_REDEMPTIONS_SQL,
            {"promotion_id": promotion_id, "user_id": user_id},
        )
        return result.scalar_one()

    async def record_redemption(
        self, db: AsyncSession, promotion_id: str, user_id: str
    ) -> int:
        await db.execute(
            _INSERT_REDEMPTION_SQL, {"promotion_id": promotion_id, "user_id": user_id}
        )
        result = await db.execute(
            _INCREMENT_USED_COUNT_SQL, {"promotion_id": promotion_id}
        )
        return result.scalar_one()
