"""ListingRepository — concrete implementation of ListingRepositoryProtocol.

All queries use raw text() SQL (no ORM).
asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.
Set filters are passed as arrays: NULL = no constraint, '{}' = matches nothing.

Transaction ownership: the CALLER commits. save_discount is a single UPDATE
so each listing can be committed on its own.
"""

from datetime import datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.enums import DiscountKind
from src.mp_listing.domain.models import Discount, Listing, ListingFilter, PriceChange

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_LISTING_COLUMNS = """
    id, user_id, title, category, location, status,
    price, discount_kind, discount_value, discounted_price,
    version, created_at, updated_at
"""

_GET_LISTING_SQL = text(f"""
    SELECT {_LISTING_COLUMNS}
    FROM listings
    WHERE id = :listing_id
""")

# Price projection only: enough for the applicator to act without re-fetching
_FIND_LISTINGS_SQL = text("""
    SELECT id, price, discount_kind, discount_value, discounted_price, version
    FROM listings
    WHERE
        (CAST(:min_price AS BIGINT) IS NULL OR price >= CAST(:min_price AS BIGINT))
        AND (CAST(:max_price AS BIGINT) IS NULL OR price <= CAST(:max_price AS BIGINT))
        AND (CAST(:categories AS TEXT[]) IS NULL
             OR category = ANY(CAST(:categories AS TEXT[])))
        AND (CAST(:locations AS TEXT[]) IS NULL
             OR location = ANY(CAST(:locations AS TEXT[])))
        AND (CAST(:user_ids AS UUID[]) IS NULL
             OR user_id = ANY(CAST(:user_ids AS UUID[])))
        AND (CAST(:listing_ids AS TEXT[]) IS NULL
             OR id = ANY(CAST(:listing_ids AS TEXT[])))
    ORDER BY id
""")

_SAVE_DISCOUNT_SQL = text("""
    UPDATE listings
    SET discount_kind = :discount_kind,
        discount_value = :discount_value,
        discounted_price = :discounted_price,
        version = version + 1,
        updated_at = NOW()
    WHERE id = :listing_id
    RETURNING id
""")

# Effective percentage works for both kinds (a fixed discount shows as its share of price)
_LIST_DISCOUNTED_SQL = text(f"""
    SELECT {_LISTING_COLUMNS}
    FROM listings
    WHERE discount_kind IS NOT NULL
        AND (CAST(:category AS TEXT) IS NULL OR category = CAST(:category AS TEXT))
        AND (
            CAST(:min_percent AS INTEGER) IS NULL
            OR ROUND((price - discounted_price) * 100.0 / NULLIF(price, 0))
               >= CAST(:min_percent AS INTEGER)
        )
        AND (
            CAST(:max_percent AS INTEGER) IS NULL
            OR ROUND((price - discounted_price) * 100.0 / NULLIF(price, 0))
               <= CAST(:max_percent AS INTEGER)
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

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_discount(row: object) -> Discount | None:
    kind = row.discount_kind  # type: ignore[attr-defined]
    if kind is None:
        return None
    return Discount(DiscountKind(kind), row.discount_value)  # type: ignore[attr-defined]


def _row_to_listing(row: object) -> Listing:
    return Listing(
        id=row.id,  # type: ignore[attr-defined]
        user_id=str(row.user_id) if row.user_id is not None else None,  # type: ignore[attr-defined]
        title=row.title,  # type: ignore[attr-defined]
        category=row.category,  # type: ignore[attr-defined]
        location=row.location,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        price=row.price,  # type: ignore[attr-defined]
        discount=_row_to_discount(row),
        discounted_price=row.discounted_price,  # type: ignore[attr-defined]
        version=row.version,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_price_view(row: object) -> Listing:
    return Listing(
        id=row.id,  # type: ignore[attr-defined]
        price=row.price,  # type: ignore[attr-defined]
        discount=_row_to_discount(row),
        discounted_price=row.discounted_price,  # type: ignore[attr-defined]
        version=row.version,  # type: ignore[attr-defined]
    )


def _as_array(values: frozenset[str] | None) -> list[str] | None:
    # sorted for stable statement parameters (and log output)
    return None if values is None else sorted(values)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class ListingRepository:
    async def get_listing_by_id(
        self, db: AsyncSession, listing_id: str
    ) -> Listing | None:
        result = await db.execute(_GET_LISTING_SQL, {"listing_id": listing_id})
        row = result.fetchone()
        return _row_to_listing(row) if row else None

    async def find_listings(
        self, db: AsyncSession, flt: ListingFilter
    ) -> list[Listing]:
        result = await db.execute(
            _FIND_LISTINGS_SQL,
            {
                "min_price": flt.min_price,
                "max_price": flt.max_price,
                "categories": _as_array(flt.categories),
                "locations": _as_array(flt.locations),
                "user_ids": _as_array(flt.user_ids),
                "listing_ids": _as_array(flt.listing_ids),
            },
        )
        return [_row_to_price_view(row) for row in result.fetchall()]

    async def save_discount(
        self, db: AsyncSession, listing_id: str, change: PriceChange
    ) -> bool:
        discount = change.discount
        result = await db.execute(
            _SAVE_DISCOUNT_SQL,
            {
                "listing_id": listing_id,
                "discount_kind": discount.kind.value if discount else None,
                "discount_value": discount.value if discount else None,
                "discounted_price": change.discounted_price,
            },
        )
        return result.fetchone() is not None

    async def list_discounted(
        self,
        db: AsyncSession,
        category: str | None,
        min_percent: int | None,
        max_percent: int | None,
        cursor_ts: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Listing]:
        # asyncpg requires a real datetime object for TIMESTAMPTZ parameters
        cursor_ts_dt: datetime | None = None
        if cursor_ts is not None:
            cursor_ts_dt = datetime.fromisoformat(cursor_ts)

        result = await db.execute(
            _LIST_DISCOUNTED_SQL,
            {
                "category": category,
                "min_percent": min_percent,
                "max_percent": max_percent,
                "cursor_ts": cursor_ts_dt,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )
        return [_row_to_listing(row) for row in result.fetchall()]
