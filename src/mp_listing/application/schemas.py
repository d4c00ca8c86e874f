"""Pydantic schemas for mp_listing API requests and responses.

Cursor format for discounted listings:
  {"ts": "<created_at ISO>", "id": "<listing_id>"}
  Encoded as Base64 JSON string.
"""

import base64
import json

from pydantic import BaseModel, Field

from src.mp_common.money import effective_percent, price_to_display
from src.mp_listing.domain.models import BatchResult, Listing
from src.mp_listing.domain.pricing import MANUAL_PERCENT_MAX

# ---------------------------------------------------------------------------
# Cursor utilities
# ---------------------------------------------------------------------------


def cursor_encode(last: Listing) -> str:
    payload = {
        "ts": last.created_at.isoformat() if last.created_at else None,
        "id": last.id,
    }
    return base64.b64encode(json.dumps(payload).encode()).decode()


def cursor_decode(cursor: str | None) -> tuple[str | None, str | None]:
    """Decode composite cursor -> (ts_iso, listing_id), or (None, None) on error."""
    if cursor is None:
        return None, None
    try:
        data = json.loads(base64.b64decode(cursor.encode()).decode())
        return data["ts"], data["id"]
    except (ValueError, KeyError, TypeError):
        return None, None


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class SetDiscountRequest(BaseModel):
    percent: int = Field(..., ge=0, le=MANUAL_PERCENT_MAX)


class BulkDiscountRequest(BaseModel):
    listing_ids: list[str] = Field(..., min_length=1, max_length=1000)
    percent: int = Field(..., ge=0, le=MANUAL_PERCENT_MAX)


class OwnerDiscountRequest(BaseModel):
    percent: int = Field(..., ge=0, le=MANUAL_PERCENT_MAX)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class DiscountOut(BaseModel):
    kind: str
    value: int


class ListingDetail(BaseModel):
    id: str
    user_id: str | None
    title: str | None
    category: str | None
    location: str | None
    status: str | None
    price: int
    price_display: str
    discount: DiscountOut | None
    discounted_price: int | None
    discounted_price_display: str | None
    discount_percent: int

    @classmethod
    def from_domain(cls, listing: Listing) -> "ListingDetail":
        d = listing.discount
        discounted = listing.discounted_price
        return cls(
            id=listing.id,
            user_id=listing.user_id,
            title=listing.title,
            category=listing.category,
            location=listing.location,
            status=listing.status,
            price=listing.price,
            price_display=price_to_display(listing.price),
            discount=DiscountOut(kind=d.kind.value, value=d.value) if d else None,
            discounted_price=discounted,
            discounted_price_display=(
                price_to_display(discounted) if discounted is not None else None
            ),
            discount_percent=(
                effective_percent(listing.price, discounted) if discounted is not None else 0
            ),
        )


class DiscountedListingPage(BaseModel):
    items: list[ListingDetail]
    next_cursor: str | None
    has_more: bool


class FailedListingOut(BaseModel):
    listing_id: str
    error: str


class BatchResultOut(BaseModel):
    updated_count: int
    skipped_count: int
    failed_count: int
    updated: list[str]
    skipped: list[str]
    failed: list[FailedListingOut]

    @classmethod
    def from_result(cls, result: BatchResult) -> "BatchResultOut":
        return cls(
            updated_count=len(result.updated),
            skipped_count=len(result.skipped),
            failed_count=len(result.failed),
            updated=result.updated,
            skipped=result.skipped,
            failed=[
                FailedListingOut(listing_id=f.listing_id, error=f.error)
                for f in result.failed
            ],
        )
