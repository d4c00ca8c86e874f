"""mp_listing REST endpoints.

GET    /listings/{listing_id}                      — public price view
GET    /admin/listings/discounts                   — listings carrying a discount
PUT    /admin/listings/{listing_id}/discount       — manual percentage (0 clears)
DELETE /admin/listings/{listing_id}/discount       — clear discount
POST   /admin/listings/bulk-discount               — percentage for explicit ids
POST   /admin/listings/users/{user_id}/discount    — percentage for one seller
POST   /admin/listings/categories/{category}/discount
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.mp_common.database import get_db_session, get_session_factory
from src.mp_common.response import ApiResponse, success_response
from src.mp_gateway.auth.dependencies import require_admin
from src.mp_gateway.user.db_models import UserModel
from src.mp_listing.application.schemas import (
    BulkDiscountRequest,
    OwnerDiscountRequest,
    SetDiscountRequest,
)
from src.mp_listing.application.service import ListingApplicationService
from src.mp_listing.domain.models import ListingFilter

router = APIRouter(prefix="/listings", tags=["listings"])
admin_router = APIRouter(prefix="/admin/listings", tags=["admin-listings"])

_service = ListingApplicationService()

Db = Annotated[AsyncSession, Depends(get_db_session)]
SessionFactory = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]
Admin = Annotated[UserModel, Depends(require_admin)]


@router.get("/{listing_id}")
async def get_listing(listing_id: str, request: Request, db: Db) -> ApiResponse:
    result = await _service.get_listing(db, listing_id)
    return success_response(result.model_dump(), request)


@admin_router.get("/discounts")
async def list_discounted(
    request: Request,
    admin: Admin,
    db: Db,
    category: str | None = Query(None),
    min_discount: int | None = Query(None, ge=0, le=100),
    max_discount: int | None = Query(None, ge=0, le=100),
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = Query(None),
) -> ApiResponse:
    result = await _service.list_discounted(
        db, category, min_discount, max_discount, cursor, limit
    )
    return success_response(result.model_dump(), request)


@admin_router.put("/{listing_id}/discount")
async def set_discount(
    listing_id: str,
    body: SetDiscountRequest,
    request: Request,
    admin: Admin,
    db: Db,
) -> ApiResponse:
    result = await _service.set_discount(db, listing_id, body.percent)
    return success_response(result.model_dump(), request)


@admin_router.delete("/{listing_id}/discount")
async def clear_discount(
    listing_id: str,
    request: Request,
    admin: Admin,
    db: Db,
) -> ApiResponse:
    result = await _service.clear_discount(db, listing_id)
    return success_response(result.model_dump(), request)


@admin_router.post("/bulk-discount")
async def bulk_discount(
    body: BulkDiscountRequest,
    request: Request,
    admin: Admin,
    db: Db,
    session_factory: SessionFactory,
) -> ApiResponse:
    flt = ListingFilter(listing_ids=frozenset(body.listing_ids))
    result = await _service.bulk_discount(db, session_factory, flt, body.percent)
    return success_response(
        result.model_dump(), request, f"Applied to {result.updated_count} listings"
    )


@admin_router.post("/users/{user_id}/discount")
async def user_discount(
    user_id: uuid.UUID,
    body: OwnerDiscountRequest,
    request: Request,
    admin: Admin,
    db: Db,
    session_factory: SessionFactory,
) -> ApiResponse:
    flt = ListingFilter(user_ids=frozenset({str(user_id)}))
    result = await _service.bulk_discount(
        db, session_factory, flt, body.percent, require_match=True
    )
    return success_response(
        result.model_dump(), request, f"Applied to {result.updated_count} listings"
    )


@admin_router.post("/categories/{category}/discount")
async def category_discount(
    category: str,
    body: OwnerDiscountRequest,
    request: Request,
    admin: Admin,
    db: Db,
    session_factory: SessionFactory,
) -> ApiResponse:
    flt = ListingFilter(categories=frozenset({category}))
    result = await _service.bulk_discount(
        db, session_factory, flt, body.percent, require_match=True
    )
    return success_response(
        result.model_dump(), request, f"Applied to {result.updated_count} listings"
    )
