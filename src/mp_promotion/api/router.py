"""mp_promotion REST endpoints.

Admin (role admin):
GET    /admin/promotions                     — list, search + cursor
POST   /admin/promotions                     — create (draft)
POST   /admin/promotions/expire-due          — withdraw promotions past their window
GET    /admin/promotions/{id}
PATCH  /admin/promotions/{id}
DELETE /admin/promotions/{id}
POST   /admin/promotions/{id}/activate       — resolve + apply
POST   /admin/promotions/{id}/deactivate     — revoke, status paused
POST   /admin/promotions/{id}/cancel         — revoke, status cancelled
GET    /admin/promotions/{id}/targets        — dry-run of targeting

Any authenticated user:
POST   /promo-codes/validate
POST   /promo-codes/redeem
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.mp_common.database import get_db_session, get_session_factory
from src.mp_common.enums import PromotionStatus
from src.mp_common.response import ApiResponse, success_response
from src.mp_gateway.auth.dependencies import get_current_user, require_admin
from src.mp_gateway.user.db_models import UserModel
from src.mp_promotion.application.schemas import (
    PromoCodeRequest,
    PromotionCreate,
    PromotionUpdate,
)
from src.mp_promotion.application.service import PromotionApplicationService

admin_router = APIRouter(prefix="/admin/promotions", tags=["admin-promotions"])
promo_code_router = APIRouter(prefix="/promo-codes", tags=["promo-codes"])

_service = PromotionApplicationService()

Db = Annotated[AsyncSession, Depends(get_db_session)]
SessionFactory = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]
Admin = Annotated[UserModel, Depends(require_admin)]
CurrentUser = Annotated[UserModel, Depends(get_current_user)]


@admin_router.get("")
async def list_promotions(
    request: Request,
    admin: Admin,
    db: Db,
    status: PromotionStatus | None = Query(None),
    search: str | None = Query(None, max_length=100),
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = Query(None),
) -> ApiResponse:
    result = await _service.list_promotions(
        db, status.value if status else None, search, cursor, limit
    )
    return success_response(result.model_dump(), request)


@admin_router.post("", status_code=201)
async def create_promotion(
    body: PromotionCreate, request: Request, admin: Admin, db: Db
) -> ApiResponse:
    result = await _service.create_promotion(db, body, str(admin.id))
    return success_response(result.model_dump(), request, "Promotion created")


# Declared before /{promotion_id} routes so the literal path wins
@admin_router.post("/expire-due")
async def expire_due(
    request: Request, admin: Admin, db: Db, session_factory: SessionFactory
) -> ApiResponse:
    result = await _service.expire_due(db, session_factory, str(admin.id))
    return success_response(
        result.model_dump(), request, f"Expired {len(result.expired)} promotions"
    )


@admin_router.get("/{promotion_id}")
async def get_promotion(
    promotion_id: str, request: Request, admin: Admin, db: Db
) -> ApiResponse:
    result = await _service.get_promotion(db, promotion_id)
    return success_response(result.model_dump(), request)


@admin_router.patch("/{promotion_id}")
async def update_promotion(
    promotion_id: str,
    body: PromotionUpdate,
    request: Request,
    admin: Admin,
    db: Db,
) -> ApiResponse:
    result = await _service.update_promotion(db, promotion_id, body, str(admin.id))
    return success_response(result.model_dump(), request, "Promotion updated")


@admin_router.delete("/{promotion_id}")
async def delete_promotion(
    promotion_id: str, request: Request, admin: Admin, db: Db
) -> ApiResponse:
    await _service.delete_promotion(db, promotion_id)
    return success_response({"id": promotion_id}, request, "Promotion deleted")


@admin_router.post("/{promotion_id}/activate")
async def activate_promotion(
    promotion_id: str,
    request: Request,
    admin: Admin,
    db: Db,
    session_factory: SessionFactory,
) -> ApiResponse:
    result = await _service.activate(db, session_factory, promotion_id, str(admin.id))
    return success_response(
        result.model_dump(),
        request,
        f"Applied to {result.result.updated_count} of {result.matched} listings",
    )


@admin_router.post("/{promotion_id}/deactivate")
async def deactivate_promotion(
    promotion_id: str,
    request: Request,
    admin: Admin,
    db: Db,
    session_factory: SessionFactory,
) -> ApiResponse:
    result = await _service.deactivate(db, session_factory, promotion_id, str(admin.id))
    return success_response(
        result.model_dump(), request, f"Revoked from {result.result.updated_count} listings"
    )


@admin_router.post("/{promotion_id}/cancel")
async def cancel_promotion(
    promotion_id: str,
    request: Request,
    admin: Admin,
    db: Db,
    session_factory: SessionFactory,
) -> ApiResponse:
    result = await _service.cancel(db, session_factory, promotion_id, str(admin.id))
    return success_response(
        result.model_dump(), request, f"Revoked from {result.result.updated_count} listings"
    )


@admin_router.get("/{promotion_id}/targets")
async def preview_targets(
    promotion_id: str, request: Request, admin: Admin, db: Db
) -> ApiResponse:
    result = await _service.preview_targets(db, promotion_id)
    return success_response(result.model_dump(), request)


@promo_code_router.post("/validate")
async def validate_promo_code(
    body: PromoCodeRequest, request: Request, current_user: CurrentUser, db: Db
) -> ApiResponse:
    result = await _service.validate_promo_code(db, body.code, str(current_user.id))
    return success_response(result.model_dump(), request, "Promo code is valid")


@promo_code_router.post("/redeem")
async def redeem_promo_code(
    body: PromoCodeRequest, request: Request, current_user: CurrentUser, db: Db
) -> ApiResponse:
    result = await _service.redeem_promo_code(db, body.code, str(current_user.id))
    return success_response(result.model_dump(), request, "Promo code redeemed")
