"""Pydantic schemas for mp_promotion API requests and responses.

Cursor format for promotions:
  {"ts": "<created_at ISO>", "id": "<promotion_id>"}
  Encoded as Base64 JSON string.

Promo codes are normalised on input: surrounding whitespace stripped,
upper-cased. An empty code means "no code".
"""

import base64
import json
import uuid
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from src.mp_common.datetime_utils import utc_now
from src.mp_common.enums import PromotionType, TargetType, UserRole
from src.mp_listing.application.schemas import BatchResultOut
from src.mp_promotion.domain.lifecycle import effective_status, is_active, remaining_uses
from src.mp_promotion.domain.models import Promotion, TargetCriteria

PROMO_CODE_MAX_LENGTH = 32

# ---------------------------------------------------------------------------
# Cursor utilities
# ---------------------------------------------------------------------------


def cursor_encode(last: Promotion) -> str:
    payload = {
        "ts": last.created_at.isoformat() if last.created_at else None,
        "id": last.id,
    }
    return base64.b64encode(json.dumps(payload).encode()).decode()


def cursor_decode(cursor: str | None) -> tuple[str | None, str | None]:
    """Decode composite cursor -> (ts_iso, promotion_id), or (None, None) on error."""
    if cursor is None:
        return None, None
    try:
        data = json.loads(base64.b64decode(cursor.encode()).decode())
        return data["ts"], data["id"]
    except (ValueError, KeyError, TypeError):
        return None, None


def normalize_code(code: str | None) -> str | None:
    if code is None:
        return None
    code = code.strip().upper()
    return code or None


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class TargetCriteriaIn(BaseModel):
    min_price: int | None = Field(None, ge=0)
    max_price: int | None = Field(None, ge=0)
    categories: list[str] = Field(default_factory=list)
    locations: list[str] = Field(default_factory=list)
    user_ids: list[uuid.UUID] = Field(default_factory=list)
    roles: list[UserRole] = Field(default_factory=list)

    def to_domain(self) -> TargetCriteria:
        return TargetCriteria(
            min_price=self.min_price,
            max_price=self.max_price,
            categories=tuple(self.categories),
            locations=tuple(self.locations),
            user_ids=tuple(str(u) for u in self.user_ids),
            roles=tuple(r.value for r in self.roles),
        )


class PromotionCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field("", max_length=2000)
    type: PromotionType
    value: int = Field(..., ge=0)
    target_type: TargetType = TargetType.ALL_USERS
    target_criteria: TargetCriteriaIn = Field(default_factory=TargetCriteriaIn)
    valid_from: datetime
    valid_to: datetime
    promo_code: str | None = Field(None, max_length=PROMO_CODE_MAX_LENGTH)
    usage_limit: int | None = Field(None, ge=1)
    max_usage_per_user: int = Field(1, ge=1)
    priority: int = 0

    @field_validator("promo_code")
    @classmethod
    def _normalize_code(cls, v: str | None) -> str | None:
        return normalize_code(v)


class PromotionUpdate(BaseModel):
    """Partial update; only fields present in the request body are applied."""

    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=2000)
    type: PromotionType | None = None
    value: int | None = Field(None, ge=0)
    target_type: TargetType | None = None
    target_criteria: TargetCriteriaIn | None = None
    valid_from: datetime | None = None
    valid_to: datetime | None = None
    promo_code: str | None = Field(None, max_length=PROMO_CODE_MAX_LENGTH)
    usage_limit: int | None = Field(None, ge=1)
    max_usage_per_user: int | None = Field(None, ge=1)
    priority: int | None = None

    @field_validator("promo_code")
    @classmethod
    def _normalize_code(cls, v: str | None) -> str | None:
        return normalize_code(v)


class PromoCodeRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=PROMO_CODE_MAX_LENGTH)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class TargetCriteriaOut(BaseModel):
    min_price: int | None
    max_price: int | None
    categories: list[str]
    locations: list[str]
    user_ids: list[str]
    roles: list[str]

    @classmethod
    def from_domain(cls, c: TargetCriteria) -> "TargetCriteriaOut":
        return cls(**c.to_dict())  # type: ignore[arg-type]


class PromotionDetail(BaseModel):
    id: str
    title: str
    description: str
    type: str
    value: int
    target_type: str
    target_criteria: TargetCriteriaOut
    valid_from: str
    valid_to: str
    status: str
    effective_status: str
    is_active: bool
    promo_code: str | None
    usage_limit: int | None
    used_count: int
    remaining_uses: int | None
    max_usage_per_user: int
    priority: int
    created_by: str | None
    last_modified_by: str | None
    created_at: str | None
    updated_at: str | None

    @classmethod
    def from_domain(
        cls, p: Promotion, now: datetime | None = None
    ) -> "PromotionDetail":
        now = now or utc_now()
        return cls(
            id=p.id,
            title=p.title,
            description=p.description,
            type=p.type.value,
            value=p.value,
            target_type=p.target_type.value,
            target_criteria=TargetCriteriaOut.from_domain(p.target_criteria),
            valid_from=p.valid_from.isoformat(),
            valid_to=p.valid_to.isoformat(),
            status=p.status.value,
            effective_status=effective_status(p, now).value,
            is_active=is_active(p, now),
            promo_code=p.promo_code,
            usage_limit=p.usage_limit,
            used_count=p.used_count,
            remaining_uses=remaining_uses(p),
            max_usage_per_user=p.max_usage_per_user,
            priority=p.priority,
            created_by=p.created_by,
            last_modified_by=p.last_modified_by,
            created_at=p.created_at.isoformat() if p.created_at else None,
            updated_at=p.updated_at.isoformat() if p.updated_at else None,
        )


class PromotionListResponse(BaseModel):
    items: list[PromotionDetail]
    next_cursor: str | None
    has_more: bool


class PromotionRunResponse(BaseModel):
    """Outcome of activate / deactivate / cancel / expire on one promotion."""

    promotion_id: str
    status: str
    matched: int
    result: BatchResultOut


class ExpireDueResponse(BaseModel):
    expired: list[PromotionRunResponse]


class TargetsPreview(BaseModel):
    promotion_id: str
    count: int
    listing_ids: list[str]


class PromoCodeResponse(BaseModel):
    code: str
    type: str
    value: int
    title: str
    description: str
    discount_percent: int | None = None   # percentage and free_listing (100)
    discount_amount: int | None = None    # fixed_amount, PLN

    @classmethod
    def from_domain(cls, p: Promotion) -> "PromoCodeResponse":
        percent: int | None = None
        amount: int | None = None
        if p.type == PromotionType.PERCENTAGE:
            percent = p.value
        elif p.type == PromotionType.FREE_LISTING:
            percent = 100
        elif p.type == PromotionType.FIXED_AMOUNT:
            amount = p.value
        return cls(
            code=p.promo_code or "",
            type=p.type.value,
            value=p.value,
            title=p.title,
            description=p.description,
            discount_percent=percent,
            discount_amount=amount,
        )


class RedemptionResponse(BaseModel):
    code: str
    promotion_id: str
    used_count: int
    remaining_uses: int | None
