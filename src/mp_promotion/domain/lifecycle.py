"""Promotion lifecycle rules: validation, validity window, status transitions.

    draft ──activate──▶ active ──deactivate──▶ paused ──activate──▶ active
      │                   │  └──(window closed / limit hit)──▶ expired
      └──────cancel───────┴──────────cancel──────────▶ cancelled

expired and cancelled are terminal.
"""

from datetime import datetime

from src.mp_common.datetime_utils import as_utc
from src.mp_common.enums import PromotionStatus, PromotionType, TargetType, UserRole
from src.mp_common.errors import (
    InvalidPromotionError,
    PromotionOutsideWindowError,
    PromotionStatusError,
)
from src.mp_promotion.domain.models import Promotion, TargetCriteria

FIXED_AMOUNT_MAX_DEFAULT = 10000

_ALLOWED_FROM: dict[str, frozenset[PromotionStatus]] = {
    # re-activating an active promotion re-resolves and re-applies (idempotent)
    "activated": frozenset(
        {PromotionStatus.DRAFT, PromotionStatus.PAUSED, PromotionStatus.ACTIVE}
    ),
    "deactivated": frozenset({PromotionStatus.ACTIVE}),
    "cancelled": frozenset(
        {PromotionStatus.DRAFT, PromotionStatus.ACTIVE, PromotionStatus.PAUSED}
    ),
    "expired": frozenset({PromotionStatus.ACTIVE}),
}


def parse_promotion_type(value: str) -> PromotionType:
    try:
        return PromotionType(value)
    except ValueError:
        raise InvalidPromotionError(f"unknown promotion type {value!r}") from None


def parse_target_type(value: str) -> TargetType:
    try:
        return TargetType(value)
    except ValueError:
        raise InvalidPromotionError(f"unknown target type {value!r}") from None


def validate_promotion_values(
    promotion_type: PromotionType,
    value: int,
    valid_from: datetime,
    valid_to: datetime,
    fixed_amount_max: int = FIXED_AMOUNT_MAX_DEFAULT,
) -> None:
    if value < 0:
        raise InvalidPromotionError("value cannot be negative")
    if promotion_type == PromotionType.PERCENTAGE and value > 100:
        raise InvalidPromotionError("percentage value cannot exceed 100")
    if promotion_type == PromotionType.FIXED_AMOUNT and value > fixed_amount_max:
        raise InvalidPromotionError(f"fixed amount cannot exceed {fixed_amount_max}")
    if as_utc(valid_to) <= as_utc(valid_from):
        raise InvalidPromotionError("valid_to must be after valid_from")


def validate_target_criteria(criteria: TargetCriteria) -> None:
    if criteria.min_price is not None and criteria.min_price < 0:
        raise InvalidPromotionError("min_price cannot be negative")
    if criteria.max_price is not None and criteria.max_price < 0:
        raise InvalidPromotionError("max_price cannot be negative")
    if (
        criteria.min_price is not None
        and criteria.max_price is not None
        and criteria.min_price > criteria.max_price
    ):
        raise InvalidPromotionError("min_price is greater than max_price")
    known_roles = {r.value for r in UserRole}
    unknown = [r for r in criteria.roles if r not in known_roles]
    if unknown:
        raise InvalidPromotionError(f"unknown roles {unknown}")


def validate_promotion(
    promotion: Promotion, fixed_amount_max: int = FIXED_AMOUNT_MAX_DEFAULT
) -> None:
    """Full check, run before a promotion is stored or targeted."""
    parse_promotion_type(promotion.type)
    parse_target_type(promotion.target_type)
    validate_promotion_values(
        promotion.type,
        promotion.value,
        promotion.valid_from,
        promotion.valid_to,
        fixed_amount_max,
    )
    validate_target_criteria(promotion.target_criteria)


def is_within_window(promotion: Promotion, now: datetime) -> bool:
    return as_utc(promotion.valid_from) <= now <= as_utc(promotion.valid_to)


def usage_exhausted(promotion: Promotion) -> bool:
    return (
        promotion.usage_limit is not None
        and promotion.used_count >= promotion.usage_limit
    )


def remaining_uses(promotion: Promotion) -> int | None:
    if promotion.usage_limit is None:
        return None
    return max(0, promotion.usage_limit - promotion.used_count)


def is_active(promotion: Promotion, now: datetime) -> bool:
    return (
        promotion.status == PromotionStatus.ACTIVE
        and is_within_window(promotion, now)
        and not usage_exhausted(promotion)
    )


def effective_status(promotion: Promotion, now: datetime) -> PromotionStatus:
    """An active promotion past its window or usage limit reads as expired."""
    if promotion.status == PromotionStatus.ACTIVE and (
        now > as_utc(promotion.valid_to) or usage_exhausted(promotion)
    ):
        return PromotionStatus.EXPIRED
    return promotion.status


def ensure_within_window(promotion: Promotion, now: datetime) -> None:
    if not is_within_window(promotion, now):
        raise PromotionOutsideWindowError(promotion.id)


def ensure_transition(promotion: Promotion, action: str) -> None:
    """``action`` is one of: activated, deactivated, cancelled, expired."""
    if promotion.status not in _ALLOWED_FROM[action]:
        raise PromotionStatusError(promotion.id, promotion.status.value, action)
