"""Domain models for mp_promotion — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime

from src.mp_common.enums import PromotionStatus, PromotionType, TargetType


@dataclass(frozen=True)
class TargetCriteria:
    """Partially populated filter; absent fields impose no constraint."""

    min_price: int | None = None
    max_price: int | None = None
    categories: tuple[str, ...] = ()
    locations: tuple[str, ...] = ()
    user_ids: tuple[str, ...] = ()
    roles: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, object]:
        return {
            "min_price": self.min_price,
            "max_price": self.max_price,
            "categories": list(self.categories),
            "locations": list(self.locations),
            "user_ids": list(self.user_ids),
            "roles": list(self.roles),
        }

    @classmethod
    def from_dict(cls, data: dict[str, object] | None) -> "TargetCriteria":
        data = data or {}
        return cls(
            min_price=data.get("min_price"),  # type: ignore[arg-type]
            max_price=data.get("max_price"),  # type: ignore[arg-type]
            categories=tuple(data.get("categories") or ()),  # type: ignore[arg-type]
            locations=tuple(data.get("locations") or ()),  # type: ignore[arg-type]
            user_ids=tuple(str(u) for u in data.get("user_ids") or ()),  # type: ignore[attr-defined]
            roles=tuple(data.get("roles") or ()),  # type: ignore[arg-type]
        )


@dataclass
class Promotion:
    id: str
    title: str
    type: PromotionType
    value: int
    target_type: TargetType
    target_criteria: TargetCriteria
    valid_from: datetime
    valid_to: datetime
    status: PromotionStatus = PromotionStatus.DRAFT
    description: str = ""
    promo_code: str | None = None
    usage_limit: int | None = None     # None = unlimited
    used_count: int = 0
    max_usage_per_user: int = 1
    priority: int = 0
    created_by: str | None = None
    last_modified_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
