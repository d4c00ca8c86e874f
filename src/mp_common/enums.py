"""Global enums — must match DB CHECK constraints exactly.

See alembic/versions/002..004 for the constraints.
"""

from enum import Enum


class UserRole(str, Enum):
    USER = "user"
    MODERATOR = "moderator"
    ADMIN = "admin"
    # Targeting-only roles: accepted in promotion criteria, assigned by billing
    PREMIUM = "premium"
    DEALER = "dealer"


class TargetType(str, Enum):
    ALL_USERS = "all_users"
    CATEGORY = "category"
    LOCATION = "location"
    SPECIFIC_USERS = "specific_users"
    USER_ROLE = "user_role"


class PromotionType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"
    FREE_LISTING = "free_listing"
    # Non-price perks: the applicator skips these
    FEATURED_UPGRADE = "featured_upgrade"
    BONUS_CREDITS = "bonus_credits"


PRICE_AFFECTING_TYPES = frozenset(
    {PromotionType.PERCENTAGE, PromotionType.FIXED_AMOUNT, PromotionType.FREE_LISTING}
)


class PromotionStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class DiscountKind(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class ListingStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    ACTIVE = "active"
    HIDDEN = "hidden"
