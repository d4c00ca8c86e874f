"""Promotion targeting: Promotion -> ListingFilter.

Each present criterion narrows the set; absent criteria impose no
constraint. Set criteria only apply for their own target_type, except the
price range which applies to every target_type.

user_role targeting is a two-step join: the caller resolves the user ids
holding the roles first, then passes them in. An empty result must become an
empty user_ids set (matches nothing), never None (unconstrained).
"""

from src.mp_common.enums import TargetType
from src.mp_listing.domain.models import ListingFilter
from src.mp_promotion.domain.models import Promotion


def requires_role_lookup(promotion: Promotion) -> bool:
    return (
        promotion.target_type == TargetType.USER_ROLE
        and bool(promotion.target_criteria.roles)
    )


def build_listing_filter(
    promotion: Promotion,
    role_user_ids: frozenset[str] | None = None,
) -> ListingFilter:
    criteria = promotion.target_criteria
    target = promotion.target_type

    categories: frozenset[str] | None = None
    locations: frozenset[str] | None = None
    user_ids: frozenset[str] | None = None

    if target == TargetType.CATEGORY and criteria.categories:
        categories = frozenset(criteria.categories)
    elif target == TargetType.LOCATION and criteria.locations:
        locations = frozenset(criteria.locations)
    elif target == TargetType.SPECIFIC_USERS and criteria.user_ids:
        user_ids = frozenset(criteria.user_ids)
    elif requires_role_lookup(promotion):
        if role_user_ids is None:
            raise ValueError("user_role targeting needs the resolved user ids")
        user_ids = frozenset(role_user_ids)
    # all_users: no additional predicate

    return ListingFilter(
        min_price=criteria.min_price,
        max_price=criteria.max_price,
        categories=categories,
        locations=locations,
        user_ids=user_ids,
    )
