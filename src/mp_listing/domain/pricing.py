"""Discount arithmetic for a single listing.

Every function recomputes from the base price, so applying the same change
twice gives the same result (no compounding).

Invariants on the returned PriceChange:
  discount is None      <=> discounted_price is None
  discount is not None  =>  0 <= discounted_price <= price
"""

from src.mp_common.enums import DiscountKind
from src.mp_common.money import amount_off, percent_off
from src.mp_listing.domain.models import CLEARED, Discount, PriceChange

MANUAL_PERCENT_MAX = 99


def percentage_change(price: int, percent: int) -> PriceChange:
    return PriceChange(
        discount=Discount(DiscountKind.PERCENTAGE, percent),
        discounted_price=percent_off(price, percent),
    )


def fixed_change(price: int, amount: int) -> PriceChange:
    return PriceChange(
        discount=Discount(DiscountKind.FIXED, amount),
        discounted_price=amount_off(price, amount),
    )


def free_change(price: int) -> PriceChange:
    """Free listing: recorded as a flat discount of the whole price."""
    return PriceChange(
        discount=Discount(DiscountKind.FIXED, price),
        discounted_price=0,
    )


def manual_percentage_change(price: int, percent: int) -> PriceChange:
    """Admin-set discount from the listings panel: 0 clears, 1-99 applies."""
    if not (0 <= percent <= MANUAL_PERCENT_MAX):
        raise ValueError(f"Manual discount must be 0-{MANUAL_PERCENT_MAX}, got {percent}")
    if percent == 0:
        return CLEARED
    return percentage_change(price, percent)


def check_consistent(price: int, change: PriceChange) -> None:
    """Raise ValueError if the change would break the discount invariants."""
    if (change.discount is None) != (change.discounted_price is None):
        raise ValueError("discount and discounted_price must be set or cleared together")
    if change.discounted_price is not None and not (0 <= change.discounted_price <= price):
        raise ValueError(
            f"discounted_price {change.discounted_price} outside [0, {price}]"
        )
