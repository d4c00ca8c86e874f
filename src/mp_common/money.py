"""Integer price arithmetic for listings.

Listing prices and promotion amounts are whole currency units (PLN) stored as
int. No float, no Decimal: percentage results are rounded half-up with
integer division, so a discounted price never exceeds the base price.
"""


def price_to_display(amount: int) -> str:
    """Convert a price to display string: 25000 -> '25,000 PLN'."""
    if amount < 0:
        return f"-{-amount:,} PLN"
    return f"{amount:,} PLN"


def percent_off(price: int, percent: int) -> int:
    """Price after a percentage discount, floored at 0.

    result = round_half_up(price * (100 - percent) / 100)
    """
    if not (0 <= percent <= 100):
        raise ValueError(f"Percent must be between 0 and 100, got {percent}")
    return max(0, (price * (100 - percent) + 50) // 100)


def amount_off(price: int, amount: int) -> int:
    """Price after a flat discount, floored at 0."""
    if amount < 0:
        raise ValueError(f"Amount must be non-negative, got {amount}")
    return max(0, price - amount)


def effective_percent(price: int, discounted_price: int) -> int:
    """Percentage actually taken off, for display of fixed-amount discounts."""
    if price <= 0:
        return 0
    return ((price - discounted_price) * 100 + price // 2) // price
