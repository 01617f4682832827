"""
Tiered pricing.

A reward's price for a tier is its `tier_points_cost` entry when one is
configured, otherwise the flat `points_cost`. Prices are never blended or
interpolated between tiers.
"""


def effective_price(reward, tier) -> int:
    """Points a member of `tier` pays for `reward`."""
    tier_key = getattr(tier, 'value', tier)
    tier_prices = reward.tier_points_cost or {}
    price = tier_prices.get(tier_key)
    if price is None:
        return int(reward.points_cost)
    return int(price)


def price_list(reward) -> dict:
    """Per-tier prices plus the flat fallback, for admin views."""
    return {
        'points_cost': int(reward.points_cost),
        'tier_points_cost': {k: int(v) for k, v in (reward.tier_points_cost or {}).items()},
    }
