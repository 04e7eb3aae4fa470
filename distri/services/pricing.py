# Distribution and flyer printing prices (EUR)

from typing import Optional

from distri.core import config
from distri.services.name_matcher import round_half_up

# (tier quantity, price) ascending. An order is billed at the first tier that covers it;
# above the last tier the last price applies.
PRINTING_TIERS: dict[str, tuple[tuple[int, float], ...]] = {
    "A6": (
        (1000, 117.0),
        (1500, 135.0),
        (2500, 123.0),
        (5000, 150.0),
        (7500, 222.0),
        (10000, 283.5),
        (15000, 417.0),
        (20000, 531.0),
        (30000, 789.0),
        (40000, 1015.5),
        (50000, 1252.5),
        (60000, 1503.0),
        (70000, 1752.0),
        (80000, 2002.5),
        (90000, 2241.0),
        (100000, 2490.0),
        (200000, 4965.0),
    ),
    "A5": (
        (1000, 73.5),
        (1500, 93.0),
        (2500, 72.0),
        (5000, 105.0),
        (7500, 117.0),
        (10000, 147.0),
        (15000, 198.0),
        (20000, 252.0),
        (30000, 375.0),
        (40000, 498.0),
        (50000, 598.5),
        (60000, 717.0),
        (70000, 835.5),
        (80000, 925.5),
        (90000, 1029.0),
        (100000, 1143.0),
        (200000, 2280.0),
    ),
}


def distribution_cost(total_housing_units: float) -> float:
    """round(total) * PRICE_PER_HOUSING_UNIT, to the cent."""
    return round(round_half_up(total_housing_units) * config.PRICE_PER_HOUSING_UNIT, 2)


def printing_cost(flyer_format: str, quantity: int) -> Optional[float]:
    """Printing price for `quantity` flyers; None for an unknown format or an empty order."""
    tiers = PRINTING_TIERS.get(str(flyer_format).upper())
    if not tiers or quantity <= 0:
        return None
    for units, tier_price in tiers:
        if quantity <= units:
            return tier_price
    return tiers[-1][1]
