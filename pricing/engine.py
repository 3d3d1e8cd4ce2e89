"""
Purpose: Turn a route distance and vehicle category into a price quote.

Distance is consumed tier by tier (not looked up by bracket), so a 120 km
trip pays 10 km at tier 1, 90 km at tier 2 and 20 km at tier 3.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Optional, Tuple

from common.errors import ValidationError
from .policy import PricingConfig

# Upper bound of each tier in km; the last tier is open ended.
TIER_BOUNDARIES_KM: Tuple[float, float, float] = (10.0, 100.0, 250.0)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def distance_charge(distance_km: float, config: PricingConfig) -> float:
    """Per-km part of the fare, before multipliers."""
    if distance_km <= 0:
        return 0.0

    rates = (config.tier1_rate, config.tier2_rate, config.tier3_rate)
    charge = 0.0
    remaining = distance_km
    lower = 0.0
    for upper, rate in zip(TIER_BOUNDARIES_KM, rates):
        band = min(remaining, upper - lower)
        charge += band * rate
        remaining -= band
        lower = upper
        if remaining <= 0:
            return charge

    return charge + remaining * config.tier4_rate


def calculate_price(
    distance_km: float,
    vehicle_category,
    config: PricingConfig,
    now: Optional[datetime] = None,
) -> int:
    """
    Quote for a trip, rounded to the nearest whole currency unit.

    Zero or negative distance yields the base fare (multipliers still apply).
    Peak pricing is a global toggle; weekend pricing applies when `now`
    falls on Saturday or Sunday. Unknown categories use a 1.0 multiplier.
    """
    if distance_km is None or math.isnan(distance_km):
        raise ValidationError("distance_km must be a number")

    price = config.base_fare + distance_charge(distance_km, config)
    price *= config.multiplier_for(vehicle_category)

    if config.enable_peak_pricing:
        price *= config.peak_multiplier

    now = now or datetime.now()
    if config.enable_weekend_pricing and now.weekday() >= 5:
        price *= config.weekend_multiplier

    return _round_half_up(price)
