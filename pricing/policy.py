"""
Purpose: Central configuration for pricing and commissions.
What it does:

Stores every tunable the admin controls:

BASE_FARE = 2
TIER RATES (per km) = 4.60 (0-10) / 2.20 (10-100) / 1.80 (100-250) / 1.10 (250+)
VEHICLE MULTIPLIERS = Economy 1.0 ... Bus 3.50
PEAK / WEEKEND MULTIPLIERS (toggles)
PLATFORM COMMISSION = 0.295, PARTNER COMMISSION = 0.05

Rule: No logic here, just parameters. The snapshot is immutable; admins
replace it whole through PricingConfigStore.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

from common.errors import ValidationError
from common.settings import load_settings
from orders.models import VehicleCategory


def _default_multipliers() -> Mapping[str, float]:
    return {
        VehicleCategory.ECONOMY.value: 1.0,
        VehicleCategory.COMFORT.value: 1.15,
        VehicleCategory.BUSINESS.value: 1.25,
        VehicleCategory.PREMIUM.value: 1.40,
        VehicleCategory.VIP.value: 2.50,
        VehicleCategory.SUV.value: 1.30,
        VehicleCategory.VAN.value: 1.20,
        VehicleCategory.MINIBUS.value: 1.90,
        VehicleCategory.BUS.value: 3.50,
    }


@dataclass(frozen=True)
class PricingConfig:
    """
    Process-wide pricing snapshot. Every price and settlement computation
    reads one snapshot from start to finish.
    """

    # --- Distance pricing ---
    base_fare: float = 2.0
    tier1_rate: float = 4.60  # 0-10 km
    tier2_rate: float = 2.20  # 10-100 km
    tier3_rate: float = 1.80  # 100-250 km
    tier4_rate: float = 1.10  # 250 km+

    # Keyed by vehicle category name ('Economy', 'SUV', ...)
    multipliers: Mapping[str, float] = field(default_factory=_default_multipliers)

    # --- Surcharges ---
    # Peak is a global toggle, not a time window.
    enable_peak_pricing: bool = False
    peak_multiplier: float = 1.25
    enable_weekend_pricing: bool = False
    weekend_multiplier: float = 1.10

    # --- Commissions ---
    commission_rate: float = 0.295
    # None disables referring-partner payouts unless the partner carries its own rate
    partner_commission_rate: Optional[float] = 0.05

    def __post_init__(self):
        # Freeze the table so a shared snapshot can't be edited in place
        object.__setattr__(self, "multipliers", MappingProxyType(dict(self.multipliers)))

    def multiplier_for(self, category) -> float:
        key = category.value if isinstance(category, VehicleCategory) else str(category)
        return self.multipliers.get(key, 1.0)

    def validate(self) -> None:
        """
        Basic sanity checks. PricingConfigStore calls this before every swap.
        """
        amounts = {
            "base_fare": self.base_fare,
            "tier1_rate": self.tier1_rate,
            "tier2_rate": self.tier2_rate,
            "tier3_rate": self.tier3_rate,
            "tier4_rate": self.tier4_rate,
        }
        for name, value in amounts.items():
            if not math.isfinite(value) or value < 0:
                raise ValidationError(f"{name} must be a finite number >= 0")

        for category, value in self.multipliers.items():
            if not math.isfinite(value) or value <= 0:
                raise ValidationError(f"multiplier for {category} must be > 0")

        if self.peak_multiplier <= 0 or self.weekend_multiplier <= 0:
            raise ValidationError("peak/weekend multipliers must be > 0")

        if not 0 <= self.commission_rate <= 1:
            raise ValidationError("commission_rate must be within [0, 1]")

        if self.partner_commission_rate is not None and not 0 <= self.partner_commission_rate <= 1:
            raise ValidationError("partner_commission_rate must be within [0, 1]")


@dataclass(frozen=True)
class PricingThresholds:
    """
    Percent deviations from the platform estimate used to grade a driver's offer.
    """
    high_alert_percent: float = 50
    low_alert_percent: float = 50
    fair_offer_percent: float = 35
    good_offer_percent: float = 10

    def validate(self) -> None:
        if min(self.high_alert_percent, self.low_alert_percent,
               self.fair_offer_percent, self.good_offer_percent) < 0:
            raise ValidationError("threshold percentages must be >= 0")
        if self.good_offer_percent > self.fair_offer_percent:
            raise ValidationError("good_offer_percent must be <= fair_offer_percent")


def default_pricing_config() -> PricingConfig:
    """
    Convenience factory for the default snapshot, with commission rates
    taken from the environment.
    """
    settings = load_settings()
    config = PricingConfig(
        commission_rate=settings.platform_commission_rate,
        partner_commission_rate=settings.partner_commission_rate,
    )
    config.validate()
    return config


def default_thresholds() -> PricingThresholds:
    thresholds = PricingThresholds()
    thresholds.validate()
    return thresholds
