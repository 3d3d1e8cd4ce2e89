"""
Pricing domain package.

Public API:
- PricingConfig, PricingThresholds and their default factories
- calculate_price
- PricingConfigStore
- classify_offer, OfferFeedback
"""
from .policy import PricingConfig, PricingThresholds, default_pricing_config, default_thresholds
from .engine import calculate_price, distance_charge, TIER_BOUNDARIES_KM
from .config_store import PricingConfigStore, VersionedConfig
from .offers import OfferFeedback, classify_offer

__all__ = [
    "PricingConfig",
    "PricingThresholds",
    "default_pricing_config",
    "default_thresholds",
    "calculate_price",
    "distance_charge",
    "TIER_BOUNDARIES_KM",
    "PricingConfigStore",
    "VersionedConfig",
    "OfferFeedback",
    "classify_offer",
]
