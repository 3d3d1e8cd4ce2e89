"""
Purpose: Grade a driver's offer against the platform estimate.
Advisory only; bids are never rejected on this basis.
"""

from enum import Enum

from common.errors import ValidationError
from .policy import PricingThresholds


class OfferFeedback(str, Enum):
    HIGH = "HIGH"      # far above estimate
    LOW = "LOW"        # far below estimate
    GOOD = "GOOD"      # close to estimate
    FAIR = "FAIR"
    NORMAL = "NORMAL"  # between fair and alert bands


def classify_offer(amount: float, estimate: float, thresholds: PricingThresholds) -> OfferFeedback:
    if amount <= 0:
        raise ValidationError("offer amount must be > 0")
    if estimate <= 0:
        raise ValidationError("estimate must be > 0")

    diff_percent = (amount - estimate) / estimate * 100

    if diff_percent > thresholds.high_alert_percent:
        return OfferFeedback.HIGH
    if diff_percent < -thresholds.low_alert_percent:
        return OfferFeedback.LOW
    if abs(diff_percent) <= thresholds.good_offer_percent:
        return OfferFeedback.GOOD
    if abs(diff_percent) <= thresholds.fair_offer_percent:
        return OfferFeedback.FAIR
    return OfferFeedback.NORMAL
