"""
Purpose: Process configuration read from the environment.

Values come from a .env file (python-dotenv) or the real environment:

LOG_LEVEL=INFO
OSRM_BASE_URL=http://router.project-osrm.org
PLATFORM_COMMISSION_RATE=0.295
PARTNER_COMMISSION_RATE=0.05

Rule: no business logic here, just parameters.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .errors import ValidationError

load_dotenv()


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValidationError(f"{name} must be a number, got {raw!r}")


@dataclass(frozen=True)
class Settings:
    log_level: str = "INFO"

    # Routing engine used to resolve pickup -> dropoff distances
    osrm_base_url: Optional[str] = None
    osrm_timeout: float = 5

    # Settlement defaults, copied into the pricing snapshot at startup
    platform_commission_rate: float = 0.295
    partner_commission_rate: float = 0.05

    # Ledger account that receives platform revenue
    platform_account_id: str = "system"

    def validate(self) -> None:
        if not 0 <= self.platform_commission_rate <= 1:
            raise ValidationError("platform_commission_rate must be within [0, 1]")
        if not 0 <= self.partner_commission_rate <= 1:
            raise ValidationError("partner_commission_rate must be within [0, 1]")
        if self.osrm_timeout <= 0:
            raise ValidationError("osrm_timeout must be > 0")


def load_settings() -> Settings:
    """
    Build Settings from the environment. OSRM_BASE_URL falls back to the
    older BASE_URL variable.
    """
    settings = Settings(
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        osrm_base_url=os.getenv("OSRM_BASE_URL") or os.getenv("BASE_URL"),
        osrm_timeout=_env_float("OSRM_TIMEOUT", 5),
        platform_commission_rate=_env_float("PLATFORM_COMMISSION_RATE", 0.295),
        partner_commission_rate=_env_float("PARTNER_COMMISSION_RATE", 0.05),
        platform_account_id=os.getenv("PLATFORM_ACCOUNT_ID", "system"),
    )
    settings.validate()
    return settings


def configure_logging(level: Optional[str] = None) -> None:
    """Basic stream logging for scripts. Library code only ever calls getLogger."""
    level = level or load_settings().log_level
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
