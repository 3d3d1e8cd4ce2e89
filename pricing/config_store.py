"""
Purpose: Hold the current pricing snapshot and swap it atomically.

Readers call snapshot() once per computation and keep using that object;
an admin update replaces the reference, it never edits a shared snapshot.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from .policy import PricingConfig, PricingThresholds, default_pricing_config, default_thresholds

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VersionedConfig:
    version: int
    config: PricingConfig
    updated_at: datetime
    updated_by: Optional[str] = None


class PricingConfigStore:

    def __init__(self, config: Optional[PricingConfig] = None, thresholds: Optional[PricingThresholds] = None):
        initial = config or default_pricing_config()
        initial.validate()
        self._current = VersionedConfig(version=1, config=initial, updated_at=datetime.now(timezone.utc))
        self._thresholds = thresholds or default_thresholds()
        # Only serialises writers; readers take the reference without locking
        self._write_lock = threading.Lock()

    def snapshot(self) -> PricingConfig:
        return self._current.config

    def versioned(self) -> VersionedConfig:
        return self._current

    @property
    def version(self) -> int:
        return self._current.version

    def replace(self, config: PricingConfig, *, updated_by: Optional[str] = None) -> VersionedConfig:
        """Admin operation: validate and publish a new snapshot."""
        config.validate()
        with self._write_lock:
            new = VersionedConfig(
                version=self._current.version + 1,
                config=config,
                updated_at=datetime.now(timezone.utc),
                updated_by=updated_by,
            )
            self._current = new
        logger.info("Pricing config v%d published by %s", new.version, updated_by or "unknown")
        return new

    def thresholds(self) -> PricingThresholds:
        return self._thresholds

    def replace_thresholds(self, thresholds: PricingThresholds) -> None:
        thresholds.validate()
        with self._write_lock:
            self._thresholds = thresholds
