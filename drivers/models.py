"""
Purpose: Core data models for the user directory.
What it does:
Defines users (clients, drivers, referring agencies, admins), their vehicles
and service zones, plus the derived eligibility profile a driver is matched on.
No storage, no matching rules.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import FrozenSet, Optional, Tuple

from orders.models import VehicleCategory
from routing.geofence import ServiceZone


class UserRole(str, Enum):
    CLIENT = "CLIENT"
    DRIVER = "DRIVER"
    AGENCY = "AGENCY"  # referring partner
    ADMIN = "ADMIN"


class UserStatus(str, Enum):
    ACTIVE = "ACTIVE"
    PENDING_VERIFICATION = "PENDING_VERIFICATION"
    PROCESSING = "PROCESSING"
    SUSPENDED = "SUSPENDED"
    REJECTED = "REJECTED"


@dataclass(frozen=True)
class Vehicle:
    id: str
    max_passengers: int
    max_luggage: int = 0
    category: str = VehicleCategory.ECONOMY.value
    description: str = ""


@dataclass(frozen=True)
class User:
    """
    A directory entry at a specific point in time. The directory returns a
    new instance on every update.
    """
    id: str
    name: str
    role: UserRole
    status: UserStatus = UserStatus.ACTIVE
    email: str = ""

    # Driver specific
    vehicles: Tuple[Vehicle, ...] = ()
    service_zones: Tuple[ServiceZone, ...] = ()
    skipped_job_ids: Tuple[str, ...] = ()
    rating: float = 5.0

    # Agency specific: overrides the platform-wide partner rate when set
    commission_rate: Optional[float] = None

    # Money
    balance: float = 0.0
    total_earnings: float = 0.0
    total_trips: int = 0

    join_date: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def max_capacity(self) -> Optional[int]:
        """Largest passenger count across the fleet; None when no vehicle is registered."""
        if not self.vehicles:
            return None
        return max(vehicle.max_passengers for vehicle in self.vehicles)

    @property
    def vehicle_description(self) -> str:
        if not self.vehicles:
            return "Standard Vehicle"
        return self.vehicles[0].description or self.vehicles[0].category


@dataclass(frozen=True)
class EligibilityProfile:
    """
    What the eligibility filter needs to know about a driver. Derived from
    the directory entry, never stored.
    """
    driver_id: str
    max_capacity: Optional[int]
    zones: Tuple[ServiceZone, ...] = ()
    skipped_job_ids: FrozenSet[str] = frozenset()

    @classmethod
    def from_user(cls, user: User) -> EligibilityProfile:
        return cls(
            driver_id=user.id,
            max_capacity=user.max_capacity,
            zones=tuple(user.service_zones),
            skipped_job_ids=frozenset(user.skipped_job_ids),
        )
