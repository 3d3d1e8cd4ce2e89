"""
Purpose: Domain models for transfer requests.
What it does:
- Defines core data structures:
- Job (id, route, request attributes, commercial state)
- Bid (id, job id, driver, amount, timestamp)

Defines enums/constants:
- JobStatus = PENDING | BIDDING | ACCEPTED | DRIVER_EN_ROUTE | DRIVER_ARRIVED
              | IN_PROGRESS | COMPLETED | CANCELLED | DISPUTED
- PaymentStatus = UNPAID | PAID
- BookingType = DISTANCE | HOURLY
- VehicleCategory = Economy ... Bus

Rule: No pricing, no storage, no transition rules. Models only.
Jobs and bids are frozen; the job store hands out new instances on update.
"""
from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Tuple

from common.errors import ValidationError

LatLon = Tuple[float, float]


class JobStatus(str, Enum):
    PENDING = "PENDING"
    BIDDING = "BIDDING"
    ACCEPTED = "ACCEPTED"

    # Ride progress, all optional between ACCEPTED and COMPLETED
    DRIVER_EN_ROUTE = "DRIVER_EN_ROUTE"
    DRIVER_ARRIVED = "DRIVER_ARRIVED"
    IN_PROGRESS = "IN_PROGRESS"

    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    DISPUTED = "DISPUTED"


class PaymentStatus(str, Enum):
    UNPAID = "UNPAID"
    PAID = "PAID"


class BookingType(str, Enum):
    DISTANCE = "DISTANCE"
    HOURLY = "HOURLY"


class VehicleCategory(str, Enum):
    ECONOMY = "Economy"
    COMFORT = "Comfort"
    BUSINESS = "Business"
    PREMIUM = "Premium"
    VIP = "VIP"
    SUV = "SUV"
    VAN = "Van"
    MINIBUS = "Minibus"
    BUS = "Bus"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Naive datetimes are taken to be UTC already; aware ones are converted."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class Bid:
    """
    A driver's priced offer on a job. Never edited once placed.
    """
    id: str
    job_id: str
    driver_id: str
    amount: float
    timestamp: datetime
    driver_name: str = ""
    vehicle_description: str = ""

    @staticmethod
    def new(job_id: str, driver_id: str, amount: float, *, driver_name: str = "",
            vehicle_description: str = "", timestamp: Optional[datetime] = None) -> Bid:
        if not driver_id:
            raise ValidationError("driver_id is required")
        if amount is None or not math.isfinite(amount) or amount <= 0:
            raise ValidationError("bid amount must be a positive number")
        return Bid(
            id=str(uuid.uuid4()),
            job_id=job_id,
            driver_id=driver_id,
            amount=float(amount),
            timestamp=timestamp or _now(),
            driver_name=driver_name,
            vehicle_description=vehicle_description,
        )


@dataclass(frozen=True)
class Job:
    """
    A client's transfer request: the unit the lifecycle state machine governs.
    """
    id: str
    client_id: str
    pickup: str
    passengers: int

    pickup_coordinates: Optional[LatLon] = None # used for zone filtering
    dropoff: Optional[str] = None  # absent for hourly bookings
    dropoff_coordinates: Optional[LatLon] = None
    distance_km: Optional[float] = None  # stored once known

    client_name: str = ""
    booking_type: BookingType = BookingType.DISTANCE
    duration_hours: Optional[float] = None
    vehicle_type: str = VehicleCategory.ECONOMY.value
    luggage: int = 0
    scheduled_at: Optional[datetime] = None
    is_urgent: bool = False

    # Commercial state
    status: JobStatus = JobStatus.PENDING
    bids: Tuple[Bid, ...] = ()
    selected_bid_id: Optional[str] = None
    quoted_price: Optional[int] = None
    price: Optional[float] = None
    driver_id: Optional[str] = None
    driver_name: Optional[str] = None
    payment_status: PaymentStatus = PaymentStatus.UNPAID
    partner_id: Optional[str] = None

    # Settlement bookkeeping
    # settling: completion claimed, money not posted yet. settled: money posted.
    settling: bool = False
    settled: bool = False
    completed_at: Optional[datetime] = None

    # Admin / disputes
    dispute_reason: Optional[str] = None
    admin_notes: Optional[str] = None

    created_at: datetime = field(default_factory=_now)

    @staticmethod
    def new(
        client_id: str,
        pickup: str,
        passengers: int,
        *,
        pickup_coordinates: Optional[LatLon] = None,
        dropoff: Optional[str] = None,
        dropoff_coordinates: Optional[LatLon] = None,
        distance_km: Optional[float] = None,
        booking_type: BookingType = BookingType.DISTANCE,
        duration_hours: Optional[float] = None,
        vehicle_type=VehicleCategory.ECONOMY,
        luggage: int = 0,
        scheduled_at: Optional[datetime] = None,
        is_urgent: bool = False,
        partner_id: Optional[str] = None,
        client_name: str = "",
    ) -> Job:
        """Validated factory; the job always starts PENDING with no bids."""
        booking_type = BookingType(booking_type)
        if not client_id:
            raise ValidationError("client_id is required")
        if not pickup:
            raise ValidationError("pickup address is required")
        if passengers is None or passengers <= 0:
            raise ValidationError("passengers must be > 0")
        if luggage < 0:
            raise ValidationError("luggage must be >= 0")
        if distance_km is not None:
            validate_distance(distance_km)
        if booking_type == BookingType.DISTANCE and not dropoff:
            raise ValidationError("distance bookings need a dropoff")
        if booking_type == BookingType.HOURLY and (duration_hours is None or duration_hours <= 0):
            raise ValidationError("hourly bookings need duration_hours > 0")

        if isinstance(vehicle_type, VehicleCategory):
            vehicle_type = vehicle_type.value

        return Job(
            id=str(uuid.uuid4()),
            client_id=client_id,
            client_name=client_name,
            pickup=pickup,
            pickup_coordinates=pickup_coordinates,
            dropoff=dropoff,
            dropoff_coordinates=dropoff_coordinates,
            distance_km=distance_km,
            booking_type=booking_type,
            duration_hours=duration_hours,
            vehicle_type=vehicle_type,
            passengers=passengers,
            luggage=luggage,
            scheduled_at=as_utc(scheduled_at),
            is_urgent=is_urgent,
            partner_id=partner_id,
        )

    def find_bid(self, bid_id: str) -> Optional[Bid]:
        for bid in self.bids:
            if bid.id == bid_id:
                return bid
        return None

    def has_bid_from(self, driver_id: str) -> bool:
        return any(bid.driver_id == driver_id for bid in self.bids)

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID


def validate_distance(distance_km: float) -> float:
    if distance_km is None or not math.isfinite(distance_km) or distance_km < 0:
        raise ValidationError("distance_km must be a finite number >= 0")
    return float(distance_km)
