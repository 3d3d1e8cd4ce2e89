"""
Purpose: User directory consumed by the core.
What it does:
Looks users up and applies balance/status changes. Balance updates are
deltas so concurrent settlements on the same user commute.
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import replace
from typing import Dict, Iterable, List, Optional

from common.errors import Conflict, NotFound, ValidationError
from routing.geofence import ServiceZone
from .models import User, UserRole, UserStatus, Vehicle

logger = logging.getLogger(__name__)


class InMemoryUserDirectory:

    def __init__(self, users: Optional[Iterable[User]] = None):
        self._users: Dict[str, User] = {}
        self._lock = threading.Lock()
        for user in users or ():
            self.add_user(user)

    def add_user(self, user: User) -> User:
        with self._lock:
            if user.id in self._users:
                raise Conflict(f"User {user.id} already exists")
            self._users[user.id] = user
        return user

    def get_user(self, user_id: str) -> User:
        user = self._users.get(user_id)
        if user is None:
            raise NotFound(f"User {user_id} not found")
        return user

    def list_users(self, role: Optional[UserRole] = None) -> List[User]:
        users = list(self._users.values())
        if role is not None:
            users = [user for user in users if user.role == role]
        return users

    def update_user_balance(
        self,
        user_id: str,
        delta: float,
        *,
        earnings_delta: float = 0.0,
        trips_delta: int = 0,
    ) -> User:
        """Apply a balance delta (and optionally lifetime earnings / trip count)."""
        if not math.isfinite(delta) or not math.isfinite(earnings_delta):
            raise ValidationError("balance deltas must be finite")
        with self._lock:
            user = self.get_user(user_id)
            updated = replace(
                user,
                balance=round(user.balance + delta, 2),
                total_earnings=round(user.total_earnings + earnings_delta, 2),
                total_trips=user.total_trips + trips_delta,
            )
            self._users[user_id] = updated
        logger.debug("Balance of %s changed by %.2f -> %.2f", user_id, delta, updated.balance)
        return updated

    def update_user_status(self, user_id: str, status: UserStatus) -> User:
        return self._patch(user_id, status=UserStatus(status))

    def update_vehicles(self, user_id: str, vehicles: Iterable[Vehicle]) -> User:
        vehicles = tuple(vehicles)
        for vehicle in vehicles:
            if vehicle.max_passengers <= 0:
                raise ValidationError(f"Vehicle {vehicle.id} must seat at least one passenger")
        return self._patch(user_id, vehicles=vehicles)

    def update_service_zones(self, user_id: str, zones: Iterable[ServiceZone]) -> User:
        return self._patch(user_id, service_zones=tuple(zones))

    # --- skip-list ---

    def skip_job(self, user_id: str, job_id: str) -> User:
        with self._lock:
            user = self.get_user(user_id)
            if job_id in user.skipped_job_ids:
                return user
            updated = replace(user, skipped_job_ids=user.skipped_job_ids + (job_id,))
            self._users[user_id] = updated
        return updated

    def unskip_job(self, user_id: str, job_id: str) -> User:
        with self._lock:
            user = self.get_user(user_id)
            updated = replace(
                user,
                skipped_job_ids=tuple(jid for jid in user.skipped_job_ids if jid != job_id),
            )
            self._users[user_id] = updated
        return updated

    def _patch(self, user_id: str, **changes) -> User:
        with self._lock:
            updated = replace(self.get_user(user_id), **changes)
            self._users[user_id] = updated
        return updated
