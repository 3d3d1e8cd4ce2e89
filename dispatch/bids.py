"""
Purpose: Bid ledger for a job.
What it does:
Appends bids (append-only, any number per driver) and resolves acceptance.

Race Condition Resolver: acceptance is a conditional write that only goes
through while the job is still open and has no selected bid, so two clients
(or two tabs) accepting at once yield exactly one winner and one Conflict.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from common.errors import Conflict, InvalidTransition, NotFound, ValidationError
from drivers.models import UserRole
from orders.models import Bid, Job, JobStatus
from .notifications import Severity
from .state_machines.job_state import OPEN_STATUSES, ensure_transition

logger = logging.getLogger(__name__)


class BidLedger:

    def __init__(self, store, directory=None, notifier=None, clock: Optional[Callable[[], datetime]] = None,
                 notify_admin_on_accept: bool = True):
        self.store = store
        self.directory = directory
        self.notifier = notifier
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.notify_admin_on_accept = notify_admin_on_accept

    def place_bid(self, job_id: str, driver_id: str, amount: float, *,
                  driver_name: Optional[str] = None, vehicle_description: Optional[str] = None) -> Bid:
        """
        Append a bid and move the job to BIDDING if it was PENDING.
        Earlier bids by the same driver stay outstanding.
        """
        job = self.store.get_job(job_id)
        if job.status not in OPEN_STATUSES:
            raise InvalidTransition(f"Job {job_id} is {job.status.value} and no longer takes bids")

        if self.directory is not None:
            driver = self.directory.get_user(driver_id)
            if driver.role != UserRole.DRIVER:
                raise ValidationError(f"User {driver_id} is not a driver")
            driver_name = driver_name or driver.name
            vehicle_description = vehicle_description or driver.vehicle_description

        bid = Bid.new(
            job_id, driver_id, amount,
            driver_name=driver_name or "",
            vehicle_description=vehicle_description or "",
            timestamp=self.clock(),
        )

        # Appends commute with each other; only a concurrent accept/cancel can reject this
        self.store.append_bid(
            job_id, bid,
            patch={"status": JobStatus.BIDDING},
            expect={"status": OPEN_STATUSES, "selected_bid_id": (None,)},
        )
        logger.info("Driver %s bid %.2f on job %s", driver_id, bid.amount, job_id)

        if self.notifier:
            self.notifier.notify(
                "New offer",
                f"{bid.driver_name or 'A driver'} offered {bid.amount:.2f} for your trip from {job.pickup}",
                user_id=job.client_id,
            )
        return bid

    def accept_bid(self, job_id: str, bid_id: str) -> Job:
        """
        Freeze the bid's terms on the job (price, driver, selected bid) and move
        it to ACCEPTED.
        """
        job = self.store.get_job(job_id)
        bid = job.find_bid(bid_id)
        if bid is None:
            raise NotFound(f"Bid {bid_id} not found on job {job_id}")

        if job.selected_bid_id is not None:
            raise InvalidTransition(f"Job {job_id} already accepted bid {job.selected_bid_id}")
        ensure_transition(job, JobStatus.ACCEPTED)

        try:
            accepted = self.store.update_job(
                job_id,
                {
                    "status": JobStatus.ACCEPTED,
                    "price": bid.amount,
                    "driver_id": bid.driver_id,
                    "driver_name": bid.driver_name,
                    "selected_bid_id": bid.id,
                },
                expect={"status": OPEN_STATUSES, "selected_bid_id": (None,)},
            )
        except Conflict:
            logger.warning("Acceptance of bid %s on job %s lost the race", bid_id, job_id)
            raise

        logger.info("Job %s accepted bid %s from %s at %.2f", job_id, bid.id, bid.driver_id, bid.amount)

        if self.notifier:
            self.notifier.notify(
                "Offer accepted",
                f"Your offer of {bid.amount:.2f} for the trip from {job.pickup} was accepted",
                user_id=bid.driver_id,
                severity=Severity.SUCCESS,
            )
            if self.notify_admin_on_accept:
                self.notifier.notify(
                    "Booking confirmed",
                    f"Job {job_id} accepted by {bid.driver_name or bid.driver_id} at {bid.amount:.2f}",
                    role=UserRole.ADMIN,
                )
        return accepted
