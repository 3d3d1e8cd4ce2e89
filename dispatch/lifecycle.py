"""
Purpose: Job lifecycle orchestrator (the "glue").
What it does:
Owns every status change of a job: creation, bidding and acceptance (through
the BidLedger), payment marker, ride progress, completion with settlement,
cancellation and disputes.

Every status change is a conditional write on the status the job had when
it was read, so a concurrent change surfaces as Conflict instead of being
overwritten.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional

from common.errors import Conflict, InvalidTransition, ValidationError
from drivers.models import UserRole
from orders.models import Bid, Job, JobStatus, PaymentStatus, validate_distance
from pricing.config_store import PricingConfigStore
from pricing.engine import calculate_price
from routing.route_service import route_distance_km
from settlement.engine import SettlementEngine, compute_settlement
from settlement.ledger import Transaction, TransactionKind
from .bids import BidLedger
from .notifications import Severity
from .policy import LifecyclePolicy, default_lifecycle_policy
from .state_machines.job_state import (
    ASSIGNED_STATUSES,
    CANCELLABLE_STATUSES,
    OPEN_STATUSES,
    RIDE_PROGRESS_STATUSES,
    ensure_transition,
)

logger = logging.getLogger(__name__)


class DisputeResolution(str, Enum):
    REFUND = "REFUND"  # -> CANCELLED
    UPHELD = "UPHELD"  # -> COMPLETED


class JobLifecycle:
    """
    Single entry point for state-changing job operations.
    """
    def __init__(
        self,
        store,
        directory,
        ledger,
        config_store: Optional[PricingConfigStore] = None,
        notifier=None,
        policy: Optional[LifecyclePolicy] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.directory = directory
        self.ledger = ledger
        self.config_store = config_store or PricingConfigStore()
        self.notifier = notifier
        self.policy = policy or default_lifecycle_policy()
        self.clock = clock or (lambda: datetime.now(timezone.utc))

        self.bids = BidLedger(
            store,
            directory=directory,
            notifier=notifier,
            clock=self.clock,
            notify_admin_on_accept=self.policy.notify_admin_on_accept,
        )
        self.settlement = SettlementEngine(directory, ledger)

    # --- Quotes ---

    def quote(self, distance_km: float, vehicle_type) -> int:
        return calculate_price(distance_km, vehicle_type, self.config_store.snapshot(), self.clock())

    # --- Creation ---

    def create_job(self, client_id: str, pickup: str, passengers: int, **attributes: Any) -> Job:
        """Create a PENDING job; quoted_price is filled in when the distance is known."""
        job = Job.new(client_id, pickup, passengers, **attributes)
        if job.distance_km is not None:
            job = replace(job, quoted_price=self.quote(job.distance_km, job.vehicle_type))
        self.store.create_job(job)
        logger.info("Job %s created by %s (%d pax, %s)", job.id, client_id, job.passengers, job.vehicle_type)
        return job

    def record_distance(self, job_id: str, distance_km: float) -> Job:
        """Store the route distance once, while the job is still open."""
        distance_km = validate_distance(distance_km)
        job = self.store.get_job(job_id)
        if job.distance_km is not None:
            raise InvalidTransition(f"Distance of job {job_id} is already recorded")
        if job.status not in OPEN_STATUSES:
            raise InvalidTransition(f"Job {job_id} is {job.status.value}; distance can no longer change")
        return self.store.update_job(
            job_id,
            {"distance_km": distance_km, "quoted_price": self.quote(distance_km, job.vehicle_type)},
            expect={"distance_km": (None,), "status": OPEN_STATUSES},
        )

    def resolve_distance(self, job_id: str, osrm) -> Job:
        job = self.store.get_job(job_id)
        if job.pickup_coordinates is None:
            raise ValidationError(f"Job {job_id} has no pickup coordinates to route from")
        return self.record_distance(job_id, route_distance_km(osrm, job.pickup_coordinates, job.dropoff_coordinates))

    # --- Bidding ---

    def place_bid(self, job_id: str, driver_id: str, amount: float, **kwargs) -> Bid:
        return self.bids.place_bid(job_id, driver_id, amount, **kwargs)

    def accept_bid(self, job_id: str, bid_id: str) -> Job:
        return self.bids.accept_bid(job_id, bid_id)

    # --- Payment ---

    def mark_paid(self, job_id: str) -> Job:
        """
        Inbound payment confirmation. Flips the payment marker (status is
        unchanged) and records the client's payment. Repeat events are no-ops.
        """
        job = self.store.get_job(job_id)
        if job.is_paid:
            return job
        if job.status not in ASSIGNED_STATUSES:
            raise InvalidTransition(f"Job {job_id} is {job.status.value}; only accepted jobs can be paid")

        try:
            paid = self.store.update_job(
                job_id,
                {"payment_status": PaymentStatus.PAID},
                expect={"payment_status": (PaymentStatus.UNPAID,), "status": ASSIGNED_STATUSES},
            )
        except Conflict:
            current = self.store.get_job(job_id)
            if current.is_paid:
                return current
            raise

        record = Transaction(
            user_id=job.client_id,
            kind=TransactionKind.PAYMENT,
            amount=float(job.price),
            description=f"Payment for Trip #{job.id}",
            job_id=job.id,
            timestamp=self.clock(),
        )
        try:
            self.ledger.append_transaction(record)
        except Exception:
            logger.exception("Could not record payment for job %s, clearing payment marker", job_id)
            self.store.update_job(
                job_id,
                {"payment_status": PaymentStatus.UNPAID},
                expect={"payment_status": (PaymentStatus.PAID,)},
            )
            raise

        logger.info("Job %s marked paid (%.2f)", job_id, job.price)
        return paid

    # --- Ride progress ---

    def advance_ride(self, job_id: str, status: JobStatus) -> Job:
        status = JobStatus(status)
        if status not in RIDE_PROGRESS_STATUSES:
            raise ValidationError(f"{status.value} is not a ride progress status")
        job = self.store.get_job(job_id)
        ensure_transition(job, status)
        self._check_payment_gate(job)
        return self._conditional_transition(job, status)

    # --- Completion ---

    def complete_job(self, job_id: str) -> Job:
        """
        Move the job to COMPLETED and settle it, as one logical unit.

        1. compute the settlement plan from the frozen price and a config snapshot
        2. claim: status -> COMPLETED with settling=True, only if the job is
           still in the status we read and neither settling nor settled
           (at most once)
        3. apply balances + ledger batch
        4. post: settling -> settled

        While settling is set no other transition accepts the job. If step 3
        fails the claim is released (status reverted) and the settlement
        error propagates; balances are reversed by the settlement engine.
        """
        job = self.store.get_job(job_id)
        ensure_transition(job, JobStatus.COMPLETED)
        if job.settled or job.settling:
            raise InvalidTransition(f"Job {job_id} is already settled")
        self._check_payment_gate(job)

        partner = self.directory.get_user(job.partner_id) if job.partner_id else None
        now = self.clock()
        plan = compute_settlement(
            job,
            self.config_store.snapshot(),
            partner=partner,
            platform_account_id=self.policy.platform_account_id,
            now=now,
        )

        self._conditional_transition(
            job,
            JobStatus.COMPLETED,
            patch={"settling": True, "completed_at": now},
            expect={"settled": (False,), "settling": (False,)},
        )

        try:
            self.settlement.apply(plan)
        except Exception:
            logger.error("Reverting job %s to %s after failed settlement", job_id, job.status.value)
            try:
                self.store.update_job(
                    job_id,
                    {"status": job.status, "settling": False, "completed_at": None},
                    expect={"status": (JobStatus.COMPLETED,), "settling": (True,)},
                )
            except Conflict:
                logger.exception("Could not revert job %s after failed settlement", job_id)
            raise

        completed = self.store.update_job(
            job_id,
            {"settled": True, "settling": False},
            expect={"status": (JobStatus.COMPLETED,), "settling": (True,)},
        )
        logger.info("Job %s settlement posted", job_id)

        self._notify(
            "Trip completed",
            f"Trip #{job.id} completed. {plan.driver_net:.2f} was added to your balance",
            user_id=job.driver_id,
            severity=Severity.SUCCESS,
        )
        return completed

    # --- Cancellation ---

    def cancel_job(self, job_id: str, reason: Optional[str] = None) -> Job:
        job = self.store.get_job(job_id)
        if job.status not in CANCELLABLE_STATUSES:
            raise InvalidTransition(f"Job {job_id} is {job.status.value} and can't be cancelled")
        patch = {"admin_notes": f"Cancelled: {reason}"} if reason else {}
        cancelled = self._conditional_transition(job, JobStatus.CANCELLED, patch=patch)

        if job.driver_id:
            self._notify(
                "Trip cancelled",
                f"Trip #{job.id} from {job.pickup} was cancelled",
                user_id=job.driver_id,
                severity=Severity.WARNING,
            )
        if job.is_paid:
            logger.warning("Paid job %s cancelled; refund is handled outside the core", job_id)
        return cancelled

    # --- Disputes ---

    def open_dispute(self, job_id: str, reason: str) -> Job:
        if not reason:
            raise ValidationError("a dispute needs a reason")
        job = self.store.get_job(job_id)
        ensure_transition(job, JobStatus.DISPUTED)
        self._check_settlement_posted(job)
        disputed = self._conditional_transition(
            job,
            JobStatus.DISPUTED,
            patch={"dispute_reason": reason},
            expect={"settled": (True,), "settling": (False,)},
        )
        self._notify(
            "Dispute opened",
            f"Trip #{job.id}: {reason}",
            role=UserRole.ADMIN,
            severity=Severity.WARNING,
        )
        return disputed

    def resolve_dispute(self, job_id: str, resolution, *, admin_id: Optional[str] = None) -> Job:
        """
        Arbiter action. REFUND cancels the job, UPHELD puts it back to
        COMPLETED. Posted settlement transactions are left untouched either
        way; a completed job is never settled twice.
        """
        try:
            resolution = DisputeResolution(resolution)
        except ValueError:
            raise ValidationError(f"Unknown dispute resolution {resolution!r}")

        job = self.store.get_job(job_id)
        if job.status != JobStatus.DISPUTED:
            raise InvalidTransition(f"Job {job_id} is {job.status.value}, not DISPUTED")
        self._check_settlement_posted(job)

        target = JobStatus.CANCELLED if resolution == DisputeResolution.REFUND else JobStatus.COMPLETED
        resolved = self._conditional_transition(
            job,
            target,
            patch={"admin_notes": f"Dispute resolved by admin: {resolution.value}"},
            expect={"settled": (True,), "settling": (False,)},
        )
        logger.info("Dispute on job %s resolved by %s: %s", job_id, admin_id or "admin", resolution.value)
        if resolution == DisputeResolution.REFUND:
            logger.warning("Job %s refunded after settlement; posted transactions were not reversed", job_id)

        for user_id in filter(None, (job.client_id, job.driver_id)):
            self._notify("Dispute resolved", f"Trip #{job.id}: {resolution.value}", user_id=user_id)
        return resolved

    # --- helpers ---

    def _check_settlement_posted(self, job: Job) -> None:
        if job.settling:
            raise Conflict(f"Job {job.id} is being settled")
        if not job.settled:
            raise InvalidTransition(f"Job {job.id} has no posted settlement")

    def _check_payment_gate(self, job: Job) -> None:
        if self.policy.require_payment_to_proceed and not job.is_paid:
            raise InvalidTransition(f"Job {job.id} is not paid yet")

    def _conditional_transition(
        self,
        job: Job,
        target: JobStatus,
        *,
        patch: Optional[Dict[str, Any]] = None,
        expect: Optional[Dict[str, Any]] = None,
    ) -> Job:
        ensure_transition(job, target)
        try:
            updated = self.store.update_job(
                job.id,
                {"status": target, **(patch or {})},
                expect={"status": (job.status,), **(expect or {})},
            )
        except Conflict:
            logger.warning("Job %s: %s -> %s lost to a concurrent update",
                           job.id, job.status.value, target.value)
            raise
        logger.info("Job %s: %s -> %s", job.id, job.status.value, target.value)
        return updated

    def _notify(self, title: str, message: str, **kwargs) -> None:
        if self.notifier:
            self.notifier.notify(title, message, **kwargs)
