"""
Purpose: End-to-end marketplace simulation over in-memory collaborators.

Clients in two cities post transfer requests, drivers see the ones their
zones and vehicles allow and bid, clients accept the cheapest offer, pay,
and the ride is completed and settled. Ends with the admin summary report.

Run from the repository root:
    python -m scripts.run_marketplace_simulation
"""

import logging
import random
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from common.errors import Conflict, InvalidTransition
from common.settings import configure_logging
from dispatch import JobLifecycle, LifecyclePolicy, LoggingNotificationSink
from drivers.directory import InMemoryUserDirectory
from drivers.models import User, UserRole, Vehicle
from drivers.selection import jobs_for_user
from orders.models import JobStatus, VehicleCategory
from orders.store import InMemoryJobStore
from pricing.config_store import PricingConfigStore
from pricing.offers import classify_offer
from pricing.policy import PricingConfig
from routing.geofence import ServiceZone
from settlement.ledger import InMemoryLedger
from settlement.payouts import manual_payout
from settlement.reports import platform_summary

logger = logging.getLogger(__name__)

TBILISI = ServiceZone.polygon("tbilisi", [(41.60, 44.70), (41.60, 44.90), (41.80, 44.90), (41.80, 44.70)])
BATUMI = ServiceZone.polygon("batumi", [(41.58, 41.55), (41.58, 41.70), (41.70, 41.70), (41.70, 41.55)])

PICKUPS = {
    "Freedom Square": (41.6934, 44.8015),
    "Tbilisi Airport": (41.6692, 44.9547),  # just outside the city square
    "Batumi Boulevard": (41.6520, 41.6360),
}


def build_directory() -> InMemoryUserDirectory:
    return InMemoryUserDirectory([
        User(id="client_1", name="Nino", role=UserRole.CLIENT),
        User(id="client_2", name="Giorgi", role=UserRole.CLIENT),
        User(
            id="driver_tbs", name="Levan", role=UserRole.DRIVER,
            vehicles=(Vehicle("v1", max_passengers=4, description="Toyota Prius"),),
            service_zones=(TBILISI,),
        ),
        User(
            id="driver_van", name="Dato", role=UserRole.DRIVER,
            vehicles=(Vehicle("v2", max_passengers=7, category=VehicleCategory.VAN.value, description="Mercedes Vito"),),
        ),
        User(
            id="driver_bus", name="Irakli", role=UserRole.DRIVER,
            vehicles=(Vehicle("v3", max_passengers=18, category=VehicleCategory.MINIBUS.value, description="Ford Transit"),),
            service_zones=(BATUMI,),
        ),
        User(id="agency_1", name="Sky Travel", role=UserRole.AGENCY, commission_rate=0.05),
        User(id="admin_1", name="Admin", role=UserRole.ADMIN),
    ])


def run_simulation(seed: int = 7, num_jobs: int = 6, now: Optional[datetime] = None, notifier=None) -> Dict:
    """
    Runs the scenario and returns the platform summary. Deterministic for a
    given seed. Notifications go to the log unless another sink is given.
    """
    rng = random.Random(seed)
    now = now or datetime(2024, 5, 15, 9, 0, tzinfo=timezone.utc)
    logger.info("=== STARTING MARKETPLACE SIMULATION (seed=%d, jobs=%d) ===", seed, num_jobs)

    # 1. Configure system
    directory = build_directory()
    store = InMemoryJobStore()
    ledger = InMemoryLedger()
    config_store = PricingConfigStore(PricingConfig(commission_rate=0.295, partner_commission_rate=0.05))
    sink = notifier or LoggingNotificationSink()
    lifecycle = JobLifecycle(
        store, directory, ledger, config_store,
        notifier=sink,
        policy=LifecyclePolicy(require_payment_to_proceed=True),
        clock=lambda: now,
    )

    # 2. Clients post requests
    for i in range(num_jobs):
        pickup = rng.choice(sorted(PICKUPS))
        job = lifecycle.create_job(
            rng.choice(["client_1", "client_2"]),
            pickup,
            rng.randint(1, 9),
            pickup_coordinates=PICKUPS[pickup],
            dropoff="Kutaisi Airport",
            distance_km=round(rng.uniform(15, 350), 1),
            scheduled_at=now + timedelta(hours=rng.randint(2, 48)),
            partner_id="agency_1" if i % 3 == 0 else None,
        )
        logger.info("Job %s: %s, %d pax, %.1f km, quote %d",
                    job.id[:8], pickup, job.passengers, job.distance_km, job.quoted_price)

    # 3. Drivers bid on what they can see
    thresholds = config_store.thresholds()
    for driver in directory.list_users(UserRole.DRIVER):
        for job in jobs_for_user(driver, store.list_jobs(statuses=[JobStatus.PENDING, JobStatus.BIDDING])):
            amount = round(job.quoted_price * rng.uniform(0.8, 1.3), 2)
            bid = lifecycle.place_bid(job.id, driver.id, amount)
            logger.info("  %s bids %.2f on %s (%s)", driver.name, bid.amount, job.id[:8],
                        classify_offer(amount, job.quoted_price, thresholds).value)

    # 4. Clients accept the cheapest offer, pay, ride and complete
    for job in store.list_jobs(statuses=[JobStatus.PENDING, JobStatus.BIDDING]):
        if not job.bids:
            logger.info("[NO OFFERS] Job %s -> cancelled", job.id[:8])
            lifecycle.cancel_job(job.id, reason="no offers")
            continue

        best = min(job.bids, key=lambda b: b.amount)
        try:
            lifecycle.accept_bid(job.id, best.id)
            lifecycle.mark_paid(job.id)
            lifecycle.advance_ride(job.id, JobStatus.DRIVER_EN_ROUTE)
            lifecycle.advance_ride(job.id, JobStatus.IN_PROGRESS)
            lifecycle.complete_job(job.id)
        except (Conflict, InvalidTransition) as exc:
            logger.warning("[FAILED] Job %s: %s", job.id[:8], exc)
            continue
        logger.info("[SUCCESS] Job %s -> %s at %.2f", job.id[:8], best.driver_name, best.amount)

    # 5. One dispute, upheld
    completed = store.list_jobs(statuses=[JobStatus.COMPLETED])
    if completed:
        lifecycle.open_dispute(completed[0].id, "driver was late")
        lifecycle.resolve_dispute(completed[0].id, "UPHELD", admin_id="admin_1")

    # 6. Pay out drivers with a balance
    for driver in directory.list_users(UserRole.DRIVER):
        if driver.balance > 0:
            manual_payout(directory, ledger, driver.id, driver.balance)

    summary = platform_summary(store.list_jobs(), ledger.transactions())
    logger.info("=== SIMULATION COMPLETE ===")
    logger.info("Jobs by status: %s", {k: v for k, v in summary["jobs_by_status"].items() if v})
    logger.info("Platform revenue %.2f, driver earnings %.2f, partner commissions %.2f, payouts %.2f",
                summary["platform_revenue"], summary["driver_earnings"],
                summary["partner_commissions"], summary["payouts"])
    return summary


if __name__ == "__main__":
    configure_logging()
    run_simulation()
