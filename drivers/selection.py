"""
Purpose: Business rules for which jobs a user may see.
What it does:
Accepts a driver's eligibility profile and the job pool, filters out jobs
the driver may not bid on (capacity, zone, status), and keeps the ones the
driver is already involved in. Also scopes job lists per role and applies
the driver's request-feed filters.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

from orders.models import Job, JobStatus, as_utc
from routing.geofence import pickup_in_zones
from .models import EligibilityProfile, User, UserRole

OPEN_STATUSES = (JobStatus.PENDING, JobStatus.BIDDING)


def is_job_visible(driver: EligibilityProfile, job: Job) -> bool:
    """
    Rules, in order:
    1. assigned to this driver -> visible, whatever the status
    2. cancelled -> hidden
    3. driver already bid -> visible, so they can track it
    4. otherwise open (PENDING/BIDDING), within capacity and inside one of
       the driver's zones (no zones = no restriction)
    """
    if job.driver_id == driver.driver_id:
        return True

    if job.status == JobStatus.CANCELLED:
        return False

    if job.has_bid_from(driver.driver_id):
        return True

    if job.status not in OPEN_STATUSES:
        return False

    if driver.max_capacity is not None and job.passengers > driver.max_capacity:
        return False

    # Jobs without coordinates can't be geofenced; they stay visible
    if driver.zones and job.pickup_coordinates is not None:
        if not pickup_in_zones(job.pickup_coordinates, driver.zones):
            return False

    return True


def visible_jobs(driver: EligibilityProfile, jobs: Iterable[Job]) -> List[Job]:
    """Subset of `jobs` the driver may see, in the order given."""
    return [job for job in jobs if is_job_visible(driver, job)]


def jobs_for_user(user: User, jobs: Iterable[Job]) -> List[Job]:
    """
    Role scoping:
    - Admin: everything
    - Driver: eligibility filter
    - Agency: jobs it referred
    - Client: jobs they created
    """
    jobs = list(jobs)
    if user.role == UserRole.ADMIN:
        return jobs
    if user.role == UserRole.DRIVER:
        return visible_jobs(EligibilityProfile.from_user(user), jobs)
    if user.role == UserRole.AGENCY:
        return [job for job in jobs if job.partner_id == user.id]
    return [job for job in jobs if job.client_id == user.id]


@dataclass(frozen=True)
class RequestFilter:
    """
    Driver-side narrowing of the open request feed.

    with_own_offer: None = both, True = only jobs the driver bid on,
    False = only jobs without the driver's bid.
    """
    min_passengers: Optional[int] = None
    max_passengers: Optional[int] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    only_urgent: bool = False
    show_skipped: bool = False
    with_own_offer: Optional[bool] = None


def request_feed(
    driver: EligibilityProfile,
    jobs: Iterable[Job],
    request_filter: Optional[RequestFilter] = None,
) -> List[Job]:
    """
    Open requests for the driver's "requests" screen, soonest first.
    With show_skipped the feed lists only the skipped jobs, otherwise skipped
    jobs are left out.
    """
    request_filter = request_filter or RequestFilter()
    start, end = as_utc(request_filter.start), as_utc(request_filter.end)
    feed = []

    for job in visible_jobs(driver, jobs):
        if job.status not in OPEN_STATUSES:
            continue
        if job.driver_id and job.driver_id != driver.driver_id:
            continue

        skipped = job.id in driver.skipped_job_ids
        if request_filter.show_skipped != skipped:
            continue

        if request_filter.with_own_offer is not None:
            if job.has_bid_from(driver.driver_id) != request_filter.with_own_offer:
                continue

        if request_filter.min_passengers is not None and job.passengers < request_filter.min_passengers:
            continue
        if request_filter.max_passengers is not None and job.passengers > request_filter.max_passengers:
            continue

        if start is not None or end is not None:
            scheduled_at = as_utc(job.scheduled_at)
            if scheduled_at is None:
                continue
            if start is not None and scheduled_at < start:
                continue
            if end is not None and scheduled_at >= end:
                continue

        if request_filter.only_urgent and not job.is_urgent:
            continue

        feed.append(job)

    feed.sort(key=lambda job: (job.scheduled_at is None, as_utc(job.scheduled_at or job.created_at)))
    return feed
