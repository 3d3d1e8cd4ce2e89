"""
Legal status transitions for a job.

PENDING -> BIDDING -> ACCEPTED -> [DRIVER_EN_ROUTE -> DRIVER_ARRIVED -> IN_PROGRESS] -> COMPLETED
CANCELLED from PENDING, BIDDING or ACCEPTED.
DISPUTED from COMPLETED, resolved back to COMPLETED (upheld) or to CANCELLED (refund).
"""
from typing import Dict, FrozenSet

from common.errors import InvalidTransition
from orders.models import Job, JobStatus

OPEN_STATUSES: FrozenSet[JobStatus] = frozenset({JobStatus.PENDING, JobStatus.BIDDING})

RIDE_PROGRESS_STATUSES: FrozenSet[JobStatus] = frozenset({
    JobStatus.DRIVER_EN_ROUTE,
    JobStatus.DRIVER_ARRIVED,
    JobStatus.IN_PROGRESS,
})

# Statuses in which a driver is committed to the job
ASSIGNED_STATUSES: FrozenSet[JobStatus] = frozenset({JobStatus.ACCEPTED}) | RIDE_PROGRESS_STATUSES

CANCELLABLE_STATUSES: FrozenSet[JobStatus] = frozenset({
    JobStatus.PENDING,
    JobStatus.BIDDING,
    JobStatus.ACCEPTED,
})

ALLOWED_TRANSITIONS: Dict[JobStatus, FrozenSet[JobStatus]] = {
    JobStatus.PENDING: frozenset({JobStatus.BIDDING, JobStatus.CANCELLED}),
    JobStatus.BIDDING: frozenset({JobStatus.ACCEPTED, JobStatus.CANCELLED}),
    JobStatus.ACCEPTED: frozenset({
        JobStatus.DRIVER_EN_ROUTE,
        JobStatus.DRIVER_ARRIVED,
        JobStatus.IN_PROGRESS,
        JobStatus.COMPLETED,
        JobStatus.CANCELLED,
    }),
    JobStatus.DRIVER_EN_ROUTE: frozenset({JobStatus.DRIVER_ARRIVED, JobStatus.IN_PROGRESS, JobStatus.COMPLETED}),
    JobStatus.DRIVER_ARRIVED: frozenset({JobStatus.IN_PROGRESS, JobStatus.COMPLETED}),
    JobStatus.IN_PROGRESS: frozenset({JobStatus.COMPLETED}),
    JobStatus.COMPLETED: frozenset({JobStatus.DISPUTED}),
    JobStatus.DISPUTED: frozenset({JobStatus.COMPLETED, JobStatus.CANCELLED}),
    JobStatus.CANCELLED: frozenset(),
}


def can_transition(current: JobStatus, target: JobStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def ensure_transition(job: Job, target: JobStatus) -> None:
    """Raise InvalidTransition unless job.status -> target is legal."""
    if not can_transition(job.status, target):
        raise InvalidTransition(f"Cannot move job {job.id} from {job.status.value} to {target.value}")


def statuses_leading_to(target: JobStatus) -> FrozenSet[JobStatus]:
    """Every status from which `target` is reachable in one step."""
    return frozenset(status for status, targets in ALLOWED_TRANSITIONS.items() if target in targets)
