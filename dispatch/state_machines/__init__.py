from .job_state import (
    ALLOWED_TRANSITIONS,
    ASSIGNED_STATUSES,
    CANCELLABLE_STATUSES,
    OPEN_STATUSES,
    RIDE_PROGRESS_STATUSES,
    can_transition,
    ensure_transition,
    statuses_leading_to,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "ASSIGNED_STATUSES",
    "CANCELLABLE_STATUSES",
    "OPEN_STATUSES",
    "RIDE_PROGRESS_STATUSES",
    "can_transition",
    "ensure_transition",
    "statuses_leading_to",
]
