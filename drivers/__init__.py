"""
Drivers / user directory package.

Public API:
- Models: User, UserRole, UserStatus, Vehicle, EligibilityProfile
- Directory: InMemoryUserDirectory
- Selection: visible_jobs, is_job_visible, jobs_for_user, request_feed, RequestFilter
"""
from .models import User, UserRole, UserStatus, Vehicle, EligibilityProfile
from .directory import InMemoryUserDirectory
from .selection import visible_jobs, is_job_visible, jobs_for_user, request_feed, RequestFilter

__all__ = [
    "User",
    "UserRole",
    "UserStatus",
    "Vehicle",
    "EligibilityProfile",
    "InMemoryUserDirectory",
    "visible_jobs",
    "is_job_visible",
    "jobs_for_user",
    "request_feed",
    "RequestFilter",
]
