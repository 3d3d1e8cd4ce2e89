"""
Purpose: Job store with storage-layer conditional writes.
What it does:
- Owns the jobs collection (in memory here; a document database in production)

Provides operations:
   - create_job(job)
   - get_job(job_id)
   - update_job(job_id, patch, expect=...)   conditional write
   - append_bid(job_id, bid, ...)            atomic array append
   - list_jobs(...)
   - subscribe(listener)                      change feed

The lock below stands in for the database's per-document atomicity. It is
held only for one compare-and-write, never across a business operation, so
there is no central mutex in the core.

Rule: Store owns persistence, lifecycle owns transition rules.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, fields, replace
from typing import Any, Callable, Collection, Dict, List, Mapping, Optional

from common.errors import Conflict, NotFound, ValidationError
from .models import Bid, Job, JobStatus

logger = logging.getLogger(__name__)

JobListener = Callable[[Job], None]

_JOB_FIELDS = frozenset(f.name for f in fields(Job))


@dataclass
class InMemoryJobStore:
    """
    In-memory job collection with Firestore-style conditional updates.

    `expect` maps a field name to the collection of values it may hold for
    the write to go through, e.g. {"status": (PENDING, BIDDING),
    "selected_bid_id": (None,)}. A failed precondition raises Conflict.
    """
    _jobs: Dict[str, Job] = field(default_factory=dict)
    _listeners: List[JobListener] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    # --- Public API ---

    def create_job(self, job: Job) -> Job:
        with self._lock:
            if job.id in self._jobs:
                raise Conflict(f"Job {job.id} already exists")
            self._jobs[job.id] = job
        self._publish(job)
        return job

    def get_job(self, job_id: str) -> Job:
        job = self._jobs.get(job_id)
        if job is None:
            raise NotFound(f"Job {job_id} not found")
        return job

    def list_jobs(
        self,
        *,
        statuses: Optional[Collection[JobStatus]] = None,
        client_id: Optional[str] = None,
        driver_id: Optional[str] = None,
        partner_id: Optional[str] = None,
    ) -> List[Job]:
        """Newest first, like the bookings feed."""
        jobs = list(self._jobs.values())
        if statuses is not None:
            jobs = [job for job in jobs if job.status in statuses]
        if client_id is not None:
            jobs = [job for job in jobs if job.client_id == client_id]
        if driver_id is not None:
            jobs = [job for job in jobs if job.driver_id == driver_id]
        if partner_id is not None:
            jobs = [job for job in jobs if job.partner_id == partner_id]
        jobs.sort(key=lambda job: job.created_at, reverse=True)
        return jobs

    def update_job(
        self,
        job_id: str,
        patch: Mapping[str, Any],
        *,
        expect: Optional[Mapping[str, Collection[Any]]] = None,
    ) -> Job:
        self._check_fields(patch)
        with self._lock:
            current = self._require(job_id)
            self._check_expectations(current, expect)
            updated = replace(current, **patch)
            self._jobs[job_id] = updated
        self._publish(updated)
        return updated

    def append_bid(
        self,
        job_id: str,
        bid: Bid,
        *,
        patch: Optional[Mapping[str, Any]] = None,
        expect: Optional[Mapping[str, Collection[Any]]] = None,
    ) -> Job:
        """
        Array-union style append. Concurrent appends never conflict with each
        other; only `expect` can reject the write.
        """
        patch = dict(patch or {})
        self._check_fields(patch)
        if bid.job_id != job_id:
            raise ValidationError(f"Bid {bid.id} belongs to job {bid.job_id}, not {job_id}")
        with self._lock:
            current = self._require(job_id)
            self._check_expectations(current, expect)
            updated = replace(current, bids=current.bids + (bid,), **patch)
            self._jobs[job_id] = updated
        self._publish(updated)
        return updated

    def subscribe(self, listener: JobListener) -> Callable[[], None]:
        """Register a change listener; returns the unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # --- helpers ---

    def _require(self, job_id: str) -> Job:
        job = self._jobs.get(job_id)
        if job is None:
            raise NotFound(f"Job {job_id} not found")
        return job

    @staticmethod
    def _check_fields(patch: Mapping[str, Any]) -> None:
        unknown = set(patch) - _JOB_FIELDS
        if unknown:
            raise ValidationError(f"Unknown job fields: {sorted(unknown)}")
        if "id" in patch or "bids" in patch:
            raise ValidationError("id and bids cannot be patched")

    @staticmethod
    def _check_expectations(job: Job, expect: Optional[Mapping[str, Collection[Any]]]) -> None:
        if not expect:
            return
        for name, allowed in expect.items():
            actual = getattr(job, name)
            if actual not in allowed:
                logger.info("Conditional write on job %s rejected: %s=%r", job.id, name, actual)
                raise Conflict(f"Job {job.id} changed concurrently ({name}={actual!r})")

    def _publish(self, job: Job) -> None:
        for listener in list(self._listeners):
            listener(job)
