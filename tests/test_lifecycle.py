import pytest

from common.errors import InvalidTransition, NotFound, ValidationError
from dispatch import DisputeResolution, JobLifecycle, LifecyclePolicy
from dispatch.state_machines import ALLOWED_TRANSITIONS, can_transition, statuses_leading_to
from drivers.models import UserRole
from orders.models import BookingType, JobStatus, PaymentStatus
from settlement.ledger import TransactionKind


class FakeOSRM:
    def __init__(self, meters):
        self.meters = meters
        self.calls = []

    def compute_route(self, coordinates):
        self.calls.append(coordinates)
        return {"distance": self.meters, "duration": 1.0}


# --- transition table ---

def test_terminal_status_has_no_exits():
    assert ALLOWED_TRANSITIONS[JobStatus.CANCELLED] == frozenset()


def test_transition_table_shape():
    assert can_transition(JobStatus.PENDING, JobStatus.BIDDING)
    assert not can_transition(JobStatus.PENDING, JobStatus.ACCEPTED)
    assert not can_transition(JobStatus.IN_PROGRESS, JobStatus.CANCELLED)
    assert not can_transition(JobStatus.COMPLETED, JobStatus.CANCELLED)
    assert statuses_leading_to(JobStatus.DISPUTED) == frozenset({JobStatus.COMPLETED})


# --- creation and distance ---

def test_create_job_quotes_known_distance(lifecycle, store):
    job = lifecycle.create_job("client_1", "Freedom Square", 3, dropoff="Airport", distance_km=10)
    assert job.status == JobStatus.PENDING
    assert job.quoted_price == 48
    assert store.get_job(job.id) == job


def test_create_job_validation(lifecycle):
    with pytest.raises(ValidationError):
        lifecycle.create_job("client_1", "Freedom Square", 0, dropoff="Airport")
    with pytest.raises(ValidationError):
        lifecycle.create_job("client_1", "Freedom Square", 2, dropoff="Airport", distance_km=-3)
    with pytest.raises(ValidationError):
        lifecycle.create_job("client_1", "Freedom Square", 2)
    with pytest.raises(ValidationError):
        lifecycle.create_job("client_1", "Freedom Square", 2, booking_type=BookingType.HOURLY)


def test_hourly_booking(lifecycle):
    job = lifecycle.create_job("client_1", "Hotel", 2, booking_type="HOURLY", duration_hours=4)
    assert job.booking_type == BookingType.HOURLY
    assert job.dropoff is None


def test_record_distance_once(lifecycle, make_job):
    job = make_job()
    assert job.distance_km is None and job.quoted_price is None

    updated = lifecycle.record_distance(job.id, 120)
    assert updated.distance_km == 120
    assert updated.quoted_price == 282

    with pytest.raises(InvalidTransition):
        lifecycle.record_distance(job.id, 130)


def test_record_distance_rejects_negative(lifecycle, make_job):
    job = make_job()
    with pytest.raises(ValidationError):
        lifecycle.record_distance(job.id, -1)


def test_record_distance_only_while_open(lifecycle, accepted_job):
    with pytest.raises(InvalidTransition):
        lifecycle.record_distance(accepted_job.id, 20)


def test_resolve_distance_through_osrm(lifecycle, make_job):
    job = make_job(dropoff_coordinates=(42.27, 42.70))
    osrm = FakeOSRM(120000.0)

    updated = lifecycle.resolve_distance(job.id, osrm)

    assert osrm.calls == [[(41.70, 44.80), (42.27, 42.70)]]
    assert updated.distance_km == 120.0
    assert updated.quoted_price == 282


def test_change_feed(lifecycle, store, make_job):
    seen = []
    unsubscribe = store.subscribe(lambda job: seen.append(job.status))
    job = make_job()
    lifecycle.place_bid(job.id, "driver_1", 40)
    unsubscribe()
    lifecycle.cancel_job(job.id)
    assert seen == [JobStatus.PENDING, JobStatus.BIDDING]


# --- payment ---

def test_mark_paid_records_payment(lifecycle, accepted_job, ledger):
    paid = lifecycle.mark_paid(accepted_job.id)

    assert paid.payment_status == PaymentStatus.PAID
    assert paid.status == JobStatus.ACCEPTED
    [payment] = ledger.transactions(kinds=[TransactionKind.PAYMENT])
    assert payment.user_id == "client_1"
    assert payment.amount == 50


def test_mark_paid_is_idempotent(lifecycle, accepted_job, ledger):
    lifecycle.mark_paid(accepted_job.id)
    again = lifecycle.mark_paid(accepted_job.id)
    assert again.is_paid
    assert len(ledger.transactions(kinds=[TransactionKind.PAYMENT])) == 1


def test_mark_paid_needs_an_accepted_job(lifecycle, make_job):
    job = make_job()
    with pytest.raises(InvalidTransition):
        lifecycle.mark_paid(job.id)
    with pytest.raises(NotFound):
        lifecycle.mark_paid("missing")


# --- ride progress ---

def test_ride_progress_needs_payment(lifecycle, accepted_job):
    with pytest.raises(InvalidTransition):
        lifecycle.advance_ride(accepted_job.id, JobStatus.DRIVER_EN_ROUTE)
    with pytest.raises(InvalidTransition):
        lifecycle.complete_job(accepted_job.id)


def test_ride_progress_moves_forward_only(lifecycle, paid_job):
    job_id = paid_job.id
    assert lifecycle.advance_ride(job_id, JobStatus.DRIVER_EN_ROUTE).status == JobStatus.DRIVER_EN_ROUTE
    assert lifecycle.advance_ride(job_id, "DRIVER_ARRIVED").status == JobStatus.DRIVER_ARRIVED
    assert lifecycle.advance_ride(job_id, JobStatus.IN_PROGRESS).status == JobStatus.IN_PROGRESS

    with pytest.raises(InvalidTransition):
        lifecycle.advance_ride(job_id, JobStatus.DRIVER_EN_ROUTE)
    with pytest.raises(ValidationError):
        lifecycle.advance_ride(job_id, JobStatus.COMPLETED)

    assert lifecycle.complete_job(job_id).status == JobStatus.COMPLETED


def test_payment_gate_can_be_disabled(store, directory, ledger, config_store, clock):
    lifecycle = JobLifecycle(
        store, directory, ledger, config_store,
        policy=LifecyclePolicy(require_payment_to_proceed=False), clock=clock,
    )
    job = lifecycle.create_job("client_1", "Freedom Square", 2, dropoff="Airport")
    bid = lifecycle.place_bid(job.id, "driver_1", 50)
    lifecycle.accept_bid(job.id, bid.id)

    assert lifecycle.complete_job(job.id).status == JobStatus.COMPLETED


# --- cancellation ---

def test_cancel_open_job(lifecycle, make_job):
    job = make_job()
    cancelled = lifecycle.cancel_job(job.id, reason="plans changed")
    assert cancelled.status == JobStatus.CANCELLED
    assert cancelled.admin_notes == "Cancelled: plans changed"


def test_cancel_accepted_job_notifies_driver(lifecycle, accepted_job, sink):
    lifecycle.cancel_job(accepted_job.id)
    assert sink.for_user("driver_1")[-1].title == "Trip cancelled"


def test_cannot_cancel_once_ride_started(lifecycle, paid_job):
    lifecycle.advance_ride(paid_job.id, JobStatus.IN_PROGRESS)
    with pytest.raises(InvalidTransition):
        lifecycle.cancel_job(paid_job.id)


def test_cancelled_job_is_terminal(lifecycle, make_job):
    job = make_job()
    lifecycle.cancel_job(job.id)
    with pytest.raises(InvalidTransition):
        lifecycle.cancel_job(job.id)
    with pytest.raises(InvalidTransition):
        lifecycle.place_bid(job.id, "driver_1", 40)
    with pytest.raises(InvalidTransition):
        lifecycle.open_dispute(job.id, "late")


# --- disputes ---

def test_dispute_only_after_completion(lifecycle, paid_job):
    with pytest.raises(InvalidTransition):
        lifecycle.open_dispute(paid_job.id, "driver was late")


def test_open_dispute_notifies_admins(lifecycle, paid_job, sink):
    lifecycle.complete_job(paid_job.id)
    disputed = lifecycle.open_dispute(paid_job.id, "driver was late")

    assert disputed.status == JobStatus.DISPUTED
    assert disputed.dispute_reason == "driver was late"
    assert sink.for_role(UserRole.ADMIN)[-1].title == "Dispute opened"

    with pytest.raises(ValidationError):
        lifecycle.open_dispute(paid_job.id, "")


def test_refund_cancels_without_reversing_settlement(lifecycle, paid_job, ledger, directory):
    lifecycle.complete_job(paid_job.id)
    lifecycle.open_dispute(paid_job.id, "overcharged")
    entries_before = len(ledger)

    resolved = lifecycle.resolve_dispute(paid_job.id, DisputeResolution.REFUND)

    assert resolved.status == JobStatus.CANCELLED
    assert resolved.admin_notes == "Dispute resolved by admin: REFUND"
    assert len(ledger) == entries_before
    assert directory.get_user("driver_1").balance == 35.25


def test_upheld_returns_to_completed_without_resettling(lifecycle, paid_job, ledger, directory, sink):
    lifecycle.complete_job(paid_job.id)
    lifecycle.open_dispute(paid_job.id, "overcharged")
    entries_before = len(ledger)

    resolved = lifecycle.resolve_dispute(paid_job.id, "UPHELD")

    assert resolved.status == JobStatus.COMPLETED
    assert resolved.admin_notes == "Dispute resolved by admin: UPHELD"
    assert len(ledger) == entries_before
    assert directory.get_user("driver_1").balance == 35.25
    assert sink.for_user("client_1")[-1].title == "Dispute resolved"
    assert sink.for_user("driver_1")[-1].title == "Dispute resolved"

    with pytest.raises(InvalidTransition):
        lifecycle.complete_job(paid_job.id)


def test_resolve_dispute_validation(lifecycle, paid_job):
    with pytest.raises(InvalidTransition):
        lifecycle.resolve_dispute(paid_job.id, DisputeResolution.UPHELD)

    lifecycle.complete_job(paid_job.id)
    lifecycle.open_dispute(paid_job.id, "overcharged")
    with pytest.raises(ValidationError):
        lifecycle.resolve_dispute(paid_job.id, "SPLIT")
