from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from common.errors import ValidationError
from drivers.models import EligibilityProfile, User, UserRole, UserStatus, Vehicle
from drivers.selection import RequestFilter, is_job_visible, jobs_for_user, request_feed, visible_jobs
from orders.models import Bid, Job, JobStatus
from routing.geofence import ServiceZone

INSIDE = (41.70, 44.80)
OUTSIDE = (42.27, 42.70)
T0 = datetime(2024, 5, 15, 8, 0, tzinfo=timezone.utc)


def make_job(passengers=2, pickup_coordinates=INSIDE, **changes):
    job = Job.new("client_1", "Freedom Square", passengers, dropoff="Airport", pickup_coordinates=pickup_coordinates)
    return replace(job, **changes)


def bid_from(job, driver_id):
    return Bid.new(job.id, driver_id, 40, timestamp=T0)


@pytest.fixture
def driver(zone_square):
    return EligibilityProfile(driver_id="driver_1", max_capacity=4, zones=(zone_square,))


def test_open_job_in_zone_within_capacity_is_visible(driver):
    assert is_job_visible(driver, make_job())
    assert is_job_visible(driver, make_job(status=JobStatus.BIDDING))


def test_capacity_is_enforced(driver):
    assert is_job_visible(driver, make_job(passengers=4))
    assert not is_job_visible(driver, make_job(passengers=5))


def test_driver_without_vehicles_has_no_capacity_limit(zone_square):
    user = User(id="driver_x", name="X", role=UserRole.DRIVER, service_zones=(zone_square,))
    profile = EligibilityProfile.from_user(user)
    assert profile.max_capacity is None
    assert is_job_visible(profile, make_job(passengers=30))


def test_capacity_is_the_largest_vehicle():
    user = User(
        id="driver_x", name="X", role=UserRole.DRIVER,
        vehicles=(Vehicle("a", max_passengers=3), Vehicle("b", max_passengers=8)),
    )
    assert EligibilityProfile.from_user(user).max_capacity == 8


def test_zone_is_enforced(driver):
    assert not is_job_visible(driver, make_job(pickup_coordinates=OUTSIDE))


def test_driver_without_zones_sees_everywhere():
    driver = EligibilityProfile(driver_id="driver_2", max_capacity=7)
    assert is_job_visible(driver, make_job(pickup_coordinates=OUTSIDE))


def test_job_without_coordinates_skips_zone_check(driver):
    assert is_job_visible(driver, make_job(pickup_coordinates=None))


def test_global_zone_matches_any_pickup():
    driver = EligibilityProfile(driver_id="driver_1", max_capacity=4, zones=(ServiceZone.global_zone(),))
    assert is_job_visible(driver, make_job(pickup_coordinates=OUTSIDE))


def test_assigned_job_is_visible_in_any_status(driver):
    for status in (JobStatus.ACCEPTED, JobStatus.IN_PROGRESS, JobStatus.COMPLETED, JobStatus.CANCELLED):
        job = make_job(status=status, driver_id="driver_1", passengers=9, pickup_coordinates=OUTSIDE)
        assert is_job_visible(driver, job)


def test_job_assigned_to_someone_else_is_hidden(driver):
    assert not is_job_visible(driver, make_job(status=JobStatus.ACCEPTED, driver_id="driver_2"))


def test_cancelled_job_is_hidden(driver):
    job = make_job(status=JobStatus.CANCELLED)
    job = replace(job, bids=(bid_from(job, "driver_1"),))
    assert not is_job_visible(driver, job)


def test_job_with_own_bid_stays_visible(driver):
    """
    Once the driver bid, the job is tracked even if it is now outside the
    driver's filters or accepted by another driver.
    """
    job = make_job(passengers=9, pickup_coordinates=OUTSIDE, status=JobStatus.ACCEPTED, driver_id="driver_2")
    job = replace(job, bids=(bid_from(job, "driver_1"),))
    assert is_job_visible(driver, job)


def test_visible_jobs_keeps_order(driver):
    jobs = [make_job(), make_job(passengers=9), make_job(pickup_coordinates=None)]
    assert visible_jobs(driver, jobs) == [jobs[0], jobs[2]]


def test_jobs_for_user_scopes_by_role(directory):
    own = make_job()
    referred = make_job(partner_id="agency_1", pickup_coordinates=OUTSIDE)
    other = replace(make_job(passengers=6), client_id="client_2")
    jobs = [own, referred, other]

    assert jobs_for_user(directory.get_user("admin_1"), jobs) == jobs
    assert jobs_for_user(directory.get_user("client_2"), jobs) == [other]
    assert jobs_for_user(directory.get_user("agency_1"), jobs) == [referred]
    # driver_1 seats 4 and only works the Tbilisi square
    assert jobs_for_user(directory.get_user("driver_1"), jobs) == [own]


def test_request_feed_is_soonest_first(driver):
    later = make_job(scheduled_at=T0 + timedelta(hours=5))
    sooner = make_job(scheduled_at=T0 + timedelta(hours=1))
    unscheduled = make_job()
    assert request_feed(driver, [later, unscheduled, sooner]) == [sooner, later, unscheduled]


def test_request_feed_excludes_assigned_jobs(driver):
    mine = make_job(status=JobStatus.ACCEPTED, driver_id="driver_1")
    assert request_feed(driver, [mine]) == []


def test_request_feed_skip_list(driver):
    skipped = make_job()
    kept = make_job()
    profile = replace(driver, skipped_job_ids=frozenset({skipped.id}))

    assert request_feed(profile, [skipped, kept]) == [kept]
    assert request_feed(profile, [skipped, kept], RequestFilter(show_skipped=True)) == [skipped]


def test_request_feed_filters(driver):
    small = make_job(passengers=1, scheduled_at=T0)
    urgent = make_job(passengers=3, is_urgent=True, scheduled_at=T0 + timedelta(days=2))
    bid_on = make_job(passengers=2, status=JobStatus.BIDDING)
    bid_on = replace(bid_on, bids=(bid_from(bid_on, "driver_1"),))
    jobs = [small, urgent, bid_on]

    assert request_feed(driver, jobs, RequestFilter(min_passengers=2)) == [urgent, bid_on]
    assert request_feed(driver, jobs, RequestFilter(max_passengers=1)) == [small]
    assert request_feed(driver, jobs, RequestFilter(only_urgent=True)) == [urgent]
    assert request_feed(driver, jobs, RequestFilter(with_own_offer=True)) == [bid_on]
    assert request_feed(driver, jobs, RequestFilter(with_own_offer=False)) == [small, urgent]
    assert request_feed(driver, jobs, RequestFilter(start=T0, end=T0 + timedelta(days=1))) == [small]


def test_directory_skip_list_round_trip(directory):
    directory.skip_job("driver_1", "job_a")
    directory.skip_job("driver_1", "job_a")
    assert directory.get_user("driver_1").skipped_job_ids == ("job_a",)
    directory.unskip_job("driver_1", "job_a")
    assert directory.get_user("driver_1").skipped_job_ids == ()


def test_naive_and_aware_schedules_sort_together(driver):
    """Naive scheduled times are read as UTC, so mixed feeds still sort."""
    aware = make_job()
    aware = replace(aware, scheduled_at=T0 + timedelta(hours=3))
    naive = Job.new("client_1", "Freedom Square", 2, dropoff="Airport",
                    pickup_coordinates=INSIDE, scheduled_at=datetime(2024, 5, 15, 9, 0))
    raw_naive = make_job(scheduled_at=datetime(2024, 5, 15, 12, 0))

    assert naive.scheduled_at == datetime(2024, 5, 15, 9, 0, tzinfo=timezone.utc)
    assert request_feed(driver, [aware, raw_naive, naive]) == [naive, aware, raw_naive]
    assert request_feed(driver, [aware, naive], RequestFilter(start=datetime(2024, 5, 15, 10, 0))) == [aware]


def test_directory_status_update(directory):
    updated = directory.update_user_status("driver_1", UserStatus.SUSPENDED)
    assert updated.status == UserStatus.SUSPENDED
    assert directory.get_user("driver_1").status == UserStatus.SUSPENDED
    assert directory.update_user_status("driver_1", "ACTIVE").status == UserStatus.ACTIVE


def test_directory_rejects_zero_seat_vehicle(directory):
    with pytest.raises(ValidationError):
        directory.update_vehicles("driver_1", [Vehicle("broken", max_passengers=0)])
    assert directory.get_user("driver_1").max_capacity == 4

    directory.update_vehicles("driver_1", [Vehicle("bus", max_passengers=18)])
    assert directory.get_user("driver_1").max_capacity == 18


def test_zone_update_changes_visibility(directory):
    job = make_job(pickup_coordinates=OUTSIDE)
    assert jobs_for_user(directory.get_user("driver_1"), [job]) == []

    kutaisi = ServiceZone.polygon("kutaisi", [(42.2, 42.6), (42.2, 42.8), (42.35, 42.8), (42.35, 42.6)])
    directory.update_service_zones("driver_1", [kutaisi])
    assert jobs_for_user(directory.get_user("driver_1"), [job]) == [job]

    # no zones at all: no restriction
    directory.update_service_zones("driver_1", [])
    far = make_job(pickup_coordinates=(0.0, 0.0))
    assert jobs_for_user(directory.get_user("driver_1"), [far]) == [far]
