import threading
from datetime import datetime, timezone

import pytest

from dispatch import InMemoryNotificationSink, JobLifecycle, LifecyclePolicy
from drivers.directory import InMemoryUserDirectory
from drivers.models import User, UserRole, Vehicle
from orders.store import InMemoryJobStore
from pricing.config_store import PricingConfigStore
from pricing.policy import PricingConfig
from routing.geofence import ServiceZone
from settlement.ledger import InMemoryLedger

# A Wednesday, so weekend pricing never kicks in by accident
FIXED_NOW = datetime(2024, 5, 15, 10, 0, tzinfo=timezone.utc)


class BarrierJobStore(InMemoryJobStore):
    """
    Job store whose reads rendezvous on a barrier: every party has read the
    job before any of them writes. Used to force read-then-write races.
    """

    def __init__(self, parties: int = 2):
        super().__init__()
        self.barrier = threading.Barrier(parties)
        self.armed = False

    def get_job(self, job_id):
        job = super().get_job(job_id)
        if self.armed:
            self.barrier.wait(timeout=5)
        return job


class FailingLedger(InMemoryLedger):
    """Ledger whose writes fail while `failing` is set."""

    def __init__(self):
        super().__init__()
        self.failing = False

    def append_many(self, records):
        if self.failing:
            raise RuntimeError("ledger unavailable")
        return super().append_many(records)


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def pricing_config():
    return PricingConfig(commission_rate=0.295, partner_commission_rate=0.05)


@pytest.fixture
def config_store(pricing_config):
    return PricingConfigStore(pricing_config)


@pytest.fixture
def store():
    return InMemoryJobStore()


@pytest.fixture
def ledger():
    return InMemoryLedger()


@pytest.fixture
def sink():
    return InMemoryNotificationSink()


@pytest.fixture
def zone_square():
    # Rough square around central Tbilisi
    return ServiceZone.polygon("tbilisi", [(41.60, 44.70), (41.60, 44.90), (41.80, 44.90), (41.80, 44.70)])


@pytest.fixture
def directory(zone_square):
    return InMemoryUserDirectory([
        User(id="client_1", name="Nino", role=UserRole.CLIENT),
        User(id="client_2", name="Giorgi", role=UserRole.CLIENT),
        User(
            id="driver_1",
            name="Levan",
            role=UserRole.DRIVER,
            vehicles=(Vehicle("veh_1", max_passengers=4, category="Economy", description="Toyota Prius"),),
            service_zones=(zone_square,),
        ),
        User(
            id="driver_2",
            name="Dato",
            role=UserRole.DRIVER,
            vehicles=(Vehicle("veh_2", max_passengers=7, category="Van", description="Mercedes Vito"),),
        ),
        User(id="agency_1", name="Sky Travel", role=UserRole.AGENCY),
        User(id="admin_1", name="Admin", role=UserRole.ADMIN),
    ])


@pytest.fixture
def policy():
    return LifecyclePolicy(require_payment_to_proceed=True, platform_account_id="system")


@pytest.fixture
def lifecycle(store, directory, ledger, config_store, sink, policy, clock):
    return JobLifecycle(store, directory, ledger, config_store, notifier=sink, policy=policy, clock=clock)


@pytest.fixture
def make_job(lifecycle):
    """Factory for a distance booking from inside the Tbilisi square."""
    def _make(client_id="client_1", passengers=2, **attributes):
        attributes.setdefault("dropoff", "Kutaisi Airport")
        attributes.setdefault("pickup_coordinates", (41.70, 44.80))
        return lifecycle.create_job(client_id, "Freedom Square", passengers, **attributes)
    return _make


@pytest.fixture
def accepted_job(lifecycle, make_job):
    """A job with one accepted 50.00 bid from driver_1."""
    job = make_job()
    bid = lifecycle.place_bid(job.id, "driver_1", 50)
    return lifecycle.accept_bid(job.id, bid.id)


@pytest.fixture
def paid_job(lifecycle, accepted_job):
    return lifecycle.mark_paid(accepted_job.id)


@pytest.fixture
def barrier_store():
    return BarrierJobStore()


@pytest.fixture
def racing_lifecycle(barrier_store, directory, ledger, config_store, sink, policy, clock):
    return JobLifecycle(barrier_store, directory, ledger, config_store, notifier=sink, policy=policy, clock=clock)


@pytest.fixture
def failing_ledger():
    return FailingLedger()


@pytest.fixture
def failing_lifecycle(store, directory, failing_ledger, config_store, sink, policy, clock):
    return JobLifecycle(store, directory, failing_ledger, config_store, notifier=sink, policy=policy, clock=clock)
