import pytest

from dispatch.deliveries import DeliveryStateMachine
from dispatch.dispatcher import Dispatcher
from dispatch.fleet import FleetService
from dispatch.gateway import DispatchGateway
from dispatch.store import Store
from drones.policy import DronePolicy
from users.models import User

# San Francisco, the same pair the end-to-end scenario uses
ORIGIN = (37.7749, -122.4194)
DESTINATION = (37.7849, -122.4094)


@pytest.fixture
def policy():
    return DronePolicy(average_speed_kmh=50.0)


@pytest.fixture
def store(db):
    return Store()


@pytest.fixture
def dispatcher(store):
    return Dispatcher(store)


@pytest.fixture
def machine(store, policy):
    return DeliveryStateMachine(store, policy)


@pytest.fixture
def fleet(store, policy):
    return FleetService(store, policy)


@pytest.fixture
def gateway(store, policy):
    return DispatchGateway(store, policy)


@pytest.fixture
def make_user(store):
    def _make(name="alice", role=User.Roles.ENDUSER):
        return store.users.create(name=name, role=role)
    return _make


@pytest.fixture
def make_drone(store):
    def _make(lat=ORIGIN[0], lng=ORIGIN[1], **fields):
        return store.drones.create(current_lat=lat, current_lng=lng, **fields)
    return _make


@pytest.fixture
def owner(make_user):
    return make_user()


@pytest.fixture
def submit(machine, owner):
    """Submit an order for the default owner."""
    def _submit(origin=ORIGIN, destination=DESTINATION, owner_id=None):
        return machine.submit(origin, destination, owner_id or owner.id)
    return _submit
