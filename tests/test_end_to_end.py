"""
The full happy path for one order, driven through the gateway exactly as an
outer API layer would.
"""
import uuid

import pytest

from drones.models import DroneStatus
from orders.models import JobStatus, JobType, OrderStatus
from routing.coordinates import Coordinate
from users.permissions import Caller, Role

pytestmark = pytest.mark.django_db


def test_submit_reserve_grab_deliver(store, gateway, owner):
    customer = Caller.new(owner.id, Role.ENDUSER)
    drone = Caller.new(uuid.uuid4(), Role.DRONE)
    gateway.register_drone(drone, (37.7749, -122.4194))

    # 1. Submit
    order = gateway.submit_order(customer, (37.7749, -122.4194), (37.7849, -122.4094))
    jobs = list(store.jobs.filter(order=order))
    assert [(job.kind, job.status) for job in jobs] == [(JobType.DELIVERY, JobStatus.PENDING)]

    # 2. Reserve
    result = gateway.reserve_job(drone)
    assert result.job.pk == jobs[0].pk
    assert result.job.status == JobStatus.RESERVED
    order.refresh_from_db()
    assert order.status == OrderStatus.ASSIGNED
    assert str(order.assigned_drone_id) == drone.subject_id

    # 3. Grab
    order = gateway.grab_order(drone, order.id)
    assert order.status == OrderStatus.IN_TRANSIT
    assert order.current_location == Coordinate(37.7749, -122.4194)
    assert order.eta is not None

    # 4. Deliver
    order = gateway.deliver_order(drone, order.id)
    assert order.status == OrderStatus.DELIVERED
    assert order.current_location == Coordinate(37.7849, -122.4094)
    assert order.eta is None
    assert store.drones.get(pk=drone.subject_id).status == DroneStatus.AVAILABLE
    assert store.jobs.get(pk=jobs[0].pk).status == JobStatus.COMPLETED

    # Persisted, not just returned
    stored = store.orders.get(pk=order.pk)
    assert (stored.status, stored.current_lat, stored.current_lng, stored.eta) == (
        OrderStatus.DELIVERED, 37.7849, -122.4094, None,
    )
