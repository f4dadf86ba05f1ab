"""
Drones racing for jobs on real threads, each with its own database connection.
Needs committed data (transactional_db) and an on-disk test database.
"""
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from dispatch.deliveries import DeliveryStateMachine
from dispatch.dispatcher import Dispatcher
from dispatch.store import Store
from drones.models import DroneStatus
from droneport_backend.runtime import open_store
from orders.models import JobStatus, OrderStatus

ORIGIN = (37.7749, -122.4194)


def race(drone_ids):
    """
    Release every drone at once and collect (job ids won, errors raised).
    """
    barrier = threading.Barrier(len(drone_ids), timeout=30)

    def reserve(drone_id):
        with open_store() as store:
            barrier.wait()
            result = Dispatcher(store).reserve(drone_id)
            return None if result is None else result.job.id

    with ThreadPoolExecutor(max_workers=len(drone_ids)) as pool:
        futures = [pool.submit(reserve, drone_id) for drone_id in drone_ids]

    errors = [future.exception() for future in futures if future.exception() is not None]
    won = [future.result() for future in futures if future.exception() is None and future.result() is not None]
    return won, errors


@pytest.mark.parametrize("drones, orders", [(8, 3), (6, 1), (3, 5)])
def test_racing_drones_never_share_a_job(transactional_db, drones, orders):
    store = Store()
    owner = store.users.create(name="alice")
    machine = DeliveryStateMachine(store)
    for index in range(orders):
        machine.submit(ORIGIN, (37.78 + index / 100, -122.41), owner.id)
    drone_ids = [
        store.drones.create(current_lat=ORIGIN[0], current_lng=ORIGIN[1]).id for _ in range(drones)
    ]

    won, errors = race(drone_ids)

    assert errors == []
    assert len(won) == min(drones, orders)
    assert len(set(won)) == len(won)

    # The store agrees with what the winners were told
    reserved = list(store.jobs.filter(status=JobStatus.RESERVED))
    assert sorted(job.id for job in reserved) == sorted(won)
    assert len({job.assigned_drone_id for job in reserved}) == len(reserved)
    assert store.drones.filter(status=DroneStatus.BUSY).count() == len(won)
    assert store.orders.filter(status=OrderStatus.ASSIGNED).count() == len(won)
    assert store.jobs.filter(status=JobStatus.PENDING).count() == orders - len(won)
