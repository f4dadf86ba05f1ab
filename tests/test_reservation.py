import uuid
from datetime import timedelta

import pytest
from django.utils import timezone

from core.exceptions import ConflictError, NotFoundError
from drones.models import DroneStatus
from orders.models import JobStatus, JobType, OrderStatus

pytestmark = pytest.mark.django_db


def delivery_job(order):
    return order.jobs.get(kind=JobType.DELIVERY)


def make_handoff(store, order, source_drone, created_at=None):
    """A HANDOFF job for `order`, standing in for its (closed) delivery job."""
    order.jobs.update(status=JobStatus.COMPLETED)
    return store.jobs.create(
        kind=JobType.HANDOFF,
        order=order,
        origin_lat=source_drone.current_lat,
        origin_lng=source_drone.current_lng,
        destination_lat=order.destination_lat,
        destination_lng=order.destination_lng,
        source_drone=source_drone,
        created_at=created_at or timezone.now(),
    )


def test_reserve_with_no_work_returns_none(dispatcher, make_drone):
    drone = make_drone()
    assert dispatcher.reserve(drone.id) is None
    drone.refresh_from_db()
    assert drone.status == DroneStatus.AVAILABLE


def test_reserve_couples_job_order_and_drone(dispatcher, submit, make_drone):
    order = submit()
    drone = make_drone()

    result = dispatcher.reserve(drone.id)

    assert result.job.pk == delivery_job(order).pk
    assert result.job.status == JobStatus.RESERVED
    assert result.job.assigned_drone_id == drone.id
    assert result.order.pk == order.pk

    order.refresh_from_db()
    drone.refresh_from_db()
    assert order.status == OrderStatus.ASSIGNED
    assert order.assigned_drone_id == drone.id
    assert drone.status == DroneStatus.BUSY


def test_handoff_is_reserved_before_delivery(store, dispatcher, submit, make_drone):
    broken = make_drone(status=DroneStatus.BROKEN, is_broken=True)
    now = timezone.now()

    older_delivery = submit()
    store.jobs.filter(order=older_delivery).update(created_at=now - timedelta(hours=1))
    handoff = make_handoff(store, submit(), broken, created_at=now)

    result = dispatcher.reserve(make_drone().id)
    assert result.job.pk == handoff.pk
    assert result.job.kind == JobType.HANDOFF


def test_fifo_within_the_same_kind(store, dispatcher, submit, make_drone):
    now = timezone.now()
    first_submitted = submit()
    second_submitted = submit()
    # The later submission carries the older job
    store.jobs.filter(order=first_submitted).update(created_at=now)
    store.jobs.filter(order=second_submitted).update(created_at=now - timedelta(minutes=5))

    assert dispatcher.reserve(make_drone().id).order.pk == second_submitted.pk
    assert dispatcher.reserve(make_drone().id).order.pk == first_submitted.pk
    assert dispatcher.reserve(make_drone().id) is None


def test_pending_jobs_order(store, dispatcher, submit, make_drone):
    now = timezone.now()
    a, b = submit(), submit()
    store.jobs.filter(order=a).update(created_at=now - timedelta(minutes=2))
    store.jobs.filter(order=b).update(created_at=now - timedelta(minutes=1))
    handoff = make_handoff(store, submit(), make_drone(), created_at=now)

    kinds = [(job.kind, job.order_id) for job in dispatcher.pending_jobs()]
    assert kinds == [
        (JobType.HANDOFF, handoff.order_id),
        (JobType.DELIVERY, a.pk),
        (JobType.DELIVERY, b.pk),
    ]
    assert dispatcher.available_jobs_count() == 3
    assert dispatcher.available_jobs_count(JobType.HANDOFF) == 1


def test_claim_is_a_compare_and_swap(store, dispatcher, submit, make_drone):
    job = delivery_job(submit())
    first, second = make_drone(), make_drone()

    assert dispatcher.claim(job, first) is True
    assert dispatcher.claim(job, second) is False

    job.refresh_from_db()
    assert job.status == JobStatus.RESERVED
    assert job.assigned_drone_id == first.id


def test_only_one_drone_wins_a_single_job(store, dispatcher, submit, make_drone):
    order = submit()
    drones = [make_drone() for _ in range(5)]

    results = [dispatcher.reserve(drone.id) for drone in drones]
    winners = [result for result in results if result is not None]

    assert len(winners) == 1
    assert store.jobs.filter(order=order, status=JobStatus.RESERVED).count() == 1

    # Stable on re-query
    job = delivery_job(order)
    assert job.assigned_drone_id == winners[0].job.assigned_drone_id
    assert store.drones.filter(status=DroneStatus.BUSY).count() == 1


def test_lost_race_on_stale_snapshot_moves_to_next_candidate(
        store, dispatcher, submit, make_drone, monkeypatch
):
    now = timezone.now()
    a, b = submit(), submit()
    store.jobs.filter(order=a).update(created_at=now - timedelta(minutes=1))
    store.jobs.filter(order=b).update(created_at=now)

    # The second drone read the candidate list before the first one reserved
    snapshot = dispatcher.pending_jobs()
    first = dispatcher.reserve(make_drone().id)
    assert first.order.pk == a.pk

    monkeypatch.setattr(dispatcher, "pending_jobs", lambda: snapshot)
    second = dispatcher.reserve(make_drone().id)

    assert second.order.pk == b.pk
    assert second.job.pk != first.job.pk


def test_losing_every_candidate_means_no_work(store, dispatcher, submit, make_drone, monkeypatch):
    submit()
    snapshot = dispatcher.pending_jobs()
    dispatcher.reserve(make_drone().id)

    monkeypatch.setattr(dispatcher, "pending_jobs", lambda: snapshot)
    late = make_drone()

    assert dispatcher.reserve(late.id) is None
    late.refresh_from_db()
    assert late.status == DroneStatus.AVAILABLE


def test_order_taken_elsewhere_rolls_the_claim_back(store, dispatcher, submit, make_drone):
    now = timezone.now()
    stuck, free = submit(), submit()
    store.jobs.filter(order=stuck).update(created_at=now - timedelta(minutes=1))
    store.jobs.filter(order=free).update(created_at=now)

    # Pairing for the older job cannot succeed: its order is no longer PENDING
    other = make_drone(status=DroneStatus.BUSY)
    store.orders.filter(pk=stuck.pk).update(status=OrderStatus.ASSIGNED, assigned_drone=other)

    result = dispatcher.reserve(make_drone().id)

    assert result.order.pk == free.pk
    stuck_job = delivery_job(stuck)
    assert stuck_job.status == JobStatus.PENDING
    assert stuck_job.assigned_drone_id is None


def test_drone_taken_mid_reservation_raises_and_rolls_back(
        store, dispatcher, submit, make_drone, monkeypatch
):
    order = submit()
    drone = make_drone()
    real_pending_jobs = dispatcher.pending_jobs

    def drone_busied_concurrently():
        store.drones.filter(pk=drone.pk).update(status=DroneStatus.BUSY)
        return real_pending_jobs()

    monkeypatch.setattr(dispatcher, "pending_jobs", drone_busied_concurrently)

    with pytest.raises(ConflictError) as exc:
        dispatcher.reserve(drone.id)
    assert exc.value.code == "DRONE_BUSY"

    order.refresh_from_db()
    job = delivery_job(order)
    assert order.status == OrderStatus.PENDING
    assert order.assigned_drone_id is None
    assert job.status == JobStatus.PENDING


def test_busy_drone_cannot_reserve_again(dispatcher, submit, make_drone):
    submit()
    submit()
    drone = make_drone()
    dispatcher.reserve(drone.id)

    with pytest.raises(ConflictError) as exc:
        dispatcher.reserve(drone.id)
    assert exc.value.code == "DRONE_BUSY"


def test_broken_drone_cannot_reserve(dispatcher, submit, make_drone):
    submit()
    drone = make_drone(status=DroneStatus.BROKEN, is_broken=True)

    with pytest.raises(ConflictError) as exc:
        dispatcher.reserve(drone.id)
    assert exc.value.code == "DRONE_BROKEN"


@pytest.mark.parametrize("drone_id", [uuid.uuid4(), "not-a-uuid"])
def test_unknown_drone_is_not_found(dispatcher, submit, drone_id):
    submit()
    with pytest.raises(NotFoundError):
        dispatcher.reserve(drone_id)
