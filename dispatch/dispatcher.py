"""
Purpose: Reservation coordinator (the "who gets which job" glue).
What it does:
A drone asks for work; the dispatcher walks the PENDING jobs in priority order
(HANDOFF before DELIVERY, then oldest first) and tries to claim each one with a
conditional UPDATE. The first claim that sticks wins, and in the same
transaction the linked order becomes ASSIGNED and the drone BUSY.

Losing a race is normal traffic, not an error: the next candidate is tried.
The scan is bounded by the candidate list, which is re-read on every call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from django.db.models import Case, IntegerField, Value, When
from django.utils import timezone

from drones.models import Drone, DroneStatus
from orders.models import Job, JobStatus, JobType, Order, OrderStatus
from .state_machines.drone_state import DroneStateException, ensure_can_reserve
from .store import Store, get_or_not_found

logger = logging.getLogger(__name__)

# Lower value is reserved first
JOB_PRIORITY = {
    JobType.HANDOFF: 0,
    JobType.DELIVERY: 1,
}


@dataclass(frozen=True)
class ReservationResult:
    job: Job
    order: Optional[Order] = None


class _PairingLost(Exception):
    """The claimed job's order moved on before we could assign it."""


class Dispatcher:
    """
    Coordinates the claim of a Job by exactly one Drone.
    """
    def __init__(self, store: Store):
        self.store = store

    def pending_jobs(self) -> List[Job]:
        """
        The ordered candidate set, computed fresh: HANDOFF first, then FIFO.
        """
        priority = Case(
            *[When(kind=kind, then=Value(rank)) for kind, rank in JOB_PRIORITY.items()],
            default=Value(len(JOB_PRIORITY)),
            output_field=IntegerField(),
        )
        queryset = (
            self.store.jobs
            .filter(status=JobStatus.PENDING)
            .annotate(priority=priority)
            .order_by("priority", "created_at", "id")
        )
        return list(queryset)

    def available_jobs_count(self, kind: Optional[str] = None) -> int:
        queryset = self.store.jobs.filter(status=JobStatus.PENDING)
        if kind is not None:
            queryset = queryset.filter(kind=kind)
        return queryset.count()

    def claim(self, job: Job, drone: Drone) -> bool:
        """
        Compare-and-swap on Job.status: PENDING -> RESERVED for this drone.
        True only if this call made the change; the row lock the UPDATE takes
        makes any concurrent claimer re-check the condition and miss.
        """
        claimed = self.store.jobs.filter(pk=job.pk, status=JobStatus.PENDING).update(
            status=JobStatus.RESERVED,
            assigned_drone=drone,
            updated_at=timezone.now(),
        )
        return claimed == 1

    def reserve(self, drone_id) -> Optional[ReservationResult]:
        """
        Reserve the highest priority job for the drone.

        Returns None when there is nothing to reserve (no PENDING jobs, or
        every candidate was taken by another drone first).
        Raises NotFoundError for an unknown drone and ConflictError when the
        drone is broken or already busy.
        """
        drone = get_or_not_found(self.store.drones, drone_id, "Drone")
        ensure_can_reserve(drone)

        candidates = self.pending_jobs()
        if not candidates:
            return None

        for job in candidates:
            try:
                with self.store.atomic():
                    if not self.claim(job, drone):
                        logger.debug("Drone %s lost job %s to another drone", drone.id, job.id)
                        continue

                    order = self._pair(job, drone)
            except _PairingLost:
                logger.debug("Order for job %s changed before assignment, trying next job", job.id)
                continue

            job.refresh_from_db(using=self.store.using)
            logger.info("Drone %s reserved %s job %s (order %s)", drone.id, job.kind, job.id, job.order_id)
            return ReservationResult(job=job, order=order)

        logger.info("Drone %s found no reservable job among %d candidates", drone.id, len(candidates))
        return None

    def _pair(self, job: Job, drone: Drone) -> Optional[Order]:
        """
        Runs inside the claim's transaction. Raising rolls the claim back.
        """
        if job.order_id is None:
            return None

        now = timezone.now()

        assigned = self.store.orders.filter(
            pk=job.order_id, status=OrderStatus.PENDING, assigned_drone__isnull=True
        ).update(status=OrderStatus.ASSIGNED, assigned_drone=drone, updated_at=now)
        if assigned != 1:
            raise _PairingLost(job.order_id)

        # The drone may have broken or reserved elsewhere since we read it
        busied = self.store.drones.filter(
            pk=drone.pk, status=DroneStatus.AVAILABLE, is_broken=False
        ).update(status=DroneStatus.BUSY, updated_at=now)
        if busied != 1:
            raise DroneStateException(
                f"Drone {drone.id} is no longer available to take job {job.id}",
                code="DRONE_BUSY",
            )

        return self.store.orders.get(pk=job.order_id)
