"""
Purpose: The explicit store handle every component is constructed with.
What it does:
Wraps one Django database alias. Components never reach for a global
connection: they ask the handle for querysets and for a transaction.

- store.atomic()   -> transaction.atomic on this alias
- store.orders / store.jobs / store.drones / store.users -> managers bound to this alias
- store.close()    -> drains this thread's connection on shutdown
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DEFAULT_DB_ALIAS, connections, transaction

from core.exceptions import NotFoundError
from drones.models import Drone
from orders.models import Job, Order
from users.models import User

logger = logging.getLogger(__name__)


class Store:
    """
    Transactional persistence for Order, Drone and Job records.
    """

    def __init__(self, using: str = DEFAULT_DB_ALIAS):
        self.using = using

    def atomic(self):
        return transaction.atomic(using=self.using)

    @property
    def orders(self):
        return Order.objects.using(self.using)

    @property
    def jobs(self):
        return Job.objects.using(self.using)

    @property
    def drones(self):
        return Drone.objects.using(self.using)

    @property
    def users(self):
        return User.objects.using(self.using)

    def close(self) -> None:
        """
        Close this thread's connection for the alias. Worker threads call this
        before exiting; the process calls runtime.shutdown() for the rest.
        """
        logger.debug("Closing store connection (alias=%s)", self.using)
        connections[self.using].close()

    def __repr__(self) -> str:
        return f"Store(using={self.using!r})"


def get_or_not_found(queryset, pk, label: str):
    """
    queryset.get(pk=pk), but a missing row or a malformed id is NotFoundError.
    """
    try:
        instance = queryset.filter(pk=pk).first()
    except (DjangoValidationError, ValueError):
        # not a UUID at all, so it cannot exist
        instance = None

    if instance is None:
        raise NotFoundError(f"{label} with id {pk} not found")
    return instance


def to_uuid(value) -> Optional[uuid.UUID]:
    """
    The id as a UUID, or None when it cannot be one. Filters use this so a
    malformed id matches nothing instead of raising.
    """
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None
