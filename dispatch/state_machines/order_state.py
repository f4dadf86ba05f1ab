from datetime import datetime
from typing import Dict, FrozenSet, Optional

from core.exceptions import ConflictError
from orders.models import Order, OrderStatus
from routing.coordinates import Coordinate


class OrderStateException(ConflictError):
    """Raised when an invalid order transition is attempted."""
    default_code = "INVALID_TRANSITION"


# PENDING -> IN_TRANSIT is legal: a handoff whose order was reset can be
# grabbed straight away. Any holding state falls back to PENDING on handoff.
ORDER_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.ASSIGNED, OrderStatus.IN_TRANSIT, OrderStatus.WITHDRAWN}),
    OrderStatus.ASSIGNED: frozenset({OrderStatus.IN_TRANSIT, OrderStatus.PENDING}),
    OrderStatus.IN_TRANSIT: frozenset({OrderStatus.DELIVERED, OrderStatus.FAILED, OrderStatus.PENDING}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.FAILED: frozenset(),
    OrderStatus.WITHDRAWN: frozenset(),
}

TERMINAL_ORDER_STATUSES = frozenset(
    status for status, targets in ORDER_TRANSITIONS.items() if not targets
)


def can_transition(order: Order, target: str) -> bool:
    return target in ORDER_TRANSITIONS.get(order.status, frozenset())


def _ensure_transition(order: Order, target: str, code: Optional[str] = None) -> None:
    if not can_transition(order, target):
        raise OrderStateException(
            f"Cannot move order {order.id} from {order.status} to {target}",
            code=code,
        )


def transition_order_to_withdrawn(order: Order) -> Order:
    """
    Only an untouched order can be withdrawn: PENDING and never assigned.
    """
    if order.status != OrderStatus.PENDING:
        raise OrderStateException(
            f"Cannot withdraw order with status {order.status}. Only pending orders can be withdrawn.",
            code="ORDER_ALREADY_ASSIGNED",
        )

    if order.assigned_drone_id is not None:
        raise OrderStateException(
            "Cannot withdraw order that has been assigned to a drone",
            code="ORDER_ALREADY_ASSIGNED",
        )

    order.status = OrderStatus.WITHDRAWN
    return order


def transition_order_to_in_transit(order: Order, drone_id, eta: datetime) -> Order:
    """
    Called when the assigned drone picks the package up at the order's origin.
    """
    if order.assigned_drone_id != drone_id:
        raise OrderStateException(
            "Order is not assigned to this drone. Reserve the job first.",
            code="ORDER_NOT_ASSIGNED",
        )

    if order.status not in (OrderStatus.PENDING, OrderStatus.ASSIGNED):
        raise OrderStateException(
            f"Cannot grab order with status {order.status}",
            code="INVALID_ORDER_STATUS",
        )

    order.status = OrderStatus.IN_TRANSIT
    order.current_location = order.origin
    order.eta = eta
    return order


def transition_order_to_delivered(order: Order) -> Order:
    _ensure_transition(order, OrderStatus.DELIVERED, code="INVALID_ORDER_STATUS")

    order.status = OrderStatus.DELIVERED
    order.current_location = order.destination
    order.eta = None
    order.assigned_drone = None
    return order


def transition_order_to_failed(order: Order) -> Order:
    _ensure_transition(order, OrderStatus.FAILED, code="INVALID_ORDER_STATUS")

    order.status = OrderStatus.FAILED
    order.eta = None
    order.assigned_drone = None
    return order


def reset_order_for_handoff(order: Order, last_known_location: Coordinate) -> Order:
    """
    Emergency Fallback: the carrying drone broke. The order goes back to the
    start of the queue, remembering where the package was left.
    """
    _ensure_transition(order, OrderStatus.PENDING)

    order.status = OrderStatus.PENDING
    order.assigned_drone = None
    order.current_location = last_known_location
    order.eta = None
    return order
