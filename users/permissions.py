"""
Purpose: Role -> capability table and the check every gateway call runs first.
What it does:
Callers arrive already authenticated as (subject_id, role). Instead of
comparing role strings at each call site, every operation names the
Capability it needs and `authorize` looks it up in ROLE_CAPABILITIES.

Rule: No state machine logic here, only "may this role attempt this at all".
Ownership (is this *your* order, are you *this* drone) is enforced by the
state machine itself.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Union

from core.exceptions import PermissionDeniedError
from .models import User

Role = User.Roles


class Capability(str, Enum):
    SUBMIT_ORDER = "submit_order"
    WITHDRAW_ORDER = "withdraw_order"
    VIEW_OWN_ORDERS = "view_own_orders"

    REGISTER_DRONE = "register_drone"
    RESERVE_JOB = "reserve_job"
    HANDLE_ORDER = "handle_order"          # grab / deliver / fail
    REPORT_BROKEN = "report_broken"
    REPORT_LOCATION = "report_location"    # heartbeat + current order

    LIST_ORDERS = "list_orders"
    UPDATE_ORDER_ROUTE = "update_order_route"
    MANAGE_DRONES = "manage_drones"


ROLE_CAPABILITIES: Dict[Role, FrozenSet[Capability]] = {
    Role.ENDUSER: frozenset({
        Capability.SUBMIT_ORDER,
        Capability.WITHDRAW_ORDER,
        Capability.VIEW_OWN_ORDERS,
    }),
    Role.DRONE: frozenset({
        Capability.REGISTER_DRONE,
        Capability.RESERVE_JOB,
        Capability.HANDLE_ORDER,
        Capability.REPORT_BROKEN,
        Capability.REPORT_LOCATION,
    }),
    Role.ADMIN: frozenset({
        Capability.LIST_ORDERS,
        Capability.UPDATE_ORDER_ROUTE,
        Capability.MANAGE_DRONES,
    }),
}


@dataclass(frozen=True)
class Caller:
    """
    An authenticated identity. For DRONE callers subject_id is the drone id.
    """
    subject_id: str
    role: Role

    @classmethod
    def new(cls, subject_id, role: Union[str, Role]) -> Caller:
        if isinstance(role, str) and not isinstance(role, Role):
            role = Role(role)

        return cls(subject_id=str(subject_id), role=role)


def has_capability(caller: Caller, capability: Capability) -> bool:
    return capability in ROLE_CAPABILITIES.get(caller.role, frozenset())


def authorize(caller: Caller, capability: Capability) -> None:
    """
    Raises PermissionDeniedError if the caller's role does not grant capability.
    """
    if not has_capability(caller, capability):
        raise PermissionDeniedError(
            f"Access denied. Role {caller.role.value} cannot {capability.value}",
            code="INSUFFICIENT_PERMISSIONS",
        )
