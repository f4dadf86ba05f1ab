"""
Purpose: The "one call" entry points, grouped by who may call them.
What it does:
Every method takes an already-authenticated Caller, checks the capability
the operation needs, then hands over to the reservation coordinator or the
state machine. Drone operations act on caller.subject_id, so a drone can
only ever reserve, grab, deliver or fail as itself.
"""

from __future__ import annotations

from typing import List, Optional

from drones.models import Drone
from drones.policy import DronePolicy, default_drone_policy
from orders.models import Job, Order
from users.permissions import Caller, Capability, authorize
from .deliveries import DeliveryStateMachine, OrderDetails
from .dispatcher import Dispatcher, ReservationResult
from .fleet import DroneStatusUpdate, DroneSummary, FleetService
from .store import Store


class DispatchGateway:
    def __init__(self, store: Store, policy: Optional[DronePolicy] = None):
        policy = policy or default_drone_policy()
        self.store = store
        self.dispatcher = Dispatcher(store)
        self.deliveries = DeliveryStateMachine(store, policy)
        self.fleet = FleetService(store, policy)

    # --- End users ---

    def submit_order(self, caller: Caller, origin, destination) -> Order:
        authorize(caller, Capability.SUBMIT_ORDER)
        return self.deliveries.submit(origin, destination, owner_id=caller.subject_id)

    def withdraw_order(self, caller: Caller, order_id) -> Order:
        authorize(caller, Capability.WITHDRAW_ORDER)
        return self.deliveries.withdraw(order_id, owner_id=caller.subject_id)

    def get_order(self, caller: Caller, order_id) -> Order:
        authorize(caller, Capability.VIEW_OWN_ORDERS)
        return self.deliveries.get_order(order_id, owner_id=caller.subject_id)

    def get_order_details(self, caller: Caller, order_id) -> OrderDetails:
        authorize(caller, Capability.VIEW_OWN_ORDERS)
        return self.deliveries.get_order_details(order_id, owner_id=caller.subject_id)

    def list_my_orders(self, caller: Caller) -> List[Order]:
        authorize(caller, Capability.VIEW_OWN_ORDERS)
        return self.deliveries.list_orders_for_owner(caller.subject_id)

    # --- Drones ---

    def register_drone(self, caller: Caller, location) -> Drone:
        authorize(caller, Capability.REGISTER_DRONE)
        return self.fleet.register_drone(caller.subject_id, location)

    def reserve_job(self, caller: Caller) -> Optional[ReservationResult]:
        authorize(caller, Capability.RESERVE_JOB)
        return self.dispatcher.reserve(caller.subject_id)

    def grab_order(self, caller: Caller, order_id) -> Order:
        authorize(caller, Capability.HANDLE_ORDER)
        return self.deliveries.grab(order_id, caller.subject_id)

    def deliver_order(self, caller: Caller, order_id) -> Order:
        authorize(caller, Capability.HANDLE_ORDER)
        return self.deliveries.deliver(order_id, caller.subject_id)

    def fail_order(self, caller: Caller, order_id) -> Order:
        authorize(caller, Capability.HANDLE_ORDER)
        return self.deliveries.fail(order_id, caller.subject_id)

    def report_broken(self, caller: Caller) -> Optional[Job]:
        authorize(caller, Capability.REPORT_BROKEN)
        return self.fleet.mark_broken(caller.subject_id)

    def update_location(self, caller: Caller, location) -> DroneStatusUpdate:
        authorize(caller, Capability.REPORT_LOCATION)
        return self.fleet.update_location(caller.subject_id, location)

    def current_order(self, caller: Caller) -> Optional[Order]:
        authorize(caller, Capability.REPORT_LOCATION)
        return self.fleet.current_order(caller.subject_id)

    # --- Admins ---

    def list_orders(self, caller: Caller, **filters) -> List[Order]:
        authorize(caller, Capability.LIST_ORDERS)
        return self.deliveries.list_orders(**filters)

    def update_order_origin(self, caller: Caller, order_id, location) -> Order:
        authorize(caller, Capability.UPDATE_ORDER_ROUTE)
        return self.deliveries.update_origin(order_id, location)

    def update_order_destination(self, caller: Caller, order_id, location) -> Order:
        authorize(caller, Capability.UPDATE_ORDER_ROUTE)
        return self.deliveries.update_destination(order_id, location)

    def list_drones(self, caller: Caller, *, status: Optional[str] = None,
                    is_broken: Optional[bool] = None) -> List[DroneSummary]:
        authorize(caller, Capability.MANAGE_DRONES)
        return self.fleet.list_drones(status=status, is_broken=is_broken)

    def mark_drone_broken(self, caller: Caller, drone_id) -> Optional[Job]:
        authorize(caller, Capability.MANAGE_DRONES)
        return self.fleet.mark_broken(drone_id)

    def mark_drone_fixed(self, caller: Caller, drone_id) -> Drone:
        authorize(caller, Capability.MANAGE_DRONES)
        return self.fleet.mark_fixed(drone_id)
