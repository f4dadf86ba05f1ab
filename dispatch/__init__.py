#Expose the high-level pipeline pieces:
#Store handle (the only way components reach the database)
#Reservation coordinator
#Delivery / fleet state machines
#Gateway (the "one call" entry points, role checked)
#
#Importing this package imports Django models: call
#droneport_backend.runtime.bootstrap() first outside of manage.py / pytest.

from .store import Store
from .dispatcher import Dispatcher, ReservationResult
from .deliveries import DeliveryStateMachine, OrderDetails
from .fleet import FleetService, DroneStatusUpdate, DroneSummary, HealthStatus
from .gateway import DispatchGateway

__all__ = [
    "Store",
    "Dispatcher",
    "ReservationResult",
    "DeliveryStateMachine",
    "OrderDetails",
    "FleetService",
    "DroneStatusUpdate",
    "DroneSummary",
    "HealthStatus",
    "DispatchGateway",
]
