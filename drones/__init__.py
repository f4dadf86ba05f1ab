"""
Drones Django app.

Public API:
- Domain model: drones.models.Drone, drones.models.DroneStatus
- Tunables: drones.policy.DronePolicy, drones.policy.default_drone_policy

Models are not re-exported here: Django must finish loading apps before
models can be imported.
"""
