"""
Purpose: Package entry for the Orders Django app.
What it does:

Marks orders as a Python package (and a Django app).

Orders domain package.

Public API (import from orders.models once Django is set up):
- Domain models: Order, Job
- Enums: OrderStatus, JobType, JobStatus

Should not contain business logic.
"""
