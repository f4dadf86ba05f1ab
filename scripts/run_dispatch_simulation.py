"""
End-to-end dispatch simulation against a real (SQLite) database.

Every drone runs in its own worker thread and keeps calling reserve() until
no work is left, racing all the others for the same PENDING jobs. Winners
grab and deliver (or, now and then, fail) what they reserved. A few drones
break mid-delivery, which puts HANDOFF jobs into the race.

Run from the repository root:
    python -m scripts.run_dispatch_simulation
"""

import os
import random
import time
from collections import Counter
from concurrent.futures import ThreadPoolExecutor

import pandas as pd

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

# Must be set before the settings module is imported
os.environ.setdefault("DATABASE_ENGINE", "sqlite")
os.environ.setdefault("DATABASE_NAME", os.path.join(BASE_DIR, "dispatch_simulation.sqlite3"))

from droneport_backend.runtime import bootstrap, open_store, shutdown  # noqa: E402

bootstrap()

from django.core.management import call_command  # noqa: E402

from core.exceptions import ConflictError  # noqa: E402
from dispatch.gateway import DispatchGateway  # noqa: E402
from users.models import User  # noqa: E402
from users.permissions import Caller, Role  # noqa: E402
from scripts.generate_mock_data import generate_mock_drones, generate_mock_orders  # noqa: E402

FAILURE_RATE = 0.05
BREAKDOWN_RATE = 0.03


def load_or_generate(orders_path, drones_path):
    if not os.path.exists(orders_path):
        generate_mock_orders(output_file=orders_path)
    if not os.path.exists(drones_path):
        generate_mock_drones(output_file=drones_path)
    return pd.read_csv(orders_path), pd.read_csv(drones_path)


def seed(orders_df, drones_df):
    """Owners, drones and orders, through the same gateway calls clients use."""
    with open_store() as store:
        gateway = DispatchGateway(store)
        admin = Caller.new(store.users.create(name="sim-admin", role=User.Roles.ADMIN).id, Role.ADMIN)

        for owner_id in orders_df["owner_id"].unique():
            store.users.get_or_create(pk=owner_id, defaults={"name": f"customer {owner_id[:8]}"})

        drones = []
        for row in drones_df.itertuples(index=False):
            caller = Caller.new(row.drone_id, Role.DRONE)
            gateway.register_drone(caller, (row.lat, row.lng))
            if row.is_broken:
                gateway.mark_drone_broken(admin, caller.subject_id)
            drones.append(caller)

        for row in orders_df.itertuples(index=False):
            customer = Caller.new(row.owner_id, Role.ENDUSER)
            gateway.submit_order(
                customer,
                (row.origin_lat, row.origin_lng),
                (row.destination_lat, row.destination_lng),
            )

    return drones


def drone_worker(drone):
    """
    One drone's whole shift: reserve, grab, then deliver / fail / break,
    until nothing is left. Returns one row per reservation attempt.
    """
    rows = []
    with open_store() as store:
        gateway = DispatchGateway(store)

        while True:
            started = time.perf_counter()
            try:
                result = gateway.reserve_job(drone)
            except ConflictError as exc:
                rows.append({"drone_id": drone.subject_id, "job_id": None, "kind": None,
                             "order_id": None, "outcome": exc.code, "reserve_ms": None})
                break

            reserve_ms = round((time.perf_counter() - started) * 1000, 2)
            if result is None:
                break

            order_id = result.order.id
            gateway.grab_order(drone, order_id)

            roll = random.random()
            if roll < BREAKDOWN_RATE:
                gateway.report_broken(drone)
                outcome = "BROKE_DOWN"
            elif roll < BREAKDOWN_RATE + FAILURE_RATE:
                gateway.fail_order(drone, order_id)
                outcome = "FAILED"
            else:
                gateway.update_location(drone, result.order.destination)
                gateway.deliver_order(drone, order_id)
                outcome = "DELIVERED"

            rows.append({"drone_id": drone.subject_id, "job_id": str(result.job.id), "kind": result.job.kind,
                         "order_id": str(order_id), "outcome": outcome, "reserve_ms": reserve_ms})

            if outcome == "BROKE_DOWN":
                break

    return rows


def run_simulation():
    print("=== STARTING END-TO-END DISPATCH SIMULATION ===")

    call_command("migrate", verbosity=0)
    call_command("flush", interactive=False, verbosity=0)

    # 1. Load Data
    orders_df, drones_df = load_or_generate(
        os.path.join(BASE_DIR, "mock_orders.csv"),
        os.path.join(BASE_DIR, "mock_drones.csv"),
    )
    drones = seed(orders_df, drones_df)
    print(f"Loaded {len(orders_df)} Orders and {len(drones)} Drones.\n")

    # 2. Race
    print(f"Releasing {len(drones)} drones onto the job queue...")
    start_time = time.time()
    with ThreadPoolExecutor(max_workers=min(16, len(drones))) as pool:
        results = [row for rows in pool.map(drone_worker, drones) for row in rows]
    print(f"Queue drained in {time.time() - start_time:.2f}s.\n")

    # 3. Report
    output_path = os.path.join(BASE_DIR, "dispatch_results.csv")
    results_df = pd.DataFrame(results)
    results_df.to_csv(output_path, index=False)

    reserved = results_df.dropna(subset=["job_id"])
    duplicates = reserved["job_id"].duplicated().sum()

    print("=== SIMULATION COMPLETE ===")
    for outcome, count in Counter(results_df["outcome"]).most_common():
        print(f"  {outcome}: {count}")
    print(f"Handoff jobs reserved: {int((reserved['kind'] == 'HANDOFF').sum())}")
    print(f"Jobs reserved twice: {duplicates}")
    print(f"Median reserve latency: {reserved['reserve_ms'].median():.2f} ms")
    print(f"Results written to '{output_path}'.")

    shutdown()


if __name__ == "__main__":
    run_simulation()
