import uuid
from datetime import datetime, timedelta, timezone

import numpy as np
import pandas as pd

# Center around Harare, Zimbabwe
CENTER_LAT = -17.824858
CENTER_LON = 31.053028


def generate_mock_orders(num_orders=200, num_customers=40, output_file="mock_orders.csv"):
    """
    Generates delivery orders for the dispatch simulation.
    A fixed pool of customers owns the orders so per-owner listings have
    more than one row. Pickups are scattered ~5km around the centre and
    every dropoff lands 1-8km away from its pickup.
    """
    customers = [str(uuid.uuid4()) for _ in range(num_customers)]

    data = []
    now = datetime.now(timezone.utc)

    for order_index in range(num_orders):
        pickup_lat = CENTER_LAT + np.random.uniform(-0.05, 0.05)
        pickup_lon = CENTER_LON + np.random.uniform(-0.05, 0.05)

        # Never let the dropoff collapse onto the pickup
        offset_lat = np.random.choice([-1, 1]) * np.random.uniform(0.01, 0.05)
        offset_lon = np.random.choice([-1, 1]) * np.random.uniform(0.01, 0.05)

        data.append({
            "order_ref": f"o_{str(order_index + 1).zfill(6)}",
            "owner_id": np.random.choice(customers),
            "created_at": (now - timedelta(minutes=int(np.random.randint(0, 60)))).isoformat(),
            "origin_lat": np.round(pickup_lat, 6),
            "origin_lng": np.round(pickup_lon, 6),
            "destination_lat": np.round(pickup_lat + offset_lat, 6),
            "destination_lng": np.round(pickup_lon + offset_lon, 6),
        })

    df = pd.DataFrame(data).sort_values("created_at")
    df.to_csv(output_file, index=False)
    print(f"✅ Generated {num_orders} orders and saved to '{output_file}'")

    print("\nTop 5 Customers:")
    counts = df["owner_id"].value_counts().head(5)
    for owner_id, count in counts.items():
        print(f"  {owner_id}: {count} orders")
    return df


def generate_mock_drones(num_drones=50, broken_ratio=0.1, output_file="mock_drones.csv"):
    """
    Scatters drones around the city centre (roughly +/- 10km).
    A share of them start broken so the simulation sees refusals too.
    """
    df = pd.DataFrame({
        "drone_id": [str(uuid.uuid4()) for _ in range(num_drones)],
        "lat": np.round(CENTER_LAT + (np.random.random(num_drones) - 0.5) * 0.15, 6),
        "lng": np.round(CENTER_LON + (np.random.random(num_drones) - 0.5) * 0.15, 6),
        "is_broken": np.random.random(num_drones) < broken_ratio,
    })
    df.to_csv(output_file, index=False)
    print(f"✅ Generated {num_drones} drones ({int(df['is_broken'].sum())} broken) into '{output_file}'")
    return df


if __name__ == "__main__":
    generate_mock_orders(num_orders=200, num_customers=40)
    generate_mock_drones(num_drones=50)
