"""
Purpose: Central configuration for drone travel assumptions.
What it does:

Stores the tunables ETA arithmetic depends on:

DRONE_AVERAGE_SPEED_KMH = 50

Rule: No logic here, just parameters so you can tune without rewriting code.
Defaults come from the environment (.env is loaded by the settings module).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field


def _speed_from_env() -> float:
    return float(os.getenv("DRONE_AVERAGE_SPEED_KMH", "50"))


@dataclass(frozen=True)
class DronePolicy:
    """
    Central configuration for drone travel.
    """

    # --- Travel ---
    # Straight-line cruising speed used for every ETA.
    average_speed_kmh: float = field(default_factory=_speed_from_env)

    def validate(self) -> None:
        """
        Basic sanity checks.
        """
        if self.average_speed_kmh <= 0:
            raise ValueError("average_speed_kmh must be > 0")


def default_drone_policy() -> DronePolicy:
    """
    Convenience factory for the default policy.
    """
    p = DronePolicy()
    p.validate()
    return p
