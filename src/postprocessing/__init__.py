"""
Post-processing module.

Derived quantities computed from the simulation state and its history.

Key pieces:
- impulse: fluid impulse of bound + free vorticity
- force_coefficients: -dP/dt from an impulse history
- Trajectory: append-only archive of impulses and snapshots
"""

from .impulse import (
    impulse,
    free_impulse,
    force_coefficients,
    lift_drag,
    mean_coefficients,
    reference_scale,
)
from .trajectory import Trajectory

__all__ = [
    # Impulse and forces
    "impulse",
    "free_impulse",
    "force_coefficients",
    "lift_drag",
    "mean_coefficients",
    "reference_scale",
    # Records
    "Trajectory",
]
