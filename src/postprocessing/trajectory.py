"""
Append-only trajectory records of a simulation run.

Dense impulse history (one entry per step) plus snapshots archived at a
fixed cadence. Records are never modified after insertion.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Tuple
import numpy as np
from numpy.typing import NDArray

from .impulse import force_coefficients, lift_drag, mean_coefficients


@dataclass
class Trajectory:
    """
    Time history of a run.

    Attributes:
        dt: Time step
        force_scale: Normalization applied to -dP/dt
        direction: Freestream direction used to split lift/drag
    """

    dt: float
    force_scale: float = 2.0
    direction: complex = 1.0
    _times: List[float] = field(default_factory=list, repr=False)
    _impulses: List[complex] = field(default_factory=list, repr=False)
    _snapshots: list = field(default_factory=list, repr=False)

    def record_impulse(self, t: float, value: complex) -> None:
        self._times.append(float(t))
        self._impulses.append(complex(value))

    def archive(self, snapshot) -> None:
        self._snapshots.append(snapshot)

    @property
    def times(self) -> NDArray[np.float64]:
        return np.array(self._times)

    @property
    def impulses(self) -> NDArray[np.complex128]:
        return np.array(self._impulses, dtype=np.complex128)

    @property
    def snapshots(self) -> Tuple:
        return tuple(self._snapshots)

    @property
    def num_steps(self) -> int:
        return max(len(self._times) - 1, 0)

    def force_coefficients(self) -> Tuple[NDArray[np.float64], NDArray[np.complex128]]:
        """(times, complex force coefficients) from backward differences."""
        if len(self._impulses) < 2:
            return np.zeros(0), np.zeros(0, dtype=np.complex128)
        return self.times[1:], force_coefficients(self.impulses, self.dt, self.force_scale)

    def lift_drag(self) -> Tuple[NDArray, NDArray, NDArray]:
        """(times, drag, lift) coefficient series."""
        t, cf = self.force_coefficients()
        drag, lift = lift_drag(cf, self.direction)
        return t, drag, lift

    def mean_coefficients(self) -> Tuple[float, float]:
        """Time-averaged (drag, lift) coefficients."""
        _, cf = self.force_coefficients()
        if cf.size == 0:
            return float("nan"), float("nan")
        return mean_coefficients(cf, self.direction)

    def to_arrays(self) -> Dict[str, NDArray]:
        """Flatten snapshots into arrays suitable for np.savez."""
        data = {
            "time": self.times,
            "impulse": self.impulses,
        }
        for i, snap in enumerate(self._snapshots):
            key = f"snapshot_{i:05d}"
            data[f"{key}_t"] = np.array(snap.t)
            data[f"{key}_pose"] = np.array([snap.centroid.real, snap.centroid.imag, snap.angle])
            data[f"{key}_blobs"] = np.asarray(snap.blob_positions)
            data[f"{key}_strengths"] = np.asarray(snap.blob_strengths)
            data[f"{key}_tracers"] = np.asarray(snap.tracer_positions)
        return data
