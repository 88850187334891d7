"""
Time integration of the vortex/body system.

One step (forward Euler):
    motion at t -> no-flow-through -> velocities -> transform to rates
    -> positions += dt * rate, pose += dt * rate
    -> shed at t + dt -> no-flow-through at t + dt

The step is written into the `next` buffer and only swapped in once it has
completed, so an exception leaves the current state as it was.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Optional
import numpy as np

from core.geometry import Kinematics
from .elements import SystemState, StateBuffers
from .no_flow_through import enforce_no_flow_through
from .shedding import EdgeSheddingModel
from .velocity import compute_velocity


class Integrator(ABC):
    """Base class for time integrators."""

    def __init__(self, kinematics: Kinematics,
                 shedding: Optional[EdgeSheddingModel],
                 blob_radius: float,
                 kernel: str = "algebraic"):
        if blob_radius <= 0:
            raise ValueError(f"blob_radius must be positive, got {blob_radius}")
        self.kinematics = kinematics
        self.shedding = shedding
        self.blob_radius = blob_radius
        self.kernel = kernel

    @abstractmethod
    def step(self, buffers: StateBuffers, t: float, dt: float) -> SystemState:
        """Advance buffers.current from t to t + dt and return the new current state."""
        pass


class ForwardEuler(Integrator):
    """First-order explicit integrator."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._blob_rates = np.zeros(0, dtype=np.complex128)
        self._tracer_rates = np.zeros(0, dtype=np.complex128)

    def _rate_buffers(self, state: SystemState):
        nb, nt = len(state.blobs), len(state.tracers)
        if self._blob_rates.size < nb:
            self._blob_rates = np.zeros(max(nb, 2 * self._blob_rates.size), dtype=np.complex128)
        if self._tracer_rates.size < nt:
            self._tracer_rates = np.zeros(nt, dtype=np.complex128)
        return self._blob_rates[:nb], self._tracer_rates[:nt]

    def step(self, buffers: StateBuffers, t: float, dt: float) -> SystemState:
        current = buffers.current
        motion = self.kinematics(t)

        enforce_no_flow_through(current.body, motion, current.sources(), t)
        blob_rates, tracer_rates = self._rate_buffers(current)
        compute_velocity(current, motion, t, self.blob_radius, self.kernel,
                         out_blobs=blob_rates, out_tracers=tracer_rates)

        nxt = buffers.prepare_next()
        nxt.blobs.positions[:] += dt * blob_rates
        nxt.tracers.positions[:] += dt * tracer_rates
        nxt.body.advance(motion, dt)

        history = None if self.shedding is None else self.shedding.copy_history()
        try:
            motion_next = self.kinematics(t + dt)
            if self.shedding is not None:
                self.shedding.shed(nxt, motion_next, t + dt)
            enforce_no_flow_through(nxt.body, motion_next, nxt.sources(), t + dt)
        except Exception:
            if history is not None:
                self.shedding.restore_history(history)
            raise

        return buffers.swap()
