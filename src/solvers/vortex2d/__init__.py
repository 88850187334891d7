"""Unsteady vortex-blob solver for a conformally mapped rigid body."""

from .elements import VortexElements, Freestream, SystemState, Snapshot, StateBuffers
from .kernels import induced_velocity, KERNELS
from .no_flow_through import BoundVorticity, enforce_no_flow_through
from .velocity import circle_plane_velocity, transform_velocity, compute_velocity
from .shedding import Edge, EdgeSheddingModel, edge_suction, unit_suction, vorticity_flux
from .integrator import Integrator, ForwardEuler
from .simulation import Simulation, tracer_block
from .errors import SheddingError, DivergenceWarning

__all__ = [
    "VortexElements",
    "Freestream",
    "SystemState",
    "Snapshot",
    "StateBuffers",
    "induced_velocity",
    "KERNELS",
    "BoundVorticity",
    "enforce_no_flow_through",
    "circle_plane_velocity",
    "transform_velocity",
    "compute_velocity",
    "Edge",
    "EdgeSheddingModel",
    "edge_suction",
    "unit_suction",
    "vorticity_flux",
    "Integrator",
    "ForwardEuler",
    "Simulation",
    "tracer_block",
    "SheddingError",
    "DivergenceWarning",
]
