"""
Vortex elements, freestream and the simulation state record.

Positions of all elements are stored in the (body-fixed) circle plane.
The blob radius is a simulation-wide setting and is not stored per element.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional
import numpy as np
from numpy.typing import NDArray

from core.geometry import RigidBody


class VortexElements:
    """
    Resizable collection of blobs (circle-plane positions + circulations).

    Storage grows geometrically so that append is O(1) amortized; the
    `positions` and `strengths` properties are views of the live part.
    """

    def __init__(self,
                 positions: Optional[NDArray[np.complex128]] = None,
                 strengths: Optional[NDArray[np.float64]] = None,
                 capacity: int = 64):
        positions = np.zeros(0, dtype=np.complex128) if positions is None \
            else np.atleast_1d(np.asarray(positions, dtype=np.complex128))
        if strengths is None:
            strengths = np.zeros(positions.size)
        strengths = np.atleast_1d(np.asarray(strengths, dtype=np.float64))
        if strengths.shape != positions.shape:
            raise ValueError(
                f"positions {positions.shape} and strengths {strengths.shape} must match"
            )

        self._size = positions.size
        cap = max(capacity, self._size)
        self._positions = np.zeros(cap, dtype=np.complex128)
        self._strengths = np.zeros(cap, dtype=np.float64)
        self._positions[:self._size] = positions
        self._strengths[:self._size] = strengths

    def __len__(self) -> int:
        return self._size

    @property
    def capacity(self) -> int:
        return self._positions.size

    @property
    def positions(self) -> NDArray[np.complex128]:
        return self._positions[:self._size]

    @property
    def strengths(self) -> NDArray[np.float64]:
        return self._strengths[:self._size]

    @property
    def total_circulation(self) -> float:
        return float(np.sum(self.strengths))

    def reserve(self, capacity: int) -> None:
        """Grow storage to at least `capacity` elements."""
        if capacity <= self.capacity:
            return
        new_cap = max(capacity, 2 * self.capacity)
        positions = np.zeros(new_cap, dtype=np.complex128)
        strengths = np.zeros(new_cap, dtype=np.float64)
        positions[:self._size] = self.positions
        strengths[:self._size] = self.strengths
        self._positions, self._strengths = positions, strengths

    def append(self, position: complex, strength: float = 0.0) -> int:
        """Add one element and return its index."""
        self.reserve(self._size + 1)
        self._positions[self._size] = position
        self._strengths[self._size] = strength
        self._size += 1
        return self._size - 1

    def copy_from(self, other: VortexElements) -> None:
        """Overwrite contents with another collection (no reallocation if it fits)."""
        self.reserve(len(other))
        self._size = len(other)
        self._positions[:self._size] = other.positions
        self._strengths[:self._size] = other.strengths

    def copy(self) -> VortexElements:
        return VortexElements(self.positions.copy(), self.strengths.copy(),
                              capacity=self.capacity)

    def __repr__(self) -> str:
        return f"VortexElements(n={self._size}, circulation={self.total_circulation:.6g})"


@dataclass
class Freestream:
    """Uniform far-field flow (complex velocity U = u + i v)."""

    velocity: complex = 1.0 + 0j

    def __post_init__(self):
        self.velocity = complex(self.velocity)

    @classmethod
    def from_speed(cls, speed: float, angle_deg: float = 0.0) -> Freestream:
        return cls(speed * np.exp(1j * np.deg2rad(angle_deg)))

    @property
    def speed(self) -> float:
        return abs(self.velocity)

    def circle_plane_coefficient(self, body: RigidBody) -> complex:
        """Coefficient A1 of zeta in the circle-plane freestream potential."""
        return np.conj(self.velocity) * body.rotation * body.map.leading


@dataclass(frozen=True)
class Snapshot:
    """
    Immutable archived copy of the system at time t.

    All arrays are copies with the write flag cleared; positions are in the
    physical plane.
    """
    t: float
    centroid: complex
    angle: float
    blob_positions: NDArray[np.complex128]
    blob_strengths: NDArray[np.float64]
    tracer_positions: NDArray[np.complex128]
    outline: NDArray[np.complex128]


@dataclass
class SystemState:
    """Full simulation state at one instant."""

    body: RigidBody
    freestream: Freestream
    blobs: VortexElements = field(default_factory=VortexElements)
    tracers: VortexElements = field(default_factory=VortexElements)

    @property
    def num_elements(self) -> int:
        return len(self.blobs) + len(self.tracers)

    @property
    def total_circulation(self) -> float:
        """Free plus bound circulation."""
        bound = 0.0 if self.body.bound is None else self.body.bound.circulation
        return self.blobs.total_circulation + bound

    def sources(self) -> tuple:
        """Vorticity sources external to the body."""
        return (self.freestream, self.blobs, self.tracers)

    def copy_from(self, other: SystemState) -> None:
        """Overwrite this buffer with another state."""
        self.body.copy_pose_from(other.body)
        self.body.bound = other.body.bound
        self.freestream.velocity = other.freestream.velocity
        self.blobs.copy_from(other.blobs)
        self.tracers.copy_from(other.tracers)

    def clone(self) -> SystemState:
        """Independent state sharing only the (immutable) map."""
        body = RigidBody(self.body.map, self.body.centroid, self.body.angle,
                         list(self.body.edges), self.body.bound)
        return SystemState(body, Freestream(self.freestream.velocity),
                           self.blobs.copy(), self.tracers.copy())

    def snapshot(self, t: float) -> Snapshot:
        """Physical-plane archive copy."""
        def frozen(a):
            a = np.array(a, copy=True)
            a.setflags(write=False)
            return a

        return Snapshot(
            t=float(t),
            centroid=self.body.centroid,
            angle=self.body.angle,
            blob_positions=frozen(self.body.to_physical(self.blobs.positions)),
            blob_strengths=frozen(self.blobs.strengths),
            tracer_positions=frozen(self.body.to_physical(self.tracers.positions)),
            outline=frozen(self.body.outline(128)),
        )


class StateBuffers:
    """
    Two explicitly owned states used alternately by the integrator.

    The integrator writes a step into `next` and calls `swap()`, which returns
    the new current state.
    """

    def __init__(self, state: SystemState):
        self._current = state
        self._next = state.clone()

    @property
    def current(self) -> SystemState:
        return self._current

    @property
    def next(self) -> SystemState:
        return self._next

    def prepare_next(self) -> SystemState:
        """Copy current into next and return it for writing."""
        self._next.copy_from(self._current)
        return self._next

    def swap(self) -> SystemState:
        self._current, self._next = self._next, self._current
        return self._current
