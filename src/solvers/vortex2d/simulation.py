"""
Simulation driver: owns the configuration, the double-buffered state and the
trajectory archive.
"""

from __future__ import annotations
import warnings
from typing import TYPE_CHECKING, Optional, Sequence
import numpy as np
from numpy.typing import NDArray
from tqdm import tqdm

from core.geometry import (RigidBody, Kinematics, Fixed, PowerMap,
                           naca4_coordinates, polygon_centroid)
from postprocessing.impulse import impulse, reference_scale
from postprocessing.trajectory import Trajectory
from .elements import Freestream, SystemState, StateBuffers, VortexElements
from .errors import DivergenceWarning
from .integrator import ForwardEuler
from .no_flow_through import enforce_no_flow_through
from .shedding import Edge, EdgeSheddingModel

if TYPE_CHECKING:
    from core.config.schemas import SimulationConfig


def tracer_block(body: RigidBody, center: complex, side: float,
                 density: int) -> NDArray[np.complex128]:
    """
    Square block of passive tracers in the physical plane, returned as
    circle-plane positions. Points inside the body are dropped.
    """
    if density < 1 or side <= 0:
        return np.zeros(0, dtype=np.complex128)
    s = np.linspace(-0.5 * side, 0.5 * side, density)
    X, Y = np.meshgrid(s, s)
    z = (center + X + 1j * Y).ravel()
    z = z[~body.contains(z)]
    if z.size == 0:
        return z
    return body.to_circle(z)


class Simulation:
    """
    Conformal-body vortex shedding simulation.

    Usage:
        sim = Simulation.from_config(config)
        trajectory = sim.run(2.0)
        cd, cl = trajectory.mean_coefficients()
    """

    def __init__(self,
                 body: RigidBody,
                 freestream: Freestream,
                 kinematics: Optional[Kinematics] = None,
                 edges: Sequence[Edge] = (),
                 dt: float = 0.01,
                 blob_radius: float = 0.01,
                 kernel: str = "algebraic",
                 spacing_fraction: float = 1.0 / 3.0,
                 seed_offset: Optional[float] = None,
                 sample_every: int = 10,
                 tracers: Optional[NDArray[np.complex128]] = None,
                 divergence_radius: Optional[float] = None,
                 reference_speed: Optional[float] = None,
                 reference_length: Optional[float] = None):
        """
        Args:
            body: Rigid body (edges must align with `edges`)
            freestream: Uniform far-field flow
            kinematics: Prescribed motion law (default: fixed)
            edges: Shedding settings, one per body edge
            dt: Time step
            blob_radius: Shared blob regularization radius
            kernel: Regularized kernel ('algebraic' or 'gaussian')
            spacing_fraction: New-blob placement fraction phi
            seed_offset: Distance of the t=0 blobs from their edges
                (default 3*dt*|U|, or 3*blob_radius without freestream)
            sample_every: Snapshot cadence in steps
            tracers: Initial tracer positions in the circle plane
            divergence_radius: Positions beyond this distance from the body
                trigger a DivergenceWarning (default 1000 chords)
            reference_speed: Force normalization speed (default |U|)
            reference_length: Force normalization length (default chord)
        """
        if dt <= 0:
            raise ValueError(f"dt must be positive, got {dt}")
        if sample_every < 1:
            raise ValueError(f"sample_every must be >= 1, got {sample_every}")
        if len(edges) != body.num_edges:
            raise ValueError(f"{len(edges)} edge settings given for {body.num_edges} body edges")

        self.dt = dt
        self.sample_every = sample_every
        self.kinematics = kinematics if kinematics is not None else Fixed()

        if seed_offset is None:
            seed_offset = 3.0 * dt * freestream.speed if freestream.speed > 0 else 3.0 * blob_radius

        self.shedding = EdgeSheddingModel(edges, spacing_fraction, seed_offset)
        self.integrator = ForwardEuler(self.kinematics, self.shedding, blob_radius, kernel)

        state = SystemState(body, freestream, VortexElements(),
                            VortexElements(tracers) if tracers is not None else VortexElements())
        self.buffers = StateBuffers(state)

        chord = body.chord()
        self.divergence_radius = divergence_radius if divergence_radius is not None else 1000.0 * chord
        self.impulse_limit = 1e6
        speed = reference_speed if reference_speed is not None else (freestream.speed or 1.0)
        length = reference_length if reference_length is not None else chord
        direction = freestream.velocity if freestream.speed > 0 else 1.0
        self.trajectory = Trajectory(dt, reference_scale(speed, length), direction)

        self.t = 0.0
        self.step_count = 0
        self._initialized = False
        self._warned = False

    # -------------------------------------------------------------------------
    # Construction from configuration
    # -------------------------------------------------------------------------

    @classmethod
    def from_config(cls, config: SimulationConfig) -> Simulation:
        """Build a simulation from a validated SimulationConfig."""
        af = config.airfoil
        vertices = naca4_coordinates(af.camber, af.camber_location, af.thickness,
                                     af.num_points, af.chord)
        vertices = vertices - polygon_centroid(vertices)
        conformal_map = PowerMap.from_airfoil(vertices, trailing_edge=0,
                                              num_coefficients=af.num_coefficients)

        edges = [Edge(config.edge_vertex(e, af.num_points), e.suction_criterion)
                 for e in config.edges]
        body = RigidBody(conformal_map,
                         centroid=complex(*config.body.centroid),
                         angle=np.deg2rad(config.body.angle_deg),
                         edges=[e.vertex for e in edges])
        freestream = Freestream.from_speed(config.freestream.speed, config.freestream.angle_deg)

        tracers = None
        if config.tracers is not None and config.tracers.enabled:
            tr = config.tracers
            tracers = tracer_block(body, complex(*tr.center), tr.side, tr.density)

        return cls(
            body=body,
            freestream=freestream,
            kinematics=config.motion.build(),
            edges=edges,
            dt=config.time.dt,
            blob_radius=config.vortex.blob_radius,
            kernel=config.vortex.kernel,
            spacing_fraction=config.vortex.spacing_fraction,
            seed_offset=config.vortex.seed_offset,
            sample_every=config.time.sample_every,
            tracers=tracers,
        )

    # -------------------------------------------------------------------------
    # Running
    # -------------------------------------------------------------------------

    @property
    def state(self) -> SystemState:
        return self.buffers.current

    def initialize(self) -> None:
        """Seed one blob per non-suppressed edge and record the t=0 sample."""
        if self._initialized:
            return
        nxt = self.buffers.prepare_next()
        motion = self.kinematics(self.t)
        try:
            enforce_no_flow_through(nxt.body, motion, nxt.sources(), self.t)
            self.shedding.seed(nxt, motion, self.t)
            enforce_no_flow_through(nxt.body, motion, nxt.sources(), self.t)
        except Exception:
            self.shedding.reset()
            raise
        self.buffers.swap()
        self._record(archive=True)
        self._initialized = True

    def step(self) -> SystemState:
        """Advance one time step."""
        if not self._initialized:
            self.initialize()
        self.integrator.step(self.buffers, self.t, self.dt)
        self.step_count += 1
        self.t = self.step_count * self.dt
        self._record(archive=self.step_count % self.sample_every == 0)
        self._check_divergence()
        return self.state

    def run(self, until_time: float, progress: bool = False) -> Trajectory:
        """
        March to `until_time` with the fixed time step.

        Args:
            until_time: End time
            progress: Show a tqdm progress bar

        Returns:
            The trajectory archive
        """
        self.initialize()
        num_steps = int(round((until_time - self.t) / self.dt))
        for _ in tqdm(range(num_steps), desc="Simulating", unit="step",
                      mininterval=0.5, disable=not progress):
            self.step()
        return self.trajectory

    # -------------------------------------------------------------------------
    # Records and checks
    # -------------------------------------------------------------------------

    def _record(self, archive: bool) -> None:
        state = self.state
        self.trajectory.record_impulse(self.t, impulse(state.body, state.blobs, state.freestream))
        if archive:
            self.trajectory.archive(state.snapshot(self.t))

    def _check_divergence(self) -> None:
        if self._warned:
            return
        state = self.state
        z = state.body.to_physical(np.concatenate([state.blobs.positions,
                                                   state.tracers.positions]))
        P = self.trajectory.impulses[-1]
        message = None
        if not np.all(np.isfinite(z)) or not np.isfinite(P):
            message = f"non-finite positions or impulse at t={self.t:.4g}"
        elif z.size and np.max(np.abs(z - state.body.centroid)) > self.divergence_radius:
            message = (f"elements beyond {self.divergence_radius:.3g} from the body at "
                       f"t={self.t:.4g}; reduce dt relative to blob spacing")
        elif abs(P) > self.impulse_limit * max(1.0, abs(self.trajectory.impulses[0])):
            message = f"impulse grew to {abs(P):.3g} at t={self.t:.4g}"
        if message is not None:
            warnings.warn(message, DivergenceWarning, stacklevel=3)
            self._warned = True

    def __repr__(self) -> str:
        return (f"Simulation(t={self.t:.4g}, steps={self.step_count}, "
                f"blobs={len(self.state.blobs)}, tracers={len(self.state.tracers)})")
