"""
Rigid body defined by a conformal map and a pose.

Physical coordinates of a circle-plane point:
    z = c + exp(i*alpha) * f(zeta)
where f is the body-frame map, c the centroid and alpha the orientation.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, List, Optional
import numpy as np
from numpy.typing import NDArray
from matplotlib import path

from .conformal import PowerMap
from .kinematics import Motion


@dataclass
class RigidBody:
    """
    Conformally mapped rigid body.

    Attributes:
        map: Body-frame conformal map (shape never changes)
        centroid: Current centroid position c (complex)
        angle: Current orientation alpha [rad]
        edges: Vertex indices of the designated shedding edges
        bound: Bound vorticity from the last no-flow-through solve
    """

    map: PowerMap
    centroid: complex = 0j
    angle: float = 0.0
    edges: List[int] = field(default_factory=list)
    bound: Optional[Any] = None

    def __post_init__(self):
        self.centroid = complex(self.centroid)
        self.angle = float(self.angle)
        if self.edges and self.map.prevertices is None:
            raise ValueError("Map has no prevertices; edges cannot be designated")
        for v in self.edges:
            if not 0 <= v < self.map.prevertices.size:
                raise ValueError(f"Edge vertex {v} out of range")

    @property
    def rotation(self) -> complex:
        """exp(i*alpha)."""
        return complex(np.exp(1j * self.angle))

    @property
    def num_edges(self) -> int:
        return len(self.edges)

    # -------------------------------------------------------------------------
    # Coordinate transforms
    # -------------------------------------------------------------------------

    def to_physical(self, zeta):
        """Circle plane -> physical plane."""
        return self.centroid + self.rotation * self.map.forward(zeta)

    def to_circle(self, z, guess=None):
        """Physical plane -> circle plane."""
        local = (np.asarray(z, dtype=np.complex128) - self.centroid) / self.rotation
        return self.map.inverse(local, guess=guess)

    def derivative(self, zeta):
        """dz/dzeta including the body rotation."""
        return self.rotation * self.map.derivative(zeta)

    def second_derivative(self, zeta):
        """d2z/dzeta2 including the body rotation."""
        return self.rotation * self.map.second_derivative(zeta)

    # -------------------------------------------------------------------------
    # Edges and outline
    # -------------------------------------------------------------------------

    def edge_prevertex(self, k: int) -> complex:
        """Circle-plane preimage of designated edge k."""
        return complex(self.map.prevertices[self.edges[k]])

    def edge_position(self, k: int) -> complex:
        """Physical position of designated edge k."""
        return complex(self.to_physical(self.edge_prevertex(k)))

    def outline(self, num_points: int = 256) -> NDArray[np.complex128]:
        """Physical-plane boundary samples."""
        return self.centroid + self.rotation * self.map.boundary(num_points)

    def contains(self, z) -> NDArray[np.bool_]:
        """True for physical points inside the body."""
        z = np.atleast_1d(np.asarray(z, dtype=np.complex128))
        outline = self.outline(512)
        poly = path.Path(np.column_stack([outline.real, outline.imag]))
        return poly.contains_points(np.column_stack([z.real, z.imag]))

    # -------------------------------------------------------------------------
    # Pose
    # -------------------------------------------------------------------------

    def advance(self, motion: Motion, dt: float) -> None:
        """Forward-Euler update of the pose."""
        self.centroid += dt * motion.c_dot
        self.angle += dt * motion.alpha_dot

    def copy_pose_from(self, other: RigidBody) -> None:
        """Take pose and edges of another body sharing the same map."""
        self.centroid = other.centroid
        self.angle = other.angle
        self.edges = list(other.edges)

    def chord(self) -> float:
        """Largest vertex-to-vertex distance (or outline diameter)."""
        pts = self.map.vertices if self.map.vertices is not None and self.map.vertices.size > 1 \
            else self.map.boundary(256)
        return float(np.max(np.abs(pts[:, None] - pts[None, :])))

    def __repr__(self) -> str:
        return (f"RigidBody(centroid={self.centroid:.4g}, "
                f"angle={np.degrees(self.angle):.3f} deg, edges={self.edges})")
