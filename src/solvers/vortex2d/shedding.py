"""
Vortex shedding from sharp edges.

The edge suction parameter is the circle-plane tangential velocity at the
edge prevertex, sigma = Re(i zeta_e w(zeta_e)). Where the map derivative
vanishes (a sharp edge) the physical velocity stays finite only if sigma = 0,
which is the Kutta condition. A new blob of circulation Gamma changes sigma
affinely, sigma = sigma_0 + Gamma * s, so each release is a small linear solve.

Criterion semantics per edge:
    0          Kutta condition, the blob always takes the circulation that
               zeroes sigma
    (0, inf)   release with Gamma = 0 while |sigma_0| <= criterion, otherwise
               bring sigma back to +/- criterion
    inf        edge never sheds
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Sequence
import numpy as np
from numpy.typing import NDArray
from scipy.optimize import brentq

from core.geometry import RigidBody, Motion, MapInversionError, DegenerateMapError
from .elements import SystemState
from .errors import SheddingError
from .no_flow_through import enforce_no_flow_through
from .velocity import circle_plane_velocity


@dataclass(frozen=True)
class Edge:
    """Designated shedding edge (vertex index into the map's polygon)."""
    vertex: int
    suction_criterion: float = 0.0

    def __post_init__(self):
        if self.suction_criterion < 0:
            raise ValueError("suction_criterion must be non-negative")

    @property
    def suppressed(self) -> bool:
        return bool(np.isinf(self.suction_criterion))


def edge_suction(state: SystemState, k: int) -> float:
    """Suction parameter at designated edge k from the current bound system."""
    zeta_e = state.body.edge_prevertex(k)
    w = circle_plane_velocity(state, np.array([zeta_e]), delta=0.0)[0]
    return float(np.real(1j * zeta_e * w))


def unit_suction(zeta_e, zeta_c) -> NDArray[np.float64]:
    """
    Suction at prevertices zeta_e produced by unit blobs at zeta_c together
    with their images. Returns an (len(zeta_e), len(zeta_c)) matrix.
    """
    ze = np.atleast_1d(np.asarray(zeta_e, dtype=np.complex128))[:, None]
    zc = np.atleast_1d(np.asarray(zeta_c, dtype=np.complex128))[None, :]
    w = (1.0 / (ze - zc) - 1.0 / (ze - 1.0 / np.conj(zc))) / (2j * np.pi)
    return np.real(1j * ze * w)


def vorticity_flux(body: RigidBody, k: int, state: SystemState, candidate: complex,
                   motion: Motion, t: float, criterion: float = 0.0) -> float:
    """
    Circulation of a candidate blob at `candidate` (circle plane) released
    from edge k so that the suction parameter reaches the criterion.

    The state is not modified apart from refreshing body.bound.
    """
    if np.isinf(criterion):
        return 0.0
    enforce_no_flow_through(body, motion, state.sources(), t)
    sigma0 = edge_suction(state, k)
    if abs(sigma0) <= criterion:
        return 0.0
    s = unit_suction(body.edge_prevertex(k), candidate)[0, 0]
    if not np.isfinite(s) or abs(s) < 1e-14:
        raise SheddingError(f"Edge {k}: suction is insensitive to the candidate blob")
    return float((np.sign(sigma0) * criterion - sigma0) / s)


class EdgeSheddingModel:
    """
    Releases one blob per non-suppressed edge per call.

    Attributes:
        edges: Edge settings aligned with body.edges
        spacing_fraction: Fraction phi of the edge-to-previous-blob distance
            at which the new blob is placed
        seed_offset: Physical distance of the first blob from its edge
        released: Blob indices released by each edge, in order
    """

    def __init__(self, edges: Sequence[Edge],
                 spacing_fraction: float = 1.0 / 3.0,
                 seed_offset: float = 0.01,
                 condition_limit: float = 1e12):
        if not 0.0 < spacing_fraction < 1.0:
            raise ValueError(f"spacing_fraction must be in (0, 1), got {spacing_fraction}")
        if seed_offset <= 0.0:
            raise ValueError(f"seed_offset must be positive, got {seed_offset}")
        self.edges = list(edges)
        self.spacing_fraction = spacing_fraction
        self.seed_offset = seed_offset
        self.condition_limit = condition_limit
        self.released: List[List[int]] = [[] for _ in self.edges]

    @property
    def active_edges(self) -> List[int]:
        return [k for k, e in enumerate(self.edges) if not e.suppressed]

    def reset(self) -> None:
        self.released = [[] for _ in self.edges]

    # -------------------------------------------------------------------------
    # Placement
    # -------------------------------------------------------------------------

    def seed_position(self, body: RigidBody, k: int) -> complex:
        """
        First blob of edge k: along the outward circle-plane normal at the
        prevertex, at physical distance seed_offset from the edge.
        """
        zeta_e = body.edge_prevertex(k)
        z_e = body.edge_position(k)

        def gap(h):
            return abs(body.to_physical(zeta_e * (1.0 + h)) - z_e) - self.seed_offset

        h_max = 10.0
        if gap(h_max) < 0:
            raise SheddingError(f"Edge {k}: seed_offset {self.seed_offset} is too large")
        h = brentq(gap, 1e-12, h_max, xtol=1e-14)
        return complex(zeta_e * (1.0 + h))

    def next_position(self, state: SystemState, k: int) -> complex:
        """
        New blob position for edge k at fraction phi from the edge toward
        the previous blob of the edge.
        """
        body = state.body
        if not self.released[k]:
            return self.seed_position(body, k)

        phi = self.spacing_fraction
        zeta_e = body.edge_prevertex(k)
        zeta_prev = state.blobs.positions[self.released[k][-1]]
        z_e = body.edge_position(k)
        z_prev = body.to_physical(zeta_prev)
        z_new = z_e + phi * (z_prev - z_e)

        guess = zeta_e + np.sqrt(phi) * (zeta_prev - zeta_e)
        try:
            return complex(body.to_circle(z_new, guess=guess))
        except (MapInversionError, DegenerateMapError) as e:
            raise SheddingError(f"Edge {k}: cannot place new blob at {z_new:.6g}") from e

    # -------------------------------------------------------------------------
    # Release
    # -------------------------------------------------------------------------

    def seed(self, state: SystemState, motion: Motion, t: float) -> NDArray[np.float64]:
        """Initial blobs at t = 0, one per non-suppressed edge."""
        self.reset()
        return self.shed(state, motion, t)

    def shed(self, state: SystemState, motion: Motion, t: float) -> NDArray[np.float64]:
        """
        Append one blob per non-suppressed edge and solve their circulations.

        Edges under their criterion release Gamma = 0 unless the blobs of the
        other edges push them over it, in which case they join the solve.

        Returns:
            Circulations of the new blobs, ordered as active_edges
        """
        active = self.active_edges
        if not active:
            return np.zeros(0)

        body = state.body
        placements = [self.next_position(state, k) for k in active]
        indices = [state.blobs.append(zeta, 0.0) for zeta in placements]

        enforce_no_flow_through(body, motion, state.sources(), t)
        sigma0 = np.array([edge_suction(state, k) for k in active])
        criteria = np.array([self.edges[k].suction_criterion for k in active])
        prevertices = np.array([body.edge_prevertex(k) for k in active])
        S = unit_suction(prevertices, np.asarray(placements))

        gammas = np.zeros(len(active))
        targets = np.sign(sigma0) * criteria
        shedding = np.abs(sigma0) > criteria
        # the set only grows, so this settles within len(active) passes
        for _ in range(len(active)):
            if not shedding.any():
                break
            sub = np.flatnonzero(shedding)
            gammas[:] = 0.0
            gammas[sub] = self._solve(S[np.ix_(sub, sub)], targets[sub] - sigma0[sub],
                                      [active[i] for i in sub])
            sigma = sigma0 + S @ gammas
            pushed = ~shedding & (np.abs(sigma) > criteria)
            if not pushed.any():
                break
            targets[pushed] = np.sign(sigma[pushed]) * criteria[pushed]
            shedding |= pushed

        strengths = state.blobs.strengths
        for k, idx, gamma in zip(active, indices, gammas):
            strengths[idx] = gamma
            self.released[k].append(idx)

        enforce_no_flow_through(body, motion, state.sources(), t)
        return gammas

    def _solve(self, S: NDArray[np.float64], rhs: NDArray[np.float64],
               edges: List[int]) -> NDArray[np.float64]:
        if not np.all(np.isfinite(S)):
            raise SheddingError(f"Edges {edges}: non-finite suction response")
        cond = np.linalg.cond(S)
        if not np.isfinite(cond) or cond > self.condition_limit or np.max(np.abs(S)) < 1e-14:
            raise SheddingError(f"Edges {edges}: singular suction response (cond={cond:.3g})")
        return np.linalg.solve(S, rhs)

    def copy_history(self) -> List[List[int]]:
        return [list(r) for r in self.released]

    def restore_history(self, history: List[List[int]]) -> None:
        self.released = [list(r) for r in history]

    def __repr__(self) -> str:
        return (f"EdgeSheddingModel(edges={self.edges}, "
                f"spacing_fraction={self.spacing_fraction:.4g})")
