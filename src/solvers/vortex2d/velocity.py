"""
Self-induced velocity of the vortex system and the transform to
circle-plane rates.
"""

from __future__ import annotations
from typing import Optional
import numpy as np
from numpy.typing import NDArray

from core.geometry import RigidBody, Motion
from .elements import SystemState
from .kernels import induced_velocity


def circle_plane_velocity(state: SystemState, targets, delta: float,
                          kernel: str = "algebraic") -> NDArray[np.complex128]:
    """
    Complex velocity dF/dzeta at circle-plane targets.

    Sums the freestream, every free blob and the body's bound system. The
    bound system must be current (see enforce_no_flow_through).
    """
    body = state.body
    if body.bound is None:
        raise RuntimeError("No-flow-through has not been enforced on the body")

    targets = np.asarray(targets, dtype=np.complex128)
    w = np.full(targets.shape, state.freestream.circle_plane_coefficient(body),
                dtype=np.complex128)
    w += induced_velocity(targets, state.blobs.positions, state.blobs.strengths,
                          delta, kernel)
    w += body.bound.complex_velocity(targets, delta, kernel)
    return w


def transform_velocity(body: RigidBody, motion: Motion, zeta, w,
                       strengths=None) -> NDArray[np.complex128]:
    """
    Convert circle-plane complex velocities to circle-plane position rates.

    The physical complex velocity is w/z' with the Routh correction
    -Gamma z''/(4 pi i z'^2) for vortices; the rate of the body-fixed
    circle-plane coordinate is (z_dot - c_dot - i alpha_dot (z - c))/z'.

    Raises:
        DegenerateMapError: if z' vanishes at an element position
    """
    zeta = np.asarray(zeta, dtype=np.complex128)
    if zeta.size == 0:
        return np.zeros(0, dtype=np.complex128)

    dz = body.rotation * body.map.check_derivative(zeta)
    w_phys = w / dz
    if strengths is not None:
        ddz = body.second_derivative(zeta)
        w_phys = w_phys - np.asarray(strengths) * ddz / (4j * np.pi * dz**2)

    z_dot = np.conj(w_phys)
    r = body.rotation * body.map.forward(zeta)
    return (z_dot - motion.c_dot - 1j * motion.alpha_dot * r) / dz


def compute_velocity(state: SystemState, motion: Motion, t: float,
                     delta: float, kernel: str = "algebraic",
                     out_blobs: Optional[NDArray[np.complex128]] = None,
                     out_tracers: Optional[NDArray[np.complex128]] = None):
    """
    Circle-plane rates of all blobs and tracers.

    Writes into caller buffers when given (zeroed first), otherwise allocates.

    Returns:
        (blob_rates, tracer_rates)
    """
    nb, nt = len(state.blobs), len(state.tracers)
    if out_blobs is None:
        out_blobs = np.zeros(nb, dtype=np.complex128)
    if out_tracers is None:
        out_tracers = np.zeros(nt, dtype=np.complex128)
    out_blobs[:] = 0.0
    out_tracers[:] = 0.0

    targets = np.concatenate([state.blobs.positions, state.tracers.positions])
    if targets.size == 0:
        return out_blobs, out_tracers

    w = circle_plane_velocity(state, targets, delta, kernel)
    strengths = np.concatenate([state.blobs.strengths, np.zeros(nt)])
    rates = transform_velocity(state.body, motion, targets, w, strengths)

    out_blobs[:] = rates[:nb]
    out_tracers[:] = rates[nb:]
    return out_blobs, out_tracers
