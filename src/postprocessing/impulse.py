"""
Impulse and force diagnostics.

The fluid impulse (per unit density) of a vorticity distribution in
unbounded flow is P = -i sum Gamma_j z_j. For the conformal body the bound
system lives in the circle plane, so the impulse is read off the 1/z
coefficient C of the disturbance potential, P = -2 pi C, which reduces to the
vortex sum far from the body. Forces follow from F = -dP/dt.
"""

from __future__ import annotations
from typing import Optional, Tuple
import numpy as np
from numpy.typing import NDArray

from core.geometry import RigidBody


def free_impulse(strengths, z) -> complex:
    """-i sum Gamma z for vortices in unbounded flow."""
    strengths = np.asarray(strengths, dtype=np.float64)
    z = np.asarray(z, dtype=np.complex128)
    return complex(-1j * np.sum(strengths * z))


def impulse(body: RigidBody, blobs, freestream=None) -> complex:
    """
    Impulse of the bound system plus free vortices.

    Args:
        body: Body with a current bound system
        blobs: VortexElements (circle-plane positions)
        freestream: Freestream, if the bound system was built with one

    Returns:
        Complex impulse Px + i Py
    """
    if body.bound is None:
        raise RuntimeError("No-flow-through has not been enforced on the body")

    m = body.map
    c1 = m.leading
    d1 = complex(m.laurent[0]) if m.num_terms else 0j

    coefficient = body.bound.potential_coefficient() * c1
    if freestream is not None:
        coefficient -= freestream.circle_plane_coefficient(body) * d1

    zeta = blobs.positions
    gamma = blobs.strengths
    nonzero = gamma != 0.0
    if np.any(nonzero):
        zeta = zeta[nonzero]
        gamma = gamma[nonzero]
        image = 1.0 / np.conj(zeta)
        coefficient += c1 * np.sum(gamma * (image - zeta)) / (2j * np.pi)

    return complex(-2.0 * np.pi * body.rotation * coefficient)


def force_coefficients(impulses, dt: float, scale: float = 2.0) -> NDArray[np.complex128]:
    """
    Force coefficients from an impulse history, -scale * dP/dt.

    Backward differences: entry k uses impulses[k+1] and impulses[k].
    """
    if dt <= 0:
        raise ValueError(f"dt must be positive, got {dt}")
    P = np.asarray(impulses, dtype=np.complex128)
    return -scale * np.diff(P) / dt


def lift_drag(coefficients, direction: complex = 1.0) -> Tuple[NDArray, NDArray]:
    """
    Split complex force coefficients into (drag, lift) relative to a flow direction.

    Args:
        coefficients: Complex force coefficients Cx + i Cy
        direction: Complex freestream direction (any magnitude)
    """
    if abs(direction) == 0:
        raise ValueError("Flow direction must be non-zero")
    wind = np.asarray(coefficients, dtype=np.complex128) * np.conj(direction) / abs(direction)
    return wind.real, wind.imag


def reference_scale(speed: float, chord: float, density: float = 1.0) -> float:
    """Force-coefficient normalization 2/(rho U^2 c)."""
    if speed <= 0 or chord <= 0:
        raise ValueError("Reference speed and chord must be positive")
    return 2.0 / (density * speed**2 * chord)


def mean_coefficients(coefficients, direction: complex = 1.0,
                      start: Optional[int] = None) -> Tuple[float, float]:
    """Time-averaged (drag, lift) coefficients."""
    drag, lift = lift_drag(np.asarray(coefficients)[start:], direction)
    return float(np.mean(drag)), float(np.mean(lift))
