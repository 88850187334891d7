"""
No-flow-through condition on a conformally mapped body.

The bound system is built in the circle plane with the circle theorem:

    freestream      A1*zeta          ->  image  conj(A1)/zeta
    vortex Gamma    at zeta_v        ->  image  -Gamma at 1/conj(zeta_v)
    translation     c_dot            ->  -conj(B1)/zeta + sum_k B_k zeta**(-k)
    rotation        alpha_dot        ->  -i alpha_dot sum_m e_m zeta**(-m)

with B = conj(c_dot) exp(i alpha) [c1, d_k] and e_m the Laurent coefficients
of |f|^2 on the unit circle. Evaluated with singular kernels, the normal
velocity relative to the body vanishes identically on |zeta| = 1, and the
bound circulation equals minus the circulation of the external vortices.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable
import numpy as np
from numpy.typing import NDArray

from core.geometry import RigidBody, Motion
from .elements import Freestream, VortexElements
from .kernels import induced_velocity


@dataclass
class BoundVorticity:
    """
    Bound (image) system of the body in the circle plane.

    Attributes:
        laurent: Coefficients a_k of zeta**(-k), k = 1..K
        image_positions: Image vortex positions (inside the unit circle)
        image_strengths: Image vortex circulations
    """

    laurent: NDArray[np.complex128]
    image_positions: NDArray[np.complex128]
    image_strengths: NDArray[np.float64]

    @property
    def circulation(self) -> float:
        return float(np.sum(self.image_strengths))

    def complex_velocity(self, zeta, delta: float = 0.0, kernel: str = "algebraic"):
        """dF/dzeta of the bound system at circle-plane points."""
        zeta = np.asarray(zeta, dtype=np.complex128)
        q = 1.0 / zeta
        k = np.arange(1, self.laurent.size + 1)
        w = -q**2 * np.polynomial.polynomial.polyval(q, k * self.laurent)
        w = w + induced_velocity(zeta, self.image_positions, self.image_strengths,
                                 delta, kernel)
        return w

    def potential_coefficient(self) -> complex:
        """Coefficient of 1/zeta from the Laurent part."""
        return complex(self.laurent[0]) if self.laurent.size else 0j


def motion_coefficients(body: RigidBody, motion: Motion) -> NDArray[np.complex128]:
    """Laurent coefficients of the body-motion potential."""
    m = body.map
    K = m.num_terms + 1
    a = np.zeros(K, dtype=np.complex128)
    if motion.is_stationary:
        return a

    if motion.c_dot != 0:
        B = np.conj(motion.c_dot) * body.rotation
        a[0] -= np.conj(B * m.leading)
        a[:m.num_terms] += B * m.laurent

    if motion.alpha_dot != 0.0:
        e = m.modulus_coefficients()
        a[:e.size - 1] += -1j * motion.alpha_dot * e[1:]

    return a


def enforce_no_flow_through(body: RigidBody, motion: Motion,
                            sources: Iterable, t: float = 0.0) -> BoundVorticity:
    """
    Compute the bound vorticity that cancels the normal velocity on the body.

    Args:
        body: Body (its `bound` attribute is replaced)
        motion: Body motion at time t
        sources: External sources (Freestream, VortexElements), order-independent
        t: Time (unused by steady kernels, kept for the contract)

    Returns:
        The new BoundVorticity (also stored on body.bound)
    """
    laurent = motion_coefficients(body, motion)
    positions = []
    strengths = []

    for source in sources:
        if isinstance(source, Freestream):
            laurent[0] += np.conj(source.circle_plane_coefficient(body))
        elif isinstance(source, VortexElements):
            if len(source) == 0:
                continue
            active = source.strengths != 0.0
            if not np.any(active):
                continue
            zeta = source.positions[active]
            positions.append(1.0 / np.conj(zeta))
            strengths.append(-source.strengths[active])
        elif source is None:
            continue
        else:
            raise TypeError(f"Unsupported vorticity source: {type(source).__name__}")

    bound = BoundVorticity(
        laurent=laurent,
        image_positions=np.concatenate(positions) if positions else np.zeros(0, dtype=np.complex128),
        image_strengths=np.concatenate(strengths) if strengths else np.zeros(0),
    )
    body.bound = bound
    return bound

