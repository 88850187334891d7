"""
Regularized Biot-Savart kernels in complex form.

All kernels return the complex velocity w = dF/dzeta = u - i v induced at
targets by point/blob vortices:

    w(zeta) = sum_j  Gamma_j / (2 pi i) * conj(zeta - zeta_j) * K(|zeta - zeta_j|)

with K(r) = 1/(r^2 + delta^2) (algebraic) or (1 - exp(-r^2/delta^2))/r^2
(gaussian). delta = 0 recovers singular point vortices; coincident points
are skipped.
"""

import numpy as np
from numba import njit, prange


@njit(parallel=True)
def _algebraic_numba(targets, sources, strengths, delta):
    M = targets.shape[0]
    N = sources.shape[0]
    out = np.zeros(M, dtype=np.complex128)
    d2 = delta * delta

    for j in prange(M):
        acc = 0.0 + 0.0j
        for i in range(N):
            dz = targets[j] - sources[i]
            r2 = dz.real * dz.real + dz.imag * dz.imag + d2
            if r2 > 1e-28:
                acc += strengths[i] * dz.conjugate() / r2
        out[j] = acc / (2j * np.pi)

    return out


@njit(parallel=True)
def _gaussian_numba(targets, sources, strengths, delta):
    M = targets.shape[0]
    N = sources.shape[0]
    out = np.zeros(M, dtype=np.complex128)
    d2 = delta * delta

    for j in prange(M):
        acc = 0.0 + 0.0j
        for i in range(N):
            dz = targets[j] - sources[i]
            r2 = dz.real * dz.real + dz.imag * dz.imag
            if r2 > 1e-28:
                if d2 > 0.0:
                    factor = (1.0 - np.exp(-r2 / d2)) / r2
                else:
                    factor = 1.0 / r2
                acc += strengths[i] * dz.conjugate() * factor
        out[j] = acc / (2j * np.pi)

    return out


KERNELS = {
    "algebraic": _algebraic_numba,
    "gaussian": _gaussian_numba,
}


def induced_velocity(targets, sources, strengths, delta: float = 0.0,
                     kernel: str = "algebraic"):
    """
    Complex velocity induced at targets by a set of vortices.

    Args:
        targets: Evaluation points (complex, any shape)
        sources: Vortex positions (complex, 1D)
        strengths: Vortex circulations (real, 1D)
        delta: Blob radius
        kernel: 'algebraic' or 'gaussian'

    Returns:
        Complex velocity u - i v at targets, same shape as targets
    """
    if kernel not in KERNELS:
        raise ValueError(f"Unknown kernel '{kernel}'. Expected one of {sorted(KERNELS)}")

    targets = np.asarray(targets, dtype=np.complex128)
    shape = targets.shape
    flat = np.ascontiguousarray(targets.ravel())
    src = np.ascontiguousarray(np.asarray(sources, dtype=np.complex128).ravel())
    gam = np.ascontiguousarray(np.asarray(strengths, dtype=np.float64).ravel())

    if flat.size == 0 or src.size == 0:
        return np.zeros(shape, dtype=np.complex128)

    return KERNELS[kernel](flat, src, gam, float(delta)).reshape(shape)
