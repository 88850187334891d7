"""
Power-series conformal map from the exterior of the unit circle to the
exterior of a body.

    z = c1*zeta + c0 + sum_k d_k * zeta**(-k),   |zeta| >= 1

The map is the body's external collaborator: the vortex solvers only use
forward/inverse evaluation, the first two derivatives and the Laurent
coefficients. Construction for airfoil sections uses the Theodorsen-Garrick
method (Joukowski pre-map followed by a near-circle -> circle iteration).
"""

from __future__ import annotations
from typing import Optional
import numpy as np
from numpy.typing import NDArray
from scipy.interpolate import CubicSpline

from .airfoil import polygon_area


DERIVATIVE_TOLERANCE = 1e-12
BOUNDARY_TOLERANCE = 1e-10


class DegenerateMapError(ValueError):
    """Map derivative vanishes (or is undefined) at a query point."""


class MapInversionError(RuntimeError):
    """Newton iteration for the inverse map did not converge."""


class PowerMap:
    """
    Truncated power-series map z(zeta).

    Attributes:
        coefficients: [c1, c0, d1, d2, ..., dN] (complex)
        vertices: Physical-plane polygon vertices the map was built from (optional)
        prevertices: Circle-plane preimages of the vertices (optional)
    """

    def __init__(self,
                 coefficients: NDArray[np.complex128],
                 vertices: Optional[NDArray[np.complex128]] = None,
                 prevertices: Optional[NDArray[np.complex128]] = None):
        c = np.asarray(coefficients, dtype=np.complex128).ravel()
        if c.size < 1 or abs(c[0]) < DERIVATIVE_TOLERANCE:
            raise DegenerateMapError("Leading coefficient c1 must be non-zero")
        if c.size < 3:
            c = np.concatenate([c, np.zeros(3 - c.size, dtype=np.complex128)])

        self.coefficients = c
        self.vertices = None if vertices is None else np.asarray(vertices, dtype=np.complex128)
        self.prevertices = None if prevertices is None else np.asarray(prevertices, dtype=np.complex128)

        k = np.arange(1, c.size - 1)
        self._d = c[2:]
        self._dk = k * self._d
        self._dkk = k * (k + 1) * self._d

    # -------------------------------------------------------------------------
    # Factories
    # -------------------------------------------------------------------------

    @classmethod
    def circle(cls, radius: float = 1.0, center: complex = 0j) -> PowerMap:
        """Identity-like map for a circular cylinder."""
        return cls(np.array([radius, center], dtype=np.complex128))

    @classmethod
    def joukowski(cls, a: float = 0.25, center: complex = 0j,
                  num_terms: int = 64) -> PowerMap:
        """
        Joukowski airfoil z = s + a^2/s with s = center + R*zeta.

        The circle radius R = |a - center| makes s = a a point of the circle,
        which maps to a sharp trailing edge at z = 2a (vertex 0).

        Args:
            a: Joukowski parameter
            center: Circle center in the s-plane (small offsets give thin airfoils)
            num_terms: Number of retained negative powers
        """
        radius = abs(a - center)
        if radius <= abs(center):
            raise ValueError("Circle must enclose the origin of the s-plane")
        k = np.arange(1, num_terms + 1)
        d = (a**2 / radius) * (-center / radius) ** (k - 1)
        coefficients = np.concatenate([[radius, center], d])
        prevertex = (a - center) / radius
        prevertices = np.array([prevertex / abs(prevertex)])
        m = cls(coefficients, prevertices=prevertices)
        m.vertices = m.forward(m.prevertices)
        return m

    @classmethod
    def from_airfoil(cls,
                     vertices: NDArray[np.complex128],
                     trailing_edge: int = 0,
                     num_coefficients: int = 128,
                     num_samples: int = 1024,
                     max_iterations: int = 200,
                     tolerance: float = 1e-10) -> PowerMap:
        """
        Build a map for a counter-clockwise airfoil polygon (Theodorsen-Garrick).

        Steps:
            1. Joukowski singular points at the trailing edge and half a
               leading-edge radius behind the leading edge.
            2. Inverse Joukowski map sends the section to a near-circle
               s = a*exp(psi(theta) + i*theta).
            3. Iterate the conjugate-function relation
               eps(phi) = Im sum c_n exp(-i n phi) with psi(phi + eps) given.
            4. Sample the composite map on the unit circle and FFT it into a
               truncated power series.

        Args:
            vertices: Polygon vertices (complex, counter-clockwise)
            trailing_edge: Index of the sharp trailing-edge vertex
            num_coefficients: Number of retained negative powers
            num_samples: Points on the circle used by the FFTs
            max_iterations: Maximum conjugate-function iterations
            tolerance: Convergence tolerance on eps(phi)

        Returns:
            PowerMap with vertices/prevertices populated
        """
        z = np.asarray(vertices, dtype=np.complex128)
        n = z.size
        if polygon_area(z) <= 0:
            raise ValueError("Airfoil vertices must be ordered counter-clockwise")
        z = np.roll(z, -trailing_edge)

        z_te = z[0]
        le = int(np.argmax(np.abs(z - z_te)))
        r_le = _circumradius(z[le - 1], z[le], z[(le + 1) % n])
        chord_dir = (z_te - z[le]) / abs(z_te - z[le])
        z_s = z[le] + 0.5 * r_le * chord_dir

        a = abs(z_te - z_s) / 4.0
        z_mid = 0.5 * (z_te + z_s)
        rotation = (z_te - z_s) / abs(z_te - z_s)

        w = (z - z_mid) / rotation
        s = _inverse_joukowski(w, a)
        s[0] = a

        theta = np.unwrap(np.angle(s))
        theta -= theta[0]
        if np.any(np.diff(theta) <= 0) or theta[-1] >= 2 * np.pi:
            raise ValueError("Airfoil vertices must be ordered counter-clockwise "
                             "starting at the trailing edge")
        psi = np.log(np.abs(s) / a)

        spline = CubicSpline(np.append(theta, 2 * np.pi), np.append(psi, psi[0]),
                             bc_type='periodic')

        phi = 2 * np.pi * np.arange(num_samples) / num_samples
        modes = np.arange(1, num_coefficients + 1)
        basis = np.exp(-1j * np.outer(phi, modes))
        eps = np.zeros(num_samples)

        for _ in range(max_iterations):
            psi_phi = spline(np.mod(phi + eps, 2 * np.pi))
            spectrum = np.fft.rfft(psi_phi) / num_samples
            psi0 = spectrum[0].real
            c_n = 2.0 * np.conj(spectrum[1:num_coefficients + 1])
            eps_new = np.imag(basis[:, :c_n.size] @ c_n)
            converged = np.max(np.abs(eps_new - eps)) < tolerance
            eps = eps_new
            if converged:
                break

        def composite(zeta):
            q = 1.0 / zeta
            series = np.polynomial.polynomial.polyval(q, np.concatenate([[0.0], c_n]))
            s_val = a * np.exp(psi0) * zeta * np.exp(series)
            return z_mid + rotation * (s_val + a**2 / s_val)

        samples = composite(np.exp(1j * phi))
        fourier = np.fft.fft(samples) / num_samples
        negative = fourier[::-1][:num_coefficients]
        coefficients = np.concatenate([[fourier[1], fourier[0]], negative])

        # theta(phi) is monotone; invert it to locate the prevertices
        theta_phi = phi + eps
        theta_ext = np.concatenate([theta_phi - 2 * np.pi, theta_phi, theta_phi + 2 * np.pi])
        phi_ext = np.concatenate([phi - 2 * np.pi, phi, phi + 2 * np.pi])
        phi_vertices = np.interp(theta, theta_ext, phi_ext)
        prevertices = np.exp(1j * phi_vertices)

        return cls(coefficients,
                   vertices=np.roll(z, trailing_edge),
                   prevertices=np.roll(prevertices, trailing_edge))

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    @property
    def num_terms(self) -> int:
        """Number of retained negative powers."""
        return self._d.size

    @property
    def leading(self) -> complex:
        """Coefficient c1 of zeta."""
        return complex(self.coefficients[0])

    @property
    def constant(self) -> complex:
        """Coefficient c0."""
        return complex(self.coefficients[1])

    @property
    def laurent(self) -> NDArray[np.complex128]:
        """Coefficients d_k of zeta**(-k), k = 1..N."""
        return self._d

    def forward(self, zeta):
        """z(zeta)."""
        zeta = np.asarray(zeta, dtype=np.complex128)
        q = 1.0 / zeta
        return self.coefficients[0] * zeta + np.polynomial.polynomial.polyval(q, self.coefficients[1:])

    __call__ = forward

    def derivative(self, zeta):
        """dz/dzeta."""
        zeta = np.asarray(zeta, dtype=np.complex128)
        q = 1.0 / zeta
        return self.coefficients[0] - q**2 * np.polynomial.polynomial.polyval(q, self._dk)

    def second_derivative(self, zeta):
        """d2z/dzeta2."""
        zeta = np.asarray(zeta, dtype=np.complex128)
        q = 1.0 / zeta
        return q**3 * np.polynomial.polynomial.polyval(q, self._dkk)

    def check_derivative(self, zeta, tolerance: float = DERIVATIVE_TOLERANCE):
        """Return dz/dzeta, raising DegenerateMapError where it vanishes."""
        dz = self.derivative(zeta)
        bad = ~np.isfinite(dz) | (np.abs(dz) < tolerance)
        if np.any(bad):
            where = np.atleast_1d(np.asarray(zeta))[np.atleast_1d(bad)]
            raise DegenerateMapError(
                f"Map derivative vanishes at {where.size} point(s), first at {where[0]:.6g}"
            )
        return dz

    def inverse(self, z, guess=None, tolerance: float = 1e-12, max_iterations: int = 100):
        """
        zeta(z) by Newton iteration.

        Only the branch outside the unit circle is returned. A point whose
        iteration lands on an interior root is restarted from a finer grid
        of exterior seeds.

        Args:
            z: Physical-plane point(s) in the body frame
            guess: Optional circle-plane starting point(s)
            tolerance: Relative step tolerance
            max_iterations: Newton iteration cap

        Returns:
            Circle-plane point(s), same shape as z

        Raises:
            MapInversionError: No convergence, or no root with |zeta| >= 1
        """
        z = np.asarray(z, dtype=np.complex128)
        shape = z.shape
        z = z.ravel()
        if z.size == 0:
            return z.reshape(shape)

        if guess is None:
            zeta = self._initial_guess(z)
        else:
            zeta = np.broadcast_to(np.asarray(guess, dtype=np.complex128), shape).ravel().copy()

        zeta = self._newton(z, zeta, tolerance, max_iterations)

        interior = np.flatnonzero(np.abs(zeta) < 1.0 - BOUNDARY_TOLERANCE)
        if interior.size:
            seeds = self._grid_search(z[interior], 1.0 + np.geomspace(1e-6, 3.0, 64), 1024)
            zeta[interior] = self._newton(z[interior], seeds, tolerance, max_iterations)
            left = np.abs(zeta[interior]) < 1.0 - BOUNDARY_TOLERANCE
            if left.any():
                raise MapInversionError(
                    f"{int(left.sum())} point(s) have no preimage outside the unit circle, "
                    f"first at {z[interior][left][0]:.6g}"
                )

        return zeta.reshape(shape)

    def _newton(self, z, zeta, tolerance, max_iterations):
        active = np.ones(z.size, dtype=bool)
        for _ in range(max_iterations):
            za = zeta[active]
            dz = self.check_derivative(za)
            step = (self.forward(za) - z[active]) / dz
            zeta[active] = za - step
            done = np.abs(step) <= tolerance * np.maximum(1.0, np.abs(za))
            idx = np.flatnonzero(active)
            active[idx[done]] = False
            if not active.any():
                return zeta
        raise MapInversionError(
            f"Inverse map did not converge for {int(active.sum())} point(s)"
        )

    def _initial_guess(self, z: NDArray[np.complex128]) -> NDArray[np.complex128]:
        """Far-field estimate, refined by a polar-grid search near the body."""
        guess = (z - self.coefficients[1]) / self.coefficients[0]
        near = np.abs(guess) < 4.0
        if near.any():
            radii = 1.0 + np.geomspace(1e-4, 3.0, 40)
            guess[near] = self._grid_search(z[near], radii, 192)
        return guess

    def _grid_search(self, z, radii, num_angles: int, chunk: int = 256):
        """Exterior grid point whose image is nearest to each z."""
        angles = np.exp(2j * np.pi * np.arange(num_angles) / num_angles)
        grid = np.outer(radii, angles).ravel()
        z_grid = self.forward(grid)

        guess = np.empty(z.size, dtype=np.complex128)
        for start in range(0, z.size, chunk):
            part = slice(start, start + chunk)
            nearest = np.argmin(np.abs(z[part, None] - z_grid[None, :]), axis=1)
            guess[part] = grid[nearest]
        return guess

    # -------------------------------------------------------------------------
    # Series utilities
    # -------------------------------------------------------------------------

    def modulus_coefficients(self) -> NDArray[np.complex128]:
        """
        Laurent coefficients e_m of |f(zeta)|^2 on |zeta| = 1.

        Returns e[m] multiplying zeta**(-m), m = 0..N+1. The real function
        |f|^2 equals e_0 + 2 Re(sum_{m>=1} e_m zeta**(-m)).
        """
        c = self.coefficients
        n = c.size
        return np.array([np.sum(c[m:] * np.conj(c[:n - m])) for m in range(n)])

    def boundary(self, num_points: int = 256) -> NDArray[np.complex128]:
        """Body outline in the body frame."""
        return self.forward(np.exp(2j * np.pi * np.arange(num_points) / num_points))

    def __repr__(self) -> str:
        return f"PowerMap(c1={self.leading:.4g}, c0={self.constant:.4g}, terms={self.num_terms})"


def _inverse_joukowski(w: NDArray[np.complex128], a: float) -> NDArray[np.complex128]:
    """Branch of s + a^2/s = w lying outside |s| = a."""
    root = np.sqrt(w * w - 4.0 * a * a)
    s1 = 0.5 * (w + root)
    s2 = 0.5 * (w - root)
    return np.where(np.abs(s1) >= np.abs(s2), s1, s2)


def _circumradius(p1: complex, p2: complex, p3: complex) -> float:
    """Radius of the circle through three points."""
    a, b, c = abs(p2 - p3), abs(p1 - p3), abs(p1 - p2)
    area = 0.5 * abs((p2 - p1).real * (p3 - p1).imag - (p3 - p1).real * (p2 - p1).imag)
    if area < 1e-15:
        return 0.0
    return a * b * c / (4.0 * area)
