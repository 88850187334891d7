"""
NACA 4-digit airfoil geometry.

Coordinates are returned as complex numbers (x + iy), ordered
counter-clockwise starting at the trailing edge:
trailing edge -> upper surface -> leading edge -> lower surface.
"""

from __future__ import annotations
import numpy as np
from numpy.typing import NDArray


def naca4_coordinates(camber: float,
                      camber_location: float,
                      thickness: float,
                      num_points: int = 100,
                      chord: float = 1.0) -> NDArray[np.complex128]:
    """
    Generate a closed-trailing-edge NACA 4-digit section.

    Args:
        camber: Maximum camber as a fraction of chord (e.g. 0.04)
        camber_location: Chordwise location of maximum camber (e.g. 0.4)
        thickness: Maximum thickness as a fraction of chord (e.g. 0.12)
        num_points: Points per surface (cosine spaced)
        chord: Chord length

    Returns:
        Complex array of 2*num_points vertices. Vertex 0 is the trailing edge,
        vertex num_points is the leading edge.
    """
    if thickness <= 0:
        raise ValueError(f"thickness must be positive, got {thickness}")
    if num_points < 8:
        raise ValueError(f"num_points must be at least 8, got {num_points}")

    beta = np.linspace(0.0, np.pi, num_points + 1)
    x = 0.5 * (1.0 - np.cos(beta))

    # Closed trailing edge variant (last coefficient -0.1036)
    yt = 5.0 * thickness * (
        0.2969 * np.sqrt(x) - 0.1260 * x - 0.3516 * x**2
        + 0.2843 * x**3 - 0.1036 * x**4
    )

    yc = np.zeros_like(x)
    dyc = np.zeros_like(x)
    m, p = camber, camber_location
    if m != 0.0 and 0.0 < p < 1.0:
        fore = x < p
        aft = ~fore
        yc[fore] = m / p**2 * (2 * p * x[fore] - x[fore]**2)
        dyc[fore] = 2 * m / p**2 * (p - x[fore])
        yc[aft] = m / (1 - p)**2 * ((1 - 2 * p) + 2 * p * x[aft] - x[aft]**2)
        dyc[aft] = 2 * m / (1 - p)**2 * (p - x[aft])

    theta = np.arctan(dyc)
    upper = (x - yt * np.sin(theta)) + 1j * (yc + yt * np.cos(theta))
    lower = (x + yt * np.sin(theta)) + 1j * (yc - yt * np.cos(theta))

    # Upper: TE -> LE (inclusive), lower: LE -> TE (both exclusive)
    vertices = np.concatenate([upper[::-1], lower[1:-1]])
    vertices[0] = 1.0 + 0j

    return chord * vertices


def polygon_centroid(vertices: NDArray[np.complex128]) -> complex:
    """Area centroid of a closed polygon (shoelace formula)."""
    z = np.asarray(vertices, dtype=np.complex128)
    z_next = np.roll(z, -1)
    cross = z.real * z_next.imag - z_next.real * z.imag
    area = 0.5 * np.sum(cross)
    if abs(area) < 1e-14:
        raise ValueError("Polygon has zero area")
    cx = np.sum((z.real + z_next.real) * cross) / (6.0 * area)
    cy = np.sum((z.imag + z_next.imag) * cross) / (6.0 * area)
    return complex(cx, cy)


def polygon_area(vertices: NDArray[np.complex128]) -> float:
    """Signed polygon area (positive for counter-clockwise ordering)."""
    z = np.asarray(vertices, dtype=np.complex128)
    z_next = np.roll(z, -1)
    return float(0.5 * np.sum(z.real * z_next.imag - z_next.real * z.imag))
