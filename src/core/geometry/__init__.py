"""Airfoil geometry, conformal map, rigid body and kinematics."""

from .airfoil import naca4_coordinates, polygon_centroid, polygon_area
from .conformal import PowerMap, DegenerateMapError, MapInversionError
from .kinematics import Motion, Kinematics, Fixed, ConstantMotion, Oscillation
from .body import RigidBody

__all__ = [
    "naca4_coordinates",
    "polygon_centroid",
    "polygon_area",
    "PowerMap",
    "DegenerateMapError",
    "MapInversionError",
    "Motion",
    "Kinematics",
    "Fixed",
    "ConstantMotion",
    "Oscillation",
    "RigidBody",
]
