"""
Prescribed rigid-body kinematics.

A kinematics law is a callable kin(t) -> Motion giving the translational
velocity/acceleration of the centroid and the angular velocity/acceleration.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
import numpy as np


@dataclass(frozen=True)
class Motion:
    """
    Instantaneous body motion.

    Attributes:
        c_dot: Centroid velocity (complex)
        c_ddot: Centroid acceleration (complex)
        alpha_dot: Angular velocity [rad/s], positive counter-clockwise
        alpha_ddot: Angular acceleration [rad/s^2]
    """
    c_dot: complex = 0j
    c_ddot: complex = 0j
    alpha_dot: float = 0.0
    alpha_ddot: float = 0.0

    @property
    def is_stationary(self) -> bool:
        return self.c_dot == 0 and self.alpha_dot == 0.0


class Kinematics(ABC):
    """Base class for prescribed motion laws."""

    @abstractmethod
    def __call__(self, t: float) -> Motion:
        pass


class Fixed(Kinematics):
    """Body held at rest."""

    def __call__(self, t: float) -> Motion:
        return Motion()

    def __repr__(self) -> str:
        return "Fixed()"


@dataclass(frozen=True)
class ConstantMotion(Kinematics):
    """Constant translation and rotation rates."""
    velocity: complex = 0j
    angular_velocity: float = 0.0

    def __call__(self, t: float) -> Motion:
        return Motion(c_dot=complex(self.velocity), alpha_dot=float(self.angular_velocity))


@dataclass(frozen=True)
class Oscillation(Kinematics):
    """
    Sinusoidal heave and pitch.

        c(t)     = heave * sin(omega t)
        alpha(t) = pitch * sin(omega t + phase)

    Attributes:
        heave: Complex heave amplitude
        pitch: Pitch amplitude [rad]
        frequency: Angular frequency omega [rad/s]
        phase: Pitch phase lead [rad]
    """
    heave: complex = 0j
    pitch: float = 0.0
    frequency: float = 1.0
    phase: float = 0.0

    def __call__(self, t: float) -> Motion:
        w = self.frequency
        s_h, c_h = np.sin(w * t), np.cos(w * t)
        s_p, c_p = np.sin(w * t + self.phase), np.cos(w * t + self.phase)
        return Motion(
            c_dot=complex(self.heave * w * c_h),
            c_ddot=complex(-self.heave * w**2 * s_h),
            alpha_dot=float(self.pitch * w * c_p),
            alpha_ddot=float(-self.pitch * w**2 * s_p),
        )
