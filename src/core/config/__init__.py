"""Configuration schemas for validation."""

from .schemas import (
    AirfoilConfig,
    BodyConfig,
    MotionConfig,
    FreestreamConfig,
    EdgeConfig,
    VortexConfig,
    TimeConfig,
    TracerConfig,
    OutputConfig,
    SimulationConfig,
)

__all__ = [
    "AirfoilConfig",
    "BodyConfig",
    "MotionConfig",
    "FreestreamConfig",
    "EdgeConfig",
    "VortexConfig",
    "TimeConfig",
    "TracerConfig",
    "OutputConfig",
    "SimulationConfig",
]
