"""
Case class - unified container for all case data.

Provides clean access to:
- Airfoil and pose
- Flow conditions
- Time marching settings
- Output paths
"""

from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

from ..config.schemas import SimulationConfig


@dataclass
class Case:
    """
    Unified container for a simulation case.

    Usage:
        from core.io import CaseLoader

        case = CaseLoader.load_case('cases/naca4412')
        sim = case.build_simulation()
        trajectory = sim.run(case.t_end)
    """

    config: SimulationConfig
    case_dir: Path

    @property
    def name(self) -> str:
        """Case name."""
        return self.config.name

    @property
    def description(self) -> str:
        """Case description."""
        return self.config.description

    @property
    def naca(self) -> str:
        """4-digit designation rebuilt from the section parameters."""
        af = self.config.airfoil
        return (f"{int(round(af.camber * 100))}{int(round(af.camber_location * 10))}"
                f"{int(round(af.thickness * 100)):02d}")

    @property
    def num_edges(self) -> int:
        return len(self.config.edges)

    # -------------------------------------------------------------------------
    # Flow Conditions
    # -------------------------------------------------------------------------

    @property
    def freestream(self) -> complex:
        """Freestream velocity as a complex number."""
        return self.config.get_freestream_velocity()

    @property
    def v_inf(self) -> float:
        """Freestream speed."""
        return self.config.freestream.speed

    @property
    def aoa(self) -> float:
        """Geometric incidence in degrees (flow angle minus body angle)."""
        return self.config.freestream.angle_deg - self.config.body.angle_deg

    # -------------------------------------------------------------------------
    # Time Marching
    # -------------------------------------------------------------------------

    @property
    def dt(self) -> float:
        return self.config.time.dt

    @property
    def t_end(self) -> float:
        return self.config.time.t_end

    @property
    def num_steps(self) -> int:
        return int(round(self.t_end / self.dt))

    def build_simulation(self):
        """Create a Simulation for this case."""
        # Import here to avoid circular dependency
        from solvers.vortex2d import Simulation

        return Simulation.from_config(self.config)

    # -------------------------------------------------------------------------
    # Output Paths
    # -------------------------------------------------------------------------

    @property
    def output_dir(self) -> Path:
        """Output directory, resolved against the case directory when relative."""
        out = Path(self.config.output.directory)
        return out if out.is_absolute() else self.case_dir / out

    @property
    def output_formats(self) -> Tuple[str, ...]:
        return tuple(self.config.output.formats)

    def __repr__(self) -> str:
        return (
            f"Case(name='{self.name}', "
            f"naca={self.naca}, "
            f"aoa={self.aoa:.2f}, "
            f"edges={self.num_edges})"
        )
