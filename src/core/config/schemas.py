"""
Pydantic schemas for configuration validation.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import List, Tuple, Optional, Literal, Union
import numpy as np


class AirfoilConfig(BaseModel):
    """NACA 4-digit section and conformal-map resolution."""
    model_config = ConfigDict(extra="forbid")

    designation: Optional[str] = Field(
        default=None,
        description="4-digit designation (e.g. '4412'); overrides camber/location/thickness"
    )
    camber: float = Field(default=0.04, ge=0.0, lt=0.2, description="Max camber / chord")
    camber_location: float = Field(default=0.4, ge=0.0, lt=1.0, description="Max camber position / chord")
    thickness: float = Field(default=0.12, gt=0.0, le=0.4, description="Max thickness / chord")
    chord: float = Field(default=1.0, gt=0.0, description="Chord length")
    num_points: int = Field(default=100, ge=8, description="Points per surface")
    num_coefficients: int = Field(default=128, ge=4, description="Power-series terms of the map")

    @model_validator(mode="before")
    @classmethod
    def apply_designation(cls, data):
        """Fill camber/location/thickness from the designation."""
        if isinstance(data, dict) and data.get("designation") is not None:
            d = str(data["designation"]).strip()
            if len(d) != 4 or not d.isdigit():
                raise ValueError(f"NACA designation must be 4 digits, got '{data['designation']}'")
            data = dict(data, designation=d,
                        camber=int(d[0]) / 100.0,
                        camber_location=int(d[1]) / 10.0,
                        thickness=int(d[2:]) / 100.0)
        return data


class BodyConfig(BaseModel):
    """Initial body pose."""
    model_config = ConfigDict(extra="forbid")

    centroid: Tuple[float, float] = Field(default=(0.0, 0.0), description="Initial centroid (x, y)")
    angle_deg: float = Field(
        default=0.0,
        description="Initial orientation in degrees (positive = CCW; -10 gives +10 deg incidence)"
    )


class MotionConfig(BaseModel):
    """Prescribed kinematics."""
    model_config = ConfigDict(extra="forbid")

    type: Literal["fixed", "constant", "oscillation"] = Field(default="fixed")
    velocity: Tuple[float, float] = Field(default=(0.0, 0.0), description="Constant velocity")
    angular_velocity_deg: float = Field(default=0.0, description="Constant rotation rate [deg/s]")
    heave_amplitude: Tuple[float, float] = Field(default=(0.0, 0.0), description="Heave amplitude (x, y)")
    pitch_amplitude_deg: float = Field(default=0.0, description="Pitch amplitude [deg]")
    frequency: float = Field(default=1.0, gt=0.0, description="Angular frequency [rad/s]")
    phase_deg: float = Field(default=0.0, description="Pitch phase lead [deg]")

    def build(self):
        """Create the kinematics law."""
        from ..geometry.kinematics import Fixed, ConstantMotion, Oscillation

        if self.type == "fixed":
            return Fixed()
        if self.type == "constant":
            return ConstantMotion(complex(*self.velocity), np.deg2rad(self.angular_velocity_deg))
        return Oscillation(
            heave=complex(*self.heave_amplitude),
            pitch=np.deg2rad(self.pitch_amplitude_deg),
            frequency=self.frequency,
            phase=np.deg2rad(self.phase_deg),
        )


class FreestreamConfig(BaseModel):
    """Uniform far-field flow."""
    model_config = ConfigDict(extra="forbid")

    speed: float = Field(default=1.0, ge=0.0, description="Freestream speed")
    angle_deg: float = Field(default=0.0, description="Flow direction [deg]")


class EdgeConfig(BaseModel):
    """Shedding edge and its suction criterion (0 = Kutta, .inf = no shedding)."""
    model_config = ConfigDict(extra="forbid")

    vertex: Union[Literal["trailing", "leading"], int] = Field(default="trailing")
    suction_criterion: float = Field(default=0.0, ge=0.0)


class VortexConfig(BaseModel):
    """Blob and shedding parameters."""
    model_config = ConfigDict(extra="forbid")

    blob_radius: float = Field(default=0.02, gt=0.0, description="Shared blob radius delta")
    kernel: Literal["algebraic", "gaussian"] = Field(default="algebraic")
    spacing_fraction: float = Field(
        default=1.0 / 3.0, gt=0.0, lt=1.0,
        description="New blob placed at this fraction of the edge-to-previous-blob distance"
    )
    seed_offset: Optional[float] = Field(
        default=None, gt=0.0,
        description="Distance of the t=0 blob from its edge (default 3*dt*U)"
    )


class TimeConfig(BaseModel):
    """Time marching."""
    model_config = ConfigDict(extra="forbid")

    dt: float = Field(default=0.005, gt=0.0)
    t_end: float = Field(default=2.0, gt=0.0)
    sample_every: int = Field(default=20, ge=1, description="Snapshot cadence in steps")

    @model_validator(mode="after")
    def check_span(self):
        if self.dt > self.t_end:
            raise ValueError(f"dt ({self.dt}) exceeds t_end ({self.t_end})")
        return self


class TracerConfig(BaseModel):
    """Square block of passive tracers."""
    model_config = ConfigDict(extra="forbid")

    enabled: bool = Field(default=True)
    center: Tuple[float, float] = Field(default=(-1.0, 0.0))
    side: float = Field(default=0.5, gt=0.0)
    density: int = Field(default=10, ge=1, description="Tracers per side")


class OutputConfig(BaseModel):
    """Output configuration."""
    model_config = ConfigDict(extra="forbid")

    directory: str = Field(default="./results", description="Output directory path")
    formats: List[Literal["csv", "npz"]] = Field(default=["csv"], description="Output formats")
    progress: bool = Field(default=True, description="Show a progress bar")


class SimulationConfig(BaseModel):
    """Top-level simulation configuration."""
    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    name: str = Field(..., description="Simulation name")
    description: str = Field(default="", description="Case description")

    airfoil: AirfoilConfig = Field(default_factory=AirfoilConfig)
    body: BodyConfig = Field(default_factory=BodyConfig)
    motion: MotionConfig = Field(default_factory=MotionConfig)
    freestream: FreestreamConfig = Field(default_factory=FreestreamConfig)
    edges: List[EdgeConfig] = Field(default_factory=lambda: [EdgeConfig()])
    vortex: VortexConfig = Field(default_factory=VortexConfig)
    time: TimeConfig = Field(default_factory=TimeConfig)
    tracers: Optional[TracerConfig] = Field(default=None)
    output: OutputConfig = Field(default_factory=OutputConfig)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Simulation name cannot be empty")
        return v.strip()

    @model_validator(mode="after")
    def check_edges(self):
        """Edges must be distinct and exist on the section."""
        vertices = [self.edge_vertex(e, self.airfoil.num_points) for e in self.edges]
        if len(vertices) != len(set(vertices)):
            raise ValueError(f"Duplicate shedding edges: {vertices}")
        return self

    @staticmethod
    def edge_vertex(edge: EdgeConfig, num_points: int) -> int:
        """Vertex index of an edge on the generated NACA polygon."""
        if edge.vertex == "trailing":
            return 0
        if edge.vertex == "leading":
            return num_points
        if not 0 <= edge.vertex < 2 * num_points:
            raise ValueError(f"Edge vertex {edge.vertex} outside 0..{2 * num_points - 1}")
        return edge.vertex

    def get_freestream_velocity(self) -> complex:
        """Freestream as a complex velocity."""
        return complex(self.freestream.speed * np.exp(1j * np.deg2rad(self.freestream.angle_deg)))
