"""
Test configuration schemas, case loading and case export.
"""

import pytest
import numpy as np
import yaml
from pathlib import Path
from pydantic import ValidationError

# Add src to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import SimulationConfig, EdgeConfig, AirfoilConfig, MotionConfig
from core.geometry import Fixed, ConstantMotion, Oscillation
from core.io import CaseLoader, CaseExporter, Case


CASE_YAML = """
name: naca4412_test
description: Impulsively started NACA 4412
airfoil:
  designation: "4412"
  num_points: 60
  num_coefficients: 64
body:
  angle_deg: -10.0
freestream:
  speed: 1.0
edges:
  - vertex: trailing
    suction_criterion: 0.0
  - vertex: leading
    suction_criterion: .inf
vortex:
  blob_radius: 0.02
time:
  dt: 0.01
  t_end: 0.05
  sample_every: 2
output:
  directory: out
  formats: [csv, npz]
  progress: false
"""


@pytest.fixture
def case_dir(tmp_path):
    (tmp_path / "case.yaml").write_text(CASE_YAML)
    return tmp_path


class TestSchemas:
    """Test pydantic validation."""

    def test_defaults(self):
        config = SimulationConfig(name="default")
        assert config.airfoil.thickness == 0.12
        assert len(config.edges) == 1
        assert config.edges[0].vertex == "trailing"
        assert config.tracers is None

    def test_designation(self):
        af = AirfoilConfig(designation="2315")
        assert af.camber == pytest.approx(0.02)
        assert af.camber_location == pytest.approx(0.3)
        assert af.thickness == pytest.approx(0.15)

    def test_bad_designation(self):
        with pytest.raises(ValidationError):
            AirfoilConfig(designation="44a2")

    def test_unknown_key_rejected(self):
        with pytest.raises(ValidationError):
            SimulationConfig(name="x", solver={"type": "panel"})

    def test_empty_name(self):
        with pytest.raises(ValidationError):
            SimulationConfig(name="   ")

    def test_negative_criterion(self):
        with pytest.raises(ValidationError):
            EdgeConfig(suction_criterion=-1.0)

    def test_duplicate_edges(self):
        with pytest.raises(ValidationError):
            SimulationConfig(name="x", edges=[{"vertex": "trailing"}, {"vertex": 0}])

    def test_edge_vertex(self):
        assert SimulationConfig.edge_vertex(EdgeConfig(vertex="trailing"), 100) == 0
        assert SimulationConfig.edge_vertex(EdgeConfig(vertex="leading"), 100) == 100
        assert SimulationConfig.edge_vertex(EdgeConfig(vertex=37), 100) == 37
        with pytest.raises(ValueError):
            SimulationConfig.edge_vertex(EdgeConfig(vertex=200), 100)

    def test_time_span(self):
        with pytest.raises(ValidationError):
            SimulationConfig(name="x", time={"dt": 1.0, "t_end": 0.5})

    def test_motion_build(self):
        assert isinstance(MotionConfig().build(), Fixed)
        kin = MotionConfig(type="constant", velocity=(-1.0, 0.0), angular_velocity_deg=90.0).build()
        assert isinstance(kin, ConstantMotion)
        assert kin(0.0).alpha_dot == pytest.approx(np.pi / 2)
        kin = MotionConfig(type="oscillation", heave_amplitude=(0.0, 0.1), frequency=2.0).build()
        assert isinstance(kin, Oscillation)
        assert kin(0.0).c_dot == pytest.approx(0.2j)

    def test_freestream_velocity(self):
        config = SimulationConfig(name="x", freestream={"speed": 2.0, "angle_deg": 90.0})
        assert abs(config.get_freestream_velocity() - 2.0j) < 1e-12


class TestCaseLoader:
    """Test YAML loading."""

    def test_load_case(self, case_dir):
        case = CaseLoader.load_case(case_dir)
        assert isinstance(case, Case)
        assert case.name == "naca4412_test"
        assert case.naca == "4412"
        assert case.aoa == pytest.approx(10.0)
        assert case.num_steps == 5
        assert case.output_dir == case_dir / "out"
        assert case.output_formats == ("csv", "npz")
        assert np.isinf(case.config.edges[1].suction_criterion)

    def test_validate(self, case_dir):
        assert CaseLoader.validate(case_dir / "case.yaml")

    def test_missing_case(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            CaseLoader.load_case(tmp_path)

    def test_build_simulation(self, case_dir):
        case = CaseLoader.load_case(case_dir)
        sim = case.build_simulation()
        assert sim.state.body.edges == [0, 60]
        assert sim.shedding.active_edges == [0]
        trajectory = sim.run(case.t_end)
        assert trajectory.num_steps == 5
        assert len(sim.state.blobs) == 6


class TestCaseExporter:
    """Test writing configurations back to case folders."""

    def test_round_trip(self, case_dir, tmp_path):
        config = CaseLoader.load(case_dir / "case.yaml")
        target = tmp_path / "exported"
        CaseExporter(config).export(target)
        with open(target / "case.yaml") as f:
            raw = yaml.safe_load(f)
        assert "designation" not in raw["airfoil"]
        assert CaseLoader.load(target / "case.yaml").model_dump(exclude={"airfoil"}) == \
            config.model_dump(exclude={"airfoil"})

    def test_no_overwrite(self, case_dir):
        config = CaseLoader.load(case_dir / "case.yaml")
        with pytest.raises(FileExistsError):
            CaseExporter(config).export(case_dir)
