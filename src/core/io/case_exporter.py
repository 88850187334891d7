"""
Case and results exporters.

CaseExporter writes a programmatically built configuration to the standard
case folder layout (case.yaml), so it can be run later with run_case.py.
ResultsExporter writes the impulse/force history and archived snapshots of
a finished run.

Usage:
    from core.io.case_exporter import CaseExporter, ResultsExporter

    exporter = CaseExporter(config)
    exporter.export('cases/my_new_case')

    ResultsExporter(trajectory).export('cases/my_new_case/results', formats=['csv', 'npz'])
"""

from pathlib import Path
from typing import Iterable, List, Union
import numpy as np
import yaml

from ..config.schemas import SimulationConfig


def _plain(value):
    """Convert tuples (and nested containers) to YAML-safe lists."""
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


class CaseExporter:
    """Export a configuration to case folder structure."""

    def __init__(self, config: SimulationConfig):
        self.config = config

    def to_dict(self) -> dict:
        """Case dictionary with defaults filled in."""
        data = _plain(self.config.model_dump(exclude_none=True))
        # Designation is already folded into the section parameters
        data["airfoil"].pop("designation", None)
        return data

    def export(self, case_dir: Union[str, Path], overwrite: bool = False) -> Path:
        """
        Export case to folder structure.

        Creates:
            case_dir/
                case.yaml

        Args:
            case_dir: Target case directory
            overwrite: Allow overwriting existing case
        """
        case_dir = Path(case_dir)
        case_file = case_dir / "case.yaml"

        if case_file.exists() and not overwrite:
            raise FileExistsError(
                f"Case file already exists: {case_file}\n"
                f"Use overwrite=True to replace."
            )

        case_dir.mkdir(parents=True, exist_ok=True)
        with open(case_file, 'w') as f:
            yaml.safe_dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

        print(f"✓ Exported case to: {case_dir}")
        print(f"  - case.yaml")
        return case_file


class ResultsExporter:
    """Write the history of a finished run."""

    IMPULSE_FILE = "impulse.csv"
    SNAPSHOT_FILE = "snapshots.npz"

    def __init__(self, trajectory):
        self.trajectory = trajectory

    def impulse_table(self) -> np.ndarray:
        """
        Columns: t, Re P, Im P, C_D, C_L.

        Force coefficients come from backward differences, so the first row
        has NaN coefficients.
        """
        traj = self.trajectory
        t = traj.times
        P = traj.impulses
        drag = np.full(t.size, np.nan)
        lift = np.full(t.size, np.nan)
        _, cd, cl = traj.lift_drag()
        drag[1:] = cd
        lift[1:] = cl
        return np.column_stack([t, P.real, P.imag, drag, lift])

    def export(self, output_dir: Union[str, Path],
               formats: Iterable[str] = ("csv",)) -> List[Path]:
        """
        Write results in the requested formats.

        Args:
            output_dir: Target directory (created if missing)
            formats: Any of 'csv' (impulse history) and 'npz' (snapshots)

        Returns:
            Written file paths
        """
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        written = []

        for fmt in formats:
            if fmt == "csv":
                path = output_dir / self.IMPULSE_FILE
                np.savetxt(path, self.impulse_table(), delimiter=",",
                           header="t,impulse_x,impulse_y,C_D,C_L", comments="")
            elif fmt == "npz":
                path = output_dir / self.SNAPSHOT_FILE
                np.savez(path, **self.trajectory.to_arrays())
            else:
                raise ValueError(f"Unknown output format '{fmt}'")
            written.append(path)

        return written
