"""
YAML case file loader with validation.
"""

from pathlib import Path
import yaml

from ..config.schemas import SimulationConfig
from .case import Case


class CaseLoader:
    """Load and validate simulation cases from YAML files."""

    @staticmethod
    def load(filepath: str | Path) -> SimulationConfig:
        """
        Load and validate a case file.

        Args:
            filepath: Path to YAML case file

        Returns:
            Validated config

        Note:
            Consider using load_case() instead for cleaner access.
        """
        filepath = Path(filepath)

        if not filepath.exists():
            raise FileNotFoundError(f"Case file not found: {filepath}")

        with open(filepath, 'r') as f:
            raw_config = yaml.safe_load(f)

        if not isinstance(raw_config, dict):
            raise ValueError(f"Case file {filepath} does not contain a mapping")

        # Validate with Pydantic
        return SimulationConfig(**raw_config)

    @staticmethod
    def validate(filepath: str | Path) -> bool:
        """
        Validate case file without building anything.

        Returns:
            True if valid, raises ValidationError otherwise
        """
        CaseLoader.load(filepath)
        return True

    @staticmethod
    def load_case(case_dir: str | Path) -> Case:
        """
        Load a case directory and return a Case object.

            case = CaseLoader.load_case('cases/naca4412')
            sim = case.build_simulation()
            sim.run(case.t_end)

        Args:
            case_dir: Path to case directory (containing case.yaml)
        """
        case_dir = Path(case_dir)
        case_file = case_dir / "case.yaml"

        if not case_file.exists():
            raise FileNotFoundError(f"No case.yaml found in {case_dir}")

        return Case(config=CaseLoader.load(case_file), case_dir=case_dir)
