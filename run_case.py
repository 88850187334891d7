"""
Run a vortex shedding case defined by a YAML config file.
"""

import sys
import argparse
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from core.io import CaseLoader, ResultsExporter


def main():
    parser = argparse.ArgumentParser(description="Run Conformal Vortex Shedding Case")
    parser.add_argument("case_dir", type=str, help="Path to case directory (containing case.yaml)")
    parser.add_argument("--t-end", type=float, default=None, help="Override the end time")
    args = parser.parse_args()

    case_path = Path(args.case_dir).resolve()
    if not case_path.exists():
        print(f"Error: Case directory not found: {case_path}")
        sys.exit(1)

    print(f"Loading case: {case_path.name}")
    try:
        case = CaseLoader.load_case(case_path)
    except (OSError, ValueError) as e:
        print(f"Error loading case: {e}")
        sys.exit(1)

    print(f"Case '{case.name}' loaded successfully.")
    print(f"Section: NACA {case.naca}, {len(case.config.edges)} shedding edge(s)")
    print(f"Flow: V_inf = {case.v_inf:.4f}, AoA = {case.aoa:.2f} deg")

    print("Building conformal map...")
    sim = case.build_simulation()
    body = sim.state.body
    print(f"Map: {body.map.num_terms} terms, chord = {body.chord():.4f}")

    t_end = args.t_end if args.t_end is not None else case.t_end
    print(f"Marching to t = {t_end} with dt = {case.dt}...")
    trajectory = sim.run(t_end, progress=case.config.output.progress)

    cd, cl = trajectory.mean_coefficients()
    print(f"Blobs: {len(sim.state.blobs)}, tracers: {len(sim.state.tracers)}")
    print(f"Mean C_D = {cd:.4f}, mean C_L = {cl:.4f}")

    written = ResultsExporter(trajectory).export(case.output_dir, case.output_formats)
    for path in written:
        print(f"Saved {path}")

    print("Done.")


if __name__ == "__main__":
    main()
