# Step 1: Import necessary libraries
import logging
from pathlib import Path
import numpy as np
from PFM.core.Freestream import Freestream, References
from PFM.core.Settings import AnalysisSettings
from PFM.core.VortexLattice import VortexLatticeSystem
from PFM.core.Streamlines import streamlines
from PFM.Cases import alpha_sweep


def rectangular_grid(span, chord, n_span, n_chord):
    """Flat camber-surface grid of shape (n_chord + 1, n_span + 1, 3), leading edge at x = 0."""
    eta = 0.5 * (1 - np.cos(np.linspace(0, np.pi, n_span + 1)))
    grid = np.zeros((n_chord + 1, n_span + 1, 3))
    grid[:, :, 0] = np.linspace(0, chord, n_chord + 1)[:, None]
    grid[:, :, 1] = span * (eta[None, :] - 0.5)
    return grid


def main():
    """
    Rectangular Wing Example: Vortex-Lattice Analysis

    This script builds a flat rectangular wing, solves it with the vortex-lattice
    method and post-processes forces, span loads and streamlines.

    Workflow:
    ---------
    1. **Grid Construction**:
        - A camber-surface grid of shape (nc + 1, ns + 1, 3), chordwise from
          leading to trailing edge and spanwise along +y.

    2. **Settings**:
        - Read from `settings.yaml` next to this script (an `analysis:` section).

    3. **Single Case**:
        - Freestream with angle of attack, sideslip and body rates.
        - Assemble, solve and read the nearfield coefficients.

    4. **Alpha Sweep**:
        - Every angle of attack is an independent case, optionally run on a
          worker pool with a per-case timeout.

    5. **Streamlines**:
        - Trace streamlines through the solved flow field.

    Returns:
        None
    """
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

    # 1. Grid Construction
    span = 10.0
    chord = 1.0
    grid = rectangular_grid(span, chord, n_span=30, n_chord=4)
    references = References(area=span * chord, span=span, chord=chord, point=[0.25, 0, 0])

    # 2. Settings
    """
    Available settings (see AnalysisSettings):
        wake_length: Length of the trailing legs, .inf for semi-infinite legs
        linear_solver: "auto", "direct" or "least_squares"
        max_condition_number: Influence matrices above this estimate are rejected
        trailing_direction: Fixed trailing-leg direction; the influence matrix
            is then shared by all cases of a sweep
        core_radius_fraction: Vortex core radius as a fraction of the bound leg
    """
    settings = AnalysisSettings.from_yaml(Path(__file__).parent / "settings.yaml")

    # 3. Single Case
    freestream = Freestream(speed=20.0, alpha=5.0, beta=0.0, omega=[0.0, 0.0, 0.0])
    system = VortexLatticeSystem.from_grid(grid, freestream, references, settings)
    print(f"State before solve: {system.state}")
    system.solve()
    print(f"State after solve: {system.state}")

    coefficients = system.nearfield_coefficients()
    aspect_ratio = span**2 / references.area
    span_efficiency = coefficients["CL"] ** 2 / (np.pi * aspect_ratio * coefficients["CDi"])
    print(
        f"\n CL: {coefficients['CL']:.4f}, CDi: {coefficients['CDi']:.5f}, "
        f"Cm: {coefficients['Cm']:.4f}, e: {span_efficiency:.3f}"
    )
    print(system.span_loads().head())

    # 4. Alpha Sweep
    polar = alpha_sweep(
        grid,
        alphas=np.arange(-4, 9, 4),
        speed=20.0,
        references=references,
        settings=settings,
        n_workers=2,
        timeout=120,
    )
    print(polar[["alpha", "CL", "CDi", "Cm"]].to_string(index=False))

    # 5. Streamlines
    seeds = np.array([[-1.0, y, 0.2] for y in np.linspace(-4, 4, 5)])
    for line in streamlines(system, seeds, length=4.0, num_steps=80):
        print(f"Streamline from {line[0]} ends at {np.round(line[-1], 3)}")


if __name__ == "__main__":
    main()
