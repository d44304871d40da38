# Step 1: Import necessary libraries
import logging
import numpy as np
from PFM.core.Freestream import Uniform2D
from PFM.core.Settings import AnalysisSettings
from PFM.core.Streamlines import streamlines
from PFM.Cases import solve_airfoil, airfoil_alpha_sweep


def naca4(code="0012", n_per_side=60):
    """NACA 4-digit coordinates of unit chord in Selig order, cosine spaced."""
    camber, position, thickness = int(code[0]) / 100, int(code[1]) / 10, int(code[2:]) / 100
    x = 0.5 * (1 - np.cos(np.linspace(0, np.pi, n_per_side + 1)))
    y_t = 5 * thickness * (
        0.2969 * np.sqrt(x) - 0.1260 * x - 0.3516 * x**2 + 0.2843 * x**3 - 0.1036 * x**4
    )
    if camber > 0:
        y_c = np.where(
            x < position,
            camber / position**2 * (2 * position * x - x**2),
            camber / (1 - position) ** 2 * (1 - 2 * position + 2 * position * x - x**2),
        )
    else:
        y_c = np.zeros_like(x)
    upper = np.column_stack([x, y_c + y_t])
    lower = np.column_stack([x, y_c - y_t])
    return np.vstack([upper[::-1], lower[1:]])


def main():
    """
    Airfoil Example: 2D Doublet-Source Panel Method

    Workflow:
    ---------
    1. **Geometry**: NACA 2412 coordinates in Selig order (upper trailing edge,
       leading edge, lower trailing edge).
    2. **Single Case**: Solve at one angle of attack with and without sources.
    3. **Pressure Distribution**: Surface velocity and Cp as a DataFrame.
    4. **Alpha Sweep**: Lift, drag and moment over a range of angles.
    5. **Streamlines**: Trace streamlines past the airfoil.

    Returns:
        None
    """
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

    # 1. Geometry
    coordinates = naca4("2412", n_per_side=60)

    # 2. Single Case
    uniform = Uniform2D(speed=1.0, angle=4.0)
    doublet_only = solve_airfoil(coordinates, uniform)
    with_sources = solve_airfoil(
        coordinates, uniform, AnalysisSettings(is_with_sources=True, wake_length=1e3)
    )
    for name, system in (("doublets", doublet_only), ("doublets + sources", with_sources)):
        print(
            f"{name:>20}: Cl (pressure) {system.lift_coefficient('pressure'):.4f}, "
            f"Cl (wake) {system.lift_coefficient('wake'):.4f}, "
            f"Cd {system.drag_coefficient():.5f}, Cm {system.moment_coefficient():.4f}"
        )

    # 3. Pressure Distribution
    distribution = doublet_only.surface_distribution()
    print(distribution.loc[distribution["Cp"].idxmin()])

    # 4. Alpha Sweep
    polar = airfoil_alpha_sweep(coordinates, np.arange(-4, 11, 2), n_workers=2, timeout=60)
    print(polar.to_string(index=False))

    # 5. Streamlines
    seeds = np.column_stack([np.full(5, -1.0), np.linspace(-0.4, 0.4, 5)])
    for line in streamlines(doublet_only, seeds, length=3.0, num_steps=100):
        print(f"Streamline from {line[0]} ends at {np.round(line[-1], 3)}")


if __name__ == "__main__":
    main()
