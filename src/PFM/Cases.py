"""Single-case helpers and angle-of-attack sweeps.

Sweeps run every case on its own system, so cases can be spread over a
``multiprocessing`` worker pool with a per-case wall-clock timeout.
"""

import logging
import time
from multiprocessing import Pool, TimeoutError
import numpy as np
import pandas as pd
from PFM.core.DoubletSource import DoubletSourceSystem
from PFM.core.Freestream import Uniform2D, Freestream, References
from PFM.core.Panel import make_panels_2D
from PFM.core.Settings import AnalysisSettings
from PFM.core.VortexLattice import (
    VortexLatticeSystem,
    influence_matrix,
    lattice_horseshoes,
)


def solve_airfoil(
    coordinates: np.ndarray, uniform: Uniform2D, settings: AnalysisSettings = None
) -> DoubletSourceSystem:
    """Panel an airfoil, assemble the 2D doublet-source system and solve it."""
    settings = settings if settings is not None else AnalysisSettings()
    panels = make_panels_2D(coordinates, settings.geometry_tolerance)
    return DoubletSourceSystem(panels, uniform, settings).solve()


def solve_case(
    grid,
    freestream: Freestream,
    references: References,
    settings: AnalysisSettings = None,
    aic_matrix: np.ndarray = None,
) -> VortexLatticeSystem:
    """Assemble and solve a vortex-lattice case on a camber-surface grid,
    or on a mapping of component name to grid."""
    return VortexLatticeSystem.from_grid(
        grid, freestream, references, settings, aic_matrix
    ).solve()


def _airfoil_case(case: tuple) -> dict:
    coordinates, alpha, speed, settings = case
    system = solve_airfoil(coordinates, Uniform2D(speed, alpha), settings)
    return {
        "alpha": alpha,
        "Cl": system.lift_coefficient("pressure"),
        "Cl_wake": system.lift_coefficient("wake"),
        "Cd": system.drag_coefficient(),
        "Cm": system.moment_coefficient(),
    }


def _lattice_case(case: tuple) -> dict:
    grid, freestream, references, settings, aic_matrix = case
    begin_time = time.time()
    system = solve_case(grid, freestream, references, settings, aic_matrix)
    return {
        "alpha": freestream.alpha,
        "beta": freestream.beta,
        **system.nearfield_coefficients(),
        "runtime": time.time() - begin_time,
    }


def _run_cases(worker, cases: list, n_workers: int, timeout: float) -> list:
    if n_workers <= 1 and timeout is None:
        return [worker(case) for case in cases]

    with Pool(processes=max(1, n_workers)) as pool:
        pending = [pool.apply_async(worker, (case,)) for case in cases]
        try:
            return [result.get(timeout=timeout) for result in pending]
        except TimeoutError:
            logging.warning(
                f"Sweep case exceeded the {timeout} s timeout, terminating workers"
            )
            raise


def airfoil_alpha_sweep(
    coordinates: np.ndarray,
    alphas,
    speed: float = 1.0,
    settings: AnalysisSettings = None,
    n_workers: int = 1,
    timeout: float = None,
) -> pd.DataFrame:
    """Solve a 2D airfoil over a range of angles of attack.

    Args:
        coordinates (np.ndarray): Airfoil points in Selig order.
        alphas: Angles of attack in degrees.
        speed (float): Freestream speed.
        settings (AnalysisSettings): Analysis settings.
        n_workers (int): Worker processes; 1 runs in this process.
        timeout (float): Wall-clock limit per case in seconds.

    Returns:
        pd.DataFrame: alpha, Cl (pressure), Cl_wake, Cd and Cm per case.

    Raises:
        multiprocessing.TimeoutError: If a case exceeds ``timeout``.
    """
    settings = settings if settings is not None else AnalysisSettings()
    coordinates = np.asarray(coordinates, dtype=float)
    cases = [(coordinates, float(alpha), speed, settings) for alpha in alphas]
    return pd.DataFrame(_run_cases(_airfoil_case, cases, n_workers, timeout))


def alpha_sweep(
    grid,
    alphas,
    speed: float,
    references: References,
    settings: AnalysisSettings = None,
    beta: float = 0.0,
    omega: np.ndarray = None,
    density: float = 1.225,
    n_workers: int = 1,
    timeout: float = None,
) -> pd.DataFrame:
    """Solve a vortex-lattice case over a range of angles of attack.

    With a fixed ``trailing_direction`` in the settings the influence matrix
    depends on the geometry only; it is then assembled once and shared by
    all cases.

    Args:
        grid: Camber-surface grid of shape (nc + 1, ns + 1, 3), or a mapping
            of component name to such a grid.
        alphas: Angles of attack in degrees.
        speed (float): Freestream speed.
        references (References): Reference quantities.
        settings (AnalysisSettings): Analysis settings.
        beta (float): Sideslip angle in degrees.
        omega (np.ndarray): Body rates (p, q, r).
        density (float): Reference density.
        n_workers (int): Worker processes; 1 runs in this process.
        timeout (float): Wall-clock limit per case in seconds.

    Returns:
        pd.DataFrame: alpha, beta, CDi, CY, CL, Cl, Cm, Cn and runtime per case.

    Raises:
        multiprocessing.TimeoutError: If a case exceeds ``timeout``.
    """
    settings = settings if settings is not None else AnalysisSettings()
    omega = np.zeros(3) if omega is None else omega

    aic_matrix = None
    if settings.is_geometry_only_aic:
        horseshoes, _ = lattice_horseshoes(
            grid, np.asarray(settings.trailing_direction, dtype=float), settings
        )
        aic_matrix = influence_matrix(
            [horseshoe for component in horseshoes.values() for horseshoe in component]
        )
        logging.info(
            f"Fixed trailing direction, sharing one {aic_matrix.shape} influence matrix"
        )

    cases = [
        (
            grid,
            Freestream(speed, float(alpha), beta, omega, density),
            references,
            settings,
            aic_matrix,
        )
        for alpha in alphas
    ]
    return pd.DataFrame(_run_cases(_lattice_case, cases, n_workers, timeout))
