import pytest
import numpy as np
import pandas as pd
import logging
import os
import sys

# Go back to root folder
root_path = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
sys.path.insert(0, root_path)
sys.path.insert(0, os.path.join(root_path, "src"))

from PFM.core.DoubletSource import (
    DoubletSourceSystem,
    doublet_matrix,
    kutta_condition_2D,
)
from PFM.core.Freestream import Uniform2D
from PFM.core.Panel import make_panels_2D
from PFM.core.Settings import AnalysisSettings
from PFM.core.Solver import Solver
from PFM.core.exceptions import ConfigurationError, GeometryError, SystemStateError
import tests.utils as test_utils


@pytest.fixture(scope="module")
def naca0012_panels():
    return make_panels_2D(test_utils.naca4_coordinates(0.12, n_per_side=60))


@pytest.fixture(scope="module")
def solved_naca0012(naca0012_panels):
    """NACA 0012 at 5 degrees, doublet-only formulation."""
    return DoubletSourceSystem(naca0012_panels, Uniform2D(1.0, 5.0)).solve()


@pytest.fixture
def assembled_naca0012():
    panels = make_panels_2D(test_utils.naca4_coordinates(0.12, n_per_side=20))
    return DoubletSourceSystem(panels, Uniform2D(10.0, 3.0))


def test_doublet_matrix_diagonal(assembled_naca0012):
    n = len(assembled_naca0012.panels)
    A = assembled_naca0012.aic_matrix
    assert A.shape == (n + 1, n + 1)
    assert np.allclose(np.diag(A)[:n], 0.5)
    assert np.allclose(
        doublet_matrix(assembled_naca0012.panels[:3], assembled_naca0012.panels[:3]),
        A[:3, :3],
    )


def test_kutta_row(assembled_naca0012):
    n = len(assembled_naca0012.panels)
    row = assembled_naca0012.aic_matrix[n]
    assert np.array_equal(row, kutta_condition_2D(n))
    assert row[0] == 1.0 and row[n - 1] == -1.0 and row[n] == -1.0
    assert np.count_nonzero(row) == 3


def test_state_transitions(assembled_naca0012):
    assert assembled_naca0012.state == "assembled"
    assert not assembled_naca0012.is_solved
    with pytest.raises(SystemStateError):
        assembled_naca0012.strengths
    with pytest.raises(SystemStateError):
        assembled_naca0012.lift_coefficient()

    assembled_naca0012.solve()
    assert assembled_naca0012.state == "solved"
    assert assembled_naca0012.condition_number < 1e12
    with pytest.raises(SystemStateError):
        assembled_naca0012.solve()
    with pytest.raises(SystemStateError):
        Solver().solve(assembled_naca0012)


def test_solution_is_read_only(assembled_naca0012):
    assembled_naca0012.solve()
    with pytest.raises(ValueError):
        assembled_naca0012.aic_matrix[0, 0] = 1.0
    with pytest.raises(ValueError):
        assembled_naca0012.strengths[0] = 1.0


def test_symmetric_airfoil_at_zero_incidence(naca0012_panels):
    system = DoubletSourceSystem(naca0012_panels, Uniform2D(1.0, 0.0)).solve()
    assert abs(system.lift_coefficient("pressure")) < 1e-6
    assert abs(system.lift_coefficient("wake")) < 1e-6
    assert abs(system.circulation) < 1e-6


def test_naca0012_lift(solved_naca0012):
    expected = test_utils.thin_airfoil_lift(5.0, 0.12)
    cl_wake = solved_naca0012.lift_coefficient("wake")
    cl_pressure = solved_naca0012.lift_coefficient("pressure")
    logging.info(f"NACA0012 alpha=5: Cl wake {cl_wake:.4f}, pressure {cl_pressure:.4f}")
    assert cl_wake == pytest.approx(expected, rel=0.05)
    assert cl_pressure == pytest.approx(cl_wake, rel=0.05)
    assert solved_naca0012.circulation > 0
    # The circulation is minus the wake doublet
    assert solved_naca0012.circulation == pytest.approx(
        -solved_naca0012.wake_strength, abs=1e-6
    )


def test_thin_airfoil_lift():
    panels = make_panels_2D(test_utils.naca4_coordinates(0.06, n_per_side=60))
    system = DoubletSourceSystem(panels, Uniform2D(1.0, 5.0)).solve()
    assert system.lift_coefficient("wake") == pytest.approx(
        test_utils.thin_airfoil_lift(5.0, 0.06), rel=0.05
    )


@pytest.fixture(scope="module")
def open_trailing_edge_panels():
    return make_panels_2D(
        test_utils.naca4_coordinates(0.12, n_per_side=40, sharp_trailing_edge=False)
    )


@pytest.mark.parametrize("is_with_sources", [False, True])
def test_open_trailing_edge_lift(open_trailing_edge_panels, is_with_sources):
    settings = AnalysisSettings(is_with_sources=is_with_sources)
    sharp = DoubletSourceSystem(
        make_panels_2D(test_utils.naca4_coordinates(0.12, n_per_side=40)),
        Uniform2D(1.0, 5.0),
        settings,
    ).solve()
    blunt = DoubletSourceSystem(
        open_trailing_edge_panels, Uniform2D(1.0, 5.0), settings
    ).solve()
    logging.info(
        f"Open trailing edge: Cl wake {blunt.lift_coefficient('wake'):.4f}, "
        f"pressure {blunt.lift_coefficient('pressure'):.4f}"
    )
    for method in ("wake", "pressure"):
        assert blunt.lift_coefficient(method) == pytest.approx(
            sharp.lift_coefficient(method), rel=0.03
        )
    # No point vortex is left at the trailing-edge corners
    assert np.max(np.abs(blunt.surface_velocities())) < 3.0


@pytest.mark.parametrize("n_per_side", [20, 40, 80])
def test_open_trailing_edge_converges(n_per_side):
    panels = make_panels_2D(
        test_utils.naca4_coordinates(
            0.12, n_per_side=n_per_side, sharp_trailing_edge=False
        )
    )
    system = DoubletSourceSystem(panels, Uniform2D(1.0, 5.0)).solve()
    assert system.lift_coefficient("pressure") == pytest.approx(
        test_utils.thin_airfoil_lift(5.0, 0.12), rel=0.06
    )


def test_open_trailing_edge_field_velocity(open_trailing_edge_panels):
    system = DoubletSourceSystem(open_trailing_edge_panels, Uniform2D(1.0, 5.0)).solve()
    behind = system.velocity(np.array([1.0 + 1e-3, -5e-4]))
    assert np.all(np.isfinite(behind))
    assert np.linalg.norm(behind) < 3.0


def test_drag_and_moment(solved_naca0012):
    assert abs(solved_naca0012.drag_coefficient()) < 0.01
    assert abs(solved_naca0012.moment_coefficient()) < 0.02


def test_lift_is_independent_of_speed(naca0012_panels, solved_naca0012):
    fast = DoubletSourceSystem(naca0012_panels, Uniform2D(25.0, 5.0)).solve()
    assert fast.lift_coefficient("wake") == pytest.approx(
        solved_naca0012.lift_coefficient("wake"), rel=1e-8
    )


def test_source_formulation_matches_doublet_only(naca0012_panels, solved_naca0012):
    settings = AnalysisSettings(is_with_sources=True)
    system = DoubletSourceSystem(naca0012_panels, Uniform2D(1.0, 5.0), settings).solve()
    normals = np.array([panel.normal for panel in naca0012_panels])
    assert np.allclose(system.source_strengths, -normals @ system.uniform.velocity)
    assert system.lift_coefficient("wake") == pytest.approx(
        solved_naca0012.lift_coefficient("wake"), rel=0.02
    )
    assert system.lift_coefficient("pressure") == pytest.approx(
        solved_naca0012.lift_coefficient("pressure"), rel=0.02
    )
    assert np.allclose(solved_naca0012.source_strengths, 0.0)


def test_cambered_airfoil():
    panels = make_panels_2D(
        test_utils.naca4_coordinates(0.12, camber=0.02, camber_position=0.4, n_per_side=60)
    )
    system = DoubletSourceSystem(panels, Uniform2D(1.0, 0.0)).solve()
    assert 0.2 < system.lift_coefficient("wake") < 0.35
    # Positive camber gives a nose-down moment about the quarter chord
    assert system.moment_coefficient() < 0


def test_pressure_distribution(solved_naca0012):
    distribution = solved_naca0012.surface_distribution()
    assert isinstance(distribution, pd.DataFrame)
    assert list(distribution.columns) == ["x", "z", "ds", "velocity", "Cp"]
    assert len(distribution) == len(solved_naca0012.panels) - 1
    # Stagnation close to the leading edge, suction peak on the upper side
    assert distribution["Cp"].max() == pytest.approx(1.0, abs=0.1)
    assert distribution["Cp"].max() <= 1.0 + 1e-9
    upper = distribution[distribution["z"] > 0]
    lower = distribution[distribution["z"] < 0]
    assert upper["Cp"].min() < lower["Cp"].min()


def test_velocity_field(naca0012_panels, solved_naca0012):
    inside = solved_naca0012.velocity(np.array([0.3, 0.0]))
    assert inside.shape == (2,)
    assert np.linalg.norm(inside) < 0.05

    system = DoubletSourceSystem(naca0012_panels, Uniform2D(2.0, 0.0)).solve()
    far = system.velocity(np.array([[0.5, 20.0], [-20.0, 0.0]]))
    assert far.shape == (2, 2)
    assert np.allclose(far, [[2.0, 0.0], [2.0, 0.0]], atol=1e-3)


def test_zero_freestream(naca0012_panels):
    system = DoubletSourceSystem(naca0012_panels, Uniform2D(0.0, 5.0)).solve()
    assert np.allclose(system.strengths, 0.0)
    assert system.lift_coefficient("wake") == 0.0
    assert system.lift_coefficient("pressure") == 0.0
    assert np.all(system.pressure_coefficients() == 0.0)


def test_invalid_inputs(naca0012_panels):
    with pytest.raises(ConfigurationError):
        DoubletSourceSystem(
            naca0012_panels, Uniform2D(1.0, 5.0), AnalysisSettings(wake_length=np.inf)
        )
    with pytest.raises(GeometryError):
        DoubletSourceSystem(naca0012_panels[:1], Uniform2D(1.0, 5.0))
    with pytest.raises(ConfigurationError):
        Uniform2D(-1.0, 5.0)
    system = DoubletSourceSystem(naca0012_panels, Uniform2D(1.0, 5.0)).solve()
    with pytest.raises(ValueError):
        system.lift_coefficient("circulation")
