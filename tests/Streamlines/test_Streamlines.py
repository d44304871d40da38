import pytest
import numpy as np
import os
import sys

# Go back to root folder
root_path = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
sys.path.insert(0, root_path)
sys.path.insert(0, os.path.join(root_path, "src"))

from PFM.core.Streamlines import iter_streamline, streamlines, stream_velocity
from PFM.core.DoubletSource import DoubletSourceSystem
from PFM.core.Freestream import Freestream, References, Uniform2D
from PFM.core.Panel import make_panels_2D
from PFM.core.VortexLattice import VortexLatticeSystem
from PFM.core.exceptions import StagnationWarning
import tests.utils as test_utils


def solved_lattice(speed, alpha=5.0):
    grid = test_utils.rectangular_wing_grid(span=4.0, chord=1.0, n_span=8, n_chord=2)
    return VortexLatticeSystem.from_grid(
        grid, Freestream(speed, alpha=alpha), References(4.0, 4.0, 1.0)
    ).solve()


@pytest.fixture(scope="module")
def lattice():
    return solved_lattice(10.0)


@pytest.fixture(scope="module")
def airfoil():
    panels = make_panels_2D(test_utils.naca4_coordinates(0.12, n_per_side=30))
    return DoubletSourceSystem(panels, Uniform2D(1.0, 4.0)).solve()


def test_streamline_points_and_step(lattice):
    seed = np.array([-1.0, 0.5, 0.3])
    points = np.array(list(iter_streamline(lattice, seed, length=2.0, num_steps=40)))
    assert points.shape == (41, 3)
    assert np.allclose(points[0], seed)
    steps = np.linalg.norm(np.diff(points, axis=0), axis=1)
    assert np.allclose(steps, 2.0 / 40)
    # Carried downstream by the freestream
    assert points[-1, 0] > points[0, 0] + 1.5


def test_streamline_follows_local_velocity(lattice):
    seed = np.array([-1.0, 0.5, 0.3])
    first, second = list(iter_streamline(lattice, seed, length=0.1, num_steps=1))
    velocity = stream_velocity(lattice, seed)
    assert np.allclose(second - first, 0.1 * velocity / np.linalg.norm(velocity))


def test_generator_is_single_use(lattice):
    generator = iter_streamline(lattice, np.array([-1.0, 0.0, 0.5]), num_steps=3)
    assert len(list(generator)) == 4
    assert list(generator) == []


def test_stagnation_stops_streamline():
    still = solved_lattice(0.0)
    seed = np.array([-1.0, 0.0, 0.5])
    with pytest.warns(StagnationWarning):
        points = list(iter_streamline(still, seed, num_steps=10))
    assert len(points) == 1
    assert np.allclose(points[0], seed)


def test_invalid_step_count(lattice):
    with pytest.raises(ValueError):
        list(iter_streamline(lattice, np.zeros(3), num_steps=0))


def test_several_seeds(lattice):
    seeds = np.array([[-1.0, -1.0, 0.2], [-1.0, 1.0, 0.2]])
    lines = streamlines(lattice, seeds, length=1.0, num_steps=10)
    assert len(lines) == 2
    assert all(line.shape == (11, 3) for line in lines)
    # Mirror-image seeds give mirror-image streamlines
    assert np.allclose(lines[0][:, 1], -lines[1][:, 1])


def test_airfoil_streamline(airfoil):
    seed = np.array([-1.0, 0.2])
    line = streamlines(airfoil, seed, length=3.0, num_steps=150)[0]
    assert line.shape == (151, 2)
    # Passes over the upper surface without entering the airfoil
    above_chord = line[(line[:, 0] > 0.0) & (line[:, 0] < 1.0)]
    assert len(above_chord) > 0
    assert np.all(above_chord[:, 1] > 0.06)
