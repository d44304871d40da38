import pytest
import numpy as np
import os
import sys
import dataclasses

# Go back to root folder
root_path = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
sys.path.insert(0, root_path)
sys.path.insert(0, os.path.join(root_path, "src"))

from PFM.core.Settings import AnalysisSettings
from PFM.core.Freestream import Freestream, References, Uniform2D
from PFM.core.exceptions import ConfigurationError


def test_defaults():
    settings = AnalysisSettings()
    assert settings.wake_length == 1e2
    assert settings.is_with_sources is False
    assert settings.linear_solver == "auto"
    assert settings.max_condition_number == 1e12
    assert settings.trailing_direction is None
    assert not settings.is_geometry_only_aic


def test_settings_are_frozen():
    settings = AnalysisSettings()
    with pytest.raises(dataclasses.FrozenInstanceError):
        settings.wake_length = 10.0


def test_trailing_direction_is_stored_as_tuple():
    settings = AnalysisSettings(trailing_direction=np.array([1.0, 0.0, 0.1]))
    assert settings.trailing_direction == (1.0, 0.0, 0.1)
    assert settings.is_geometry_only_aic
    # Hashable, so settings can be shared between worker processes and compared
    assert hash(settings) == hash(AnalysisSettings(trailing_direction=[1.0, 0.0, 0.1]))


@pytest.mark.parametrize(
    "config",
    [
        {"linear_solver": "cholesky"},
        {"wake_length": 0.0},
        {"wake_length": float("nan")},
        {"max_condition_number": 0.5},
        {"core_radius_fraction": -0.1},
        {"stagnation_tolerance": -1.0},
        {"trailing_direction": (0.0, 0.0, 0.0)},
        {"trailing_direction": (1.0, 0.0)},
    ],
)
def test_invalid_settings(config):
    with pytest.raises(ConfigurationError):
        AnalysisSettings(**config)


def test_from_dict():
    settings = AnalysisSettings.from_dict(
        {"wake_length": "1e3", "is_with_sources": True, "linear_solver": "least_squares"}
    )
    assert settings.wake_length == 1e3
    assert settings.is_with_sources
    assert AnalysisSettings.from_dict(settings.to_dict()) == settings
    assert AnalysisSettings.from_dict(None) == AnalysisSettings()


def test_from_dict_rejects_unknown_keys():
    with pytest.raises(ConfigurationError, match="n_panels"):
        AnalysisSettings.from_dict({"n_panels": 40})
    with pytest.raises(ConfigurationError):
        AnalysisSettings.from_dict({"wake_length": "long"})


def test_from_yaml(tmp_path):
    file_path = tmp_path / "settings.yaml"
    file_path.write_text(
        "wake_length: 1e3\n"
        "linear_solver: direct\n"
        "trailing_direction: [1.0, 0.0, 0.0]\n"
    )
    settings = AnalysisSettings.from_yaml(file_path)
    assert settings.wake_length == 1e3
    assert settings.linear_solver == "direct"
    assert settings.trailing_direction == (1.0, 0.0, 0.0)


def test_from_yaml_analysis_section(tmp_path):
    file_path = tmp_path / "case.yaml"
    file_path.write_text(
        "geometry:\n"
        "  span: 10.0\n"
        "analysis:\n"
        "  is_with_sources: true\n"
        "  max_condition_number: 1.0e+10\n"
    )
    settings = AnalysisSettings.from_yaml(str(file_path))
    assert settings.is_with_sources
    assert settings.max_condition_number == 1e10


def test_from_yaml_empty_and_invalid(tmp_path):
    empty = tmp_path / "empty.yaml"
    empty.write_text("")
    assert AnalysisSettings.from_yaml(empty) == AnalysisSettings()
    listing = tmp_path / "list.yaml"
    listing.write_text("- 1\n- 2\n")
    with pytest.raises(ConfigurationError):
        AnalysisSettings.from_yaml(listing)


def test_freestream_vectors():
    freestream = Freestream(10.0, alpha=90.0)
    assert np.allclose(freestream.direction, [0.0, 0.0, 1.0])
    freestream = Freestream(2.0, alpha=0.0, beta=90.0)
    assert np.allclose(freestream.velocity, [0.0, -2.0, 0.0])
    assert freestream.dynamic_pressure == pytest.approx(0.5 * 1.225 * 4.0)
    rotating = Freestream(10.0, omega=[0.0, 0.0, 1.0])
    assert np.allclose(rotating.local_velocity([0.0, 1.0, 0.0]), [11.0, 0.0, 0.0])
    with pytest.raises(ValueError):
        rotating.omega[0] = 1.0


def test_uniform_2D():
    uniform = Uniform2D(3.0, 90.0)
    assert np.allclose(uniform.velocity, [0.0, 3.0])
    assert np.allclose(uniform.lift_direction, [-1.0, 0.0])
    with pytest.raises(ConfigurationError):
        Uniform2D(np.inf)
    with pytest.raises(ConfigurationError):
        Uniform2D(1.0, density=0.0)


def test_references():
    references = References(2.0, 4.0, 0.5)
    assert np.allclose(references.point, 0.0)
    with pytest.raises(ConfigurationError):
        References(2.0, -4.0, 0.5)
    with pytest.raises(ConfigurationError):
        References(2.0, 4.0, 0.5, point=[0.0, 0.0])
