from dataclasses import dataclass, fields, asdict
from pathlib import Path
import logging
from typing import Optional
import numpy as np
import yaml
from .exceptions import ConfigurationError

LINEAR_SOLVERS = ("auto", "direct", "least_squares")
FLOAT_SETTINGS = (
    "wake_length",
    "max_condition_number",
    "core_radius_fraction",
    "stagnation_tolerance",
    "geometry_tolerance",
)


@dataclass(frozen=True)
class AnalysisSettings:
    """Configuration record passed explicitly to every assembly and solve.

    Attributes:
        wake_length (float): Length of the wake panels and trailing legs (the
            wake-bound truncation constant). ``inf`` gives semi-infinite
            trailing legs in the vortex lattice; panel wakes must be finite.
        is_with_sources (bool): 2D only. Add sources ``sigma = -V.n`` and solve
            for the perturbation doublets instead of the total-potential doublets.
        linear_solver (str): 'auto', 'direct' or 'least_squares'. 'auto' uses
            LU for square systems and least squares for rectangular ones.
        max_condition_number (float): Condition estimate above which the
            influence matrix is rejected as singular.
        trailing_direction (tuple): Fixed direction of the lattice trailing
            legs. ``None`` aligns them with the freestream, which makes the
            influence matrix flow dependent.
        core_radius_fraction (float): Vortex core radius as a fraction of the
            bound leg (lattice) or edge (vortex ring) length.
        stagnation_tolerance (float): Speed below which streamline tracing stops.
        geometry_tolerance (float): Minimum admissible panel length or area.
    """

    wake_length: float = 1e2
    is_with_sources: bool = False
    linear_solver: str = "auto"
    max_condition_number: float = 1e12
    trailing_direction: Optional[tuple] = None
    core_radius_fraction: float = 0.0
    stagnation_tolerance: float = 1e-10
    geometry_tolerance: float = 1e-12

    def __post_init__(self):
        if self.linear_solver not in LINEAR_SOLVERS:
            raise ConfigurationError(
                f"linear_solver must be one of {LINEAR_SOLVERS}, got '{self.linear_solver}'"
            )
        if np.isnan(self.wake_length) or self.wake_length <= 0:
            raise ConfigurationError(
                f"wake_length must be positive, got {self.wake_length}"
            )
        if not self.max_condition_number > 1:
            raise ConfigurationError(
                f"max_condition_number must be larger than 1, got {self.max_condition_number}"
            )
        if self.core_radius_fraction < 0:
            raise ConfigurationError(
                f"core_radius_fraction must be >= 0, got {self.core_radius_fraction}"
            )
        if self.stagnation_tolerance < 0 or self.geometry_tolerance < 0:
            raise ConfigurationError("Tolerances must be non-negative")
        if self.trailing_direction is not None:
            direction = np.asarray(self.trailing_direction, dtype=float)
            if direction.shape != (3,) or np.linalg.norm(direction) == 0:
                raise ConfigurationError(
                    f"trailing_direction must be a non-zero 3-vector, got {self.trailing_direction}"
                )
            object.__setattr__(self, "trailing_direction", tuple(direction.tolist()))

    @property
    def is_geometry_only_aic(self) -> bool:
        """True if the lattice influence matrix does not depend on the freestream."""
        return self.trailing_direction is not None

    @classmethod
    def from_dict(cls, config: dict) -> "AnalysisSettings":
        """Build settings from a plain dictionary.

        Raises:
            ConfigurationError: If the dictionary holds unknown keys.
        """
        config = dict(config or {})
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(config) - known)
        if unknown:
            raise ConfigurationError(f"Unknown analysis settings: {unknown}")
        # YAML 1.1 reads exponent floats such as 1e2 as strings
        for name in FLOAT_SETTINGS:
            if isinstance(config.get(name), str):
                try:
                    config[name] = float(config[name])
                except ValueError:
                    raise ConfigurationError(
                        f"{name} must be a number, got '{config[name]}'"
                    )
        return cls(**config)

    @classmethod
    def from_yaml(cls, file_path) -> "AnalysisSettings":
        """Read settings from a YAML file.

        The settings are read from the top level of the file, or from an
        ``analysis`` section if the file has one.

        Args:
            file_path (str or Path): YAML configuration file.

        Returns:
            AnalysisSettings: Validated settings.
        """
        file_path = Path(file_path)
        with open(file_path, "r") as f:
            config = yaml.safe_load(f) or {}
        if not isinstance(config, dict):
            raise ConfigurationError(f"{file_path} does not hold a mapping")
        if "analysis" in config:
            config = config["analysis"]
        logging.debug(f"Loaded analysis settings from {file_path}: {config}")
        return cls.from_dict(config)

    def to_dict(self) -> dict:
        return asdict(self)
