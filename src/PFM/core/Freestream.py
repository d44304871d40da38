from dataclasses import dataclass, field
import numpy as np
from .exceptions import ConfigurationError


@dataclass(frozen=True)
class Uniform2D:
    """Uniform 2D flow past an airfoil.

    Attributes:
        speed (float): Velocity magnitude.
        angle (float): Angle of attack in degrees.
        density (float): Reference density.
    """

    speed: float
    angle: float = 0.0
    density: float = 1.225

    def __post_init__(self):
        if not np.isfinite(self.speed) or self.speed < 0:
            raise ConfigurationError(f"Freestream speed must be finite and >= 0, got {self.speed}")
        if not self.density > 0:
            raise ConfigurationError(f"Density must be positive, got {self.density}")

    @property
    def angle_rad(self) -> float:
        return np.deg2rad(self.angle)

    @property
    def direction(self) -> np.ndarray:
        """Unit vector of the flow; defined even at zero speed."""
        return np.array([np.cos(self.angle_rad), np.sin(self.angle_rad)])

    @property
    def velocity(self) -> np.ndarray:
        return self.speed * self.direction

    @property
    def lift_direction(self) -> np.ndarray:
        return np.array([-np.sin(self.angle_rad), np.cos(self.angle_rad)])

    @property
    def dynamic_pressure(self) -> float:
        return 0.5 * self.density * self.speed**2


@dataclass(frozen=True, eq=False)
class Freestream:
    """Freestream of a 3D analysis with optional body rates.

    The flow vector is ``speed * [cos(alpha) cos(beta), -sin(beta), sin(alpha)]``
    in body axes (x downstream, y to starboard, z up). Body rates ``omega``
    add the apparent velocity ``-omega x r`` at a point ``r``.

    Attributes:
        speed (float): Velocity magnitude.
        alpha (float): Angle of attack in degrees.
        beta (float): Sideslip angle in degrees.
        omega (np.ndarray): Body rates (p, q, r) in rad/s.
        density (float): Reference density.
    """

    speed: float
    alpha: float = 0.0
    beta: float = 0.0
    omega: np.ndarray = field(default_factory=lambda: np.zeros(3))
    density: float = 1.225

    def __post_init__(self):
        omega = np.array(self.omega, dtype=float)
        if omega.shape != (3,):
            raise ConfigurationError(f"Body rates must have shape (3,), got {omega.shape}")
        omega.setflags(write=False)
        object.__setattr__(self, "omega", omega)
        if not np.isfinite(self.speed) or self.speed < 0:
            raise ConfigurationError(f"Freestream speed must be finite and >= 0, got {self.speed}")
        if not self.density > 0:
            raise ConfigurationError(f"Density must be positive, got {self.density}")

    @property
    def direction(self) -> np.ndarray:
        """Unit vector of the flow; defined even at zero speed."""
        alpha, beta = np.deg2rad(self.alpha), np.deg2rad(self.beta)
        return np.array(
            [np.cos(alpha) * np.cos(beta), -np.sin(beta), np.sin(alpha)]
        )

    @property
    def velocity(self) -> np.ndarray:
        return self.speed * self.direction

    @property
    def dynamic_pressure(self) -> float:
        return 0.5 * self.density * self.speed**2

    def local_velocity(self, points: np.ndarray) -> np.ndarray:
        """Apparent velocity ``V - omega x r`` at one point or an (n, 3) array of points."""
        points = np.asarray(points, dtype=float)
        return self.velocity - np.cross(self.omega, points)


@dataclass(frozen=True, eq=False)
class References:
    """Reference quantities for force and moment coefficients.

    Attributes:
        area (float): Reference area.
        span (float): Reference span (rolling and yawing moments).
        chord (float): Reference chord (pitching moment).
        point (np.ndarray): Moment reference point.
    """

    area: float
    span: float
    chord: float
    point: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self):
        point = np.array(self.point, dtype=float)
        if point.shape != (3,):
            raise ConfigurationError(f"Reference point must have shape (3,), got {point.shape}")
        point.setflags(write=False)
        object.__setattr__(self, "point", point)
        for name in ("area", "span", "chord"):
            value = getattr(self, name)
            if not np.isfinite(value) or value <= 0:
                raise ConfigurationError(f"Reference {name} must be positive, got {value}")
