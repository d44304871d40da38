from abc import ABC, abstractmethod
import numpy as np
from . import jit_norm
from .Singularities import vortex_segment_velocity, semi_infinite_vortex_velocity


class Filament(ABC):
    """Abstract base class for straight vortex filaments.

    Attributes:
        _x1 (np.ndarray): Start point of the filament.
        _core_radius (float): Cut-off radius of the solid-body vortex core.
    """

    @abstractmethod
    def __init__(self, x1: np.ndarray, core_radius: float = 0.0):
        self._x1 = np.asarray(x1, dtype=float)
        self._core_radius = float(core_radius)

    @property
    def x1(self) -> np.ndarray:
        """Get start point of the filament.

        Returns:
            np.ndarray: Start point coordinates.
        """
        return self._x1

    @property
    def core_radius(self) -> float:
        return self._core_radius

    @abstractmethod
    def velocity(self, point: np.ndarray, gamma: float) -> np.ndarray:
        """Velocity induced at ``point`` by the filament with circulation ``gamma``."""


class BoundFilament(Filament):
    """Finite vortex filament between two points.

    Used for the bound leg of a horseshoe and for truncated trailing legs.

    Attributes:
        _x1 (np.ndarray): First endpoint of the filament.
        _x2 (np.ndarray): Second endpoint of the filament.
        _length (float): Filament length.
    """

    def __init__(self, x1: np.ndarray, x2: np.ndarray, core_radius: float = 0.0):
        """Initialize bound filament with two endpoints.

        Args:
            x1 (np.ndarray): First endpoint coordinates.
            x2 (np.ndarray): Second endpoint coordinates.
            core_radius (float): Cut-off radius of the vortex core.
        """
        super().__init__(x1, core_radius)
        self._x2 = np.asarray(x2, dtype=float)
        self._length = jit_norm(self._x2 - self._x1)

    @property
    def x2(self) -> np.ndarray:
        """Get second endpoint of the filament.

        Returns:
            np.ndarray: Second endpoint coordinates.
        """
        return self._x2

    @property
    def length(self) -> float:
        return self._length

    @property
    def center(self) -> np.ndarray:
        return 0.5 * (self._x1 + self._x2)

    @property
    def vector(self) -> np.ndarray:
        """Filament vector ``x2 - x1``."""
        return self._x2 - self._x1

    def velocity(self, point: np.ndarray, gamma: float) -> np.ndarray:
        """Calculate velocity induced by the filament (Biot-Savart law).

        Inside the core radius the velocity falls linearly to zero on the
        axis. Points on the filament get zero.

        Args:
            point (np.ndarray): Evaluation point coordinates.
            gamma (float): Vortex strength (circulation), positive from x1 to x2.

        Returns:
            np.ndarray: Induced velocity vector [vx, vy, vz].
        """
        return vortex_segment_velocity(
            np.asarray(point, dtype=float),
            self._x1,
            self._x2,
            float(gamma),
            self._core_radius,
        )


class SemiInfiniteFilament(Filament):
    """Semi-infinite trailing vortex extending to infinity along a direction.

    Attributes:
        _x1 (np.ndarray): Starting point (trailing edge).
        _direction (np.ndarray): Unit vector of the wake direction.
        _filament_direction (int): +1 if the filament runs from x1 to infinity,
            -1 if it comes in from infinity and ends at x1.
    """

    def __init__(
        self,
        x1: np.ndarray,
        direction: np.ndarray,
        filament_direction: int,
        core_radius: float = 0.0,
    ):
        """Initialize semi-infinite filament.

        Args:
            x1 (np.ndarray): Starting point (trailing edge).
            direction (np.ndarray): Wake direction, normalised on input.
            filament_direction (int): -1 or 1, orientation relative to ``direction``.
            core_radius (float): Cut-off radius of the vortex core.

        Raises:
            ValueError: If ``filament_direction`` is not +1 or -1.
        """
        super().__init__(x1, core_radius)
        if filament_direction not in (-1, 1):
            raise ValueError(
                f"filament_direction must be +1 or -1, got {filament_direction}"
            )
        direction = np.asarray(direction, dtype=float)
        self._direction = direction / jit_norm(direction)
        self._filament_direction = filament_direction

    @property
    def direction(self) -> np.ndarray:
        return self._direction

    @property
    def filament_direction(self) -> int:
        """Get filament direction multiplier.

        Returns:
            int: Direction multiplier (±1).
        """
        return self._filament_direction

    def velocity(self, point: np.ndarray, gamma: float) -> np.ndarray:
        """Calculate velocity induced by the semi-infinite filament.

        Args:
            point (np.ndarray): Evaluation point.
            gamma (float): Circulation strength.

        Returns:
            np.ndarray: Induced velocity vector.
        """
        return semi_infinite_vortex_velocity(
            np.asarray(point, dtype=float),
            self._x1,
            self._direction,
            float(gamma * self._filament_direction),
            self._core_radius,
        )
