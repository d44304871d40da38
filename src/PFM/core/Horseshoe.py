import numpy as np
from .exceptions import GeometryError
from .Filament import BoundFilament, SemiInfiniteFilament
from .Panel import Panel3D, make_panels_3D


class Horseshoe:
    """Horseshoe vortex of the vortex-lattice method.

    A bound leg from ``r1`` to ``r2`` on the quarter-chord line of a lattice
    panel and two trailing legs along ``trailing_direction``: one coming in
    from the far wake to ``r1`` and one leaving ``r2`` to the far wake. A
    finite ``wake_length`` truncates the legs; ``np.inf`` makes them
    semi-infinite.

    Attributes:
        _panel (Panel3D): Lattice panel the horseshoe belongs to.
        _filaments (list): [trailing leg at r1, bound leg, trailing leg at r2].
        _collocation_point (np.ndarray): Three-quarter chord point.
    """

    def __init__(
        self,
        panel: Panel3D,
        trailing_direction: np.ndarray,
        wake_length: float = 1e2,
        core_radius_fraction: float = 0.0,
    ):
        """Initialize a horseshoe from its lattice panel.

        Args:
            panel (Panel3D): Lattice panel with corners ordered leading edge
                (p1, p4) to trailing edge (p2, p3).
            trailing_direction (np.ndarray): Direction of the trailing legs.
            wake_length (float): Length of the trailing legs, or ``np.inf``.
            core_radius_fraction (float): Core radius as fraction of the bound leg length.

        Raises:
            GeometryError: If the bound leg has zero length or the trailing
                direction is zero.
        """
        self._panel = panel
        p1, p2, p3, p4 = panel.corners
        r1 = p1 + 0.25 * (p2 - p1)
        r2 = p4 + 0.25 * (p3 - p4)
        bound_length = np.linalg.norm(r2 - r1)
        if bound_length < 1e-12:
            raise GeometryError(
                f"Horseshoe bound leg has zero length at {r1.tolist()}"
            )
        direction = np.asarray(trailing_direction, dtype=float)
        if np.linalg.norm(direction) < 1e-12:
            raise GeometryError("Trailing direction must be a non-zero vector")
        direction = direction / np.linalg.norm(direction)

        core_radius = core_radius_fraction * bound_length
        bound = BoundFilament(r1, r2, core_radius)
        if np.isinf(wake_length):
            trailing_1 = SemiInfiniteFilament(r1, direction, -1, core_radius)
            trailing_2 = SemiInfiniteFilament(r2, direction, 1, core_radius)
        else:
            trailing_1 = BoundFilament(r1 + wake_length * direction, r1, core_radius)
            trailing_2 = BoundFilament(r2, r2 + wake_length * direction, core_radius)
        self._filaments = [trailing_1, bound, trailing_2]
        self._trailing_direction = direction
        self._collocation_point = 0.5 * (
            p1 + 0.75 * (p2 - p1) + p4 + 0.75 * (p3 - p4)
        )

    @property
    def panel(self) -> Panel3D:
        return self._panel

    @property
    def filaments(self) -> list:
        return self._filaments

    @property
    def bound_leg(self) -> BoundFilament:
        return self._filaments[1]

    @property
    def r1(self) -> np.ndarray:
        return self.bound_leg.x1

    @property
    def r2(self) -> np.ndarray:
        return self.bound_leg.x2

    @property
    def bound_center(self) -> np.ndarray:
        return self.bound_leg.center

    @property
    def bound_vector(self) -> np.ndarray:
        return self.bound_leg.vector

    @property
    def collocation_point(self) -> np.ndarray:
        return self._collocation_point

    @property
    def normal(self) -> np.ndarray:
        return self._panel.normal

    @property
    def area(self) -> float:
        return self._panel.area

    @property
    def trailing_direction(self) -> np.ndarray:
        return self._trailing_direction

    def velocity(self, point: np.ndarray, gamma: float = 1.0) -> np.ndarray:
        """Velocity induced at ``point`` by all three legs."""
        velocity = np.zeros(3)
        for filament in self._filaments:
            velocity += filament.velocity(point, gamma)
        return velocity

    def trailing_velocity(self, point: np.ndarray, gamma: float = 1.0) -> np.ndarray:
        """Velocity induced at ``point`` by the two trailing legs only."""
        return self._filaments[0].velocity(point, gamma) + self._filaments[2].velocity(
            point, gamma
        )


def make_horseshoes(
    grid: np.ndarray,
    trailing_direction: np.ndarray,
    wake_length: float = 1e2,
    core_radius_fraction: float = 0.0,
    tolerance: float = 1e-12,
) -> list:
    """Build the horseshoes of a vortex lattice.

    Args:
        grid (np.ndarray): Camber-surface points of shape (nc + 1, ns + 1, 3),
            chordwise index from leading to trailing edge, spanwise index along +y.
        trailing_direction (np.ndarray): Direction of the trailing legs.
        wake_length (float): Length of the trailing legs, or ``np.inf``.
        core_radius_fraction (float): Core radius as fraction of the bound leg length.
        tolerance (float): Minimum admissible panel area.

    Returns:
        list: ``nc * ns`` horseshoes with flat index ``i * ns + j``.
    """
    return [
        Horseshoe(panel, trailing_direction, wake_length, core_radius_fraction)
        for panel in make_panels_3D(grid, tolerance)
    ]
