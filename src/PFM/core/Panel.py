from functools import singledispatch
import numpy as np
from .exceptions import GeometryError
from .Singularities import (
    doublet_potential_2D,
    doublet_velocity_2D,
    linear_doublet_potential_2D,
    linear_doublet_velocity_2D,
    source_potential_2D,
    source_velocity_2D,
    quadrilateral_doublet_potential,
    quadrilateral_doublet_velocity,
    quadrilateral_source_potential,
    quadrilateral_source_velocity,
)


class Panel2D:
    """Straight 2D surface panel carrying constant source and doublet strengths.

    The panel-local frame has its origin at ``p1``, the x-axis along the unit
    tangent and the z-axis along the outward normal. For panels ordered
    counter-clockwise around a body the outward normal is the tangent turned
    clockwise.

    Attributes:
        _p1 (np.ndarray): Start point.
        _p2 (np.ndarray): End point.
        _length (float): Panel length.
        _tangent (np.ndarray): Unit tangent from p1 to p2.
        _normal (np.ndarray): Outward unit normal.
        _collocation_point (np.ndarray): Panel midpoint.
    """

    def __init__(self, p1: np.ndarray, p2: np.ndarray, tolerance: float = 1e-12):
        """Initialize the panel from its endpoints.

        Args:
            p1 (np.ndarray): Start point (x, z).
            p2 (np.ndarray): End point (x, z).
            tolerance (float): Minimum admissible panel length.

        Raises:
            GeometryError: If the endpoints are not 2D points or coincide.
        """
        self._p1 = np.asarray(p1, dtype=float)
        self._p2 = np.asarray(p2, dtype=float)
        if self._p1.shape != (2,) or self._p2.shape != (2,):
            raise GeometryError(
                f"2D panel endpoints must have shape (2,), got {self._p1.shape} and {self._p2.shape}"
            )
        delta = self._p2 - self._p1
        self._length = float(np.hypot(delta[0], delta[1]))
        if not self._length > tolerance:
            raise GeometryError(
                f"Degenerate 2D panel between {self._p1} and {self._p2} (length {self._length:.3e})"
            )
        self._tangent = delta / self._length
        self._normal = np.array([self._tangent[1], -self._tangent[0]])
        self._collocation_point = 0.5 * (self._p1 + self._p2)

    @property
    def p1(self) -> np.ndarray:
        return self._p1

    @property
    def p2(self) -> np.ndarray:
        return self._p2

    @property
    def length(self) -> float:
        return self._length

    @property
    def tangent(self) -> np.ndarray:
        return self._tangent

    @property
    def normal(self) -> np.ndarray:
        return self._normal

    @property
    def collocation_point(self) -> np.ndarray:
        return self._collocation_point

    @property
    def angle(self) -> float:
        """Angle of the tangent with respect to the x-axis, in radians."""
        return float(np.arctan2(self._tangent[1], self._tangent[0]))

    def transform(self, point: np.ndarray) -> tuple:
        """Express a global point in the panel-local frame.

        Args:
            point (np.ndarray): Point (x, z) in global coordinates.

        Returns:
            tuple: Local (x, z) coordinates.
        """
        offset = np.asarray(point, dtype=float) - self._p1
        return float(np.dot(offset, self._tangent)), float(np.dot(offset, self._normal))

    def to_global(self, u: float, w: float) -> np.ndarray:
        """Rotate a panel-local vector (u, w) back to global coordinates."""
        return u * self._tangent + w * self._normal


class WakePanel2D(Panel2D):
    """Fixed-length wake panel leaving the trailing edge.

    The panel starts ``length`` downstream of the trailing edge and ends at
    it, so its normal points to the upper side of the wake.
    """

    def __init__(
        self,
        trailing_edge: np.ndarray,
        direction: np.ndarray,
        length: float,
        tolerance: float = 1e-12,
    ):
        trailing_edge = np.asarray(trailing_edge, dtype=float)
        direction = np.asarray(direction, dtype=float)
        norm = np.linalg.norm(direction)
        if norm < tolerance:
            raise GeometryError("Wake direction must be a non-zero vector")
        super().__init__(
            trailing_edge + length * direction / norm, trailing_edge, tolerance
        )

    @property
    def trailing_edge(self) -> np.ndarray:
        return self._p2


class Panel3D:
    """Quadrilateral surface panel with corners p1..p4.

    Corners need not be coplanar. The normal is the normalised cross product
    of the diagonals ``(p3 - p1) x (p4 - p2)``, the collocation point is the
    corner average and the area is the sum of triangles p1p2p3 and p1p3p4.

    Attributes:
        _corners (np.ndarray): Corner coordinates, shape (4, 3).
        _normal (np.ndarray): Unit normal.
        _area (float): Panel area.
        _collocation_point (np.ndarray): Corner average.
    """

    def __init__(
        self,
        p1: np.ndarray,
        p2: np.ndarray,
        p3: np.ndarray,
        p4: np.ndarray,
        tolerance: float = 1e-12,
    ):
        """Initialize a quadrilateral panel.

        Raises:
            GeometryError: If a corner is not a 3D point or the area vanishes.
        """
        self._corners = np.ascontiguousarray(
            np.array([p1, p2, p3, p4], dtype=float)
        )
        if self._corners.shape != (4, 3):
            raise GeometryError(
                f"3D panel corners must have shape (4, 3), got {self._corners.shape}"
            )
        p1, p2, p3, p4 = self._corners
        diagonal_cross = np.cross(p3 - p1, p4 - p2)
        self._area = 0.5 * (
            np.linalg.norm(np.cross(p2 - p1, p3 - p1))
            + np.linalg.norm(np.cross(p3 - p1, p4 - p1))
        )
        norm = np.linalg.norm(diagonal_cross)
        if not self._area > tolerance or not norm > tolerance:
            raise GeometryError(
                f"Degenerate 3D panel with corners {self._corners.tolist()} (area {self._area:.3e})"
            )
        self._normal = diagonal_cross / norm
        self._collocation_point = self._corners.mean(axis=0)

        chordwise = 0.5 * (p2 + p3 - p1 - p4)
        l_axis = chordwise - np.dot(chordwise, self._normal) * self._normal
        if np.linalg.norm(l_axis) < tolerance:
            l_axis = np.cross(self._normal, p4 - p1)
        self._l = l_axis / np.linalg.norm(l_axis)
        self._m = np.cross(self._normal, self._l)

    @property
    def corners(self) -> np.ndarray:
        return self._corners

    @property
    def normal(self) -> np.ndarray:
        return self._normal

    @property
    def area(self) -> float:
        return self._area

    @property
    def collocation_point(self) -> np.ndarray:
        return self._collocation_point

    @property
    def local_frame(self) -> np.ndarray:
        """Rows are the local l, m and n unit vectors."""
        return np.array([self._l, self._m, self._normal])

    def transform(self, point: np.ndarray) -> np.ndarray:
        """Express a global point in the panel-local frame centred on the collocation point."""
        return self.local_frame @ (np.asarray(point, dtype=float) - self._collocation_point)


class WakePanel3D(Panel3D):
    """Quadrilateral wake strip trailing from the trailing-edge segment (a, b).

    Corners are ``a, a + L d, b + L d, b`` so that, for ``a`` and ``b``
    ordered along +y and ``d`` pointing downstream, the normal points up.
    """

    def __init__(
        self,
        a: np.ndarray,
        b: np.ndarray,
        direction: np.ndarray,
        length: float,
        tolerance: float = 1e-12,
    ):
        a = np.asarray(a, dtype=float)
        b = np.asarray(b, dtype=float)
        direction = np.asarray(direction, dtype=float)
        norm = np.linalg.norm(direction)
        if norm < tolerance:
            raise GeometryError("Wake direction must be a non-zero vector")
        offset = length * direction / norm
        super().__init__(a, a + offset, b + offset, b, tolerance)


def collocation_point(panel) -> np.ndarray:
    """Collocation point of any panel variant."""
    return panel.collocation_point


def panel_normal(panel) -> np.ndarray:
    """Unit outward normal of any panel variant."""
    return panel.normal


@singledispatch
def doublet_influence(panel, point: np.ndarray) -> float:
    """Potential at ``point`` induced by a unit doublet on ``panel``.

    A point on the panel itself lies on the potential jump, and rounding in
    the transform decides which side of it the result is taken on. Use
    ``collocation_doublet_influence`` for collocation points.
    """
    raise TypeError(f"No doublet influence defined for {type(panel).__name__}")


@doublet_influence.register
def _(panel: Panel2D, point: np.ndarray) -> float:
    x, z = panel.transform(point)
    return doublet_potential_2D(1.0, x, z, 0.0, panel.length)


@doublet_influence.register
def _(panel: Panel3D, point: np.ndarray) -> float:
    return quadrilateral_doublet_potential(
        panel.corners, np.asarray(point, dtype=float)
    )


def collocation_doublet_influence(panel, target) -> float:
    """Potential of a unit doublet on ``panel`` at the collocation point of ``target``.

    A panel acting on itself gets exactly 0.5, the limit from the inside of
    the body. Self influence is decided by object identity.
    """
    if panel is target:
        return 0.5
    return doublet_influence(panel, collocation_point(target))


@singledispatch
def source_influence(panel, point: np.ndarray) -> float:
    """Potential at ``point`` induced by a unit source on ``panel``."""
    raise TypeError(f"No source influence defined for {type(panel).__name__}")


@source_influence.register
def _(panel: Panel2D, point: np.ndarray) -> float:
    x, z = panel.transform(point)
    return source_potential_2D(1.0, x, z, 0.0, panel.length)


@source_influence.register
def _(panel: Panel3D, point: np.ndarray) -> float:
    return quadrilateral_source_potential(
        panel.corners, np.asarray(point, dtype=float)
    )


@singledispatch
def doublet_velocity(panel, point: np.ndarray, epsilon: float = 0.0) -> np.ndarray:
    """Velocity at ``point`` induced by a unit doublet on ``panel``."""
    raise TypeError(f"No doublet velocity defined for {type(panel).__name__}")


@doublet_velocity.register
def _(panel: Panel2D, point: np.ndarray, epsilon: float = 0.0) -> np.ndarray:
    x, z = panel.transform(point)
    u, w = doublet_velocity_2D(1.0, x, z, 0.0, panel.length)
    return panel.to_global(u, w)


@doublet_velocity.register
def _(panel: Panel3D, point: np.ndarray, epsilon: float = 0.0) -> np.ndarray:
    return quadrilateral_doublet_velocity(
        panel.corners, np.asarray(point, dtype=float), epsilon
    )


@singledispatch
def source_velocity(panel, point: np.ndarray) -> np.ndarray:
    """Velocity at ``point`` induced by a unit source on ``panel``."""
    raise TypeError(f"No source velocity defined for {type(panel).__name__}")


@source_velocity.register
def _(panel: Panel2D, point: np.ndarray) -> np.ndarray:
    x, z = panel.transform(point)
    u, w = source_velocity_2D(1.0, x, z, 0.0, panel.length)
    return panel.to_global(u, w)


@source_velocity.register
def _(panel: Panel3D, point: np.ndarray) -> np.ndarray:
    return quadrilateral_source_velocity(
        panel.corners, np.asarray(point, dtype=float)
    )


def linear_doublet_influence(panel: Panel2D, point: np.ndarray) -> float:
    """Potential at ``point`` of a doublet on ``panel`` growing by one per unit length from ``p1``."""
    x, z = panel.transform(point)
    return linear_doublet_potential_2D(1.0, x, z, 0.0, panel.length)


def linear_doublet_velocity(panel: Panel2D, point: np.ndarray) -> np.ndarray:
    """Velocity at ``point`` of a doublet on ``panel`` growing by one per unit length from ``p1``."""
    x, z = panel.transform(point)
    u, w = linear_doublet_velocity_2D(1.0, x, z, 0.0, panel.length)
    return panel.to_global(u, w)


def make_panels_2D(coordinates: np.ndarray, tolerance: float = 1e-12) -> list:
    """Build 2D panels from airfoil coordinates.

    Args:
        coordinates (np.ndarray): Points of shape (N + 1, 2) in Selig order
            (upper trailing edge, leading edge, lower trailing edge).
        tolerance (float): Minimum admissible panel length.

    Returns:
        list: N ``Panel2D`` objects.

    Raises:
        GeometryError: If the array has the wrong shape, fewer than two panels,
            a degenerate panel, or runs clockwise.
    """
    coordinates = np.asarray(coordinates, dtype=float)
    if coordinates.ndim != 2 or coordinates.shape[1] != 2:
        raise GeometryError(
            f"Airfoil coordinates must have shape (N + 1, 2), got {coordinates.shape}"
        )
    if len(coordinates) < 3:
        raise GeometryError(
            f"At least two panels are needed, got {len(coordinates) - 1}"
        )
    x, z = coordinates[:, 0], coordinates[:, 1]
    signed_area = 0.5 * np.sum(x * np.roll(z, -1) - np.roll(x, -1) * z)
    if signed_area < 0:
        raise GeometryError(
            "Airfoil coordinates run clockwise; expected upper trailing edge, "
            "leading edge, lower trailing edge"
        )
    return [
        Panel2D(p1, p2, tolerance) for p1, p2 in zip(coordinates[:-1], coordinates[1:])
    ]


def make_panels_3D(grid: np.ndarray, tolerance: float = 1e-12) -> list:
    """Build quadrilateral panels from a structured surface grid.

    Panel (i, j) has corners ``P[i, j], P[i + 1, j], P[i + 1, j + 1], P[i, j + 1]``
    and flat index ``i * ns + j``.

    Args:
        grid (np.ndarray): Points of shape (nc + 1, ns + 1, 3).
        tolerance (float): Minimum admissible panel area.

    Returns:
        list: ``nc * ns`` ``Panel3D`` objects.

    Raises:
        GeometryError: If the grid has the wrong shape or a panel is degenerate.
    """
    grid = np.asarray(grid, dtype=float)
    if grid.ndim != 3 or grid.shape[2] != 3 or grid.shape[0] < 2 or grid.shape[1] < 2:
        raise GeometryError(
            f"Surface grid must have shape (nc + 1, ns + 1, 3), got {grid.shape}"
        )
    n_chord, n_span = grid.shape[0] - 1, grid.shape[1] - 1
    return [
        Panel3D(
            grid[i, j], grid[i + 1, j], grid[i + 1, j + 1], grid[i, j + 1], tolerance
        )
        for i in range(n_chord)
        for j in range(n_span)
    ]
