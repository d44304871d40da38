"""Doublet-source surface panel methods.

``DoubletSourceSystem`` is the 2D Dirichlet (potential) formulation for
airfoils with a Morino Kutta condition and a single wake panel.
``DoubletSourceSystem3D`` is the 3D Neumann (velocity) formulation for
closed bodies made of quadrilateral doublet panels with one wake strip per
spanwise panel column.
"""

import logging
import numpy as np
import pandas as pd
from .exceptions import ConfigurationError, GeometryError
from .Freestream import Uniform2D, Freestream, References
from .Panel import (
    Panel2D,
    linear_doublet_influence,
    linear_doublet_velocity,
    collocation_point,
    panel_normal,
    doublet_influence,
    collocation_doublet_influence,
    source_influence,
    doublet_velocity,
    source_velocity,
    make_panels_3D,
)
from .Settings import AnalysisSettings
from .Solver import AerodynamicSystem
from .Wake import Wake
from .utils import wind_axes


def doublet_matrix(panels_i: list, panels_j: list) -> np.ndarray:
    """Potential influence of unit doublets on ``panels_j`` at the collocation points of ``panels_i``."""
    matrix = np.empty((len(panels_i), len(panels_j)))
    for i, panel_i in enumerate(panels_i):
        for j, panel_j in enumerate(panels_j):
            matrix[i, j] = collocation_doublet_influence(panel_j, panel_i)
    return matrix


def source_matrix(panels_i: list, panels_j: list) -> np.ndarray:
    """Potential influence of unit sources on ``panels_j`` at the collocation points of ``panels_i``."""
    matrix = np.empty((len(panels_i), len(panels_j)))
    for i, panel_i in enumerate(panels_i):
        point = collocation_point(panel_i)
        for j, panel_j in enumerate(panels_j):
            matrix[i, j] = source_influence(panel_j, point)
    return matrix


def doublet_velocity_matrix(
    points: np.ndarray, panels: list, epsilon: float = 0.0
) -> np.ndarray:
    """Velocity induced at each point by unit doublets on each panel, shape (n_points, n_panels, dim)."""
    points = np.asarray(points, dtype=float)
    matrix = np.empty((len(points), len(panels), points.shape[1]))
    for i, point in enumerate(points):
        for j, panel in enumerate(panels):
            matrix[i, j] = doublet_velocity(panel, point, epsilon)
    return matrix


def kutta_condition_2D(n_panels: int) -> np.ndarray:
    """Morino Kutta row ``mu_first - mu_last - mu_wake = 0`` over body and wake unknowns."""
    row = np.zeros(n_panels + 1)
    row[0], row[n_panels - 1], row[n_panels] = 1.0, -1.0, -1.0
    return row


class DoubletSourceSystem(AerodynamicSystem):
    """2D doublet-source panel method with a Dirichlet boundary condition.

    Unknowns are the N body doublet strengths followed by the wake doublet.
    Without sources the total potential inside the body is set to zero,
    with sources (``sigma = -V.n``) the perturbation potential is.

    An open trailing edge is closed by a base panel from the lower to the
    upper trailing-edge point. It carries the last panel's doublet (plus the
    known ``-V.(r - r_lower)`` part of the total-potential jump without
    sources), and the wake leaves from the upper point, so no point vortex
    is left at either trailing-edge corner.

    Attributes:
        _panels (list): Body panels in Selig order (borrowed, not copied).
        _uniform (Uniform2D): Freestream.
        _wake_panel (WakePanel2D): Wake panel.
        _te_panel (Panel2D): Base panel of an open trailing edge, None if sharp.
        _sources (np.ndarray): Source strengths (zeros without sources).
    """

    def __init__(
        self,
        panels: list,
        uniform: Uniform2D,
        settings: AnalysisSettings = None,
    ):
        """Assemble the influence matrix, boundary vector and Kutta row.

        Args:
            panels (list): ``Panel2D`` objects ordered counter-clockwise.
            uniform (Uniform2D): Freestream.
            settings (AnalysisSettings): Wake length, source flag and solver choice.

        Raises:
            GeometryError: If there are fewer than two 2D panels.
            ConfigurationError: If the wake length is not finite.
        """
        super().__init__(settings)
        if len(panels) < 2:
            raise GeometryError(f"At least two panels are needed, got {len(panels)}")
        if not all(isinstance(panel, Panel2D) for panel in panels):
            raise GeometryError("DoubletSourceSystem needs Panel2D objects")
        self._panels = panels
        self._uniform = uniform
        self._wake_panel = Wake.panel_2D(
            panels, uniform.direction, self._settings.wake_length
        )
        _, self._te_gap = Wake.trailing_edge_2D(panels)
        self._te_panel = Wake.trailing_edge_panel_2D(
            panels, self._settings.geometry_tolerance
        )
        self.assemble()

    def assemble(self):
        n = len(self._panels)
        velocity = self._uniform.velocity
        collocation_points = self.collocation_points
        te_panel = self._te_panel

        A = np.zeros((n + 1, n + 1))
        A[:n, :n] = doublet_matrix(self._panels, self._panels)
        A[:n, n] = [
            doublet_influence(self._wake_panel, point) for point in collocation_points
        ]
        A[n] = kutta_condition_2D(n)
        if te_panel is not None:
            # The closing panel carries the last panel's doublet
            A[:n, n - 1] += [
                doublet_influence(te_panel, point) for point in collocation_points
            ]

        rhs = np.zeros(n + 1)
        self._te_source, self._te_slope = 0.0, 0.0
        if self._settings.is_with_sources:
            normals = np.array([panel_normal(panel) for panel in self._panels])
            self._sources = -normals @ velocity
            rhs[:n] = -source_matrix(self._panels, self._panels) @ self._sources
            if te_panel is not None:
                self._te_source = -np.dot(panel_normal(te_panel), velocity)
                rhs[:n] -= self._te_source * np.array(
                    [source_influence(te_panel, point) for point in collocation_points]
                )
        else:
            self._sources = np.zeros(n)
            rhs[:n] = -collocation_points @ velocity
            rhs[n] = -np.dot(velocity, self._te_gap)
            if te_panel is not None:
                # Total-potential jump across the base falls by V.r_te from lower to upper
                self._te_slope = -np.dot(velocity, te_panel.tangent)
                rhs[:n] -= self._te_slope * np.array(
                    [linear_doublet_influence(te_panel, point) for point in collocation_points]
                )

        self._aic, self._rhs = A, rhs
        logging.debug(f"Assembled 2D doublet-source system with {n} panels")

    @property
    def panels(self) -> list:
        return self._panels

    @property
    def wake_panel(self):
        return self._wake_panel

    @property
    def uniform(self) -> Uniform2D:
        return self._uniform

    @property
    def collocation_points(self) -> np.ndarray:
        return np.array([collocation_point(panel) for panel in self._panels])

    @property
    def chord(self) -> float:
        points = np.array([panel.p1 for panel in self._panels] + [self._panels[-1].p2])
        return float(np.ptp(points[:, 0]))

    @property
    def source_strengths(self) -> np.ndarray:
        return self._sources

    @property
    def doublet_strengths(self) -> np.ndarray:
        return self.strengths[:-1]

    @property
    def wake_strength(self) -> float:
        return float(self.strengths[-1])

    @property
    def circulation(self) -> float:
        """Clockwise circulation, minus the wake doublet."""
        return -self.wake_strength

    def _surface_geometry(self) -> tuple:
        points = self.collocation_points
        steps = points[1:] - points[:-1]
        lengths = np.linalg.norm(steps, axis=1)
        tangents = steps / lengths[:, None]
        normals = np.column_stack([tangents[:, 1], -tangents[:, 0]])
        return 0.5 * (points[1:] + points[:-1]), lengths, tangents, normals

    def surface_velocities(self) -> np.ndarray:
        """Tangential surface velocity between neighbouring collocation points.

        Returns:
            np.ndarray: N - 1 velocities, positive counter-clockwise.
        """
        mu = self.doublet_strengths
        _, lengths, tangents, _ = self._surface_geometry()
        velocities = (mu[:-1] - mu[1:]) / lengths
        if self._settings.is_with_sources:
            velocities = velocities + tangents @ self._uniform.velocity
        return velocities

    def pressure_coefficients(self) -> np.ndarray:
        """``Cp = 1 - (u / U)^2`` between neighbouring collocation points."""
        velocities = self.surface_velocities()
        if self._uniform.speed == 0:
            logging.warning("Zero freestream speed, pressure coefficients set to 0")
            return np.zeros_like(velocities)
        return 1 - (velocities / self._uniform.speed) ** 2

    def force_coefficients(self) -> np.ndarray:
        """Pressure force coefficient vector (x, z), normalised by the chord."""
        cp = self.pressure_coefficients()
        _, lengths, _, normals = self._surface_geometry()
        return -np.sum((cp * lengths)[:, None] * normals, axis=0) / self.chord

    def lift_coefficient(self, method: str = "pressure") -> float:
        """Lift coefficient from pressure integration or from the wake doublet.

        Args:
            method (str): 'pressure' integrates ``-Cp n dr`` over the surface,
                'wake' uses ``2 Gamma / (U c)``, i.e. ``-2 mu_wake / (U c)``.

        Returns:
            float: Lift coefficient.
        """
        if method == "pressure":
            return float(np.dot(self.force_coefficients(), self._uniform.lift_direction))
        elif method == "wake":
            if self._uniform.speed == 0:
                logging.warning("Zero freestream speed, lift coefficient set to 0")
                return 0.0
            return 2 * self.circulation / (self._uniform.speed * self.chord)
        raise ValueError(f"Unknown lift method '{method}', use 'pressure' or 'wake'")

    def drag_coefficient(self) -> float:
        """Pressure drag coefficient; zero in exact potential flow."""
        return float(np.dot(self.force_coefficients(), self._uniform.direction))

    def moment_coefficient(self, reference: np.ndarray = None) -> float:
        """Pitching moment coefficient, positive nose up.

        Args:
            reference (np.ndarray): Moment reference point, the quarter chord by default.
        """
        midpoints, lengths, _, normals = self._surface_geometry()
        if reference is None:
            x_min = min(panel.p1[0] for panel in self._panels)
            reference = np.array([x_min + 0.25 * self.chord, 0.0])
        arms = midpoints - np.asarray(reference, dtype=float)
        cp = self.pressure_coefficients()
        return float(
            np.sum(cp * lengths * (arms[:, 0] * normals[:, 1] - arms[:, 1] * normals[:, 0]))
            / self.chord**2
        )

    def velocity(self, points: np.ndarray) -> np.ndarray:
        """Total velocity at arbitrary points from the analytic kernel derivatives.

        Args:
            points (np.ndarray): Points of shape (M, 2) or (2,).

        Returns:
            np.ndarray: Velocities with the same shape as ``points``.
        """
        points = np.asarray(points, dtype=float)
        single = points.ndim == 1
        points = np.atleast_2d(points)
        mu = self.strengths
        velocities = np.tile(self._uniform.velocity, (len(points), 1))
        for k, point in enumerate(points):
            for panel, mu_j, sigma_j in zip(self._panels, mu[:-1], self._sources):
                velocities[k] += mu_j * doublet_velocity(panel, point)
                if sigma_j != 0:
                    velocities[k] += sigma_j * source_velocity(panel, point)
            velocities[k] += mu[-1] * doublet_velocity(self._wake_panel, point)
            if self._te_panel is not None:
                velocities[k] += mu[-2] * doublet_velocity(self._te_panel, point)
                velocities[k] += self._te_source * source_velocity(self._te_panel, point)
                velocities[k] += self._te_slope * linear_doublet_velocity(
                    self._te_panel, point
                )
        return velocities[0] if single else velocities

    def surface_distribution(self) -> pd.DataFrame:
        """Surface velocity and pressure between neighbouring collocation points."""
        midpoints, lengths, _, _ = self._surface_geometry()
        return pd.DataFrame(
            {
                "x": midpoints[:, 0],
                "z": midpoints[:, 1],
                "ds": lengths,
                "velocity": self.surface_velocities(),
                "Cp": self.pressure_coefficients(),
            }
        )


class DoubletSourceSystem3D(AerodynamicSystem):
    """3D quadrilateral doublet panel method with a Neumann boundary condition.

    The body grid has shape (nc + 1, ns + 1, 3), wrapping from the lower
    trailing edge (i = 0) round the leading edge to the upper trailing edge
    (i = nc), with j increasing along +y. Unknowns are the ``nc * ns`` body
    doublets followed by the ``ns`` wake-strip doublets. Rows are flow
    tangency at every body panel, one Kutta row per wake strip and one
    closure row ``sum(mu_body) = 0``, so the system is solved in the
    least-squares sense.

    Attributes:
        _panels (list): Body panels, flat index ``i * ns + j``.
        _wake_panels (list): Wake strips, one per spanwise column.
        _velocity_matrix (np.ndarray): Doublet velocity influence (Nb, Nb + Nw, 3).
    """

    def __init__(
        self,
        grid: np.ndarray,
        freestream: Freestream,
        references: References,
        settings: AnalysisSettings = None,
    ):
        """Assemble the Neumann system.

        Raises:
            GeometryError: If the grid is malformed or holds degenerate panels.
            ConfigurationError: If a direct solve is requested for the
                rectangular system, or the wake length is not finite.
        """
        super().__init__(settings)
        if self._settings.linear_solver == "direct":
            raise ConfigurationError(
                "The Neumann panel system is rectangular; use linear_solver "
                "'least_squares' or 'auto'"
            )
        grid = np.asarray(grid, dtype=float)
        self._panels = make_panels_3D(grid, self._settings.geometry_tolerance)
        self._n_chord, self._n_span = grid.shape[0] - 1, grid.shape[1] - 1
        if self._n_chord < 2:
            raise GeometryError(
                f"A closed body needs at least two chordwise panels, got {self._n_chord}"
            )
        self._grid = grid
        self._freestream = freestream
        self._references = references
        self._wake_panels = Wake.strips_3D(
            grid, freestream.direction, self._settings.wake_length
        )
        if len(self._wake_panels) != self._n_span:
            raise GeometryError(
                f"{len(self._wake_panels)} wake strips for {self._n_span} spanwise panels"
            )
        self.assemble()

    @property
    def linear_solver(self) -> str:
        return "least_squares"

    def _index(self, i: int, j: int) -> int:
        return i * self._n_span + j

    def assemble(self):
        n_body, n_wake = len(self._panels), len(self._wake_panels)
        points = self.collocation_points
        normals = self.normals
        epsilon = self._settings.core_radius_fraction * np.sqrt(
            min(panel.area for panel in self._panels)
        )
        self._velocity_matrix = doublet_velocity_matrix(
            points, self._panels + self._wake_panels, epsilon
        )

        A = np.zeros((n_body + n_wake + 1, n_body + n_wake))
        A[:n_body] = np.einsum("ijk,ik->ij", self._velocity_matrix, normals)
        for j in range(n_wake):
            row = A[n_body + j]
            row[self._index(self._n_chord - 1, j)] = 1.0
            row[self._index(0, j)] = -1.0
            row[n_body + j] = -1.0
        A[-1, :n_body] = 1.0

        rhs = np.zeros(n_body + n_wake + 1)
        rhs[:n_body] = -np.einsum(
            "ij,ij->i", self._freestream.local_velocity(points), normals
        )
        self._aic, self._rhs = A, rhs
        logging.debug(
            f"Assembled Neumann system: {n_body} body panels, {n_wake} wake strips"
        )

    @property
    def panels(self) -> list:
        return self._panels

    @property
    def wake_panels(self) -> list:
        return self._wake_panels

    @property
    def freestream(self) -> Freestream:
        return self._freestream

    @property
    def collocation_points(self) -> np.ndarray:
        return np.array([collocation_point(panel) for panel in self._panels])

    @property
    def normals(self) -> np.ndarray:
        return np.array([panel_normal(panel) for panel in self._panels])

    @property
    def velocity_influence_matrix(self) -> np.ndarray:
        return self._velocity_matrix

    @property
    def doublet_strengths(self) -> np.ndarray:
        return self.strengths[: len(self._panels)]

    @property
    def wake_strengths(self) -> np.ndarray:
        return self.strengths[len(self._panels):]

    def wake_circulations(self) -> np.ndarray:
        """Circulation of each spanwise strip, ``-mu_wake``, positive for lift."""
        return -self.wake_strengths

    def _bound_vectors(self) -> np.ndarray:
        return np.array([wake.corners[3] - wake.corners[0] for wake in self._wake_panels])

    def lift_coefficient(self) -> float:
        """Lift coefficient from the Kutta-Joukowski force of the wake circulations."""
        speed = self._freestream.speed
        if speed == 0:
            logging.warning("Zero freestream speed, lift coefficient set to 0")
            return 0.0
        _, _, e_lift = wind_axes(self._freestream.velocity)
        forces = self.wake_circulations()[:, None] * np.cross(
            self._freestream.velocity, self._bound_vectors()
        )
        return float(2 * np.sum(forces @ e_lift) / (speed**2 * self._references.area))

    def surface_gradients(self) -> np.ndarray:
        """Surface gradient of the body doublet strength at each collocation point.

        Fitted in the tangent plane by least squares over the grid neighbours,
        without crossing the trailing edge.
        """
        mu = self.doublet_strengths
        points = self.collocation_points
        gradients = np.zeros((len(self._panels), 3))
        for i in range(self._n_chord):
            for j in range(self._n_span):
                k = self._index(i, j)
                neighbours = [
                    self._index(i + di, j + dj)
                    for di, dj in ((-1, 0), (1, 0), (0, -1), (0, 1))
                    if 0 <= i + di < self._n_chord and 0 <= j + dj < self._n_span
                ]
                frame = self._panels[k].local_frame[:2]
                offsets = (points[neighbours] - points[k]) @ frame.T
                fit, *_ = np.linalg.lstsq(offsets, mu[neighbours] - mu[k], rcond=None)
                gradients[k] = fit @ frame
        return gradients

    def surface_velocities(self) -> np.ndarray:
        """Total surface velocity ``V - omega x r + VIM mu - grad(mu) / 2`` per body panel."""
        points = self.collocation_points
        induced = np.einsum("ijk,j->ik", self._velocity_matrix, self.strengths)
        return (
            self._freestream.local_velocity(points)
            + induced
            - 0.5 * self.surface_gradients()
        )

    def pressure_coefficients(self) -> np.ndarray:
        velocities = self.surface_velocities()
        if self._freestream.speed == 0:
            logging.warning("Zero freestream speed, pressure coefficients set to 0")
            return np.zeros(len(velocities))
        return 1 - np.sum(velocities**2, axis=1) / self._freestream.speed**2

    def force_coefficients(self) -> dict:
        """Pressure-integrated force and moment coefficients in wind axes.

        Returns:
            dict: CD, CY, CL, Cl, Cm, Cn.
        """
        cp = self.pressure_coefficients()
        areas = np.array([panel.area for panel in self._panels])
        forces = -(cp * areas)[:, None] * self.normals / self._references.area
        moments = np.cross(self.collocation_points - self._references.point, forces)
        e_drag, e_side, e_lift = wind_axes(self._freestream.velocity)
        total_force = forces.sum(axis=0)
        total_moment = moments.sum(axis=0)
        return {
            "CD": float(total_force @ e_drag),
            "CY": float(total_force @ e_side),
            "CL": float(total_force @ e_lift),
            "Cl": float(total_moment[0] / self._references.span),
            "Cm": float(total_moment[1] / self._references.chord),
            "Cn": float(total_moment[2] / self._references.span),
        }
