import logging
import numpy as np
import pandas as pd
from .exceptions import GeometryError
from .Freestream import Freestream, References
from .Horseshoe import make_horseshoes
from .Settings import AnalysisSettings
from .Solver import AerodynamicSystem
from .utils import wind_axes

DEFAULT_COMPONENT = "wing"


def influence_matrix(horseshoes: list) -> np.ndarray:
    """Normal velocity at each collocation point induced by each unit horseshoe.

    ``A[i, j] = v_j(c_i) . n_i`` with bound and trailing legs. The matrix
    depends on the geometry and on the trailing direction of the legs only.
    """
    n = len(horseshoes)
    A = np.empty((n, n))
    for i, horseshoe_i in enumerate(horseshoes):
        point, normal = horseshoe_i.collocation_point, horseshoe_i.normal
        for j, horseshoe_j in enumerate(horseshoes):
            A[i, j] = np.dot(horseshoe_j.velocity(point), normal)
    return A


def trailing_direction(freestream: Freestream, settings: AnalysisSettings) -> np.ndarray:
    """Direction of the trailing legs: fixed by the settings or along the flow."""
    if settings.trailing_direction is not None:
        return np.asarray(settings.trailing_direction, dtype=float)
    return freestream.direction


def lattice_horseshoes(grids, direction: np.ndarray, settings: AnalysisSettings):
    """Horseshoes and spanwise strip counts of one grid or of named grids.

    Args:
        grids: Camber-surface grid of shape (nc + 1, ns + 1, 3), or a mapping
            of component name to such a grid.
        direction (np.ndarray): Trailing-leg direction.
        settings (AnalysisSettings): Wake length, core radius and tolerance.

    Returns:
        tuple: ``({name: horseshoes}, {name: ns})`` in component order.
    """
    if not isinstance(grids, dict):
        grids = {DEFAULT_COMPONENT: grids}
    horseshoes, n_span = {}, {}
    for name, grid in grids.items():
        grid = np.asarray(grid, dtype=float)
        horseshoes[name] = make_horseshoes(
            grid,
            direction,
            settings.wake_length,
            settings.core_radius_fraction,
            settings.geometry_tolerance,
        )
        n_span[name] = grid.shape[1] - 1
    return horseshoes, n_span


class VortexLatticeSystem(AerodynamicSystem):
    """Vortex-lattice method with one horseshoe per lattice panel.

    Flow tangency ``(V - omega x c_i + sum_j Gamma_j v_j(c_i)) . n_i = 0``
    is imposed at the three-quarter chord of every panel. Forces follow from
    the Kutta-Joukowski law at the bound-leg midpoints.

    A lattice may hold several named components, e.g. a wing and a tail.
    They are solved as one system; forces, coefficients and span loads are
    also available per component.

    Attributes:
        _horseshoes (list): Horseshoes of all components, each component
            flat-indexed ``i * ns + j`` (borrowed).
        _components (dict): Component name to ``(slice, ns)`` into ``_horseshoes``.
        _freestream (Freestream): Flow condition.
        _references (References): Reference area, span, chord and point.
    """

    def __init__(
        self,
        horseshoes,
        freestream: Freestream,
        references: References,
        settings: AnalysisSettings = None,
        n_span=None,
        aic_matrix: np.ndarray = None,
    ):
        """Assemble the lattice system.

        Args:
            horseshoes: Horseshoes of the lattice, or a mapping of component
                name to the horseshoes of that component.
            freestream (Freestream): Flow condition.
            references (References): Reference quantities.
            settings (AnalysisSettings): Analysis settings.
            n_span: Spanwise strips, a mapping per component when
                ``horseshoes`` is one; defaults to a single chordwise row.
            aic_matrix (np.ndarray): Precomputed influence matrix for the same
                horseshoes, reused instead of being assembled again.

        Raises:
            GeometryError: If there are no horseshoes, a strip count does not
                divide its component, or ``aic_matrix`` has the wrong shape.
        """
        super().__init__(settings)
        if not isinstance(horseshoes, dict):
            horseshoes = {DEFAULT_COMPONENT: horseshoes}
            n_span = {DEFAULT_COMPONENT: n_span}
        elif n_span is None:
            n_span = {}
        if sum(len(component) for component in horseshoes.values()) == 0:
            raise GeometryError("A vortex lattice needs at least one horseshoe")

        self._horseshoes = []
        self._components = {}
        for name, component in horseshoes.items():
            strips = n_span.get(name)
            strips = len(component) if strips is None else strips
            if len(component) == 0 or strips <= 0 or len(component) % strips != 0:
                raise GeometryError(
                    f"{len(component)} horseshoes of '{name}' cannot be split into "
                    f"{strips} spanwise strips"
                )
            start = len(self._horseshoes)
            self._horseshoes.extend(component)
            self._components[name] = (slice(start, len(self._horseshoes)), strips)

        n = len(self._horseshoes)
        if aic_matrix is not None and np.shape(aic_matrix) != (n, n):
            raise GeometryError(
                f"Influence matrix of shape {np.shape(aic_matrix)} does not match "
                f"{n} horseshoes"
            )
        self._freestream = freestream
        self._references = references
        self.assemble(aic_matrix)

    @classmethod
    def from_grid(
        cls,
        grid,
        freestream: Freestream,
        references: References,
        settings: AnalysisSettings = None,
        aic_matrix: np.ndarray = None,
    ) -> "VortexLatticeSystem":
        """Build horseshoes on camber-surface grids and assemble the system.

        Args:
            grid: Points of shape (nc + 1, ns + 1, 3), chordwise from leading
                to trailing edge, spanwise along +y; or a mapping of component
                name to such a grid.
        """
        settings = settings if settings is not None else AnalysisSettings()
        horseshoes, n_span = lattice_horseshoes(
            grid, trailing_direction(freestream, settings), settings
        )
        return cls(
            horseshoes,
            freestream,
            references,
            settings,
            n_span=n_span,
            aic_matrix=aic_matrix,
        )

    def assemble(self, aic_matrix: np.ndarray = None):
        if aic_matrix is None:
            aic_matrix = influence_matrix(self._horseshoes)
        else:
            logging.debug("Reusing precomputed vortex-lattice influence matrix")
        points = self.collocation_points
        normals = np.array([horseshoe.normal for horseshoe in self._horseshoes])
        self._aic = np.array(aic_matrix, dtype=float)
        self._rhs = -np.einsum(
            "ij,ij->i", self._freestream.local_velocity(points), normals
        )

    @property
    def horseshoes(self) -> list:
        return self._horseshoes

    @property
    def freestream(self) -> Freestream:
        return self._freestream

    @property
    def references(self) -> References:
        return self._references

    @property
    def components(self) -> list:
        return list(self._components)

    @property
    def n_span(self) -> int:
        """Spanwise strips of all components."""
        return sum(strips for _, strips in self._components.values())

    def component_indices(self, component: str = None) -> slice:
        """Range of ``component`` in the flat horseshoe list; all of it for None.

        Raises:
            ValueError: If there is no such component.
        """
        if component is None:
            return slice(0, len(self._horseshoes))
        if component not in self._components:
            raise ValueError(
                f"Unknown component '{component}', expected one of {self.components}"
            )
        return self._components[component][0]

    @property
    def collocation_points(self) -> np.ndarray:
        return np.array([horseshoe.collocation_point for horseshoe in self._horseshoes])

    @property
    def bound_centers(self) -> np.ndarray:
        return np.array([horseshoe.bound_center for horseshoe in self._horseshoes])

    @property
    def circulations(self) -> np.ndarray:
        return self.strengths

    def induced_velocity(self, point: np.ndarray) -> np.ndarray:
        """Velocity induced at ``point`` by all legs of all horseshoes."""
        velocity = np.zeros(3)
        for horseshoe, gamma in zip(self._horseshoes, self.circulations):
            velocity += horseshoe.velocity(point, gamma)
        return velocity

    def velocity(self, point: np.ndarray) -> np.ndarray:
        """Total velocity: induced plus freestream plus rotational apparent velocity."""
        return self.induced_velocity(point) + self._freestream.local_velocity(point)

    def induced_trailing_velocity(self, point: np.ndarray) -> np.ndarray:
        """Velocity induced at ``point`` by the trailing legs of all horseshoes."""
        velocity = np.zeros(3)
        for horseshoe, gamma in zip(self._horseshoes, self.circulations):
            velocity += horseshoe.trailing_velocity(point, gamma)
        return velocity

    def midpoint_velocity(self, index: int) -> np.ndarray:
        """Local velocity at the bound-leg midpoint of horseshoe ``index``.

        Bound legs are left out, so the indeterminate self-induced velocity
        of the load point never enters.
        """
        center = self._horseshoes[index].bound_center
        return self.induced_trailing_velocity(center) + self._freestream.local_velocity(
            center
        )

    def nearfield_forces(self, component: str = None) -> np.ndarray:
        """Kutta-Joukowski force ``rho Gamma (V x l)`` on every bound leg, shape (n, 3).

        The local velocity includes the wakes of every component, but only
        the bound legs of ``component`` (all of them for None) are loaded.
        """
        density = self._freestream.density
        circulations = self.circulations
        indices = range(len(self._horseshoes))[self.component_indices(component)]
        return np.array(
            [
                density
                * circulations[i]
                * np.cross(self.midpoint_velocity(i), self._horseshoes[i].bound_vector)
                for i in indices
            ]
        )

    def nearfield_moments(
        self, forces: np.ndarray = None, component: str = None
    ) -> np.ndarray:
        """Moments ``(r_bound_center - r_ref) x F`` of the bound-leg forces of ``component``."""
        if forces is None:
            forces = self.nearfield_forces(component)
        centers = self.bound_centers[self.component_indices(component)]
        return np.cross(centers - self._references.point, forces)

    def nearfield_drag(self, forces: np.ndarray) -> np.ndarray:
        """Component of one force, or of each force, along the freestream flow."""
        e_drag, _, _ = wind_axes(self._freestream.velocity)
        return np.asarray(forces) @ e_drag

    def nearfield_coefficients(self, component: str = None) -> dict:
        """Force coefficients in wind axes and body-axis moment coefficients.

        Args:
            component (str): Component to integrate; the whole lattice for None.

        Returns:
            dict: CDi, CY, CL (wind axes), Cl, Cm, Cn (about the reference
            point, normalised by span, chord and span).
        """
        names = ("CDi", "CY", "CL", "Cl", "Cm", "Cn")
        self.component_indices(component)
        q = self._freestream.dynamic_pressure
        if q == 0:
            logging.warning("Zero freestream speed, nearfield coefficients set to 0")
            return dict.fromkeys(names, 0.0)
        forces = self.nearfield_forces(component)
        force = forces.sum(axis=0)
        moment = self.nearfield_moments(forces, component).sum(axis=0)
        e_drag, e_side, e_lift = wind_axes(self._freestream.velocity)
        qS = q * self._references.area
        values = (
            self.nearfield_drag(force) / qS,
            force @ e_side / qS,
            force @ e_lift / qS,
            moment[0] / (qS * self._references.span),
            moment[1] / (qS * self._references.chord),
            moment[2] / (qS * self._references.span),
        )
        return {name: float(value) for name, value in zip(names, values)}

    def component_coefficients(self) -> pd.DataFrame:
        """Nearfield coefficients of every component, one row per component.

        All components share the reference quantities, so the rows add up
        to the coefficients of the whole lattice.
        """
        return pd.DataFrame.from_dict(
            {name: self.nearfield_coefficients(name) for name in self._components},
            orient="index",
        )

    def span_loads(self, component: str = None) -> pd.DataFrame:
        """Spanwise load distribution, one row per spanwise strip.

        Strip coefficients are normalised by the dynamic pressure and the
        strip area, so ``sum(CL * area) / S`` gives the total lift coefficient.

        Args:
            component (str): Component to load; for None the strips of all
                components, indexed by (component, strip).

        Returns:
            pd.DataFrame: Columns y, area, CDi, CY, CL.
        """
        if component is None:
            return pd.concat(
                {name: self.span_loads(name) for name in self._components},
                names=["component", "strip"],
            )
        indices = self.component_indices(component)
        n_span = self._components[component][1]
        horseshoes = self._horseshoes[indices]
        n_chord = len(horseshoes) // n_span

        forces = self.nearfield_forces(component).reshape(n_chord, n_span, 3).sum(axis=0)
        centers = self.bound_centers[indices].reshape(n_chord, n_span, 3)
        areas = (
            np.array([horseshoe.area for horseshoe in horseshoes])
            .reshape(n_chord, n_span)
            .sum(axis=0)
        )
        q = self._freestream.dynamic_pressure
        e_drag, e_side, e_lift = wind_axes(self._freestream.velocity)
        scale = np.zeros(n_span) if q == 0 else 1.0 / (q * areas)
        return pd.DataFrame(
            {
                "y": centers[:, :, 1].mean(axis=0),
                "area": areas,
                "CDi": forces @ e_drag * scale,
                "CY": forces @ e_side * scale,
                "CL": forces @ e_lift * scale,
            }
        )
