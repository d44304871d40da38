import logging
import numpy as np
from .exceptions import ConfigurationError, GeometryError
from .Panel import Panel2D, WakePanel2D, WakePanel3D


class Wake:
    """Wake management class for the doublet panel methods.

    Static factory class that builds the fixed-length wake panels trailing
    from a body's trailing edge along the freestream direction.
    """

    def __init__(self):
        """Prevent direct instantiation.

        Raises:
            RuntimeError: Always raised to enforce static usage pattern.
        """
        raise RuntimeError("Use Wake.panel_2D(...) or Wake.strips_3D(...) static methods.")

    @staticmethod
    def trailing_edge_2D(panels: list) -> tuple:
        """Wake origin and trailing-edge gap of a 2D airfoil.

        The wake leaves from the upper trailing-edge point. For an open
        trailing edge the gap is closed by ``trailing_edge_panel_2D``.

        Args:
            panels (list): Panels in Selig order.

        Returns:
            tuple: (upper trailing-edge point, upper minus lower trailing-edge point).
        """
        upper, lower = panels[0].p1, panels[-1].p2
        return upper, upper - lower

    @staticmethod
    def trailing_edge_panel_2D(panels: list, tolerance: float = 1e-12):
        """Panel closing an open trailing edge, running from the lower to the upper point.

        Args:
            panels (list): Body panels in Selig order.
            tolerance (float): Gaps up to this length count as a sharp trailing edge.

        Returns:
            Panel2D: Closing panel, or None for a sharp trailing edge.
        """
        lower, upper = panels[-1].p2, panels[0].p1
        if np.linalg.norm(upper - lower) <= tolerance:
            return None
        return Panel2D(lower, upper, tolerance)

    @staticmethod
    def panel_2D(panels: list, direction: np.ndarray, length: float) -> WakePanel2D:
        """Build the single wake panel of a 2D airfoil.

        Args:
            panels (list): Body panels in Selig order.
            direction (np.ndarray): Freestream direction.
            length (float): Wake length (the wake-bound constant).

        Returns:
            WakePanel2D: Wake panel ending at the upper trailing-edge point.

        Raises:
            ConfigurationError: If the length is not finite and positive.
        """
        Wake._check_length(length)
        trailing_edge, _ = Wake.trailing_edge_2D(panels)
        return WakePanel2D(trailing_edge, direction, length)

    @staticmethod
    def strips_3D(grid: np.ndarray, direction: np.ndarray, length: float) -> list:
        """Build one wake strip per spanwise panel column of a closed body grid.

        Args:
            grid (np.ndarray): Body grid of shape (nc + 1, ns + 1, 3) wrapping from
                the lower trailing edge (i = 0) to the upper trailing edge (i = nc).
            direction (np.ndarray): Freestream direction.
            length (float): Wake length.

        Returns:
            list: ``ns`` ``WakePanel3D`` strips.

        Raises:
            ConfigurationError: If the length is not finite and positive.
            GeometryError: If the upper and lower trailing edges do not coincide.
        """
        Wake._check_length(length)
        grid = np.asarray(grid, dtype=float)
        lower, upper = grid[0], grid[-1]
        gap = np.max(np.linalg.norm(upper - lower, axis=1))
        scale = np.max(np.ptp(grid.reshape(-1, 3), axis=0))
        if gap > 1e-6 * scale:
            logging.warning(
                f"Open trailing edge (gap {gap:.3e}), shedding the wake from its midline"
            )
        trailing_edge = 0.5 * (lower + upper)
        if len(trailing_edge) < 2:
            raise GeometryError("A wake needs at least one spanwise panel")
        return [
            WakePanel3D(trailing_edge[j], trailing_edge[j + 1], direction, length)
            for j in range(len(trailing_edge) - 1)
        ]

    @staticmethod
    def _check_length(length: float):
        if not np.isfinite(length) or length <= 0:
            raise ConfigurationError(
                f"Panel wakes need a finite positive wake_length, got {length}"
            )
