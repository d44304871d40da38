import logging
import time
import warnings
import numpy as np
from scipy.linalg import (
    LinAlgWarning,
    get_lapack_funcs,
    lstsq,
    lu_factor,
    lu_solve,
)
from .exceptions import ConfigurationError, SingularMatrixError, SystemStateError
from .Settings import AnalysisSettings, LINEAR_SOLVERS


def solve_linear(
    A: np.ndarray,
    b: np.ndarray,
    method: str = "auto",
    max_condition_number: float = 1e12,
) -> tuple:
    """Solve ``A x = b`` for the singularity strengths.

    Square systems are LU-factorised and their reciprocal condition number is
    estimated with LAPACK ``gecon``. Rectangular systems are solved in the
    least-squares sense with an SVD-based solver.

    Args:
        A (np.ndarray): Influence matrix (m, n).
        b (np.ndarray): Boundary-condition vector (m,).
        method (str): 'auto', 'direct' or 'least_squares'.
        max_condition_number (float): Largest accepted condition estimate.

    Returns:
        tuple: (x, condition_number).

    Raises:
        ConfigurationError: If 'direct' is requested for a rectangular matrix or
            the method is unknown.
        SingularMatrixError: If the matrix is singular, rank deficient,
            ill-conditioned or holds non-finite values.
    """
    A = np.asarray(A, dtype=float)
    b = np.asarray(b, dtype=float)
    if A.ndim != 2 or b.shape != (A.shape[0],):
        raise ValueError(
            f"Incompatible shapes for A {A.shape} and b {b.shape}"
        )
    if method not in LINEAR_SOLVERS:
        raise ConfigurationError(
            f"method must be one of {LINEAR_SOLVERS}, got '{method}'"
        )
    is_square = A.shape[0] == A.shape[1]
    if method == "direct" and not is_square:
        raise ConfigurationError(
            f"A direct solve needs a square matrix, got shape {A.shape}; "
            "use 'least_squares' or 'auto'"
        )
    if not np.all(np.isfinite(A)) or not np.all(np.isfinite(b)):
        raise SingularMatrixError(
            A.shape, np.inf, "Influence matrix or boundary vector holds NaN or Inf"
        )
    if method == "auto":
        method = "direct" if is_square else "least_squares"

    if method == "direct":
        x, condition_number = _solve_direct(A, b)
    else:
        x, condition_number = _solve_least_squares(A, b)

    if condition_number > max_condition_number:
        raise SingularMatrixError(A.shape, condition_number)
    if not np.all(np.isfinite(x)):
        raise SingularMatrixError(A.shape, condition_number)
    logging.debug(
        f"Solved {A.shape} system ({method}), condition number {condition_number:.3e}"
    )
    return x, condition_number


def _solve_direct(A: np.ndarray, b: np.ndarray) -> tuple:
    with warnings.catch_warnings():
        warnings.simplefilter("error", LinAlgWarning)
        try:
            lu, piv = lu_factor(A, check_finite=False)
        except (LinAlgWarning, np.linalg.LinAlgError, ValueError) as error:
            raise SingularMatrixError(A.shape, np.inf) from error
    if np.any(np.diag(lu) == 0):
        raise SingularMatrixError(A.shape, np.inf)

    (gecon,) = get_lapack_funcs(("gecon",), (lu,))
    anorm = np.linalg.norm(A, 1)
    rcond, info = gecon(lu, anorm, norm="1")
    condition_number = np.inf if info != 0 or rcond <= 0 else 1.0 / rcond
    return lu_solve((lu, piv), b, check_finite=False), condition_number


def _solve_least_squares(A: np.ndarray, b: np.ndarray) -> tuple:
    try:
        x, _, rank, singular_values = lstsq(A, b, check_finite=False)
    except np.linalg.LinAlgError as error:
        raise SingularMatrixError(A.shape, np.inf) from error
    if rank < A.shape[1] or singular_values[-1] == 0:
        raise SingularMatrixError(A.shape, np.inf)
    return x, singular_values[0] / singular_values[-1]


class AerodynamicSystem:
    """Common state machine of the aerodynamic systems.

    A system is *assembled* on construction (influence matrix and boundary
    vector built, strengths undefined) and becomes *solved* exactly once.
    Matrices and strengths are read-only after the solve.

    Attributes:
        _aic (np.ndarray): Influence matrix.
        _rhs (np.ndarray): Boundary-condition vector.
        _strengths (np.ndarray): Solved strengths, None until solved.
        _condition_number (float): Condition estimate of the solve.
    """

    def __init__(self, settings: AnalysisSettings = None):
        self._settings = settings if settings is not None else AnalysisSettings()
        self._aic = None
        self._rhs = None
        self._strengths = None
        self._condition_number = None

    @property
    def settings(self) -> AnalysisSettings:
        return self._settings

    @property
    def aic_matrix(self) -> np.ndarray:
        return self._aic

    @property
    def boundary_vector(self) -> np.ndarray:
        return self._rhs

    @property
    def is_solved(self) -> bool:
        return self._strengths is not None

    @property
    def state(self) -> str:
        return "solved" if self.is_solved else "assembled"

    @property
    def strengths(self) -> np.ndarray:
        """Solved singularity strengths.

        Raises:
            SystemStateError: If the system has not been solved.
        """
        self._require_solved()
        return self._strengths

    @property
    def condition_number(self) -> float:
        self._require_solved()
        return self._condition_number

    @property
    def linear_solver(self) -> str:
        """Solve method used for this system."""
        return self._settings.linear_solver

    def solve(self) -> "AerodynamicSystem":
        """Solve the system with a ``Solver`` built from its own settings."""
        return Solver(self._settings).solve(self)

    def _require_solved(self):
        if self._strengths is None:
            raise SystemStateError(
                f"{type(self).__name__} is assembled but not solved; call solve() first"
            )

    def _store_solution(self, strengths: np.ndarray, condition_number: float):
        if self._strengths is not None:
            raise SystemStateError(f"{type(self).__name__} has already been solved")
        strengths = np.array(strengths, dtype=float)
        for array in (strengths, self._aic, self._rhs):
            array.setflags(write=False)
        self._strengths = strengths
        self._condition_number = condition_number


class Solver:
    """Moves aerodynamic systems from the assembled to the solved state.

    Attributes:
        settings (AnalysisSettings): Linear solver choice and condition limit.
    """

    def __init__(self, settings: AnalysisSettings = None):
        self.settings = settings if settings is not None else AnalysisSettings()

    def solve(self, system: AerodynamicSystem) -> AerodynamicSystem:
        """Solve an assembled system in place.

        Args:
            system (AerodynamicSystem): Assembled system.

        Returns:
            AerodynamicSystem: The same system, now solved.

        Raises:
            SystemStateError: If the system was already solved.
            SingularMatrixError: If the influence matrix is singular.
            ConfigurationError: If the solver choice does not fit the system.
        """
        if system.is_solved:
            raise SystemStateError(f"{type(system).__name__} has already been solved")
        method = self.settings.linear_solver
        if system.linear_solver != "auto" and method == "auto":
            method = system.linear_solver
        begin_time = time.time()
        strengths, condition_number = solve_linear(
            system.aic_matrix,
            system.boundary_vector,
            method=method,
            max_condition_number=self.settings.max_condition_number,
        )
        logging.info(
            f"{type(system).__name__}: solved {system.aic_matrix.shape} system in "
            f"{time.time() - begin_time:.3f} s (condition number {condition_number:.2e})"
        )
        system._store_solution(strengths, condition_number)
        return system
