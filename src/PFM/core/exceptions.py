import numpy as np


class PFMError(Exception):
    """Base class for all errors raised by the potential-flow solvers."""


class GeometryError(PFMError, ValueError):
    """Degenerate panel or horseshoe, or inconsistent mesh dimensions.

    Raised while building panels or assembling a system, before any linear
    algebra takes place.
    """


class ConfigurationError(PFMError, ValueError):
    """Invalid or inconsistent analysis settings."""


class SingularMatrixError(PFMError, np.linalg.LinAlgError):
    """The influence matrix could not be factorised or is too ill-conditioned.

    Attributes:
        shape (tuple): Shape of the offending matrix.
        condition_number (float): Condition number estimate (``inf`` when the
            factorisation broke down).
    """

    def __init__(self, shape: tuple, condition_number: float, message: str = None):
        self.shape = tuple(shape)
        self.condition_number = float(condition_number)
        if message is None:
            message = (
                f"Influence matrix of shape {self.shape} is singular or "
                f"ill-conditioned (condition number estimate {self.condition_number:.3e})"
            )
        super().__init__(message)

    def __reduce__(self):
        return (self.__class__, (self.shape, self.condition_number, str(self)))


class SystemStateError(PFMError, RuntimeError):
    """A system was used out of order (read before solve, or solved twice)."""


class StagnationWarning(UserWarning):
    """A streamline reached a point of (near) zero velocity and was truncated."""
