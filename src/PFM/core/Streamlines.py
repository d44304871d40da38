import warnings
import numpy as np
from .exceptions import StagnationWarning


def stream_velocity(system, point: np.ndarray) -> np.ndarray:
    """Total velocity of a solved system at ``point``.

    Works for any solved system with a ``velocity(point)`` method: the vortex
    lattice (3D) and the 2D doublet-source system.
    """
    return np.asarray(system.velocity(np.asarray(point, dtype=float)), dtype=float)


def iter_streamline(
    system,
    seed: np.ndarray,
    length: float = 1.0,
    num_steps: int = 100,
    stagnation_tolerance: float = None,
):
    """Trace a streamline from ``seed`` with fixed-step explicit Euler.

    Each step advances ``length / num_steps`` along the normalised total
    velocity. The generator yields the seed followed by ``num_steps`` points
    and cannot be restarted; trace again from a new seed instead.

    Args:
        system: Solved aerodynamic system.
        seed (np.ndarray): Start point.
        length (float): Total streamline length.
        num_steps (int): Number of Euler steps.
        stagnation_tolerance (float): Speed below which tracing stops; taken
            from the system settings by default.

    Yields:
        np.ndarray: Successive streamline points.

    Warns:
        StagnationWarning: If the total speed drops below the tolerance; the
            streamline ends at that point.
    """
    if num_steps < 1:
        raise ValueError(f"num_steps must be at least 1, got {num_steps}")
    if stagnation_tolerance is None:
        stagnation_tolerance = system.settings.stagnation_tolerance
    step = length / num_steps
    point = np.array(seed, dtype=float)
    yield point.copy()
    for _ in range(num_steps):
        velocity = stream_velocity(system, point)
        speed = np.linalg.norm(velocity)
        if speed <= stagnation_tolerance:
            warnings.warn(
                f"Stagnation point near {point.tolist()} (speed {speed:.2e}), "
                "streamline truncated",
                StagnationWarning,
            )
            return
        point = point + step * velocity / speed
        yield point.copy()


def streamlines(
    system,
    seeds: np.ndarray,
    length: float = 1.0,
    num_steps: int = 100,
) -> list:
    """Trace one streamline per seed.

    Returns:
        list: One array of shape (k, dim) per seed, ``k <= num_steps + 1``.
    """
    return [
        np.array(list(iter_streamline(system, seed, length, num_steps)))
        for seed in np.atleast_2d(np.asarray(seeds, dtype=float))
    ]
