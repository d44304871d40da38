from numba import jit
import numpy as np


@jit(nopython=True)
def jit_cross(a, b):
    return np.cross(a, b)


@jit(nopython=True)
def jit_norm(value):
    return np.linalg.norm(value.astype(np.float64))


@jit(nopython=True)
def jit_dot(a, b):
    return np.dot(a.astype(np.float64), b.astype(np.float64))


def unit_vector(vector: np.ndarray, tolerance: float = 1e-12) -> np.ndarray:
    """Normalise a vector, returning zeros when its length is below tolerance."""
    vector = np.asarray(vector, dtype=float)
    norm = np.linalg.norm(vector)
    if norm < tolerance:
        return np.zeros_like(vector)
    return vector / norm


def wind_axes(flow_direction: np.ndarray) -> tuple:
    """Drag, side and lift unit vectors for a given flow direction.

    Drag is aligned with the flow, lift is the part of the body z-axis normal
    to the flow and side force completes the right-handed triad.

    Args:
        flow_direction (np.ndarray): Freestream flow vector (need not be unit).

    Returns:
        tuple: (e_drag, e_side, e_lift) unit vectors.
    """
    e_drag = unit_vector(flow_direction)
    if not np.any(e_drag):
        e_drag = np.array([1.0, 0.0, 0.0])
    z_axis = np.array([0.0, 0.0, 1.0])
    e_lift = unit_vector(z_axis - np.dot(z_axis, e_drag) * e_drag)
    if not np.any(e_lift):
        e_lift = unit_vector(np.cross(e_drag, np.array([0.0, 1.0, 0.0])))
    e_side = np.cross(e_lift, e_drag)
    return e_drag, e_side, e_lift
