import numpy as np


def cosine_spacing(n_points: int) -> np.ndarray:
    """Points on [0, 1] clustered at both ends."""
    return 0.5 * (1 - np.cos(np.linspace(0, np.pi, n_points)))


def naca4_thickness(x: np.ndarray, thickness: float, sharp_trailing_edge: bool = True):
    last = -0.1036 if sharp_trailing_edge else -0.1015
    return (
        5
        * thickness
        * (
            0.2969 * np.sqrt(x)
            - 0.1260 * x
            - 0.3516 * x**2
            + 0.2843 * x**3
            + last * x**4
        )
    )


def naca4_coordinates(
    thickness: float = 0.12,
    camber: float = 0.0,
    camber_position: float = 0.4,
    n_per_side: int = 40,
    sharp_trailing_edge: bool = True,
) -> np.ndarray:
    """NACA 4-digit airfoil of unit chord in Selig order, cosine spaced.

    Returns:
        np.ndarray: 2 * n_per_side + 1 points from the upper trailing edge
        round the leading edge to the lower trailing edge.
    """
    x = cosine_spacing(n_per_side + 1)
    y_t = naca4_thickness(x, thickness, sharp_trailing_edge)
    if camber > 0:
        p = camber_position
        y_c = np.where(
            x < p,
            camber / p**2 * (2 * p * x - x**2),
            camber / (1 - p) ** 2 * (1 - 2 * p + 2 * p * x - x**2),
        )
        slope = np.where(
            x < p,
            2 * camber / p**2 * (p - x),
            2 * camber / (1 - p) ** 2 * (p - x),
        )
    else:
        y_c = np.zeros_like(x)
        slope = np.zeros_like(x)
    theta = np.arctan(slope)
    upper = np.column_stack([x - y_t * np.sin(theta), y_c + y_t * np.cos(theta)])
    lower = np.column_stack([x + y_t * np.sin(theta), y_c - y_t * np.cos(theta)])
    return np.vstack([upper[::-1], lower[1:]])


def rectangular_wing_grid(
    span: float = 5.0,
    chord: float = 1.0,
    n_span: int = 1,
    n_chord: int = 1,
    spanwise_spacing: str = "uniform",
) -> np.ndarray:
    """Flat rectangular lattice in the z = 0 plane, centred on y = 0.

    Returns:
        np.ndarray: Grid of shape (n_chord + 1, n_span + 1, 3), leading edge at x = 0.
    """
    if spanwise_spacing == "cosine":
        eta = cosine_spacing(n_span + 1)
    else:
        eta = np.linspace(0, 1, n_span + 1)
    y = span * (eta - 0.5)
    x = np.linspace(0, chord, n_chord + 1)
    grid = np.zeros((n_chord + 1, n_span + 1, 3))
    grid[:, :, 0] = x[:, None]
    grid[:, :, 1] = y[None, :]
    return grid


def closed_wing_grid(
    span: float = 6.0,
    chord: float = 1.0,
    thickness: float = 0.12,
    n_per_side: int = 8,
    n_span: int = 12,
) -> np.ndarray:
    """Closed symmetric wing whose thickness tapers elliptically to zero at the tips.

    The chordwise index wraps from the lower trailing edge round the leading
    edge to the upper trailing edge.

    Returns:
        np.ndarray: Grid of shape (2 * n_per_side + 1, n_span + 1, 3).
    """
    x = chord * cosine_spacing(n_per_side + 1)[::-1]
    y = span * (cosine_spacing(n_span + 1) - 0.5)
    envelope = np.sqrt(np.clip(1 - (2 * y / span) ** 2, 0, None))
    y_t = chord * naca4_thickness(x / chord, thickness)

    section_x = np.concatenate([x, x[::-1][1:]])
    section_z = np.concatenate([-y_t, y_t[::-1][1:]])
    grid = np.zeros((len(section_x), len(y), 3))
    grid[:, :, 0] = section_x[:, None]
    grid[:, :, 1] = y[None, :]
    grid[:, :, 2] = section_z[:, None] * envelope[None, :]
    return grid


def thin_airfoil_lift(alpha_deg: float, thickness: float = 0.0) -> float:
    """Thin-airfoil lift ``2 pi sin(alpha)`` with the first-order thickness correction."""
    return 2 * np.pi * (1 + 0.77 * thickness) * np.sin(np.deg2rad(alpha_deg))


def helmbold_lift_slope(aspect_ratio: float) -> float:
    """Lift slope per radian of a straight, untwisted wing (Helmbold)."""
    return 2 * np.pi * aspect_ratio / (2 + np.sqrt(aspect_ratio**2 + 4))


def lifting_line_lift_slope(aspect_ratio: float) -> float:
    """High aspect-ratio lifting-line slope ``2 pi AR / (AR + 2)`` per radian."""
    return 2 * np.pi * aspect_ratio / (aspect_ratio + 2)
