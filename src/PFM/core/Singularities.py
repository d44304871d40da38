"""Closed-form singularity kernels.

2D kernels take the evaluation point in the panel-local frame, where the
panel runs along the x-axis from ``x1`` to ``x2`` and ``z`` is the distance
along the outward normal. 3D kernels take the four corners of a
quadrilateral and a point in global coordinates.

Sign conventions: a unit doublet produces a potential jump of ``-1`` when
crossing the element from the inside to the outside, so the potential seen
from the inside at the element centre is ``+0.5``. A positive source pushes
fluid away from the element on both sides.
"""

import numpy as np
from numba import jit
from .utils import jit_cross, jit_dot, jit_norm

# Squared distances (2D) or lengths (3D) below this value are treated as zero.
SINGULAR_TOLERANCE = 1e-24


@jit(nopython=True)
def _log_weight(dx, r_sq):
    # dx * log(r^2) tends to zero when the point approaches the endpoint.
    if r_sq < SINGULAR_TOLERANCE:
        return 0.0
    return dx * np.log(r_sq)


@jit(nopython=True)
def source_potential_2D(strength, x, z, x1, x2):
    """Potential of a constant-strength 2D source panel."""
    r1_sq = (x - x1) ** 2 + z**2
    r2_sq = (x - x2) ** 2 + z**2
    theta_1 = np.arctan2(z, x - x1)
    theta_2 = np.arctan2(z, x - x2)
    return (
        strength
        / (4 * np.pi)
        * (
            _log_weight(x - x1, r1_sq)
            - _log_weight(x - x2, r2_sq)
            + 2 * z * (theta_2 - theta_1)
        )
    )


@jit(nopython=True)
def source_velocity_2D(strength, x, z, x1, x2):
    """Panel-local velocity (u, w) induced by a constant-strength 2D source panel."""
    r1_sq = (x - x1) ** 2 + z**2
    r2_sq = (x - x2) ** 2 + z**2
    log_r1 = np.log(r1_sq) if r1_sq > SINGULAR_TOLERANCE else 0.0
    log_r2 = np.log(r2_sq) if r2_sq > SINGULAR_TOLERANCE else 0.0
    u = strength / (4 * np.pi) * (log_r1 - log_r2)
    w = strength / (2 * np.pi) * (np.arctan2(z, x - x2) - np.arctan2(z, x - x1))
    return u, w


@jit(nopython=True)
def doublet_potential_2D(strength, x, z, x1, x2):
    """Potential of a constant-strength 2D doublet panel."""
    return (
        strength / (2 * np.pi) * (np.arctan2(z, x - x1) - np.arctan2(z, x - x2))
    )


@jit(nopython=True)
def doublet_velocity_2D(strength, x, z, x1, x2):
    """Panel-local velocity (u, w) induced by a constant-strength 2D doublet panel.

    The velocity is unbounded at the panel endpoints; the contribution of an
    endpoint closer than the tolerance is dropped.
    """
    r1_sq = (x - x1) ** 2 + z**2
    r2_sq = (x - x2) ** 2 + z**2
    u = 0.0
    w = 0.0
    if r1_sq > SINGULAR_TOLERANCE:
        u -= z / r1_sq
        w += (x - x1) / r1_sq
    if r2_sq > SINGULAR_TOLERANCE:
        u += z / r2_sq
        w -= (x - x2) / r2_sq
    return strength / (2 * np.pi) * u, strength / (2 * np.pi) * w


@jit(nopython=True)
def linear_doublet_potential_2D(slope, x, z, x1, x2):
    """Potential of a 2D doublet panel whose strength is ``slope * (s - x1)``."""
    r1_sq = (x - x1) ** 2 + z**2
    r2_sq = (x - x2) ** 2 + z**2
    log_r1 = np.log(r1_sq) if r1_sq > SINGULAR_TOLERANCE else 0.0
    log_r2 = np.log(r2_sq) if r2_sq > SINGULAR_TOLERANCE else 0.0
    return slope * (
        (x - x1) * doublet_potential_2D(1.0, x, z, x1, x2)
        - z / (4 * np.pi) * (log_r2 - log_r1)
    )


@jit(nopython=True)
def linear_doublet_velocity_2D(slope, x, z, x1, x2):
    """Panel-local velocity (u, w) induced by a linear-strength 2D doublet panel.

    The constant part of the strength seen from ``x`` is the constant-panel
    velocity; the rest comes from the uniform vortex sheet the slope stands for.
    """
    r1_sq = (x - x1) ** 2 + z**2
    r2_sq = (x - x2) ** 2 + z**2
    u_c, w_c = doublet_velocity_2D(1.0, x, z, x1, x2)
    u = doublet_potential_2D(1.0, x, z, x1, x2) + (x - x1) * u_c
    w = (x - x1) * w_c
    if r1_sq > SINGULAR_TOLERANCE:
        u += z * (x - x1) / (2 * np.pi * r1_sq)
        w += z**2 / (2 * np.pi * r1_sq) + np.log(r1_sq) / (4 * np.pi)
    if r2_sq > SINGULAR_TOLERANCE:
        u -= z * (x - x2) / (2 * np.pi * r2_sq)
        w -= z**2 / (2 * np.pi * r2_sq) + np.log(r2_sq) / (4 * np.pi)
    return slope * u, slope * w


@jit(nopython=True)
def _biot_savart(r0, r1, r2, gamma):
    r1Xr2 = jit_cross(r1, r2)
    r1Xr2_sq = jit_dot(r1Xr2, r1Xr2)
    norm_r1 = jit_norm(r1)
    norm_r2 = jit_norm(r2)
    if r1Xr2_sq < SINGULAR_TOLERANCE or norm_r1 == 0.0 or norm_r2 == 0.0:
        return np.zeros(3)
    return (
        gamma
        / (4 * np.pi)
        * r1Xr2
        / r1Xr2_sq
        * jit_dot(r0, r1 / norm_r1 - r2 / norm_r2)
    )


@jit(nopython=True)
def vortex_segment_velocity(point, x1, x2, gamma, epsilon):
    """Velocity induced by a straight vortex segment from ``x1`` to ``x2``.

    Inside the cut-off radius ``epsilon`` the velocity decays linearly to
    zero on the axis (solid-body core). Points on the segment line get zero.
    """
    r0 = x2 - x1
    r1 = point - x1
    r2 = point - x2
    length = jit_norm(r0)
    if length < 1e-12:
        return np.zeros(3)

    r1_parallel = jit_dot(r1, r0) / length**2 * r0
    r_perp = r1 - r1_parallel
    distance = jit_norm(r_perp)

    if distance < 1e-12 * length:
        return np.zeros(3)
    if distance > epsilon:
        return _biot_savart(r0, r1, r2, gamma)

    # Evaluate on the core edge and scale back towards the axis
    offset = epsilon * r_perp / distance
    r1_proj = r1_parallel + offset
    r2_proj = r1_parallel - r0 + offset
    return distance / epsilon * _biot_savart(r0, r1_proj, r2_proj, gamma)


@jit(nopython=True)
def semi_infinite_vortex_velocity(point, x1, direction, gamma, epsilon):
    """Velocity induced by a vortex starting at ``x1`` and running to infinity.

    Args:
        point: Evaluation point.
        x1: Start point of the filament.
        direction: Unit vector along which the filament extends.
        gamma: Circulation, positive along ``direction``.
        epsilon: Cut-off radius of the solid-body core.
    """
    r1 = point - x1
    norm_r1 = jit_norm(r1)
    r1Xd = jit_cross(r1, direction)
    distance = jit_norm(r1Xd)

    if distance < 1e-12 * (1.0 + norm_r1):
        return np.zeros(3)
    if distance > epsilon:
        return (
            -gamma
            / (4 * np.pi)
            / distance**2
            * (1 + jit_dot(r1, direction) / norm_r1)
            * r1Xd
        )

    r1_parallel = jit_dot(r1, direction) * direction
    r_perp = r1 - r1_parallel
    r1_proj = r1_parallel + epsilon * r_perp / jit_norm(r_perp)
    r1Xd_proj = jit_cross(r1_proj, direction)
    norm_proj = jit_norm(r1_proj)
    velocity_proj = (
        -gamma
        / (4 * np.pi)
        / jit_dot(r1Xd_proj, r1Xd_proj)
        * (1 + jit_dot(r1_proj, direction) / norm_proj)
        * r1Xd_proj
    )
    return distance / epsilon * velocity_proj


@jit(nopython=True)
def _triangle_solid_angle(a, b, c, point):
    # Van Oosterom & Strackee (1983); negative on the side the
    # right-handed normal (b - a) x (c - a) points to.
    R1 = a - point
    R2 = b - point
    R3 = c - point
    r1 = np.sqrt(np.dot(R1, R1))
    r2 = np.sqrt(np.dot(R2, R2))
    r3 = np.sqrt(np.dot(R3, R3))
    numerator = np.dot(R1, np.cross(R2, R3))
    denominator = (
        r1 * r2 * r3
        + np.dot(R1, R2) * r3
        + np.dot(R1, R3) * r2
        + np.dot(R2, R3) * r1
    )
    if abs(numerator) < SINGULAR_TOLERANCE and abs(denominator) < SINGULAR_TOLERANCE:
        return 0.0
    return 2.0 * np.arctan2(numerator, denominator)


@jit(nopython=True)
def quadrilateral_solid_angle(corners, point):
    """Signed solid angle of a quadrilateral split into two triangles."""
    return _triangle_solid_angle(
        corners[0], corners[1], corners[2], point
    ) + _triangle_solid_angle(corners[0], corners[2], corners[3], point)


@jit(nopython=True)
def quadrilateral_doublet_potential(corners, point):
    """Potential of a unit-strength quadrilateral doublet panel."""
    return quadrilateral_solid_angle(corners, point) / (4 * np.pi)


@jit(nopython=True)
def quadrilateral_doublet_velocity(corners, point, epsilon):
    """Velocity of a unit quadrilateral doublet, as the equivalent vortex ring.

    The ring runs ``p1 -> p2 -> p3 -> p4 -> p1`` with unit circulation.
    """
    velocity = np.zeros(3)
    for k in range(4):
        velocity += vortex_segment_velocity(
            point, corners[k], corners[(k + 1) % 4], 1.0, epsilon
        )
    return velocity


@jit(nopython=True)
def _planar_frame(corners):
    centre = (corners[0] + corners[1] + corners[2] + corners[3]) / 4.0
    normal = np.cross(corners[2] - corners[0], corners[3] - corners[1])
    normal = normal / np.sqrt(np.dot(normal, normal))
    chordwise = (corners[1] + corners[2] - corners[0] - corners[3]) / 2.0
    l_axis = chordwise - np.dot(chordwise, normal) * normal
    l_axis = l_axis / np.sqrt(np.dot(l_axis, l_axis))
    m_axis = np.cross(normal, l_axis)
    return centre, l_axis, m_axis, normal


@jit(nopython=True)
def _source_edge_terms(corners, point):
    """Edge logarithms, in-plane distances and local coordinates for a source quad."""
    centre, l_axis, m_axis, normal = _planar_frame(corners)
    local = np.zeros((4, 3))
    for k in range(4):
        offset = corners[k] - centre
        local[k, 0] = np.dot(offset, l_axis)
        local[k, 1] = np.dot(offset, m_axis)
    offset = point - centre
    x = np.dot(offset, l_axis)
    y = np.dot(offset, m_axis)
    z = np.dot(offset, normal)

    projected = np.zeros(3)
    projected[0] = x
    projected[1] = y
    projected[2] = z
    omega = _triangle_solid_angle(
        local[0], local[1], local[2], projected
    ) + _triangle_solid_angle(local[0], local[2], local[3], projected)

    logs = np.zeros(4)
    deltas = np.zeros(4)
    dxs = np.zeros(4)
    dys = np.zeros(4)
    for k in range(4):
        a = local[k]
        b = local[(k + 1) % 4]
        dx = b[0] - a[0]
        dy = b[1] - a[1]
        d = np.sqrt(dx**2 + dy**2)
        if d < 1e-12:
            continue
        r_a = np.sqrt((x - a[0]) ** 2 + (y - a[1]) ** 2 + z**2)
        r_b = np.sqrt((x - b[0]) ** 2 + (y - b[1]) ** 2 + z**2)
        dxs[k] = dx / d
        dys[k] = dy / d
        deltas[k] = (dx * (y - a[1]) - dy * (x - a[0])) / d
        if r_a + r_b - d > 1e-12 * d:
            logs[k] = np.log((r_a + r_b + d) / (r_a + r_b - d))
    return logs, deltas, dxs, dys, omega, z, l_axis, m_axis, normal


@jit(nopython=True)
def quadrilateral_source_potential(corners, point):
    """Potential of a unit-strength quadrilateral source panel.

    The panel is replaced by its projection on the mean plane. Edge terms with
    a vanishing in-plane distance are dropped, which is their analytic limit.
    """
    edge_terms = _source_edge_terms(corners, point)
    logs = edge_terms[0]
    deltas = edge_terms[1]
    omega = edge_terms[4]
    z = edge_terms[5]
    edge_sum = 0.0
    for k in range(4):
        edge_sum += deltas[k] * logs[k]
    return -(edge_sum - abs(z) * abs(omega)) / (4 * np.pi)


@jit(nopython=True)
def quadrilateral_source_velocity(corners, point):
    """Velocity of a unit-strength quadrilateral source panel."""
    edge_terms = _source_edge_terms(corners, point)
    logs = edge_terms[0]
    dxs = edge_terms[2]
    dys = edge_terms[3]
    omega = edge_terms[4]
    l_axis = edge_terms[6]
    m_axis = edge_terms[7]
    normal = edge_terms[8]
    u = 0.0
    v = 0.0
    for k in range(4):
        u += dys[k] * logs[k]
        v -= dxs[k] * logs[k]
    w = -omega
    return (u * l_axis + v * m_axis + w * normal) / (4 * np.pi)
