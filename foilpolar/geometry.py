import numpy as np

TE_CAP_PANELS = 8


# ============================================================================
# NACA 4-DIGIT SHAPE FUNCTIONS
# ============================================================================
def camber_line(m, p, x):
    x = np.asarray(x, dtype=float)
    if m == 0.0 or p == 0.0:
        return np.zeros_like(x)
    front = m / p**2 * (2 * p * x - x**2)
    back = m / (1 - p) ** 2 * ((1 - 2 * p) + 2 * p * x - x**2)
    return np.where(x <= p, front, back)


def camber_slope(m, p, x):
    x = np.asarray(x, dtype=float)
    if m == 0.0 or p == 0.0:
        return np.zeros_like(x)
    front = 2 * m / p**2 * (p - x)
    back = 2 * m / (1 - p) ** 2 * (p - x)
    return np.where(x <= p, front, back)


def thickness_distribution(t, x):
    x = np.asarray(x, dtype=float)
    return t / 0.2 * (
        0.2969 * np.sqrt(x)
        - 0.1260 * x
        - 0.3516 * x**2
        + 0.2843 * x**3
        - 0.1015 * x**4
    )


def cosine_stations(n):
    beta = np.linspace(0.0, np.pi, n)
    return 0.5 * (1.0 - np.cos(beta))


def surface_stations(params, n=None):
    """Cosine-spaced chord stations and the upper/lower surface points at them.

    Returns ``(x_c, upper, lower, theta)`` where ``upper`` and ``lower`` are
    ``(n, 2)`` arrays ordered from the leading edge to the trailing edge and
    ``theta`` is the local camber-line angle.
    """
    if n is None:
        n = params.sample_points
    x_c = cosine_stations(n)
    yc = camber_line(params.m, params.p, x_c)
    theta = np.arctan(camber_slope(params.m, params.p, x_c))
    yt = thickness_distribution(params.t, x_c)

    upper = np.column_stack([x_c - yt * np.sin(theta), yc + yt * np.cos(theta)])
    lower = np.column_stack([x_c + yt * np.sin(theta), yc - yt * np.cos(theta)])
    return x_c, upper, lower, theta


# ============================================================================
# CLOSED SURFACE LOOPS
# ============================================================================
def _open_loop(params):
    # TE(lower) -> LE -> TE(upper)
    _, upper, lower, _ = surface_stations(params)
    return np.concatenate([np.flip(lower, axis=0), upper[1:]])


def build_body_geometry(params):
    """Closed loop with a small rounded cap bridging the trailing-edge gap.

    A straight closing segment split into sub-panels would give overlapping
    panels with identical tangents; an arc gives distinct tangents.
    """
    loop = _open_loop(params)
    te_lower = loop[0]
    te_upper = loop[-1]
    gap = te_upper - te_lower
    gap_len = np.hypot(gap[0], gap[1])

    if gap_len <= 1e-8:
        return np.vstack([loop, te_lower])

    center = 0.5 * (te_upper + te_lower)
    r = 0.5 * gap_len
    axis = (te_upper - center) / r
    perp = np.array([-axis[1], axis[0]])
    # bulge toward -x so the cap stays inside the chord
    if perp[0] > 0.0:
        perp = -perp

    phi = np.arange(1, TE_CAP_PANELS) / TE_CAP_PANELS * np.pi
    cap = (
        center
        + np.outer(r * np.cos(phi), axis)
        + np.outer(r * np.sin(phi), perp)
    )
    return np.vstack([loop, cap, te_lower])


def build_body_geometry_sharp_te(params):
    """Closed loop ending on a repeat of the first point (for Kutta solves)."""
    loop = _open_loop(params)
    return np.vstack([loop, loop[0]])


def generate_geometry(params, sharp_te=False):
    if sharp_te:
        return build_body_geometry_sharp_te(params)
    return build_body_geometry(params)
