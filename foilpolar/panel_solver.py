import logging
import warnings
from dataclasses import dataclass, field
from functools import cached_property

import numpy as np
from scipy.linalg import LinAlgWarning, lu_factor, lu_solve

from .geometry import build_body_geometry_sharp_te, surface_stations
from .panels import build_panels
from .params import prandtl_glauert_beta

logger = logging.getLogger(__name__)

COLLOCATION_OFFSET = 1e-4
SURFACE_SAMPLE_EPS = 1e-4
MIN_PANELS = 4
PIVOT_TOL = 1e-10
CP_MIN, CP_MAX = -3.0, 2.0

# Kutta panel selection policy (empirical)
KUTTA_MIN_TANGENT_X = 0.2
KUTTA_NEAR_TE_CANDIDATES = 6


# ============================================================================
# PANEL INFLUENCE KERNELS
# ============================================================================
def source_velocity(points, panels):
    """Velocity induced at ``points`` by unit-strength source panels.

    Returns an ``(M, N, 2)`` array for ``M`` points and ``N`` panels. Each
    panel is handled in its own (tangent, normal) frame with the closed-form
    log/atan2 terms of the distances to the two panel end points.
    """
    points = np.atleast_2d(np.asarray(points, dtype=float))
    d = points[:, None, :] - panels.start[None, :, :]
    x_local = np.einsum("mnk,nk->mn", d, panels.tangent)
    y_local = np.einsum("mnk,nk->mn", d, panels.normal)
    y_local = np.where(
        np.abs(y_local) < 1e-6, np.where(y_local >= 0.0, 1e-6, -1e-6), y_local
    )
    x2 = x_local - panels.length[None, :]

    r1_sq = np.maximum(x_local**2 + y_local**2, 1e-12)
    r2_sq = np.maximum(x2**2 + y_local**2, 1e-12)

    ln_term = np.log(r1_sq / r2_sq)
    atan_term = np.arctan2(y_local, x2) - np.arctan2(y_local, x_local)

    u = ln_term / (4.0 * np.pi)
    v = atan_term / (2.0 * np.pi)
    return (
        u[:, :, None] * panels.tangent[None, :, :]
        + v[:, :, None] * panels.normal[None, :, :]
    )


def vortex_velocity(points, panels):
    """Velocity induced by unit-strength (counter-clockwise) vortex panels.

    A constant vortex sheet induces the source-sheet field rotated by +90
    degrees, which keeps the result independent of the panel frame handedness.
    """
    return _rot90(source_velocity(points, panels))


def _rot90(vec):
    return np.stack([-vec[..., 1], vec[..., 0]], axis=-1)


def freestream_vector(alpha_deg):
    # body frame: the airfoil stays put and the freestream rotates with alpha
    alpha = np.deg2rad(alpha_deg)
    return np.array([np.cos(alpha), np.sin(alpha)])


# ============================================================================
# SOLUTION CONTAINERS
# ============================================================================
@dataclass(frozen=True, eq=False)
class PanelSolution:
    """Surface Cp sampled at chord stations from a panel solve."""

    alpha_deg: float
    x: np.ndarray
    cp_upper: np.ndarray
    cp_lower: np.ndarray
    upper_coords: np.ndarray
    lower_coords: np.ndarray

    is_fallback = False

    @cached_property
    def cl(self):
        """Section lift from the trapezoidal integral of Cp_lower - Cp_upper."""
        if len(self.x) < 2:
            return float("nan")
        dx, dcp_avg, _ = self._segments()
        return float(np.sum(dcp_avg * dx))

    @cached_property
    def cm_c4(self):
        """Pitching moment about c/4, nose-up positive."""
        if len(self.x) < 2:
            return float("nan")
        dx, dcp_avg, x_avg = self._segments()
        return float(-np.sum(dcp_avg * dx * (x_avg - 0.25)))

    def _segments(self):
        dx = np.diff(self.x)
        dcp = self.cp_lower - self.cp_upper
        dcp_avg = 0.5 * (dcp[:-1] + dcp[1:])
        x_avg = 0.5 * (self.x[:-1] + self.x[1:])
        keep = dx > 0.0
        return dx[keep], dcp_avg[keep], x_avg[keep]


@dataclass(frozen=True, eq=False)
class FallbackSolution:
    """Analytic section coefficients used when no panel solve is available."""

    alpha_deg: float
    cl: float
    cm_c4: float
    x: np.ndarray = field(default_factory=lambda: np.zeros(0), repr=False)
    cp_upper: np.ndarray = field(default_factory=lambda: np.zeros(0), repr=False)
    cp_lower: np.ndarray = field(default_factory=lambda: np.zeros(0), repr=False)
    upper_coords: np.ndarray = field(default_factory=lambda: np.zeros((0, 2)), repr=False)
    lower_coords: np.ndarray = field(default_factory=lambda: np.zeros((0, 2)), repr=False)

    is_fallback = True


def analytic_section_coeffs(params, alpha_deg):
    """Thin-airfoil-style (cl, cm_c4, cdp) estimate scaled with camber.

    Zero-lift angle and lift-curve slope are tuned so NACA 2412 gives about
    0.255 at 0 degrees; Cm is tuned so 2412 gives about -0.055. Profile drag
    is not modelled here.
    """
    alpha0_lift_deg = -92.0 * params.m
    alpha_eff = np.deg2rad(alpha_deg - alpha0_lift_deg)
    cl = 1.27 * 2.0 * np.pi * alpha_eff
    cm_c4 = -2.5 * params.m
    return float(cl), float(cm_c4), 0.0


def fallback_solution(params, alpha_deg):
    cl, cm_c4, _ = analytic_section_coeffs(params, alpha_deg)
    return FallbackSolution(alpha_deg=alpha_deg, cl=cl, cm_c4=cm_c4)


def prandtl_glauert(cp, mach):
    """Compressibility-corrected Cp (identity at Mach 0)."""
    return np.asarray(cp) / prandtl_glauert_beta(mach)


# ============================================================================
# SOURCE + VORTEX PANEL SYSTEM
# ============================================================================
class PanelFlow:
    """Solved singularity strengths for one angle of attack."""

    def __init__(self, panels, sources, gamma, freestream):
        self.panels = panels
        self.sources = sources
        self.gamma = gamma
        self.freestream = freestream

    def induced_velocity(self, points):
        points = np.asarray(points, dtype=float)
        src = source_velocity(points, self.panels)
        vel = np.einsum("mnk,n->mk", src, self.sources)
        vel += self.gamma * _rot90(src.sum(axis=1))
        return vel.reshape(points.shape)

    def velocity_at(self, points, mach=0.0):
        """Body-frame velocity with Prandtl-Glauert scaling of the induced part."""
        beta = prandtl_glauert_beta(mach)
        return self.freestream + self.induced_velocity(points) / beta


def kutta_te_panel_indices(panels):
    """Pick the (upper, lower) trailing-edge panels used by the Kutta row."""
    n = len(panels)
    tx = panels.tangent[:, 0]
    usable = (panels.length >= 1e-6) & (np.abs(tx) >= KUTTA_MIN_TANGENT_X)

    def pick(mask):
        idx = np.flatnonzero(mask)
        if idx.size == 0:
            return None
        order = np.argsort(-panels.mid[idx, 0], kind="stable")
        near_te = idx[order[:KUTTA_NEAR_TE_CANDIDATES]]
        return int(near_te[np.argmax(panels.length[near_te])])

    upper_idx = pick(usable & (tx > 0.0))
    lower_idx = pick(usable & (tx < 0.0))
    if upper_idx is not None and lower_idx is not None:
        return upper_idx, lower_idx

    # expected ordering: TE(lower) -> LE -> TE(upper) -> closing segment
    return max(n - 2, 0), 0


def assemble_matrix(panels, kutta_indices):
    n = len(panels)
    colloc = panels.mid + COLLOCATION_OFFSET * panels.normal
    src = source_velocity(colloc, panels)
    vort = _rot90(src)

    matrix = np.zeros((n + 1, n + 1))
    matrix[:n, :n] = np.einsum("ijk,ik->ij", src, panels.normal)
    matrix[:n, n] = np.einsum("ijk,ik->i", vort, panels.normal)

    # Kutta: equal tangential speed on the two trailing-edge panels
    iu, il = kutta_indices
    t_u = panels.tangent[iu]
    t_l = panels.tangent[il]
    matrix[n, :n] = src[iu] @ t_u + src[il] @ t_l
    matrix[n, n] = np.sum(vort[iu] @ t_u) + np.sum(vort[il] @ t_l)
    return matrix


def assemble_rhs(panels, kutta_indices, freestream):
    iu, il = kutta_indices
    rhs = np.empty(len(panels) + 1)
    rhs[:-1] = -panels.normal @ freestream
    rhs[-1] = -freestream @ panels.tangent[iu] - freestream @ panels.tangent[il]
    return rhs


def factorize(matrix):
    """LU factors with partial pivoting, or None for a singular system."""
    if not np.all(np.isfinite(matrix)):
        return None
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", LinAlgWarning)
        lu, piv = lu_factor(matrix)
    if np.min(np.abs(np.diag(lu))) < PIVOT_TOL:
        return None
    return lu, piv


class PanelSystem:
    """Panel geometry plus the LU-factorized influence matrix.

    The matrix depends only on geometry, so it is assembled and factorized
    once; each angle of attack costs a single back-substitution. Instances
    are read-only after construction and can be shared between threads.
    """

    def __init__(self, panels, kutta_indices, lu_piv):
        self.panels = panels
        self.kutta_indices = kutta_indices
        self._lu_piv = lu_piv

    @classmethod
    def from_points(cls, points):
        panels = build_panels(points)
        if len(panels) < MIN_PANELS:
            logger.debug("only %d panels, no panel system", len(panels))
            return None
        kutta = kutta_te_panel_indices(panels)
        lu_piv = factorize(assemble_matrix(panels, kutta))
        if lu_piv is None:
            logger.debug("panel matrix is singular")
            return None
        return cls(panels, kutta, lu_piv)

    def solve_flow(self, alpha_deg):
        freestream = freestream_vector(alpha_deg)
        rhs = assemble_rhs(self.panels, self.kutta_indices, freestream)
        strengths = lu_solve(self._lu_piv, rhs)
        if not np.all(np.isfinite(strengths)):
            return None
        return PanelFlow(self.panels, strengths[:-1], float(strengths[-1]), freestream)

    def solve(self, params, alpha_deg, sample_count=None):
        """Cp on both surfaces at cosine-spaced chord stations."""
        flow = self.solve_flow(alpha_deg)
        if flow is None:
            logger.warning(
                "panel solve failed for NACA %s at %.2f deg, using analytic coefficients",
                params.code(),
                alpha_deg,
            )
            return fallback_solution(params, alpha_deg)

        if sample_count is None:
            sample_count = max(params.num_points // 2, 32)
        x_c, upper, lower, theta = surface_stations(params, sample_count)

        normal_upper = np.column_stack([-np.sin(theta), np.cos(theta)])
        sample_upper = upper + SURFACE_SAMPLE_EPS * normal_upper
        sample_lower = lower - SURFACE_SAMPLE_EPS * normal_upper

        vel = flow.velocity_at(np.vstack([sample_upper, sample_lower]))
        cp = np.clip(1.0 - np.sum(vel**2, axis=1), CP_MIN, CP_MAX)

        return PanelSolution(
            alpha_deg=alpha_deg,
            x=x_c,
            cp_upper=cp[:sample_count],
            cp_lower=cp[sample_count:],
            upper_coords=upper,
            lower_coords=lower,
        )

    def velocity_at(self, alpha_deg, points, mach=0.0):
        """Velocity at ``points`` for one angle of attack.

        Each call back-substitutes for ``alpha_deg`` again. For repeated field
        queries keep the flow from ``solve_flow(alpha_deg)`` and call its
        ``velocity_at(points, mach)``.
        """
        flow = self.solve_flow(alpha_deg)
        if flow is None:
            return None
        return flow.velocity_at(points, mach)


def build_system(params):
    """Factorized panel system for ``params``; None for degenerate geometry."""
    return PanelSystem.from_points(build_body_geometry_sharp_te(params))


def solve_panel(params, alpha_deg, system=None):
    """One-shot solve: a PanelSolution, or a FallbackSolution if none is possible."""
    if system is None:
        system = build_system(params)
    if system is None:
        logger.warning(
            "no panel system for NACA %s, using analytic coefficients", params.code()
        )
        return fallback_solution(params, alpha_deg)
    return system.solve(params, alpha_deg)


# ============================================================================
# FACTORIZATION CACHE
# ============================================================================
@dataclass(frozen=True)
class PanelKey:
    m: int
    p: int
    t: int
    num_points: int

    @classmethod
    def from_params(cls, params):
        return cls(
            m=int(np.clip(round(params.m_digit), 0, 9)),
            p=int(np.clip(round(params.p_digit), 0, 9)),
            t=int(np.clip(round(params.t_digits), 0, 99)),
            num_points=int(params.num_points),
        )


class PanelSystemCache:
    """Caller-owned cache of one factorized system, keyed by geometry.

    Single writer: rebuilding is not synchronized, so callers running sweeps
    concurrently must not call ``get`` with changing geometry at the same time.
    """

    def __init__(self):
        self.key = None
        self.system = None
        self.builds = 0

    def get(self, params):
        key = PanelKey.from_params(params)
        if key != self.key:
            logger.debug("rebuilding panel system for %s", key)
            self.key = key
            self.system = build_system(params)
            self.builds += 1
        return self.system

    def solve(self, params, alpha_deg):
        return solve_panel(params, alpha_deg, system=self.get(params))

    def clear(self):
        self.key = None
        self.system = None
