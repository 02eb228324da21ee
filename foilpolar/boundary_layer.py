from dataclasses import dataclass

import numpy as np

from .panel_solver import prandtl_glauert
from .params import prandtl_glauert_beta

MIN_RE = 1e3
SEPARATION_LAMBDA = -0.09
SEPARATION_MIN_S = 0.02
STALL_X_RANGE = (0.2, 0.95)

# Buri's turbulent separation parameter
SEPARATION_GAMMA = -0.06

# attachment-line search window on each surface
STAGNATION_SEARCH_X = 0.1
STAGNATION_MAX_UE = 0.7


@dataclass(frozen=True)
class BoundaryLayerResult:
    cd_profile: float
    transition_upper: float = None
    transition_lower: float = None
    separation_upper: float = None
    separation_lower: float = None
    probable_stall: bool = False

    def describe(self):
        """Short flow-state summary, e.g. "UP tr @ 3% | LO tr @ 5%"."""
        if self.probable_stall:
            if self.separation_upper is not None:
                return f"stall (upper @ {self.separation_upper * 100:.0f}%)"
            if self.separation_lower is not None:
                return f"stall (lower @ {self.separation_lower * 100:.0f}%)"
            return "stall (separation)"

        parts = []
        if self.transition_upper is not None:
            parts.append(f"UP tr @ {self.transition_upper * 100:.0f}%")
        if self.transition_lower is not None:
            parts.append(f"LO tr @ {self.transition_lower * 100:.0f}%")
        return " | ".join(parts) if parts else "attached"


class BoundaryLayerInputs:
    """Flow inputs for the boundary-layer estimate, clamped to usable ranges."""

    def __init__(self, reynolds, mach, viscous, free_transition, forced_transition_x=0.05):
        self.reynolds = max(float(reynolds), MIN_RE)
        self.mach = mach
        self.viscous = viscous
        self.free_transition = free_transition
        self.forced_transition_x = float(np.clip(forced_transition_x, 0.001, 0.99))
        self.beta = prandtl_glauert_beta(mach)

    @classmethod
    def from_flow(cls, flow, forced_transition_x=0.05):
        return cls(flow.reynolds, flow.mach, flow.viscous, flow.free_transition, forced_transition_x)


# ============================================================================
# THWAITES INTEGRAL BOUNDARY LAYER
# ============================================================================
def estimate_boundary_layer(solution, inputs):
    """Profile drag, transition and separation from a solved Cp distribution.

    Returns None when the flow is inviscid or the solution carries fewer than
    two samples per surface (e.g. the analytic fallback).
    """
    if not inputs.viscous:
        return None
    if len(solution.upper_coords) < 2 or len(solution.lower_coords) < 2:
        return None

    upper = integrate_surface(solution.upper_coords, solution.cp_upper, inputs)
    lower = integrate_surface(solution.lower_coords, solution.cp_lower, inputs)

    return BoundaryLayerResult(
        cd_profile=max(upper.cd + lower.cd, 0.0),
        transition_upper=upper.transition_x,
        transition_lower=lower.transition_x,
        separation_upper=upper.separation_x,
        separation_lower=lower.separation_x,
        probable_stall=upper.probable_stall or lower.probable_stall,
    )


@dataclass
class SurfaceResult:
    cd: float = 0.0
    transition_x: float = None
    separation_x: float = None
    probable_stall: bool = False


def surface_arc_length(coords):
    coords = np.asarray(coords, dtype=float)
    steps = np.hypot(np.diff(coords[:, 0]), np.diff(coords[:, 1]))
    return np.concatenate([[0.0], np.cumsum(steps)])


def edge_velocity(cp, mach):
    """Edge speed from compressibility-corrected Cp."""
    cp_corr = np.clip(prandtl_glauert(np.asarray(cp, dtype=float), mach), -5.0, 5.0)
    return np.sqrt(np.maximum(1.0 - cp_corr, 1e-4))


def stagnation_index(x, ue):
    """Station of the attachment line on this surface, 0 if it sits on the other one."""
    front = np.flatnonzero(np.asarray(x) <= STAGNATION_SEARCH_X)
    if len(front) == 0:
        return 0
    i = int(front[np.argmin(ue[front])])
    return i if ue[i] < STAGNATION_MAX_UE else 0


def turbulent_virtual_origin(theta, ue, nu):
    """Value of \\int Ue^3.86 ds that reproduces ``theta`` in the power-law integral."""
    return (theta * ue**3.29 / (0.036 * nu**0.2)) ** 1.25


def turbulent_momentum_thickness(J, ue, nu):
    """1/7-power-law momentum integral, theta = 0.036 nu^0.2 Ue^-3.29 J^0.8."""
    return 0.036 * nu**0.2 * J**0.8 / max(ue**3.29, 1e-5)


def integrate_surface(coords, cp, inputs):
    """March Thwaites' method from the stagnation point to the trailing edge.

    Downstream of transition the momentum thickness follows the turbulent
    power-law integral, started from the laminar value at transition, and
    separation there is judged by Buri's parameter instead of lambda.
    """
    if len(coords) != len(cp) or len(coords) < 2:
        return SurfaceResult()

    # March from the stagnation point, stations ahead of it feed the other side
    coords = np.asarray(coords, dtype=float)
    Ue = edge_velocity(cp, inputs.mach)
    start = stagnation_index(coords[:, 0], Ue)
    coords, Ue = coords[start:], Ue[start:]
    if len(coords) < 2:
        return SurfaceResult()

    S = surface_arc_length(coords)
    X = coords[:, 0]
    Re = inputs.reynolds
    nu = 1.0 / Re

    result = SurfaceResult()
    transition_s = None
    separation_s = None
    if not inputs.free_transition:
        transition_s = inputs.forced_transition_x
        result.transition_x = inputs.forced_transition_x

    # Accumulate integrals I = \int Ue^5 ds (laminar) and J = \int Ue^3.86 ds (turbulent)
    I = 0.0
    J = None
    theta_prev = 0.0
    for i in range(1, len(S)):
        ds = max(abs(S[i] - S[i - 1]), 1e-5)
        ue_prev = max(Ue[i - 1], 1e-4)
        ue_curr = max(Ue[i], 1e-4)
        due_ds = (ue_curr - ue_prev) / ds

        I += 0.5 * (ue_prev**5 + ue_curr**5) * ds
        theta_sq = 0.45 * nu * I / max(ue_curr**6, 1e-5)
        theta = np.sqrt(theta_sq)

        if transition_s is not None and S[i] > transition_s:
            if J is None:
                J = turbulent_virtual_origin(theta_prev, ue_prev, nu)
            J += 0.5 * (ue_prev**3.86 + ue_curr**3.86) * ds
            theta = turbulent_momentum_thickness(J, ue_curr, nu)
            gamma = theta / ue_curr * due_ds * (ue_curr * theta * Re) ** 0.25
            separating = gamma < SEPARATION_GAMMA
        else:
            lam = theta_sq * due_ds / nu
            separating = lam < SEPARATION_LAMBDA

        if separation_s is None and separating and S[i] > SEPARATION_MIN_S:
            separation_s = S[i]
            result.separation_x = float(X[i])

        if transition_s is None:
            re_theta = theta * Re
            re_x = Re * max(S[i], 1e-5)
            crit = 1.174 * (1.0 + 22400.0 / max(re_x, 1e3))
            if re_theta >= crit:
                transition_s = S[i]
                result.transition_x = float(X[i])

        s_mid = 0.5 * (S[i - 1] + S[i])
        re_x_mid = Re * max(s_mid, 1e-5)
        laminar = transition_s is None or s_mid <= transition_s
        separated = separation_s is not None and s_mid >= separation_s

        if separated:
            cf = 0.0
        elif laminar:
            cf = laminar_cf(re_x_mid)
        else:
            cf = turbulent_cf(re_x_mid)
        result.cd += cf * ds
        theta_prev = theta

    lo, hi = STALL_X_RANGE
    result.probable_stall = result.separation_x is not None and lo < result.separation_x < hi
    return result


def laminar_cf(re_x):
    """Blasius flat-plate skin friction."""
    return 0.664 / np.sqrt(max(re_x, MIN_RE))


def turbulent_cf(re_x):
    """Schlichting turbulent skin friction."""
    log_term = max(np.log10(max(re_x, 5.0e4)), 1.0)
    return 0.455 / log_term**2.58
