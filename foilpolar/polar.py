import logging
import math
from dataclasses import dataclass

from joblib import Parallel, delayed, cpu_count

from .boundary_layer import BoundaryLayerInputs, estimate_boundary_layer
from .panel_solver import build_system, fallback_solution

logger = logging.getLogger(__name__)

DEFAULT_ALPHA_MIN_DEG = -10.0
DEFAULT_ALPHA_MAX_DEG = 15.0
DEFAULT_ALPHA_STEP_DEG = 0.5
DEFAULT_FORCED_TRIP_X = 0.05
MIN_ALPHA_STEP_DEG = 1e-3


@dataclass(frozen=True)
class PolarRow:
    alpha_deg: float
    cl: float
    cm_c4: float
    cd_profile: float = None
    probable_stall: bool = False
    fallback: bool = False


def default_polar_sweep():
    return DEFAULT_ALPHA_MIN_DEG, DEFAULT_ALPHA_MAX_DEG, DEFAULT_ALPHA_STEP_DEG


def alpha_samples(alpha_min_deg, alpha_max_deg, alpha_step_deg):
    """Strictly increasing alpha grid including both ends (1e-6 tolerance)."""
    step = max(abs(alpha_step_deg), MIN_ALPHA_STEP_DEG)
    a0, a1 = sorted((alpha_min_deg, alpha_max_deg))

    capacity = math.floor(max((a1 - a0) / step, 0.0)) + 2
    alphas = []
    for i in range(capacity):
        a = a0 + step * i
        if a > a1 + 1e-6:
            break
        alphas.append(a)
    return alphas


# ============================================================================
# POLAR SWEEPS
# ============================================================================
def polar_row(solution, alpha_deg, beta, bl_inputs):
    cl = solution.cl / beta
    cm_c4 = solution.cm_c4
    boundary_layer = estimate_boundary_layer(solution, bl_inputs)
    return PolarRow(
        alpha_deg=alpha_deg,
        cl=cl,
        cm_c4=cm_c4,
        cd_profile=None if boundary_layer is None else boundary_layer.cd_profile,
        probable_stall=False if boundary_layer is None else boundary_layer.probable_stall,
        fallback=solution.is_fallback,
    )


def _sweep_rows(params, flow, alphas, system):
    beta = flow.beta()
    bl_inputs = BoundaryLayerInputs.from_flow(flow, DEFAULT_FORCED_TRIP_X)
    rows = []
    for a in alphas:
        if system is None:
            solution = fallback_solution(params, a)
        else:
            solution = system.solve(params, a)
        rows.append(polar_row(solution, a, beta, bl_inputs))
    return rows


def compute_polar_sweep(params, flow, alpha_min_deg, alpha_max_deg, alpha_step_deg, system=None):
    """Sequential polar sweep, reusing ``system`` if given."""
    alphas = alpha_samples(alpha_min_deg, alpha_max_deg, alpha_step_deg)
    if not alphas:
        return []
    if system is None:
        system = build_system(params)
    if system is None:
        logger.warning("no panel system for NACA %s, using analytic coefficients", params.code())
    return _sweep_rows(params, flow, alphas, system)


def compute_polar_sweep_parallel(
    params,
    flow,
    alpha_min_deg,
    alpha_max_deg,
    alpha_step_deg,
    system=None,
    threads=None,
):
    """Polar sweep split into contiguous alpha chunks, one worker thread each.

    All workers share the same read-only factorized system; chunks are joined
    before returning and concatenated in order, so rows stay sorted by alpha.
    """
    alphas = alpha_samples(alpha_min_deg, alpha_max_deg, alpha_step_deg)
    if not alphas:
        return []
    if system is None:
        system = build_system(params)
    if system is None:
        logger.warning("no panel system for NACA %s, sweeping sequentially", params.code())
        return _sweep_rows(params, flow, alphas, None)

    thread_count = threads if threads is not None else cpu_count()
    thread_count = min(max(thread_count, 1), len(alphas))
    if thread_count <= 1:
        return _sweep_rows(params, flow, alphas, system)

    chunk_size = -(-len(alphas) // thread_count)
    chunks = [alphas[i:i + chunk_size] for i in range(0, len(alphas), chunk_size)]
    logger.debug("sweeping %d alphas in %d chunks of %d", len(alphas), len(chunks), chunk_size)

    results = Parallel(n_jobs=len(chunks), prefer="threads")(
        delayed(_sweep_rows)(params, flow, chunk, system) for chunk in chunks
    )
    return [row for chunk_rows in results for row in chunk_rows]


def sweep(params, flow, alpha_min_deg, alpha_max_deg, alpha_step_deg, system=None, threads=None):
    if threads is not None and threads <= 1:
        return compute_polar_sweep(params, flow, alpha_min_deg, alpha_max_deg, alpha_step_deg, system)
    return compute_polar_sweep_parallel(
        params, flow, alpha_min_deg, alpha_max_deg, alpha_step_deg, system, threads
    )


def compute_multi_polar_sweeps(params, flows, alpha_min_deg, alpha_max_deg, alpha_step_deg, threads=None):
    """One sweep per flow condition; the geometry is factorized once."""
    system = build_system(params)
    out = []
    for flow in flows:
        rows = sweep(
            params,
            flow,
            alpha_min_deg,
            alpha_max_deg,
            alpha_step_deg,
            system=system,
            threads=1 if threads is None else threads,
        )
        out.append((flow, rows))
    return out
