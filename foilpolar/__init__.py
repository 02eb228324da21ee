"""Panel-method + Thwaites polar estimates for NACA 4-digit sections.

- geometry: NACA 4-digit surface loops (rounded and sharp trailing edge)
- panels / panel_solver: source + vortex panel method with a Kutta condition,
  factorized once per geometry
- boundary_layer: Thwaites integral boundary layer for profile drag
- polar: sequential and thread-parallel alpha sweeps
"""

from .boundary_layer import BoundaryLayerInputs, BoundaryLayerResult, estimate_boundary_layer
from .geometry import build_body_geometry, build_body_geometry_sharp_te, generate_geometry
from .panel_solver import (
    FallbackSolution,
    PanelSolution,
    PanelSystem,
    PanelSystemCache,
    analytic_section_coeffs,
    build_system,
    solve_panel,
)
from .params import FlowSettings, NacaParams, reference_coeffs
from .polar import (
    PolarRow,
    compute_multi_polar_sweeps,
    compute_polar_sweep,
    compute_polar_sweep_parallel,
    default_polar_sweep,
    sweep,
)

__version__ = "0.1.0"
