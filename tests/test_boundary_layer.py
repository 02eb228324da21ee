import numpy as np
import pytest

from foilpolar.boundary_layer import (
    MIN_RE,
    BoundaryLayerInputs,
    BoundaryLayerResult,
    edge_velocity,
    estimate_boundary_layer,
    integrate_surface,
    laminar_cf,
    stagnation_index,
    surface_arc_length,
    turbulent_cf,
    turbulent_momentum_thickness,
    turbulent_virtual_origin,
)
from foilpolar.panel_solver import PanelSolution, build_system, solve_panel
from foilpolar.params import FlowSettings, NacaParams


def flat_surface_solution(ue):
    """Solution with both surfaces on y = 0 and a prescribed edge speed."""
    ue = np.asarray(ue, dtype=float)
    x = np.linspace(0.0, 1.0, len(ue))
    coords = np.column_stack([x, np.zeros_like(x)])
    cp = 1.0 - ue**2
    return PanelSolution(
        alpha_deg=0.0,
        x=x,
        cp_upper=cp,
        cp_lower=cp.copy(),
        upper_coords=coords,
        lower_coords=coords.copy(),
    )


def test_inviscid_flow_has_no_boundary_layer():
    solution = solve_panel(NacaParams(), 2.0)
    inputs = BoundaryLayerInputs.from_flow(FlowSettings(viscous=False))
    assert estimate_boundary_layer(solution, inputs) is None


def test_single_sample_surfaces_are_skipped():
    solution = flat_surface_solution([1.0])
    inputs = BoundaryLayerInputs(1e6, 0.0, True, True)
    assert estimate_boundary_layer(solution, inputs) is None


def test_realistic_section_drag():
    solution = solve_panel(NacaParams(), 2.0)
    inputs = BoundaryLayerInputs.from_flow(FlowSettings(alpha_deg=2.0, reynolds=1e6, mach=0.1))
    result = estimate_boundary_layer(solution, inputs)
    assert result is not None
    assert 0.0005 < result.cd_profile < 0.05
    assert not result.probable_stall
    assert result.transition_upper is not None
    assert result.transition_lower is not None


def test_forced_transition_at_trip_location():
    solution = solve_panel(NacaParams(), 2.0)
    inputs = BoundaryLayerInputs.from_flow(FlowSettings(free_transition=False), forced_transition_x=0.05)
    result = estimate_boundary_layer(solution, inputs)
    assert result.transition_upper == pytest.approx(0.05)
    assert result.transition_lower == pytest.approx(0.05)
    assert result.describe() == "UP tr @ 5% | LO tr @ 5%"


def test_laminar_flat_plate_matches_blasius():
    re = 1e6
    solution = flat_surface_solution(np.ones(50))
    inputs = BoundaryLayerInputs(re, 0.0, True, False, forced_transition_x=0.99)
    result = estimate_boundary_layer(solution, inputs)
    # 1.328 / sqrt(Re) per side
    assert result.cd_profile == pytest.approx(2 * 1.328 / np.sqrt(re), rel=0.1)
    assert result.separation_upper is None
    assert not result.probable_stall


def test_turbulent_plate_has_more_drag_than_laminar():
    solution = flat_surface_solution(np.ones(50))
    laminar = estimate_boundary_layer(solution, BoundaryLayerInputs(1e6, 0.0, True, False, 0.99))
    tripped = estimate_boundary_layer(solution, BoundaryLayerInputs(1e6, 0.0, True, False, 0.001))
    assert tripped.cd_profile > 2 * laminar.cd_profile


def test_adverse_gradient_separates_and_stalls():
    ue = np.linspace(1.2, 0.6, 101)
    solution = flat_surface_solution(ue)
    inputs = BoundaryLayerInputs(1e6, 0.0, True, False, forced_transition_x=0.99)
    result = estimate_boundary_layer(solution, inputs)
    assert result.separation_upper == pytest.approx(0.25, abs=0.05)
    assert result.probable_stall
    assert result.describe().startswith("stall (upper @ ")


def test_separation_after_transition_uses_turbulent_criterion():
    ue = np.linspace(1.2, 0.4, 101)
    coords = np.column_stack([np.linspace(0.0, 1.0, 101), np.zeros(101)])
    laminar = integrate_surface(coords, 1.0 - ue**2, BoundaryLayerInputs(1e6, 0.0, True, False, 0.99))
    tripped = integrate_surface(coords, 1.0 - ue**2, BoundaryLayerInputs(1e6, 0.0, True, False, 0.05))
    # Thwaites' lambda reaches -0.09 once Ue drops to about 1.05
    assert laminar.separation_x == pytest.approx(0.19, abs=0.03)
    # the turbulent layer holds on much longer but still separates
    assert 0.5 < tripped.separation_x < 0.85
    assert tripped.probable_stall


def test_free_transition_layer_still_separates():
    ue = np.linspace(1.2, 0.4, 101)
    solution = flat_surface_solution(ue)
    result = estimate_boundary_layer(solution, BoundaryLayerInputs(1e6, 0.0, True, True))
    assert result.transition_upper < 0.05
    assert 0.5 < result.separation_upper < 0.85
    assert result.probable_stall


def test_turbulent_integral_continues_laminar_thickness():
    nu = 1e-6
    J = turbulent_virtual_origin(2e-4, 1.3, nu)
    assert turbulent_momentum_thickness(J, 1.3, nu) == pytest.approx(2e-4)
    assert turbulent_virtual_origin(0.0, 1.3, nu) == 0.0
    # flat plate: theta = 0.036 x Re_x^-0.2
    assert turbulent_momentum_thickness(1.0, 1.0, nu) == pytest.approx(0.036 * 1e6**-0.2)


def test_trailing_edge_separation_moves_forward_with_alpha():
    params = NacaParams()
    system = build_system(params)
    inputs = BoundaryLayerInputs.from_flow(FlowSettings())
    gentle = estimate_boundary_layer(solve_panel(params, 2.0, system), inputs)
    steep = estimate_boundary_layer(solve_panel(params, 15.0, system), inputs)

    assert not gentle.probable_stall
    assert steep.separation_upper is not None
    assert steep.separation_upper > 0.5
    # the lower side starts at the attachment line, not at the nose
    assert steep.separation_lower is None or steep.separation_lower > 0.5
    assert gentle.separation_upper is None or steep.separation_upper <= gentle.separation_upper
    assert steep.cd_profile != pytest.approx(gentle.cd_profile, rel=1e-6)


def test_describe_without_transition():
    assert BoundaryLayerResult(cd_profile=0.01).describe() == "attached"
    result = BoundaryLayerResult(cd_profile=0.01, probable_stall=True)
    assert result.describe() == "stall (separation)"
    result = BoundaryLayerResult(cd_profile=0.01, separation_lower=0.4, probable_stall=True)
    assert result.describe() == "stall (lower @ 40%)"


def test_skin_friction_laws():
    assert turbulent_cf(1e6) > laminar_cf(1e6)
    assert laminar_cf(1e6) == pytest.approx(0.664e-3)
    # both laws floor very small local Reynolds numbers
    assert laminar_cf(1.0) == laminar_cf(MIN_RE)
    assert turbulent_cf(10.0) == turbulent_cf(5.0e4)


def test_edge_velocity_floor_and_compressibility():
    assert edge_velocity(0.0, 0.0) == pytest.approx(1.0)
    assert edge_velocity(1.0, 0.0) == pytest.approx(1e-2)
    assert edge_velocity(4.0, 0.0) == pytest.approx(1e-2)
    # beta = 0.5
    assert edge_velocity(-0.5, np.sqrt(0.75)) == pytest.approx(np.sqrt(2.0))


def test_stagnation_index():
    x = np.linspace(0.0, 1.0, 21)
    ue = np.full(21, 1.1)
    assert stagnation_index(x, ue) == 0
    ue[1] = 0.05
    assert stagnation_index(x, ue) == 1
    # minima behind the nose region are ignored
    ue[1] = 1.1
    ue[10] = 0.05
    assert stagnation_index(x, ue) == 0


def test_arc_length():
    s = surface_arc_length(np.array([[0.0, 0.0], [3.0, 4.0], [3.0, 5.0]]))
    np.testing.assert_allclose(s, [0.0, 5.0, 6.0])


def test_inputs_are_clamped():
    inputs = BoundaryLayerInputs(10.0, 0.99, True, False, forced_transition_x=5.0)
    assert inputs.reynolds == MIN_RE
    assert inputs.forced_transition_x == 0.99
    assert inputs.beta == pytest.approx(np.sqrt(0.05))
    assert BoundaryLayerInputs(1e6, 0.0, True, False, -1.0).forced_transition_x == 0.001
