from pathlib import Path

import numpy as np
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt


# ============================================================================
# VISUALIZATION
# ============================================================================
def plot_polar(rows, reference_polar=None, naca_code="2412", Re=1_000_000, output_dir=None):
    """Cl, Cm and Cd against alpha; returns the list of figures."""
    figs = []
    aoa = np.array([r.alpha_deg for r in rows])
    cl = np.array([r.cl for r in rows])
    cm = np.array([r.cm_c4 for r in rows])
    cd = np.array([np.nan if r.cd_profile is None else r.cd_profile for r in rows])
    stall = np.array([r.probable_stall for r in rows], dtype=bool)

    # Plot: Lift coefficient
    fig = plt.figure()
    figs.append(fig)
    plt.plot(aoa, cl, label="Panel + Thwaites", linestyle="-", color="#1f77b4", linewidth=1.5)
    if stall.any():
        plt.plot(aoa[stall], cl[stall], "x", color="#d62728", label="Probable stall")
    if reference_polar is not None:
        plt.plot(reference_polar["aoa"], reference_polar["cl"],
                 label="Reference", linestyle="--", color="#1f77b4", linewidth=1.5)
    plt.title(f"Lift Coefficient ($c_l$)\nRe = {Re}\nNACA {naca_code}")
    plt.xlabel("AoA [°]")
    plt.ylabel(r"$c_l$")
    plt.legend()
    plt.grid(True)
    plt.axhline(y=0, color='k', linewidth=0.5)
    plt.axvline(x=0, color='k', linewidth=0.5)

    # Plot: Drag coefficient
    fig = plt.figure()
    figs.append(fig)
    plt.plot(aoa, cd, label="Panel + Thwaites", linestyle="-", color="#1f77b4", linewidth=1.5)
    if reference_polar is not None:
        plt.plot(reference_polar["aoa"], reference_polar["cd"],
                 label="Reference", linestyle="--", color="#1f77b4", linewidth=1.5)
    plt.title(f"Drag Coefficient ($c_d$)\nRe = {Re}\nNACA {naca_code}")
    plt.xlabel("AoA [°]")
    plt.ylabel(r"$c_d$")
    plt.legend()
    plt.grid(True)

    # Plot: Moment coefficient
    fig = plt.figure()
    figs.append(fig)
    plt.plot(aoa, cm, linestyle="-", color="#2ca02c", linewidth=1.5)
    plt.title(f"Moment Coefficient ($c_{{m,c/4}}$)\nNACA {naca_code}")
    plt.xlabel("AoA [°]")
    plt.ylabel(r"$c_{m,c/4}$")
    plt.grid(True)

    if output_dir:
        out = Path(output_dir)
        out.mkdir(parents=True, exist_ok=True)
        figs[0].savefig(out / "cl_vs_aoa.png", dpi=200, bbox_inches="tight")
        figs[1].savefig(out / "cd_vs_aoa.png", dpi=200, bbox_inches="tight")
        figs[2].savefig(out / "cm_vs_aoa.png", dpi=200, bbox_inches="tight")

    return figs


def plot_cp(solution, naca_code="2412", output_dir=None):
    """Cp distribution (inverted axis) and the sampled surface."""
    fig, (ax_cp, ax_geo) = plt.subplots(2, 1, figsize=(7, 7), gridspec_kw={"height_ratios": [3, 1]})
    ax_cp.plot(solution.x, solution.cp_upper, label="Upper", color="#1f77b4")
    ax_cp.plot(solution.x, solution.cp_lower, label="Lower", color="#ff7f0e")
    ax_cp.invert_yaxis()
    ax_cp.set_xlabel(r"$x/c$")
    ax_cp.set_ylabel(r"$C_p$")
    ax_cp.set_title(f"NACA {naca_code}, AoA = {solution.alpha_deg:.1f}°")
    ax_cp.legend()
    ax_cp.grid(True)

    if len(solution.upper_coords):
        ax_geo.plot(solution.upper_coords[:, 0], solution.upper_coords[:, 1], color="#1f77b4")
        ax_geo.plot(solution.lower_coords[:, 0], solution.lower_coords[:, 1], color="#ff7f0e")
    ax_geo.set_xlim(0, 1)
    ax_geo.set_aspect('equal', adjustable='box')
    ax_geo.set_xlabel(r"$x/c$")
    ax_geo.set_ylabel(r"$y/c$")
    ax_geo.grid(True)

    if output_dir:
        out = Path(output_dir)
        out.mkdir(parents=True, exist_ok=True)
        aoa_str = f"{solution.alpha_deg:+.1f}".replace("+", "pos").replace("-", "neg")
        fig.savefig(out / f"cp_{naca_code}_{aoa_str}.png", dpi=200, bbox_inches="tight")

    return fig
