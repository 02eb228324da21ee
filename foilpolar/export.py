from pathlib import Path

import numpy as np

CSV_HEADER = "alpha_deg,cl,cm_c4,cd_profile,mach,reynolds,viscous,free_transition,probable_stall"


# ============================================================================
# POLAR CSV EXPORT
# ============================================================================
def format_polar_row(row, flow):
    cd = float("nan") if row.cd_profile is None else row.cd_profile
    return (
        f"{row.alpha_deg:.3f},{row.cl:.6f},{row.cm_c4:.6f},{cd:.6f},"
        f"{flow.mach:.4f},{flow.reynolds:.0f},"
        f"{int(flow.viscous)},{int(flow.free_transition)},{int(row.probable_stall)}"
    )


def polar_csv_lines(rows, flow):
    return [CSV_HEADER] + [format_polar_row(r, flow) for r in rows]


def write_polar_csv(path, rows, flow):
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with open(out, "w") as f:
        for line in polar_csv_lines(rows, flow):
            f.write(line + "\n")
    return out


def write_multi_polar_csv(path, sweeps):
    """Write several (flow, rows) sweeps into one CSV with a single header."""
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with open(out, "w") as f:
        f.write(CSV_HEADER + "\n")
        for flow, rows in sweeps:
            for r in rows:
                f.write(format_polar_row(r, flow) + "\n")
    return out


def default_export_path(params, flow, directory="exports"):
    visc_tag = "visc" if flow.viscous else "invisc"
    tr_tag = "auto" if flow.free_transition else "forced"
    stem = f"polar_{params.code()}_Re{flow.reynolds / 1e6:.2f}e6_M{flow.mach:.2f}_{visc_tag}_{tr_tag}"

    out = Path(directory)
    path = out / f"{stem}.csv"
    if not path.exists():
        return path
    for i in range(1, 1000):
        path = out / f"{stem}_{i}.csv"
        if not path.exists():
            return path
    return out / "polar_export.csv"


# ============================================================================
# REFERENCE DATA
# ============================================================================
def load_polar_csv(path):
    """Read a polar CSV written by ``write_polar_csv`` into column arrays."""
    with open(path, "r") as f:
        header = f.readline().strip().split(",")
        data = [line.strip().split(",") for line in f if line.strip()]
    cols = {name: np.array([float(row[i]) for row in data]) for i, name in enumerate(header)}
    return cols


def load_reference_polar(path):
    """Load an ``alpha cl cd`` reference table (XFoil/JavaFoil style)."""
    aoa_list = []
    cl_list = []
    cd_list = []
    with open(path, "r") as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            parts = line.replace(",", " ").split()
            if len(parts) < 3:
                continue
            try:
                aoa = float(parts[0])
                cl = float(parts[1])
                cd = float(parts[2])
            except ValueError:
                continue
            aoa_list.append(aoa)
            cl_list.append(cl)
            cd_list.append(cd)
    return {"aoa": np.array(aoa_list), "cl": np.array(cl_list), "cd": np.array(cd_list)}
