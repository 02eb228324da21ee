import numpy as np
import pytest

from foilpolar.export import (
    CSV_HEADER,
    default_export_path,
    format_polar_row,
    load_polar_csv,
    load_reference_polar,
    polar_csv_lines,
    write_multi_polar_csv,
    write_polar_csv,
)
from foilpolar.params import FlowSettings, NacaParams
from foilpolar.polar import PolarRow

ROWS = [
    PolarRow(alpha_deg=-1.0, cl=0.1432, cm_c4=-0.0531, cd_profile=0.00712),
    PolarRow(alpha_deg=0.0, cl=0.2554, cm_c4=-0.0557, cd_profile=0.00734),
    PolarRow(alpha_deg=12.5, cl=1.3, cm_c4=-0.02, cd_profile=0.021, probable_stall=True),
]


def test_row_format():
    flow = FlowSettings(reynolds=1e6, mach=0.1)
    line = format_polar_row(ROWS[1], flow)
    assert line == "0.000,0.255400,-0.055700,0.007340,0.1000,1000000,1,1,0"


def test_missing_drag_is_written_as_nan():
    flow = FlowSettings(viscous=False, free_transition=False)
    line = format_polar_row(PolarRow(alpha_deg=2.0, cl=0.5, cm_c4=-0.05), flow)
    assert line.split(",")[3] == "nan"
    assert line.endswith(",0,0,0")


def test_csv_lines_start_with_header():
    lines = polar_csv_lines(ROWS, FlowSettings())
    assert lines[0] == CSV_HEADER
    assert len(lines) == len(ROWS) + 1
    assert lines[-1].endswith(",1")


def test_write_and_read_back(tmp_path):
    flow = FlowSettings(reynolds=2.5e6, mach=0.2)
    path = write_polar_csv(tmp_path / "nested" / "polar.csv", ROWS, flow)
    assert path.exists()

    cols = load_polar_csv(path)
    assert list(cols) == CSV_HEADER.split(",")
    np.testing.assert_allclose(cols["alpha_deg"], [-1.0, 0.0, 12.5])
    np.testing.assert_allclose(cols["cl"], [0.1432, 0.2554, 1.3])
    np.testing.assert_allclose(cols["reynolds"], 2.5e6)
    np.testing.assert_array_equal(cols["probable_stall"], [0, 0, 1])


def test_multi_polar_has_single_header(tmp_path):
    sweeps = [(FlowSettings(mach=0.1), ROWS), (FlowSettings(mach=0.3), ROWS[:2])]
    path = write_multi_polar_csv(tmp_path / "multi.csv", sweeps)
    lines = path.read_text().splitlines()
    assert lines.count(CSV_HEADER) == 1
    assert len(lines) == 1 + 3 + 2

    cols = load_polar_csv(path)
    np.testing.assert_allclose(cols["mach"], [0.1, 0.1, 0.1, 0.3, 0.3])


def test_default_export_path_naming(tmp_path):
    params = NacaParams()
    flow = FlowSettings(reynolds=1e6, mach=0.1)
    path = default_export_path(params, flow, directory=tmp_path)
    assert path.name == "polar_2412_Re1.00e6_M0.10_visc_auto.csv"

    flow = FlowSettings(reynolds=3e6, mach=0.25, viscous=False, free_transition=False)
    path = default_export_path(params, flow, directory=tmp_path)
    assert path.name == "polar_2412_Re3.00e6_M0.25_invisc_forced.csv"


def test_default_export_path_does_not_overwrite(tmp_path):
    params = NacaParams.from_naca4("0012")
    flow = FlowSettings()
    first = default_export_path(params, flow, directory=tmp_path)
    first.write_text("taken")
    second = default_export_path(params, flow, directory=tmp_path)
    assert second.name == first.stem + "_1.csv"
    second.write_text("taken")
    assert default_export_path(params, flow, directory=tmp_path).name == first.stem + "_2.csv"


def test_load_reference_polar(tmp_path):
    path = tmp_path / "ref.txt"
    path.write_text(
        "# NACA 2412 reference\n"
        "alpha CL CD\n"
        "\n"
        "-2.0 0.03 0.0061\n"
        "0.0, 0.25, 0.0058\n"
        "2.0 0.47\n"
        "4.0 0.69 0.0070 extra\n"
    )
    ref = load_reference_polar(path)
    np.testing.assert_allclose(ref["aoa"], [-2.0, 0.0, 4.0])
    np.testing.assert_allclose(ref["cl"], [0.03, 0.25, 0.69])
    np.testing.assert_allclose(ref["cd"], [0.0061, 0.0058, 0.0070])


def test_load_reference_polar_missing_file(tmp_path):
    with pytest.raises(OSError):
        load_reference_polar(tmp_path / "missing.txt")
