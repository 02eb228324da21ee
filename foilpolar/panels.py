from dataclasses import dataclass

import numpy as np

MIN_PANEL_LENGTH = 1e-6


@dataclass(frozen=True)
class Panels:
    """Straight panels between consecutive loop points (one row per panel)."""

    start: np.ndarray
    mid: np.ndarray
    tangent: np.ndarray
    normal: np.ndarray
    length: np.ndarray

    def __len__(self):
        return len(self.length)


def polygon_signed_area(points):
    x0, y0 = points[:-1, 0], points[:-1, 1]
    x1, y1 = points[1:, 0], points[1:, 1]
    return 0.5 * np.sum(x0 * y1 - x1 * y0)


def build_panels(points):
    """Build panels for a closed loop; normals point out of the body.

    The rotation direction of the normal is picked once from the sign of the
    loop's signed area, so either winding gives outward normals.
    """
    points = np.asarray(points, dtype=float)
    if len(points) < 2:
        empty = np.zeros((0, 2))
        return Panels(empty, empty, empty, empty, np.zeros(0))

    p0 = points[:-1]
    p1 = points[1:]
    tang = p1 - p0
    length = np.maximum(np.hypot(tang[:, 0], tang[:, 1]), MIN_PANEL_LENGTH)
    tangent = tang / length[:, None]

    if polygon_signed_area(points) >= 0.0:
        normal = np.column_stack([tangent[:, 1], -tangent[:, 0]])
    else:
        normal = np.column_stack([-tangent[:, 1], tangent[:, 0]])

    return Panels(
        start=p0.copy(),
        mid=0.5 * (p0 + p1),
        tangent=tangent,
        normal=normal,
        length=length,
    )
