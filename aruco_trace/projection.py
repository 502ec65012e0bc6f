from typing import Sequence, Tuple

import cv2
import numpy as np

from .trace_types import EulerAngles
from .transforms import compose, rotation_x, rotation_y, rotation_z


def inverse_rotation(angles: EulerAngles) -> np.ndarray:
    """Row-vector rotation by the negated angles: roll, then pitch, then yaw."""
    return compose(
        rotation_x(-angles.roll),
        rotation_y(-angles.pitch),
        rotation_z(-angles.yaw),
    )


def marker_size_from_corners(quad: np.ndarray) -> float:
    """Average side length of a 4-corner marker quad (closed perimeter / 4)."""
    contour = np.asarray(quad, dtype=np.float32).reshape(-1, 1, 2)
    return float(cv2.arcLength(contour, True)) / 4.0


def project_points(
    points: Sequence[Sequence[float]],
    marker_size: float,
    angles: EulerAngles,
    anchor: Tuple[float, float],
) -> np.ndarray:
    """
    Map marker-relative 3D points to screen coordinates.

    Each point is scaled by ``marker_size``, rotated by the inverse marker
    orientation (``p @ Rx(-roll) @ Ry(-pitch) @ Rz(-yaw)``), its Z dropped and
    the result offset by ``anchor``.

    Returns:
        (N, 2) float array in input order
    """
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    if len(pts) == 0:
        return np.zeros((0, 2))

    rotated = (pts * float(marker_size)) @ inverse_rotation(angles)
    return rotated[:, :2] + np.asarray(anchor, dtype=np.float64).reshape(1, 2)
