"""Rotation helpers and Euler-angle extraction for marker poses.

Elementary rotations follow the right-handed, column-vector convention::

    Rx(a) = [[1, 0, 0], [0, cos a, -sin a], [0, sin a, cos a]]
    Ry(a) = [[cos a, 0, sin a], [0, 1, 0], [-sin a, 0, cos a]]
    Rz(a) = [[cos a, -sin a, 0], [sin a, cos a, 0], [0, 0, 1]]

``cv2.decomposeProjectionMatrix`` reports angles for ``R = Rz(yaw) @ Ry(pitch)
@ Rx(roll)``. The projector in ``projection.py`` undoes exactly this
composition, so the two must change together.
"""

import math
from typing import Optional

import cv2
import numpy as np

from .trace_types import EulerAngles


def rotation_x(degrees: float) -> np.ndarray:
    a = math.radians(degrees)
    c, s = math.cos(a), math.sin(a)
    return np.array([[1.0, 0.0, 0.0], [0.0, c, -s], [0.0, s, c]])


def rotation_y(degrees: float) -> np.ndarray:
    a = math.radians(degrees)
    c, s = math.cos(a), math.sin(a)
    return np.array([[c, 0.0, s], [0.0, 1.0, 0.0], [-s, 0.0, c]])


def rotation_z(degrees: float) -> np.ndarray:
    a = math.radians(degrees)
    c, s = math.cos(a), math.sin(a)
    return np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]])


def compose(*matrices: np.ndarray) -> np.ndarray:
    """Matrix product of ``matrices`` in the order given."""
    out = np.eye(3)
    for m in matrices:
        out = out @ np.asarray(m, dtype=np.float64).reshape(3, 3)
    return out


def rotation_from_euler(angles: EulerAngles) -> np.ndarray:
    return compose(rotation_z(angles.yaw), rotation_y(angles.pitch), rotation_x(angles.roll))


def rvec_tvec_to_projection(rvec: np.ndarray, tvec: Optional[np.ndarray] = None) -> np.ndarray:
    """
    Stack the Rodrigues rotation of ``rvec`` and ``tvec`` into a 3x4 matrix.

    Args:
        rvec: Rotation vector (3,), (3,1) or (1,3)
        tvec: Translation vector of the same shapes; zeros when omitted

    Returns:
        3x4 projection-style matrix ``[R | t]``
    """
    rvec = np.asarray(rvec, dtype=np.float64).reshape(3)
    tvec = np.zeros(3) if tvec is None else np.asarray(tvec, dtype=np.float64).reshape(3)

    R, _ = cv2.Rodrigues(rvec)

    P = np.zeros((3, 4))
    P[:, :3] = R
    P[:, 3] = tvec
    return P


def extract_euler_angles(rvec: np.ndarray, tvec: Optional[np.ndarray] = None) -> EulerAngles:
    """
    Derive roll/pitch/yaw (degrees) of a marker from its rotation vector.

    Near pitch = +/-90 degrees the decomposition is not unique; whichever
    branch OpenCV picks is returned.
    """
    P = rvec_tvec_to_projection(rvec, tvec)
    euler = cv2.decomposeProjectionMatrix(P)[6]
    roll, pitch, yaw = (float(v) for v in np.asarray(euler).reshape(3))
    return EulerAngles(roll, pitch, yaw)
