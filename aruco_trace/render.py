from typing import Optional

import cv2
import numpy as np

from .calibration import CameraCalibration
from .trace_types import Detections


MARKER_COLOR = (0, 255, 0)
SEGMENT_COLOR = (0, 127, 255)
POINT_COLOR = (255, 127, 0)
LABEL_COLOR = (255, 0, 255)
STATUS_COLOR = (0, 0, 255)

NO_POINTS_TEXT = "No points! Please load a points file!"


def _pixel(p) -> tuple[int, int]:
    return (int(p[0]), int(p[1]))


def draw_markers(image: np.ndarray, detections: Detections) -> None:
    if not len(detections):
        return
    ids = np.array(detections.ids, dtype=np.int32).reshape(-1, 1)
    corners = [np.asarray(c, dtype=np.float32).reshape(1, 4, 2) for c in detections.corners]
    cv2.aruco.drawDetectedMarkers(image, corners, ids, MARKER_COLOR)


def draw_pose_axes(
    image: np.ndarray,
    calibration: CameraCalibration,
    rvec: np.ndarray,
    tvec: np.ndarray,
    length: float,
) -> None:
    cv2.drawFrameAxes(
        image,
        calibration.camera_matrix,
        calibration.dist_coeffs,
        np.asarray(rvec, dtype=np.float64).reshape(3, 1),
        np.asarray(tvec, dtype=np.float64).reshape(3, 1),
        length,
    )


def draw_trace(image: np.ndarray, points: np.ndarray) -> int:
    """Connect ``points`` in order, mark and label each one. Returns segment count."""
    pixels = [_pixel(p) for p in points]
    segments = 0
    for a, b in zip(pixels, pixels[1:]):
        cv2.line(image, a, b, SEGMENT_COLOR, 1)
        segments += 1
    for idx, p in enumerate(pixels):
        cv2.circle(image, p, 5, POINT_COLOR, -1)
        cv2.putText(image, str(idx), p, cv2.FONT_HERSHEY_SIMPLEX, 1, LABEL_COLOR)
    return segments


def draw_status(image: np.ndarray, text: str, origin: tuple[int, int] = (50, 50)) -> None:
    cv2.putText(image, text, origin, cv2.FONT_HERSHEY_PLAIN, 1, STATUS_COLOR)


def compose_frame(
    image: np.ndarray,
    detections: Detections,
    calibration: Optional[CameraCalibration] = None,
    rvec: Optional[np.ndarray] = None,
    tvec: Optional[np.ndarray] = None,
    projected: Optional[np.ndarray] = None,
    status_text: Optional[str] = None,
    axis_length: float = 0.5,
) -> np.ndarray:
    """
    Build one read-only output frame from a copy of ``image``.

    Marker outlines are always drawn; pose axes when a pose is given; then
    either the projected trace or ``status_text``.
    """
    out = image.copy()
    draw_markers(out, detections)
    if calibration is not None and rvec is not None and tvec is not None:
        draw_pose_axes(out, calibration, rvec, tvec, axis_length)
    if projected is not None and len(projected):
        draw_trace(out, projected)
    elif status_text:
        draw_status(out, status_text)
    out.flags.writeable = False
    return out
