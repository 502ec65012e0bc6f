import logging
from typing import Any, Optional, Sequence

import cv2
import numpy as np

from .calibration import CameraCalibration
from .trace_types import Detections


logger = logging.getLogger(__name__)

ARUCO_DICTS = {
    "4x4_50": cv2.aruco.DICT_4X4_50,
    "4x4_100": cv2.aruco.DICT_4X4_100,
    "5x5_50": cv2.aruco.DICT_5X5_50,
    "5x5_100": cv2.aruco.DICT_5X5_100,
    "6x6_50": cv2.aruco.DICT_6X6_50,
    "6x6_100": cv2.aruco.DICT_6X6_100,
    "7x7_50": cv2.aruco.DICT_7X7_50,
    "7x7_100": cv2.aruco.DICT_7X7_100,
}


def get_dict(name: str) -> Any:
    """
    Resolve an ArUco dictionary by name ("4x4_50" or "DICT_4X4_50").
    Falls back to 4x4_50 if the name is not recognized.
    """
    key = (name or "").strip().lower()
    if key.startswith("dict_"):
        key = key[5:]
    code = ARUCO_DICTS.get(key)
    if code is None:
        logger.warning("unknown ArUco dictionary %r, using 4x4_50", name)
        code = cv2.aruco.DICT_4X4_50
    return cv2.aruco.getPredefinedDictionary(code)


class MarkerDetector:
    def __init__(self, dict_name: str = "4x4_50"):
        self.dictionary = get_dict(dict_name)
        self.params = cv2.aruco.DetectorParameters()
        self._detector = cv2.aruco.ArucoDetector(self.dictionary, self.params)

    def detect(self, image: np.ndarray) -> Detections:
        corners, ids, rejected = self._detector.detectMarkers(image)
        rejected = [] if rejected is None else list(rejected)
        if ids is None or len(ids) == 0:
            return Detections([], [], rejected)
        return Detections(
            [int(mid) for mid in np.asarray(ids).flatten()],
            list(corners),
            rejected,
        )


class MarkerPoseEstimator:
    """Per-marker pose from its 4 corners, index-parallel to the input."""

    def estimate(
        self,
        corners: Sequence[Any],
        marker_length: float,
        calibration: CameraCalibration,
    ) -> tuple[list[Optional[np.ndarray]], list[Optional[np.ndarray]]]:
        half = marker_length / 2.0
        obj_points = np.array([
            [-half,  half, 0],
            [ half,  half, 0],
            [ half, -half, 0],
            [-half, -half, 0],
        ], dtype=np.float32)

        rvecs: list[Optional[np.ndarray]] = []
        tvecs: list[Optional[np.ndarray]] = []
        for quad in corners:
            img_points = np.asarray(quad, dtype=np.float32).reshape(4, 2)
            try:
                ok, rvec, tvec = cv2.solvePnP(
                    obj_points,
                    img_points,
                    calibration.camera_matrix,
                    calibration.dist_coeffs,
                    flags=cv2.SOLVEPNP_IPPE_SQUARE,
                )
            except cv2.error as exc:
                logger.debug("solvePnP failed: %s", exc)
                ok = False
            if ok:
                rvecs.append(rvec.reshape(3))
                tvecs.append(tvec.reshape(3))
            else:
                rvecs.append(None)
                tvecs.append(None)
        return rvecs, tvecs
