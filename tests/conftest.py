import numpy as np
import pytest

from aruco_trace.config import OverlayConfig
from aruco_trace.trace_types import Detections, Frame


CAMERA_MATRIX = [
    [1019.0990600585938, 0.0, 655.7727661132812],
    [0.0, 1011.92724609375, 381.6077880859375],
    [0.0, 0.0, 1.0],
]
DIST_COEFFS = [
    0.25767844915390015,
    -1.3006402254104614,
    -0.004285777453333139,
    -0.002507657278329134,
    2.307018518447876,
]

# perimeter 160 px, first corner at (100, 100)
SQUARE_QUAD = np.array([[100, 100], [140, 100], [140, 140], [100, 140]], dtype=np.float32)


class DummyCapture:
    def __init__(self, frames=None, fail_start=None):
        """Replay ``frames`` (images or None) and then keep returning black frames."""
        self.frames = list(frames or [])
        self.fail_start = fail_start
        self.started = False
        self.stopped = False
        self.idx = 0

    def start(self):
        if self.fail_start is not None:
            raise self.fail_start
        self.started = True

    def read_latest(self):
        if self.frames:
            img = self.frames.pop(0)
        else:
            img = np.zeros((480, 640, 3), dtype=np.uint8)
        if img is None:
            return None
        self.idx += 1
        return Frame(self.idx, "ts", img)

    def stop(self):
        self.stopped = True


class DummyDetector:
    def __init__(self, ids=(), corners=()):
        """Always report the same markers."""
        self.ids = list(ids)
        self.corners = [np.asarray(c, dtype=np.float32).reshape(1, 4, 2) for c in corners]
        self.calls = 0

    def detect(self, image):
        self.calls += 1
        return Detections(list(self.ids), list(self.corners), [])


class DummyPoseEstimator:
    def __init__(self, rvec=(0.0, 0.0, 0.0), tvec=(0.0, 0.0, 10.0), fail=False):
        """Return one canned pose for every corner set, or None when ``fail``."""
        self.rvec = np.array(rvec, dtype=np.float64)
        self.tvec = np.array(tvec, dtype=np.float64)
        self.fail = fail
        self.calls = []

    def estimate(self, corners, marker_length, calibration):
        self.calls.append((len(corners), marker_length))
        if self.fail:
            return [None] * len(corners), [None] * len(corners)
        return [self.rvec.copy() for _ in corners], [self.tvec.copy() for _ in corners]


class RecordingSink:
    def __init__(self):
        self.frames = []

    def publish(self, frame):
        self.frames.append(frame)


@pytest.fixture
def config():
    return OverlayConfig(
        camera_name="testcam",
        camera_matrix=[row[:] for row in CAMERA_MATRIX],
        dist_coeffs=list(DIST_COEFFS),
        target_id=7,
    )


@pytest.fixture
def black_image():
    return np.zeros((480, 640, 3), dtype=np.uint8)


@pytest.fixture
def points_file(tmp_path):
    path = tmp_path / "points.csv"
    path.write_text("0,0,0\n1,0,0\n1,1,0\n", encoding="utf-8")
    return path
