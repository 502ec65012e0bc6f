from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import numpy as np

from .calibration import CalibrationStore, calibration_from_config
from .capture import BaseCapture, SyntheticCapture, USBOpenCVCapture, VideoFileCapture
from .config import OverlayConfig
from .detect import MarkerDetector, MarkerPoseEstimator
from .display import DisplaySink, NullSink
from .errors import ConfigurationError
from .logging_utils import add_file_handler, set_log_target, setup_logger
from .points import PointsSource, PointStore
from .projection import marker_size_from_corners, project_points
from .render import NO_POINTS_TEXT, compose_frame
from .trace_types import FramePose, ModelPointSet, OverlayFrame, OverlayStatus
from .transforms import extract_euler_angles


class LoopState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPING = "stopping"


@dataclass
class SessionSummary:
    frames_processed: int
    frames_dropped: int
    overlays: int
    avg_fps: float


CaptureFactory = Callable[[int | str], BaseCapture]


class OverlayWorker:
    """
    Background capture -> detect -> project -> render loop.

    ``start``/``stop``/``load_points`` are called from the control thread;
    the cycle itself runs on a single worker thread and only reads the shared
    target id, point set and sink, so a change is picked up by the next cycle.
    """

    def __init__(
        self,
        config: OverlayConfig,
        logger: Optional[logging.Logger] = None,
        sink: Optional[DisplaySink] = None,
        capture_factory: Optional[CaptureFactory] = None,
        detector=None,
        pose_estimator=None,
    ):
        self.config = config
        self.logger = logger or setup_logger(config.camera_name)
        if config.log_path:
            add_file_handler(self.logger, config.camera_name, config.log_path)

        self.sink: DisplaySink = sink or NullSink()
        self._capture_factory = capture_factory or self._build_capture
        self.detector = detector or MarkerDetector(config.aruco_dict)
        self.pose_estimator = pose_estimator or MarkerPoseEstimator()

        self.calibration = CalibrationStore()
        self.points = PointStore()
        self.target_marker_id = int(config.target_id)
        set_log_target(self.logger, self.target_marker_id)
        self.last_summary: Optional[SessionSummary] = None

        self._state = LoopState.IDLE
        self._lock = threading.RLock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # -- control surface -------------------------------------------------

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is LoopState.RUNNING

    def _build_capture(self, device: int | str) -> BaseCapture:
        cfg = self.config
        if cfg.video_path:
            return VideoFileCapture(cfg.video_path, cfg.fps)
        if cfg.dry_run:
            return SyntheticCapture(cfg.fps, cfg.width, cfg.height, cfg.target_id, cfg.aruco_dict)
        return USBOpenCVCapture(device, cfg.fps, cfg.width, cfg.height)

    def start(self, device_index: int | str | None = None, target_marker_id: Optional[int] = None) -> None:
        with self._lock:
            if self._state is not LoopState.IDLE:
                self.logger.warning("start ignored: loop is %s", self._state.value)
                return

            self._stop_event.clear()
            device = self.config.device if device_index is None else device_index
            capture = self._capture_factory(device)
            capture.start()

            try:
                self.calibration.load(*calibration_from_config(self.config))
            except ConfigurationError:
                capture.stop()
                raise

            # stop() may arrive while the device opens, e.g. from a signal handler
            if self._stop_event.is_set():
                capture.stop()
                self.logger.info("start cancelled: stop requested while opening device=%s", device)
                return

            if target_marker_id is not None:
                self.set_target(target_marker_id)

            self._state = LoopState.RUNNING
            self._thread = threading.Thread(
                target=self._run,
                args=(capture,),
                name=f"{self.config.camera_name}-overlay",
                daemon=True,
            )
            self._thread.start()

        self.logger.info(
            "overlay started: device=%s target_id=%d points=%d",
            device, self.target_marker_id, len(self.points),
        )

    def stop(self, timeout: Optional[float] = None) -> None:
        """Request the loop to end and join it; ``timeout=0`` only requests."""
        self._stop_event.set()
        with self._lock:
            thread = self._thread
            if thread is None or self._state is LoopState.IDLE:
                return
            self._state = LoopState.STOPPING

        if thread is threading.current_thread():
            return
        thread.join(timeout)
        if timeout and thread.is_alive():
            self.logger.warning("overlay loop did not finish within %.1fs", timeout)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the loop has ended on its own. True when idle."""
        thread = self._thread
        if thread is not None:
            thread.join(timeout)
        return self._state is LoopState.IDLE

    def load_points(self, source: PointsSource, delimiter: str = ",") -> ModelPointSet:
        return self.points.load(source, delimiter)

    def set_target(self, marker_id: int) -> None:
        self.target_marker_id = int(marker_id)
        set_log_target(self.logger, self.target_marker_id)

    def set_sink(self, sink: DisplaySink) -> None:
        self.sink = sink

    # -- worker side -----------------------------------------------------

    def process_frame(self, image: np.ndarray) -> OverlayFrame:
        """Run detection, pose, projection and composition on one frame."""
        calib = self.calibration.current
        target = self.target_marker_id
        points = self.points.current

        dets = self.detector.detect(image)
        index = dets.index_of(target)
        if index is None:
            composed = compose_frame(image, dets, axis_length=self.config.axis_length)
            return OverlayFrame(composed, OverlayStatus.NO_MARKER)

        rvecs, tvecs = self.pose_estimator.estimate(dets.corners, self.config.marker_length, calib)
        if index >= len(rvecs) or rvecs[index] is None or tvecs[index] is None:
            composed = compose_frame(image, dets, axis_length=self.config.axis_length)
            return OverlayFrame(composed, OverlayStatus.NO_POSE)

        rvec, tvec = rvecs[index], tvecs[index]
        quad = dets.quad(index)
        pose = FramePose(
            rvec=np.asarray(rvec, dtype=np.float64).reshape(3),
            tvec=np.asarray(tvec, dtype=np.float64).reshape(3),
            marker_size=marker_size_from_corners(quad),
            anchor=(float(quad[0, 0]), float(quad[0, 1])),
        )
        angles = extract_euler_angles(pose.rvec, pose.tvec)

        if not points:
            composed = compose_frame(
                image, dets, calib, pose.rvec, pose.tvec,
                status_text=NO_POINTS_TEXT,
                axis_length=self.config.axis_length,
            )
            return OverlayFrame(composed, OverlayStatus.NO_POINTS, pose, angles)

        projected = project_points(points, pose.marker_size, angles, pose.anchor)
        composed = compose_frame(
            image, dets, calib, pose.rvec, pose.tvec,
            projected=projected,
            axis_length=self.config.axis_length,
        )
        return OverlayFrame(composed, OverlayStatus.OVERLAY, pose, angles, projected)

    def _run(self, capture: BaseCapture) -> None:
        t0 = time.time()
        frames = 0
        dropped = 0
        overlays = 0

        try:
            while not self._stop_event.is_set():
                if self.config.max_frames and frames >= self.config.max_frames:
                    break

                f = capture.read_latest()
                if f is None or f.is_empty:
                    dropped += 1
                    self._stop_event.wait(1.0 / max(1, self.config.fps))
                    continue

                result = self.process_frame(f.image)
                if result.status == OverlayStatus.OVERLAY:
                    overlays += 1
                else:
                    self.logger.debug("frame=%d status=%s", f.idx, result.status)

                self.sink.publish(result.image)
                frames += 1
        except Exception:
            self.logger.exception("overlay loop failed")
        finally:
            try:
                capture.stop()
            except Exception as e:
                self.logger.warning("camera release failed: %s", e)

            avg = frames / max(1e-6, (time.time() - t0))
            self.last_summary = SessionSummary(frames, dropped, overlays, avg)
            self.logger.info(
                "summary frames=%d dropped=%d overlays=%d avg_fps=%.2f",
                frames, dropped, overlays, avg,
            )

            with self._lock:
                self._thread = None
                self._state = LoopState.IDLE
