"""Frame sources for the overlay loop.

Every source hands out ``Frame`` objects from ``read_latest``. ``None`` means
there is no usable image this cycle; the loop skips it and asks again.
"""

from __future__ import annotations

import platform
import re
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

import cv2
import numpy as np

from .detect import get_dict
from .errors import DeviceError
from .trace_types import Frame


def _timestamp() -> str:
    now = time.time()
    return time.strftime("%Y-%m-%dT%H:%M:%S", time.localtime(now)) + f".{int(now * 1000) % 1000:03d}"


class _FramePacer:
    """Sleeps just long enough to hold ``fps``; 0 disables pacing."""

    def __init__(self, fps: float):
        self.fps = fps
        self._last = 0.0

    def reset(self) -> None:
        self._last = time.time()

    def wait(self) -> None:
        if self.fps > 0:
            delay = (1.0 / self.fps) - (time.time() - self._last)
            if delay > 0:
                time.sleep(delay)
        self._last = time.time()


class BaseCapture(ABC):
    @abstractmethod
    def start(self) -> None: ...

    @abstractmethod
    def read_latest(self) -> Optional[Frame]: ...

    @abstractmethod
    def stop(self) -> None: ...


class OpenCVCapture(BaseCapture):
    """Owns one ``cv2.VideoCapture``; subclasses decide how it is opened."""

    def __init__(self):
        self.cap: Any = None
        self.idx = 0

    @abstractmethod
    def describe(self) -> str: ...

    @abstractmethod
    def _open(self) -> Any: ...

    def _configure(self, cap: Any) -> None:
        pass

    def _grab(self) -> Optional[np.ndarray]:
        ok, img = self.cap.read()
        if not ok or img is None or img.size == 0:
            return None
        return img

    def start(self) -> None:
        cap = self._open()
        if not cap.isOpened():
            cap.release()
            raise DeviceError(f"Failed to open {self.describe()}")
        self._configure(cap)
        self.cap = cap
        self.idx = 0

    def read_latest(self) -> Optional[Frame]:
        if self.cap is None:
            return None
        img = self._grab()
        if img is None:
            return None
        self.idx += 1
        return Frame(self.idx, _timestamp(), img)

    def stop(self) -> None:
        if self.cap is not None:
            self.cap.release()
            self.cap = None


class USBOpenCVCapture(OpenCVCapture):
    """Live camera by index or ``/dev/videoN`` path."""

    def __init__(self, device: int | str, fps: int, width: int, height: int):
        super().__init__()
        self.device = device
        self.fps = fps
        self.width = width
        self.height = height

    def describe(self) -> str:
        return f"camera {self.device}"

    def _open(self) -> Any:
        if isinstance(self.device, str):
            match = re.match(r"^/dev/video(\d+)$", self.device)
            if match is None:
                return cv2.VideoCapture(self.device)
            return cv2.VideoCapture(int(match.group(1)), cv2.CAP_V4L2)

        # native backend first; unknown platforms go straight to the default
        backend = {
            "windows": cv2.CAP_DSHOW,
            "linux": cv2.CAP_V4L2,
            "darwin": cv2.CAP_AVFOUNDATION,
        }.get(platform.system().lower(), cv2.CAP_ANY)
        cap = cv2.VideoCapture(self.device, backend)
        if not cap.isOpened():
            cap.release()
            cap = cv2.VideoCapture(self.device)
        return cap

    def _configure(self, cap: Any) -> None:
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        cap.set(cv2.CAP_PROP_FPS, self.fps)
        # newest frame only
        cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)


class VideoFileCapture(OpenCVCapture):
    """
    Replays a recorded video in place of a live camera.

    With ``loop`` the file rewinds at its end; without it every read after the
    last frame is empty, so pair it with ``max_frames`` to end the session.
    """

    def __init__(self, path: str | Path, fps: int = 0, loop: bool = True):
        super().__init__()
        self.path = str(path)
        self.loop = loop
        self._pacer = _FramePacer(fps)

    def describe(self) -> str:
        return f"video file {self.path}"

    def _open(self) -> Any:
        return cv2.VideoCapture(self.path)

    def _configure(self, cap: Any) -> None:
        self._pacer.reset()

    def _grab(self) -> Optional[np.ndarray]:
        self._pacer.wait()
        img = super()._grab()
        if img is None and self.loop:
            self.cap.set(cv2.CAP_PROP_POS_FRAMES, 0)
            img = super()._grab()
        return img


class SyntheticCapture(BaseCapture):
    """
    Generated frames for dry runs.

    Black frames by default. Given ``marker_id``, a white frame with that
    ArUco marker centred on it, so the whole overlay path can run without a
    camera.
    """

    def __init__(
        self,
        fps: int,
        width: int,
        height: int,
        marker_id: Optional[int] = None,
        dict_name: str = "4x4_50",
    ):
        self.width = width
        self.height = height
        self.idx = 0
        self.started = False
        self._pacer = _FramePacer(fps)
        self._template = self._render(marker_id, dict_name)

    def _render(self, marker_id: Optional[int], dict_name: str) -> np.ndarray:
        img = np.zeros((self.height, self.width, 3), dtype=np.uint8)
        if marker_id is None:
            return img

        img[:] = 255
        side = min(self.width, self.height) // 2
        marker = cv2.aruco.generateImageMarker(get_dict(dict_name), int(marker_id), side)
        y = (self.height - side) // 2
        x = (self.width - side) // 2
        img[y:y + side, x:x + side] = cv2.cvtColor(marker, cv2.COLOR_GRAY2BGR)
        return img

    def start(self) -> None:
        self._pacer.reset()
        self.started = True

    def read_latest(self) -> Optional[Frame]:
        self._pacer.wait()
        self.idx += 1
        return Frame(self.idx, _timestamp(), self._template.copy())

    def stop(self) -> None:
        self.started = False
