from __future__ import annotations

from abc import ABC, abstractmethod
from queue import Empty, Full, Queue
from typing import Optional

import cv2
import numpy as np


class DisplaySink(ABC):
    @abstractmethod
    def publish(self, frame: np.ndarray) -> None: ...


class NullSink(DisplaySink):
    def publish(self, frame: np.ndarray) -> None:
        return None


class LatestFrameSink(DisplaySink):
    """Single-slot hand-off: a new frame replaces one the display has not taken yet."""

    def __init__(self):
        self._slot: Queue = Queue(maxsize=1)
        self.published = 0
        self.dropped = 0

    def publish(self, frame: np.ndarray) -> None:
        try:
            self._slot.get_nowait()
            self.dropped += 1
        except Empty:
            pass
        try:
            self._slot.put_nowait(frame)
        except Full:
            # another publisher refilled the slot in between
            self.dropped += 1
            return
        self.published += 1

    def get(self, timeout: Optional[float] = None) -> Optional[np.ndarray]:
        try:
            return self._slot.get(timeout=timeout)
        except Empty:
            return None


class WindowDisplay:
    """Host-side OpenCV window that shows frames taken from a LatestFrameSink."""

    def __init__(self, window_name: str, size: Optional[tuple[int, int]] = None):
        self.window_name = window_name
        self.size = size

    def show(self, frame: np.ndarray) -> None:
        if self.size is not None:
            frame = cv2.resize(frame, self.size, interpolation=cv2.INTER_LINEAR)
        cv2.imshow(self.window_name, frame)

    def poll_key(self, delay_ms: int = 1) -> int:
        return cv2.waitKey(delay_ms) & 0xFF

    def close(self) -> None:
        cv2.destroyWindow(self.window_name)
