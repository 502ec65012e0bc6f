from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Sequence, Tuple

import numpy as np


ModelPoint = Tuple[float, float, float]
ModelPointSet = Tuple[ModelPoint, ...]


class OverlayStatus:
    NO_MARKER = "no_marker"
    NO_POSE = "no_pose"
    NO_POINTS = "no_points"
    OVERLAY = "overlay"


@dataclass
class Frame:
    idx: int
    ts_iso: str
    image: Any  # numpy array

    @property
    def is_empty(self) -> bool:
        return self.image is None or getattr(self.image, "size", 0) == 0


@dataclass
class Detections:
    ids: Sequence[int]
    corners: Sequence[Any]  # each (1,4,2) or (4,2) ndarray
    rejected: Sequence[Any] = ()

    def __len__(self) -> int:
        return len(self.ids)

    def index_of(self, marker_id: int) -> Optional[int]:
        for i, mid in enumerate(self.ids):
            if int(mid) == int(marker_id):
                return i
        return None

    def quad(self, index: int) -> np.ndarray:
        return np.asarray(self.corners[index], dtype=np.float64).reshape(4, 2)


@dataclass(frozen=True)
class EulerAngles:
    roll: float
    pitch: float
    yaw: float

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.roll, self.pitch, self.yaw)


@dataclass(frozen=True)
class FramePose:
    rvec: np.ndarray
    tvec: np.ndarray
    marker_size: float
    anchor: Tuple[float, float]


@dataclass(frozen=True)
class OverlayFrame:
    image: np.ndarray
    status: str
    pose: Optional[FramePose] = None
    angles: Optional[EulerAngles] = None
    projected: np.ndarray = field(default_factory=lambda: np.zeros((0, 2)))

    @property
    def segments(self) -> int:
        return max(0, len(self.projected) - 1)
