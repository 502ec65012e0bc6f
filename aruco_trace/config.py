from __future__ import annotations

import json
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Optional

from .errors import ConfigurationError


@dataclass
class OverlayConfig:
    camera_name: str = "cam"
    device: int | str = 0
    fps: int = 30
    width: int = 1280
    height: int = 720
    aruco_dict: str = "4x4_50"
    marker_length: float = 1.0
    axis_length: float = 0.5
    target_id: int = 0
    calibration_path: Optional[str] = None
    camera_matrix: Optional[list[list[float]]] = None
    dist_coeffs: Optional[list[float]] = None
    points_path: Optional[str] = None
    points_delimiter: str = ","
    display_width: Optional[int] = None
    display_height: Optional[int] = None
    window_name: str = "aruco_trace"
    max_frames: Optional[int] = None
    dry_run: bool = False
    video_path: Optional[str] = None
    log_path: Optional[str] = None

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)

    def apply_overrides(self, **kwargs: Any) -> "OverlayConfig":
        for key, value in kwargs.items():
            if value is not None and hasattr(self, key):
                setattr(self, key, value)
        return self

    @property
    def display_size(self) -> Optional[tuple[int, int]]:
        if self.display_width and self.display_height:
            return (int(self.display_width), int(self.display_height))
        return None


def _load_yaml(path: Path) -> dict[str, Any]:
    import yaml

    with path.open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}
    if not isinstance(data, dict):
        raise ConfigurationError("YAML config root must be a mapping")
    return data


def _optional_int(value: Any) -> Optional[int]:
    return None if value is None else int(value)


def _normalize_device(value: Any) -> int | str:
    if isinstance(value, str) and value.isdigit():
        return int(value)
    if isinstance(value, (int, float)):
        return int(value)
    return str(value)


def _matrix(value: Any, name: str) -> Optional[list[list[float]]]:
    if value is None:
        return None
    if not isinstance(value, (list, tuple)):
        raise ConfigurationError(f"{name} must be a list of rows")
    try:
        return [[float(v) for v in row] for row in value]
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{name} must hold numbers: {exc}") from exc


def _vector(value: Any, name: str) -> Optional[list[float]]:
    if value is None:
        return None
    if not isinstance(value, (list, tuple)):
        raise ConfigurationError(f"{name} must be a list")
    try:
        return [float(v) for v in value]
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{name} must hold numbers: {exc}") from exc


def load_config(path: str | Path) -> OverlayConfig:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config not found: {p}")

    if p.suffix.lower() in {".yaml", ".yml"}:
        raw = _load_yaml(p)
    else:
        with p.open("r", encoding="utf-8") as fp:
            raw = json.load(fp)

    if not isinstance(raw, dict):
        raise ConfigurationError("Config root must be a JSON/YAML object")

    cfg = OverlayConfig()
    try:
        cfg.camera_name = str(raw.get("camera_name", cfg.camera_name))
        cfg.device = _normalize_device(raw.get("device", cfg.device))
        cfg.fps = int(raw.get("fps", cfg.fps))
        cfg.width = int(raw.get("width", cfg.width))
        cfg.height = int(raw.get("height", cfg.height))
        cfg.aruco_dict = str(raw.get("aruco_dict", cfg.aruco_dict))
        cfg.marker_length = float(raw.get("marker_length", cfg.marker_length))
        cfg.axis_length = float(raw.get("axis_length", cfg.axis_length))
        cfg.target_id = int(raw.get("target_id", cfg.target_id))
        cfg.points_delimiter = str(raw.get("points_delimiter", cfg.points_delimiter))
        cfg.window_name = str(raw.get("window_name", cfg.window_name))
        cfg.display_width = _optional_int(raw.get("display_width", cfg.display_width))
        cfg.display_height = _optional_int(raw.get("display_height", cfg.display_height))
        cfg.max_frames = _optional_int(raw.get("max_frames", cfg.max_frames))
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid config value in {p}: {exc}") from exc

    calib_path = raw.get("calibration_path", cfg.calibration_path)
    cfg.calibration_path = None if calib_path is None else str(calib_path)
    cfg.camera_matrix = _matrix(raw.get("camera_matrix"), "camera_matrix")
    cfg.dist_coeffs = _vector(raw.get("dist_coeffs"), "dist_coeffs")

    points_path = raw.get("points_path", cfg.points_path)
    cfg.points_path = None if points_path is None else str(points_path)
    log_path = raw.get("log_path", cfg.log_path)
    cfg.log_path = None if log_path is None else str(log_path)
    cfg.dry_run = bool(raw.get("dry_run", cfg.dry_run))
    video_path = raw.get("video_path", cfg.video_path)
    cfg.video_path = None if video_path is None else str(video_path)

    return cfg
