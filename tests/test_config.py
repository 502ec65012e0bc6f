import json
from pathlib import Path

import pytest

from aruco_trace.config import OverlayConfig, load_config
from aruco_trace.errors import ConfigurationError

from conftest import CAMERA_MATRIX, DIST_COEFFS


def test_load_config_json(tmp_path: Path):
    cfg_path = tmp_path / "cam.json"
    cfg_path.write_text(
        json.dumps(
            {
                "camera_name": "camA",
                "device": "2",
                "fps": 20,
                "width": 640,
                "height": 480,
                "aruco_dict": "5x5_100",
                "target_id": 3,
                "camera_matrix": CAMERA_MATRIX,
                "dist_coeffs": DIST_COEFFS,
                "points_path": "pts.csv",
                "points_delimiter": ";",
                "display_width": 800,
                "display_height": 600,
                "video_path": "clip.mp4",
            }
        ),
        encoding="utf-8",
    )

    cfg = load_config(cfg_path)
    assert cfg.camera_name == "camA"
    assert cfg.device == 2
    assert cfg.fps == 20
    assert cfg.aruco_dict == "5x5_100"
    assert cfg.target_id == 3
    assert cfg.camera_matrix == CAMERA_MATRIX
    assert cfg.dist_coeffs == DIST_COEFFS
    assert cfg.points_delimiter == ";"
    assert cfg.display_size == (800, 600)
    assert cfg.video_path == "clip.mp4"

    cfg.apply_overrides(camera_name="camB", target_id=None, fps=10)
    assert cfg.camera_name == "camB"
    assert cfg.target_id == 3
    assert cfg.fps == 10


def test_load_config_yaml(tmp_path: Path):
    cfg_path = tmp_path / "cam.yaml"
    cfg_path.write_text(
        "camera_name: yamlcam\n"
        "device: /dev/video2\n"
        "calibration_path: calib/cam.yml\n"
        "max_frames: 5\n"
        "dry_run: true\n",
        encoding="utf-8",
    )

    cfg = load_config(cfg_path)
    assert cfg.camera_name == "yamlcam"
    assert cfg.device == "/dev/video2"
    assert cfg.calibration_path == "calib/cam.yml"
    assert cfg.max_frames == 5
    assert cfg.dry_run is True
    assert cfg.camera_matrix is None


def test_config_defaults():
    cfg = OverlayConfig()
    assert cfg.aruco_dict == "4x4_50"
    assert cfg.marker_length == 1.0
    assert cfg.axis_length == 0.5
    assert cfg.points_delimiter == ","
    assert cfg.display_size is None
    assert cfg.as_dict()["target_id"] == 0


def test_missing_config_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.json")


def test_non_mapping_root_is_rejected(tmp_path: Path):
    cfg_path = tmp_path / "list.json"
    cfg_path.write_text("[1, 2, 3]")
    with pytest.raises(ConfigurationError):
        load_config(cfg_path)


@pytest.mark.parametrize(
    "raw",
    [
        {"fps": "fast"},
        {"camera_matrix": "eye"},
        {"camera_matrix": [[1, "x", 0], [0, 1, 0], [0, 0, 1]]},
        {"dist_coeffs": 5},
    ],
)
def test_bad_values_raise_configuration_error(tmp_path: Path, raw):
    cfg_path = tmp_path / "bad.json"
    cfg_path.write_text(json.dumps(raw))
    with pytest.raises(ConfigurationError):
        load_config(cfg_path)


def test_shipped_example_config_loads():
    root = Path(__file__).resolve().parent.parent
    cfg = load_config(root / "configs" / "overlay.json")
    assert cfg.camera_matrix is not None
    assert len(cfg.dist_coeffs) == 5
