import argparse
import signal
import sys

from .config import OverlayConfig, load_config
from .display import LatestFrameSink, WindowDisplay
from .errors import ConfigurationError, DeviceError, FormatError
from .worker import OverlayWorker


QUIT_KEYS = {ord("q"), 27}
RELOAD_KEY = ord("r")


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Overlay a 3D point trace on a live ArUco marker")
    ap.add_argument("--config", required=True, help="Path to JSON/YAML config")

    ap.add_argument("--camera-name")
    ap.add_argument("--device")
    ap.add_argument("--fps", type=int)
    ap.add_argument("--width", type=int)
    ap.add_argument("--height", type=int)
    ap.add_argument("--calib")
    ap.add_argument("--dict")
    ap.add_argument("--marker-length", type=float)
    ap.add_argument("--target-id", type=int)
    ap.add_argument("--points")
    ap.add_argument("--delimiter")
    ap.add_argument("--max-frames", type=int)
    ap.add_argument("--log-file")
    ap.add_argument("--dry-run", action="store_true", help="Use generated frames showing the target marker")
    ap.add_argument("--video", help="Replay a video file instead of a live camera")
    ap.add_argument("--headless", action="store_true", help="Run without opening a window")

    return ap


def _apply_args(cfg: OverlayConfig, args: argparse.Namespace) -> OverlayConfig:
    device = args.device
    if isinstance(device, str) and device.isdigit():
        device = int(device)

    cfg.apply_overrides(
        camera_name=args.camera_name,
        device=device,
        fps=args.fps,
        width=args.width,
        height=args.height,
        calibration_path=args.calib,
        aruco_dict=args.dict,
        marker_length=args.marker_length,
        target_id=args.target_id,
        points_path=args.points,
        points_delimiter=args.delimiter,
        max_frames=args.max_frames,
        log_path=args.log_file,
        dry_run=args.dry_run if args.dry_run else None,
        video_path=args.video,
    )
    return cfg


def _load_points(worker: OverlayWorker, cfg: OverlayConfig) -> None:
    if not cfg.points_path:
        return
    try:
        worker.load_points(cfg.points_path, cfg.points_delimiter)
    except FormatError as e:
        worker.logger.error("points not loaded: %s", e)


def _display_loop(worker: OverlayWorker, sink: LatestFrameSink, cfg: OverlayConfig) -> None:
    window = WindowDisplay(cfg.window_name, cfg.display_size)
    try:
        while worker.is_running:
            frame = sink.get(timeout=0.1)
            if frame is not None:
                window.show(frame)
            key = window.poll_key()
            if key in QUIT_KEYS:
                break
            if key == RELOAD_KEY:
                _load_points(worker, cfg)
            elif ord("0") <= key <= ord("9"):
                worker.set_target(key - ord("0"))
                worker.logger.info("tracking marker %d", worker.target_marker_id)
    finally:
        window.close()


def main() -> int:
    ap = _build_parser()
    args = ap.parse_args()

    try:
        cfg = load_config(args.config)
    except ConfigurationError as e:
        print(f"invalid config: {e}", file=sys.stderr)
        return 2
    cfg = _apply_args(cfg, args)

    sink = LatestFrameSink()
    worker = OverlayWorker(cfg, sink=sink)
    _load_points(worker, cfg)

    def _handle_signal(_sig, _frame):
        worker.stop(timeout=0)

    signal.signal(signal.SIGINT, _handle_signal)
    if hasattr(signal, "SIGTERM"):
        signal.signal(signal.SIGTERM, _handle_signal)

    try:
        worker.start(cfg.device, cfg.target_id)
    except (DeviceError, ConfigurationError) as e:
        worker.logger.error("cannot start: %s", e)
        return 1

    try:
        if args.headless:
            while not worker.wait(timeout=0.5):
                pass
        else:
            _display_loop(worker, sink, cfg)
    finally:
        worker.stop()

    if worker.last_summary is not None:
        print(worker.last_summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
