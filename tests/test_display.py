import threading
from unittest.mock import patch

import numpy as np

from aruco_trace import display as display_mod
from aruco_trace.display import LatestFrameSink, NullSink, WindowDisplay


def _frame(value):
    return np.full((2, 2, 3), value, dtype=np.uint8)


def test_sink_keeps_only_the_latest_frame():
    sink = LatestFrameSink()
    for v in (1, 2, 3):
        sink.publish(_frame(v))

    latest = sink.get(timeout=0)
    assert latest[0, 0, 0] == 3
    assert sink.get(timeout=0) is None
    assert sink.published == 3
    assert sink.dropped == 2


def test_get_times_out_when_nothing_published():
    assert LatestFrameSink().get(timeout=0.01) is None


def test_publish_never_blocks_the_producer():
    sink = LatestFrameSink()
    done = threading.Event()

    def produce():
        for v in range(200):
            sink.publish(_frame(v % 255))
        done.set()

    t = threading.Thread(target=produce)
    t.start()
    t.join(timeout=5)

    assert done.is_set()
    assert sink.get(timeout=0)[0, 0, 0] == 199


def test_null_sink_accepts_frames():
    assert NullSink().publish(_frame(0)) is None


def test_window_display_resizes_to_configured_size():
    window = WindowDisplay("test", size=(8, 6))
    with patch.object(display_mod.cv2, "imshow") as mock_show:
        window.show(_frame(5))

    name, shown = mock_show.call_args.args
    assert name == "test"
    assert shown.shape == (6, 8, 3)


def test_window_display_without_size_shows_frame_as_is():
    window = WindowDisplay("test")
    frame = _frame(5)
    with patch.object(display_mod.cv2, "imshow") as mock_show, \
            patch.object(display_mod.cv2, "waitKey", return_value=0x171) as mock_wait:
        window.show(frame)
        key = window.poll_key(5)

    assert mock_show.call_args.args[1] is frame
    assert key == 0x71
    mock_wait.assert_called_once_with(5)
