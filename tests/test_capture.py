import unittest

import cv2
import numpy as np

from yolo_live.capture import OpenCVFrameSource, apply_preferred_size, get_capture_info, open_capture
from yolo_live.normalize import frame_is_ready


class _FakeCapture:
    def __init__(self, reads):
        self.reads = list(reads)
        self.released = False

    def read(self):
        if not self.reads:
            return False, None
        return self.reads.pop(0)

    def release(self):
        self.released = True


class TestOpenCVFrameSource(unittest.TestCase):
    def test_failed_read_is_not_ready(self) -> None:
        frame = np.zeros((4, 4, 3), dtype=np.uint8)
        source = OpenCVFrameSource(_FakeCapture([(False, None), (True, frame)]), max_failed_reads=3)

        first = source()
        self.assertIsNotNone(first)
        self.assertFalse(frame_is_ready(first))
        self.assertIs(source(), frame)

    def test_consecutive_failures_end_stream(self) -> None:
        cap = _FakeCapture([])
        source = OpenCVFrameSource(cap, max_failed_reads=2)
        self.assertIsNotNone(source())
        self.assertIsNone(source())
        source.release()
        self.assertTrue(cap.released)

    def test_open_capture_requires_one_source(self) -> None:
        with self.assertRaises(ValueError):
            open_capture()
        with self.assertRaises(ValueError):
            open_capture(video="clip.mp4", webcam=0)


class _SizedCapture:
    """Records property writes; only sizes in `supported` take effect."""

    def __init__(self, width, height, supported=()):
        self.props = {
            cv2.CAP_PROP_FRAME_WIDTH: float(width),
            cv2.CAP_PROP_FRAME_HEIGHT: float(height),
            cv2.CAP_PROP_FPS: 30.0,
        }
        self.supported = set(supported)
        self.requested = {}

    def set(self, prop, value):
        self.requested[prop] = value
        if value in self.supported:
            self.props[prop] = float(value)
        return True

    def get(self, prop):
        return self.props.get(prop, 0.0)


class TestPreferredSize(unittest.TestCase):
    def test_supported_size_is_applied(self) -> None:
        cap = _SizedCapture(1920, 1080, supported=(640, 480))
        self.assertTrue(apply_preferred_size(cap, 640, 480))
        info = get_capture_info(cap)
        self.assertEqual((info.width, info.height), (640, 480))

    def test_unsupported_size_keeps_device_default(self) -> None:
        cap = _SizedCapture(1280, 720)
        self.assertFalse(apply_preferred_size(cap, 641, 479))
        self.assertEqual(cap.requested, {cv2.CAP_PROP_FRAME_WIDTH: 641, cv2.CAP_PROP_FRAME_HEIGHT: 479})
        info = get_capture_info(cap)
        self.assertEqual((info.width, info.height), (1280, 720))

    def test_width_only(self) -> None:
        cap = _SizedCapture(1280, 720, supported=(800,))
        self.assertTrue(apply_preferred_size(cap, 800, None))
        self.assertNotIn(cv2.CAP_PROP_FRAME_HEIGHT, cap.requested)

    def test_rejects_non_positive_size(self) -> None:
        with self.assertRaises(ValueError):
            apply_preferred_size(_SizedCapture(640, 480), 0, 480)


if __name__ == "__main__":
    unittest.main()
