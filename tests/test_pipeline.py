import unittest

import numpy as np

from yolo_live.config import DetectionConfig
from yolo_live.errors import InferenceError, UnsupportedLayoutError
from yolo_live.loop import DetectionLoop, PipelineState
from yolo_live.pipeline import FramePipeline
from yolo_live.types import RawOutput


def _two_overlapping_candidates() -> np.ndarray:
    # Channels-first [1, 6, 4]: cx, cy, w, h, obj, cls with S = 100.
    rows = np.array(
        [
            [25, 25, 50, 50, 0.8, 1.0],  # (0, 0, .5, .5) conf .8
            [25, 15, 50, 30, 1.0, 0.6],  # (0, 0, .5, .3) conf .6, IoU .6
            [80, 80, 10, 10, 0.9, 0.1],  # below threshold
            [80, 80, 10, 10, 0.0, 0.0],
        ],
        dtype=np.float32,
    )
    return np.ascontiguousarray(rows.T[None, ...])


class _FakeEngine:
    def __init__(self, outputs):
        self.outputs = list(outputs)
        self.blobs = []

    def __call__(self, blob):
        self.blobs.append(blob)
        out = self.outputs.pop(0)
        if isinstance(out, Exception):
            raise out
        return out


def _frame(h: int = 24, w: int = 32) -> np.ndarray:
    return np.full((h, w, 4), 128, dtype=np.uint8)


class TestFramePipeline(unittest.TestCase):
    def setUp(self) -> None:
        self.cfg = DetectionConfig(input_size=100, conf_threshold=0.5, iou_threshold=0.4)

    def test_end_to_end_suppresses_overlap(self) -> None:
        engine = _FakeEngine([_two_overlapping_candidates()])
        dets = FramePipeline(engine, self.cfg)(_frame())

        self.assertEqual(len(dets), 1)
        self.assertAlmostEqual(dets[0].confidence, 0.8, places=6)
        self.assertTrue(np.allclose(dets[0].as_xyxy(), (0.0, 0.0, 0.5, 0.5)))
        self.assertEqual(engine.blobs[0].shape, (1, 3, 100, 100))
        self.assertEqual(engine.blobs[0].dtype, np.float32)

    def test_raw_output_passthrough(self) -> None:
        engine = _FakeEngine([RawOutput.from_array(_two_overlapping_candidates())])
        self.assertEqual(len(FramePipeline(engine, self.cfg)(_frame())), 1)

    def test_not_ready_frame_skips_inference(self) -> None:
        engine = _FakeEngine([])
        pipe = FramePipeline(engine, self.cfg)
        self.assertEqual(pipe(None), [])
        self.assertEqual(pipe(np.zeros((0, 0, 4), dtype=np.uint8)), [])
        self.assertEqual(engine.blobs, [])

    def test_inference_failure_is_wrapped(self) -> None:
        cause = RuntimeError("session not ready")
        pipe = FramePipeline(_FakeEngine([cause]), self.cfg)
        with self.assertRaises(InferenceError) as ctx:
            pipe(_frame())
        self.assertIs(ctx.exception.__cause__, cause)

    def test_non_array_engine_output_is_wrapped(self) -> None:
        pipe = FramePipeline(_FakeEngine([{"output0": _two_overlapping_candidates()}]), self.cfg)
        with self.assertRaises(InferenceError) as ctx:
            pipe(_frame())
        self.assertIsInstance(ctx.exception.__cause__, TypeError)

    def test_unsupported_layout_propagates(self) -> None:
        pipe = FramePipeline(_FakeEngine([np.zeros((1, 4, 100), dtype=np.float32)]), self.cfg)
        with self.assertRaises(UnsupportedLayoutError):
            pipe(_frame())

    def test_top_k_without_nms(self) -> None:
        cfg = DetectionConfig(input_size=100, conf_threshold=0.5, apply_nms=False, max_detections=5)
        dets = FramePipeline(_FakeEngine([_two_overlapping_candidates()]), cfg)(_frame())
        self.assertEqual([round(d.confidence, 3) for d in dets], [0.8, 0.6])

    def test_failed_frame_does_not_affect_next(self) -> None:
        engine = _FakeEngine([np.zeros((1, 3, 10), dtype=np.float32), _two_overlapping_candidates()])
        pipe = FramePipeline(engine, self.cfg)
        with self.assertRaises(UnsupportedLayoutError):
            pipe(_frame())
        self.assertEqual(len(pipe(_frame())), 1)


class TestDetectionLoop(unittest.TestCase):
    def setUp(self) -> None:
        self.cfg = DetectionConfig(input_size=100, conf_threshold=0.5, iou_threshold=0.4)

    def _source(self, frames):
        frames = list(frames)

        def read():
            return frames.pop(0) if frames else None

        return read

    def test_runs_until_source_exhausted(self) -> None:
        engine = _FakeEngine(
            [
                _two_overlapping_candidates(),
                RuntimeError("boom"),
                _two_overlapping_candidates(),
            ]
        )
        rendered = []
        loop = DetectionLoop(
            FramePipeline(engine, self.cfg),
            self._source([_frame(), np.zeros((0, 0, 4), dtype=np.uint8), _frame(), _frame()]),
            renderer=lambda frame, dets: rendered.append(len(dets)),
        )
        state = loop.run()

        self.assertFalse(state.running)
        self.assertEqual(state.frames_seen, 4)
        self.assertEqual(state.frames_processed, 2)
        self.assertEqual(state.frames_not_ready, 1)
        self.assertEqual(state.frames_failed, 1)
        self.assertIsInstance(state.last_error, InferenceError)
        self.assertEqual(rendered, [1, 1])

    def test_stop_from_renderer(self) -> None:
        engine = _FakeEngine([_two_overlapping_candidates() for _ in range(5)])
        state = PipelineState()
        loop = DetectionLoop(FramePipeline(engine, self.cfg), self._source([_frame()] * 5), state=state)
        loop.renderer = lambda frame, dets: loop.stop()

        self.assertIs(loop.run(), state)
        self.assertEqual(state.frames_processed, 1)
        self.assertEqual(len(engine.blobs), 1)

    def test_max_frames(self) -> None:
        engine = _FakeEngine([_two_overlapping_candidates() for _ in range(5)])
        loop = DetectionLoop(FramePipeline(engine, self.cfg), self._source([_frame()] * 5))
        state = loop.run(max_frames=2)
        self.assertEqual(state.frames_seen, 2)
        self.assertEqual(len(engine.blobs), 2)

    def test_records_inference_time_and_fps(self) -> None:
        ticks = iter([0.0, 0.1, 0.5, 0.55, 1.0, 1.1])
        engine = _FakeEngine([_two_overlapping_candidates() for _ in range(3)])
        loop = DetectionLoop(
            FramePipeline(engine, self.cfg),
            self._source([_frame()] * 3),
            clock=lambda: next(ticks),
        )

        loop.step()
        self.assertAlmostEqual(loop.state.last_inference_ms, 100.0)
        self.assertIsNone(loop.state.fps)
        loop.step()
        self.assertAlmostEqual(loop.state.last_inference_ms, 50.0)
        self.assertIsNone(loop.state.fps)

        state = loop.run()
        self.assertEqual(state.frames_processed, 3)
        self.assertAlmostEqual(state.last_inference_ms, 100.0)
        self.assertAlmostEqual(state.fps, 3 / 1.1)
        self.assertEqual(state.fps_window_frames, 0)

    def test_fps_window_restarts(self) -> None:
        state = PipelineState()
        state.record_frame(0.0, 1.0)
        self.assertAlmostEqual(state.fps, 1.0)
        state.record_frame(1.0, 1.25)
        state.record_frame(1.25, 1.5)
        self.assertAlmostEqual(state.fps, 1.0)
        state.record_frame(1.5, 2.0)
        self.assertAlmostEqual(state.fps, 3.0)

    def test_failed_and_not_ready_frames_are_not_timed(self) -> None:
        engine = _FakeEngine([RuntimeError("boom")])
        loop = DetectionLoop(
            FramePipeline(engine, self.cfg),
            self._source([np.zeros((0, 0, 4), dtype=np.uint8), _frame()]),
            clock=iter([0.0]).__next__,
        )
        state = loop.run()
        self.assertEqual(state.frames_failed, 1)
        self.assertIsNone(state.last_inference_ms)
        self.assertIsNone(state.fps)

    def test_step_returns_none_when_exhausted(self) -> None:
        loop = DetectionLoop(FramePipeline(_FakeEngine([]), self.cfg), self._source([]))
        self.assertIsNone(loop.step())


if __name__ == "__main__":
    unittest.main()
