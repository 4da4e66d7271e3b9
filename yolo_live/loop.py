from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

import numpy as np

from .errors import YoloLiveError
from .normalize import frame_is_ready
from .types import Detection

logger = logging.getLogger(__name__)

FrameSource = Callable[[], Optional[np.ndarray]]
Renderer = Callable[[np.ndarray, List[Detection]], Any]

FPS_WINDOW_SECONDS = 1.0


@dataclass
class PipelineState:
    """
    Caller-owned run state. Holds counters and timings only; no frame data or
    detections survive from one frame to the next.

    `fps` is refreshed once per `FPS_WINDOW_SECONDS` of processed frames and
    stays None until the first window closes.
    """

    running: bool = False
    frames_seen: int = 0
    frames_processed: int = 0
    frames_not_ready: int = 0
    frames_failed: int = 0
    last_error: Optional[BaseException] = None
    last_inference_ms: Optional[float] = None
    fps: Optional[float] = None
    fps_window_start: Optional[float] = None
    fps_window_frames: int = 0

    def record_frame(self, started: float, finished: float) -> None:
        """Record one processed frame timed with a monotonic clock (seconds)."""
        self.last_inference_ms = (finished - started) * 1000.0
        if self.fps_window_start is None:
            self.fps_window_start = started
        self.fps_window_frames += 1

        elapsed = finished - self.fps_window_start
        if elapsed >= FPS_WINDOW_SECONDS:
            self.fps = self.fps_window_frames / elapsed
            self.fps_window_start = finished
            self.fps_window_frames = 0


class DetectionLoop:
    """
    Cooperative capture loop. One frame runs the whole pipeline and is rendered
    before the next frame is read, so at most one inference call is in flight
    and stale frames are dropped by the source rather than queued here.

    `source()` returns the freshest frame, a zero-sized frame when
    nothing is ready yet, or None when the stream is over.
    """

    def __init__(
        self,
        pipeline: Callable[[np.ndarray], List[Detection]],
        source: FrameSource,
        renderer: Optional[Renderer] = None,
        state: Optional[PipelineState] = None,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self.pipeline = pipeline
        self.source = source
        self.renderer = renderer
        self.state = state if state is not None else PipelineState()
        self.clock = clock

    def stop(self) -> None:
        self.state.running = False

    def step(self) -> Optional[List[Detection]]:
        """
        Run one frame. Returns its detections, [] for a frame that was not
        ready or failed, or None once the source is exhausted.
        """
        frame = self.source()
        if frame is None:
            self.state.running = False
            return None

        state = self.state
        state.frames_seen += 1
        if not frame_is_ready(frame):
            state.frames_not_ready += 1
            return []

        t0 = self.clock()
        try:
            detections = self.pipeline(frame)
        except YoloLiveError as exc:
            state.frames_failed += 1
            state.last_error = exc
            logger.warning("frame %d failed: %s", state.frames_seen, exc)
            return []
        t1 = self.clock()

        state.frames_processed += 1
        state.record_frame(t0, t1)
        logger.debug(
            "frame %d: %d detections in %.1f ms (fps=%s)",
            state.frames_seen,
            len(detections),
            state.last_inference_ms,
            "n/a" if state.fps is None else f"{state.fps:.1f}",
        )
        if self.renderer is not None:
            self.renderer(frame, detections)
        return detections

    def run(self, max_frames: Optional[int] = None) -> PipelineState:
        state = self.state
        state.running = True
        logger.info("detection loop started")
        while state.running:
            if max_frames is not None and state.frames_seen >= max_frames:
                break
            if self.step() is None:
                break
        state.running = False
        logger.info(
            "detection loop stopped: seen=%d processed=%d not_ready=%d failed=%d",
            state.frames_seen,
            state.frames_processed,
            state.frames_not_ready,
            state.frames_failed,
        )
        return state
