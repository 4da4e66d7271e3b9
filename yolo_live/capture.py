from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import cv2
import numpy as np

logger = logging.getLogger(__name__)

NOT_READY = np.empty((0, 0, 3), dtype=np.uint8)


@dataclass(frozen=True)
class CaptureInfo:
    fps: Optional[float]
    width: Optional[int]
    height: Optional[int]


def open_capture(
    *,
    video: Optional[str] = None,
    webcam: Optional[int] = None,
    width: Optional[int] = None,
    height: Optional[int] = None,
) -> cv2.VideoCapture:
    if (video is None) == (webcam is None):
        raise ValueError("Exactly one of video/webcam must be provided.")

    cap = cv2.VideoCapture(video) if video is not None else cv2.VideoCapture(int(webcam))
    if not cap.isOpened():
        raise RuntimeError("Failed to open video source.")
    if width is not None or height is not None:
        apply_preferred_size(cap, width, height)
    return cap


def apply_preferred_size(cap: cv2.VideoCapture, width: Optional[int], height: Optional[int]) -> bool:
    """
    Ask the device for a frame size. Returns True when the device reports the
    requested size afterwards; otherwise the device default stays in use.
    """
    for name, value in (("width", width), ("height", height)):
        if value is not None and int(value) <= 0:
            raise ValueError(f"{name} must be > 0")

    if width is not None:
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, int(width))
    if height is not None:
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, int(height))

    info = get_capture_info(cap)
    ok = (width is None or info.width == int(width)) and (height is None or info.height == int(height))
    if not ok:
        logger.info(
            "capture size %sx%s not available, using device default %sx%s",
            width,
            height,
            info.width,
            info.height,
        )
    return ok


def get_capture_info(cap: cv2.VideoCapture) -> CaptureInfo:
    fps = cap.get(cv2.CAP_PROP_FPS)
    w = cap.get(cv2.CAP_PROP_FRAME_WIDTH)
    h = cap.get(cv2.CAP_PROP_FRAME_HEIGHT)
    return CaptureInfo(
        fps=float(fps) if fps and fps > 0 else None,
        width=int(w) if w and w > 0 else None,
        height=int(h) if h and h > 0 else None,
    )


class OpenCVFrameSource:
    """
    Frame source for `DetectionLoop` backed by `cv2.VideoCapture` (BGR frames).

    A failed read yields a zero-sized frame (not ready) so the loop can try
    again; after `max_failed_reads` consecutive failures the source reports the
    stream as over by returning None.
    """

    def __init__(self, cap: cv2.VideoCapture, max_failed_reads: int = 30):
        self.cap = cap
        self.max_failed_reads = max_failed_reads
        self._failed_reads = 0

    def __call__(self) -> Optional[np.ndarray]:
        ok, frame = self.cap.read()
        if ok and frame is not None:
            self._failed_reads = 0
            return frame

        self._failed_reads += 1
        if self._failed_reads >= self.max_failed_reads:
            logger.info("capture ended after %d failed reads", self._failed_reads)
            return None
        return NOT_READY

    def release(self) -> None:
        self.cap.release()
