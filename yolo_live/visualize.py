from __future__ import annotations

from typing import Iterable, Optional, Tuple

import numpy as np

from .types import Detection

BOX_COLOR = (0, 255, 0)


def draw_detections(
    frame: np.ndarray,
    detections: Iterable[Detection],
    *,
    label: Optional[str] = None,
    color: Tuple[int, int, int] = BOX_COLOR,
    box_thickness: int = 2,
    font_scale: float = 0.5,
    font_thickness: int = 1,
) -> np.ndarray:
    """
    Draw detections onto a copy of `frame` and return it.

    Detections carry coordinates normalized to the square model input; they are
    stretched back onto the frame's own width and height, mirroring the
    stretch resize done by the normalizer. Labels show the confidence as a
    percentage, optionally prefixed by `label`.
    """

    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for draw_detections(). Install with `pip install opencv-python`.") from e

    if frame is None or not hasattr(frame, "shape"):
        raise TypeError("frame must be a NumPy array.")
    if frame.ndim != 3 or frame.shape[2] not in (3, 4):
        raise ValueError(f"Expected frame shape (H, W, 3|4), got {getattr(frame, 'shape', None)}")

    out = frame.copy()
    h, w = out.shape[:2]

    for det in detections:
        x1, y1, x2, y2 = det.to_pixels(w, h)
        x1i = int(np.clip(round(x1), 0, w - 1))
        y1i = int(np.clip(round(y1), 0, h - 1))
        x2i = int(np.clip(round(x2), 0, w - 1))
        y2i = int(np.clip(round(y2), 0, h - 1))
        if x2i <= x1i or y2i <= y1i:
            continue

        cv2.rectangle(out, (x1i, y1i), (x2i, y2i), color, thickness=box_thickness)

        text = f"{round(det.confidence * 100)}%"
        if label:
            text = f"{label} {text}"
        # Above the box if there is room, else just inside it.
        y_text = y1i - 5 if y1i - 5 > 0 else y1i + 15
        cv2.putText(
            out,
            text,
            (x1i, min(y_text, h - 1)),
            cv2.FONT_HERSHEY_SIMPLEX,
            font_scale,
            color,
            thickness=font_thickness,
            lineType=cv2.LINE_AA,
        )

    return out
