from typing import Sequence, Union

import numpy as np

from .types import Detection


BoxLike = Union[Detection, Sequence[float]]


def _xyxy(box: BoxLike):
    if isinstance(box, Detection):
        return box.as_xyxy()
    x1, y1, x2, y2 = box[:4]
    return float(x1), float(y1), float(x2), float(y2)


def iou(a: BoxLike, b: BoxLike) -> float:
    """
    Intersection-over-Union of two xyxy boxes.

    Returns exactly 0.0 when the boxes do not overlap or either one is
    degenerate (zero or negative width/height). Never NaN.
    """

    ax1, ay1, ax2, ay2 = _xyxy(a)
    bx1, by1, bx2, by2 = _xyxy(b)

    ix1 = max(ax1, bx1)
    iy1 = max(ay1, by1)
    ix2 = min(ax2, bx2)
    iy2 = min(ay2, by2)
    if ix2 <= ix1 or iy2 <= iy1:
        return 0.0

    inter = (ix2 - ix1) * (iy2 - iy1)
    area_a = (ax2 - ax1) * (ay2 - ay1)
    area_b = (bx2 - bx1) * (by2 - by1)
    union = area_a + area_b - inter
    if union <= 0.0:
        return 0.0
    return float(min(1.0, max(0.0, inter / union)))


def iou_one_to_many(box: np.ndarray, boxes: np.ndarray) -> np.ndarray:
    """
    Vectorized `iou` of one box (4,) against boxes (N, 4). Same semantics.
    """

    boxes = np.asarray(boxes, dtype=np.float64).reshape(-1, 4)
    if boxes.shape[0] == 0:
        return np.empty((0,), dtype=np.float64)
    x1, y1, x2, y2 = (float(v) for v in np.asarray(box, dtype=np.float64)[:4])

    iw = np.minimum(x2, boxes[:, 2]) - np.maximum(x1, boxes[:, 0])
    ih = np.minimum(y2, boxes[:, 3]) - np.maximum(y1, boxes[:, 1])
    overlapping = (iw > 0.0) & (ih > 0.0)

    inter = np.where(overlapping, iw * ih, 0.0)
    areas = (boxes[:, 2] - boxes[:, 0]) * (boxes[:, 3] - boxes[:, 1])
    union = (x2 - x1) * (y2 - y1) + areas - inter

    out = np.zeros(boxes.shape[0], dtype=np.float64)
    valid = overlapping & (union > 0.0)
    out[valid] = inter[valid] / union[valid]
    return np.clip(out, 0.0, 1.0)
