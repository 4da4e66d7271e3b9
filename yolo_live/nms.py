from dataclasses import dataclass
from typing import List, Sequence

import numpy as np

from .overlap import iou_one_to_many
from .types import Detection


@dataclass(frozen=True)
class NMSConfig:
    iou_threshold: float = 0.4
    max_detections: int = 100


def _confidence_order(scores: np.ndarray) -> np.ndarray:
    # Stable: equal scores keep decode order, greedy NMS depends on it.
    return np.argsort(-scores, kind="stable")


def nms(boxes: np.ndarray, scores: np.ndarray, cfg: NMSConfig) -> np.ndarray:
    """
    Greedy NumPy NMS. Expects boxes shape (N,4) in xyxy and scores shape (N,).
    Returns indices of boxes to keep, highest score first, at most
    `cfg.max_detections` of them.
    """

    boxes = np.asarray(boxes, dtype=np.float64).reshape(-1, 4)
    scores = np.asarray(scores, dtype=np.float64).reshape(-1)
    if boxes.shape[0] == 0:
        return np.empty((0,), dtype=np.int64)

    order = _confidence_order(scores)
    keep: List[int] = []

    while order.size > 0 and len(keep) < cfg.max_detections:
        i = int(order[0])
        keep.append(i)

        rest = order[1:]
        overlaps = iou_one_to_many(boxes[i], boxes[rest])
        order = rest[overlaps <= cfg.iou_threshold]

    return np.array(keep, dtype=np.int64)


def _as_arrays(candidates: Sequence[Detection]):
    boxes = np.array([d.as_xyxy() for d in candidates], dtype=np.float64).reshape(-1, 4)
    scores = np.array([d.confidence for d in candidates], dtype=np.float64)
    class_ids = np.array([d.class_id for d in candidates], dtype=np.int64)
    return boxes, scores, class_ids


def select_topk(candidates: Sequence[Detection], max_detections: int) -> List[Detection]:
    """Keep the `max_detections` most confident candidates without suppression."""
    if not candidates:
        return []
    _, scores, _ = _as_arrays(candidates)
    order = _confidence_order(scores)[:max_detections]
    return [candidates[int(i)] for i in order]


def suppress(
    candidates: Sequence[Detection],
    cfg: NMSConfig,
    class_agnostic: bool = True,
) -> List[Detection]:
    """
    Reduce decoded candidates to the final detection list.

    Class-agnostic by default: boxes suppress each other regardless of class.
    With `class_agnostic=False` NMS runs per class id and the survivors are
    merged back by confidence before the cap is applied.
    """

    if not candidates:
        return []

    boxes, scores, class_ids = _as_arrays(candidates)

    if class_agnostic:
        keep_idx = nms(boxes, scores, cfg)
        return [candidates[int(i)] for i in keep_idx]

    kept: List[int] = []
    for cls in np.unique(class_ids):
        idx = np.where(class_ids == cls)[0]
        keep_local = nms(boxes[idx], scores[idx], cfg)
        kept.extend(idx[keep_local].tolist())

    kept_arr = np.sort(np.array(kept, dtype=np.int64))
    kept_arr = kept_arr[_confidence_order(scores[kept_arr])][: cfg.max_detections]
    return [candidates[int(i)] for i in kept_arr]
