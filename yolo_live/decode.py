"""
Decoding of raw YOLO output tensors into candidate detections.

Supported layouts (per image, batch must be 1), in either orientation
`[1, C, A]` (channels first) or `[1, A, C]` (channels last):

- C == 5: end-to-end decoded boxes `[x1, y1, x2, y2, score]` in input pixels
- C == 6: `[cx, cy, w, h, obj, cls]`, confidence = obj * cls
- C > 6: `[cx, cy, w, h, obj, cls_0 .. cls_{C-6}]`, confidence = obj * max(cls),
  class id = argmax

The orientation is not recorded anywhere in the export, so it is inferred from
the shape alone: the smaller axis is the channel axis, except for channels-first
exports with fewer anchors than channels such as `[1, 5, 3]`.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Sequence, Tuple, Union

import numpy as np

from .config import DetectionConfig
from .errors import UnsupportedLayoutError
from .types import Detection, RawOutput

MIN_CHANNELS = 5


class OutputLayout(Enum):
    BOXES_ONLY = "boxes_only"
    OBJ_CLASS = "obj_class"
    OBJ_MULTI_CLASS = "obj_multi_class"

    @classmethod
    def for_channels(cls, channels: int) -> "OutputLayout":
        if channels == 5:
            return cls.BOXES_ONLY
        if channels == 6:
            return cls.OBJ_CLASS
        return cls.OBJ_MULTI_CLASS


@dataclass(frozen=True)
class TensorLayout:
    shape: Tuple[int, ...]
    channels: int
    anchors: int
    channels_first: bool
    kind: OutputLayout

    @property
    def num_classes(self) -> int:
        if self.kind is OutputLayout.OBJ_MULTI_CLASS:
            return self.channels - 5
        return 1

    def index(self, anchor, channel):
        """
        Flat offset of (anchor, channel). Accepts ints or NumPy index arrays.
        """
        if self.channels_first:
            return channel * self.anchors + anchor
        return anchor * self.channels + channel

    def read(self, data: np.ndarray, channel: int) -> np.ndarray:
        """All anchors' values for one channel, shape (anchors,)."""
        return data[self.index(np.arange(self.anchors), channel)]


def resolve_layout(shape: Sequence[int]) -> TensorLayout:
    dims = tuple(int(d) for d in shape)
    if len(dims) != 3:
        raise UnsupportedLayoutError(dims, "expected a 3-dimensional [batch, d1, d2] shape")
    if dims[0] != 1:
        raise UnsupportedLayoutError(dims, "batch > 1 is not supported, pass one image at a time")

    _, d1, d2 = dims
    channels, anchors = min(d1, d2), max(d1, d2)
    channels_first = d1 < d2

    # Channels-first export with fewer anchors than channels (e.g. [1, 5, 3]).
    # Only d1 may hold the record, so [1, 4, N] is always rejected.
    if channels < MIN_CHANNELS and d1 >= MIN_CHANNELS and d1 > d2:
        channels, anchors = d1, d2
        channels_first = True

    if channels < MIN_CHANNELS:
        raise UnsupportedLayoutError(dims, f"need at least {MIN_CHANNELS} channels per anchor, got {channels}")

    return TensorLayout(
        shape=dims,
        channels=channels,
        anchors=anchors,
        channels_first=channels_first,
        kind=OutputLayout.for_channels(channels),
    )


Decoded = Tuple[np.ndarray, np.ndarray, np.ndarray]


def _center_to_corners(layout: TensorLayout, data: np.ndarray, size: float) -> np.ndarray:
    cx = layout.read(data, 0)
    cy = layout.read(data, 1)
    w = layout.read(data, 2)
    h = layout.read(data, 3)
    return np.stack([cx - w / 2, cy - h / 2, cx + w / 2, cy + h / 2], axis=1) / size


def _decode_boxes_only(layout: TensorLayout, data: np.ndarray, size: float) -> Decoded:
    boxes = np.stack([layout.read(data, c) for c in range(4)], axis=1) / size
    scores = layout.read(data, 4)
    class_ids = np.zeros(layout.anchors, dtype=np.int64)
    return boxes, scores, class_ids


def _decode_obj_class(layout: TensorLayout, data: np.ndarray, size: float) -> Decoded:
    boxes = _center_to_corners(layout, data, size)
    scores = layout.read(data, 4) * layout.read(data, 5)
    class_ids = np.zeros(layout.anchors, dtype=np.int64)
    return boxes, scores, class_ids


def _decode_obj_multi_class(layout: TensorLayout, data: np.ndarray, size: float) -> Decoded:
    boxes = _center_to_corners(layout, data, size)
    objectness = layout.read(data, 4)
    class_scores = np.stack([layout.read(data, c) for c in range(5, layout.channels)], axis=0)  # (C, A)
    class_ids = np.argmax(class_scores, axis=0)
    class_conf = class_scores[class_ids, np.arange(layout.anchors)]
    return boxes, objectness * class_conf, class_ids.astype(np.int64)


_DECODERS: Dict[OutputLayout, Callable[[TensorLayout, np.ndarray, float], Decoded]] = {
    OutputLayout.BOXES_ONLY: _decode_boxes_only,
    OutputLayout.OBJ_CLASS: _decode_obj_class,
    OutputLayout.OBJ_MULTI_CLASS: _decode_obj_multi_class,
}


class OutputDecoder:
    """
    Turns one raw output tensor into confidence-filtered candidates, in anchor
    order. Candidates below `conf_threshold` are dropped, never returned.
    """

    def __init__(self, cfg: DetectionConfig):
        self.cfg = cfg

    def layout_for(self, raw: RawOutput) -> TensorLayout:
        layout = resolve_layout(raw.shape)
        if raw.data.size != layout.channels * layout.anchors:
            raise UnsupportedLayoutError(raw.shape, f"buffer holds {raw.data.size} values")
        return layout

    def decode(self, raw: Union[RawOutput, np.ndarray]) -> List[Detection]:
        if not isinstance(raw, RawOutput):
            raw = RawOutput.from_array(raw)

        layout = self.layout_for(raw)
        data = np.asarray(raw.data, dtype=np.float64).ravel()
        boxes, scores, class_ids = _DECODERS[layout.kind](layout, data, float(self.cfg.input_size))

        keep = scores >= self.cfg.conf_threshold
        if self.cfg.class_ids is not None:
            keep &= np.isin(class_ids, np.array(self.cfg.class_ids, dtype=np.int64))
        boxes, scores, class_ids = boxes[keep], scores[keep], class_ids[keep]

        # Clamped independently; a pathological box may come out inverted.
        boxes[:, 0:2] = np.maximum(boxes[:, 0:2], 0.0)
        boxes[:, 2:4] = np.minimum(boxes[:, 2:4], 1.0)

        return [
            Detection(
                x1=float(x1),
                y1=float(y1),
                x2=float(x2),
                y2=float(y2),
                confidence=float(score),
                class_id=int(cls_id),
            )
            for (x1, y1, x2, y2), score, cls_id in zip(boxes, scores, class_ids)
        ]
