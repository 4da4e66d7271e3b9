from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np


@dataclass
class Detection:
    """
    Single detection in normalized model-input coordinates.

    Coordinates are corner form in [0, 1] relative to the square model input,
    not the source frame. After decoder clamping a pathological box may end up
    with x1 > x2 (or y1 > y2); such boxes have zero area.
    """

    x1: float
    y1: float
    x2: float
    y2: float
    confidence: float
    class_id: int = 0

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.x1, self.y1, self.x2, self.y2

    @property
    def width(self) -> float:
        return max(0.0, self.x2 - self.x1)

    @property
    def height(self) -> float:
        return max(0.0, self.y2 - self.y1)

    @property
    def area(self) -> float:
        return self.width * self.height

    def to_pixels(self, width: int, height: int) -> Tuple[float, float, float, float]:
        """Scale the box onto a frame of `width` x `height` pixels."""
        return self.x1 * width, self.y1 * height, self.x2 * width, self.y2 * height


@dataclass(frozen=True)
class RawOutput:
    """
    Raw inference output: a flat float buffer plus the engine-reported shape.

    The semantic layout is not fixed here; `decode.resolve_layout` infers it
    from `shape` at decode time.
    """

    data: np.ndarray
    shape: Tuple[int, ...]

    @classmethod
    def from_array(cls, preds: np.ndarray) -> "RawOutput":
        arr = np.asarray(preds, dtype=np.float32)
        return cls(data=arr.ravel(), shape=tuple(int(d) for d in arr.shape))

    @classmethod
    def from_buffer(cls, data: Sequence[float], shape: Sequence[int]) -> "RawOutput":
        flat = np.asarray(data, dtype=np.float32).ravel()
        dims = tuple(int(d) for d in shape)
        if flat.size != int(np.prod(dims, dtype=np.int64)):
            raise ValueError(f"Buffer of {flat.size} values does not match shape {dims}")
        return cls(data=flat, shape=dims)
