from typing import Any

import numpy as np

_RGB_INDICES = {
    "rgba": (0, 1, 2),
    "rgb": (0, 1, 2),
    "bgra": (2, 1, 0),
    "bgr": (2, 1, 0),
}


def frame_is_ready(frame: Any) -> bool:
    """
    False for frames that cannot be processed yet: None, non-arrays, or frames
    with zero width or height.
    """
    if frame is None or not hasattr(frame, "shape"):
        return False
    if len(frame.shape) < 2:
        return False
    h, w = frame.shape[:2]
    return h > 0 and w > 0


def frame_to_tensor(frame: np.ndarray, size: int, channel_order: str = "rgba") -> np.ndarray:
    """
    Stretch-resize an interleaved 8-bit frame to `size` x `size` and convert it
    to a planar RGB float tensor.

    No letterboxing: the aspect ratio is not preserved. Alpha is ignored.

    Returns:
        float32 array of shape (1, 3, size, size), values in [0, 1]. The array
        owns its memory and does not alias `frame`.
    """
    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for frame_to_tensor(). Install with `pip install opencv-python`.") from e

    order = channel_order.lower()
    if order not in _RGB_INDICES:
        raise ValueError(f"Unsupported channel order: {channel_order!r}")
    if frame is None or not hasattr(frame, "shape"):
        raise TypeError("frame must be a NumPy array.")
    if frame.ndim != 3 or frame.shape[2] != len(order):
        raise ValueError(f"Expected frame shape (H, W, {len(order)}) for {order}, got {frame.shape}")
    if size <= 0:
        raise ValueError("size must be > 0")

    h, w = frame.shape[:2]
    if (w, h) != (size, size):
        frame = cv2.resize(frame, (size, size), interpolation=cv2.INTER_LINEAR)

    # HWC -> CHW in R, G, B plane order, add batch
    planes = frame[:, :, list(_RGB_INDICES[order])].astype(np.float32) / 255.0
    blob = np.ascontiguousarray(np.transpose(planes, (2, 0, 1)))[None, ...]
    return blob
