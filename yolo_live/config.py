from __future__ import annotations

import json
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple

from .nms import NMSConfig

CHANNEL_ORDERS = ("rgba", "rgb", "bgra", "bgr")


@dataclass(frozen=True)
class DetectionConfig:
    """
    Read-only configuration for one pipeline instance.

    Defaults match the single-class 320px deployment the pipeline was tuned for.
    """

    input_size: int = 320
    conf_threshold: float = 0.5
    iou_threshold: float = 0.4
    max_detections: int = 100
    class_count: int = 1
    # If False, skip NMS and only keep top `max_detections` by confidence.
    apply_nms: bool = True
    # If False, runs per-class NMS then merges results by confidence.
    class_agnostic_nms: bool = True
    # Optional class IDs to keep; None keeps all.
    class_ids: Optional[Tuple[int, ...]] = None
    # Interleaved channel order of frames handed to the normalizer.
    channel_order: str = "rgba"

    def __post_init__(self) -> None:
        if self.input_size <= 0:
            raise ValueError("input_size must be > 0")
        if not 0.0 <= self.conf_threshold <= 1.0:
            raise ValueError("conf_threshold must be in [0, 1]")
        if not 0.0 <= self.iou_threshold <= 1.0:
            raise ValueError("iou_threshold must be in [0, 1]")
        if self.max_detections <= 0:
            raise ValueError("max_detections must be > 0")
        if self.class_count < 1:
            raise ValueError("class_count must be >= 1")
        if self.channel_order not in CHANNEL_ORDERS:
            raise ValueError(f"channel_order must be one of {CHANNEL_ORDERS}")
        if self.class_ids is not None:
            ids = tuple(int(c) for c in self.class_ids)
            if any(c < 0 for c in ids):
                raise ValueError("class_ids must be non-negative")
            object.__setattr__(self, "class_ids", ids)

    def nms_config(self) -> NMSConfig:
        return NMSConfig(iou_threshold=self.iou_threshold, max_detections=self.max_detections)


def _check_number(payload: Dict[str, Any], key: str) -> float:
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number")
    return float(value)


def _check_int(payload: Dict[str, Any], key: str) -> int:
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return int(value)


def _check_bool(payload: Dict[str, Any], key: str) -> bool:
    value = payload[key]
    if not isinstance(value, bool):
        raise ValueError(f"{key} must be a boolean")
    return value


def _check_class_ids(payload: Dict[str, Any], key: str) -> Optional[Sequence[int]]:
    value = payload[key]
    if value is None:
        return None
    if not isinstance(value, list) or any(isinstance(v, bool) or not isinstance(v, int) for v in value):
        raise ValueError(f"{key} must be a list of integers or null")
    return value


_CHECKS = {
    "input_size": _check_int,
    "conf_threshold": _check_number,
    "iou_threshold": _check_number,
    "max_detections": _check_int,
    "class_count": _check_int,
    "apply_nms": _check_bool,
    "class_agnostic_nms": _check_bool,
    "class_ids": _check_class_ids,
}


def config_from_dict(payload: Dict[str, Any]) -> DetectionConfig:
    allowed = {f.name for f in fields(DetectionConfig)}
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ValueError(f"Unknown detection config keys: {unknown}")

    kwargs: Dict[str, Any] = {}
    for key in payload:
        if key == "channel_order":
            value = payload[key]
            if not isinstance(value, str):
                raise ValueError("channel_order must be a string")
            kwargs[key] = value.lower()
        else:
            kwargs[key] = _CHECKS[key](payload, key)
    return DetectionConfig(**kwargs)


def load_detection_config(path: Path) -> DetectionConfig:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Detection config not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid detection config JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Detection config must be a JSON object")
    return config_from_dict(payload)
