"""
Real-time single-class YOLO detection post-processing.

Framework-agnostic: the pipeline takes any inference callable that maps a
(1, 3, S, S) float32 blob to a raw output tensor. NumPy does the decoding and
suppression; OpenCV handles resizing, capture and drawing.
"""

from .types import Detection, RawOutput
from .errors import InferenceError, UnsupportedLayoutError, YoloLiveError
from .overlap import iou
from .normalize import frame_is_ready, frame_to_tensor
from .decode import OutputDecoder, OutputLayout, TensorLayout, resolve_layout
from .nms import NMSConfig, nms, suppress
from .config import DetectionConfig, load_detection_config
from .pipeline import FramePipeline, load_pipeline
from .loop import DetectionLoop, PipelineState
from .visualize import draw_detections

__all__ = [
    "Detection",
    "RawOutput",
    "InferenceError",
    "UnsupportedLayoutError",
    "YoloLiveError",
    "iou",
    "frame_is_ready",
    "frame_to_tensor",
    "OutputDecoder",
    "OutputLayout",
    "TensorLayout",
    "resolve_layout",
    "NMSConfig",
    "nms",
    "suppress",
    "DetectionConfig",
    "load_detection_config",
    "FramePipeline",
    "load_pipeline",
    "DetectionLoop",
    "PipelineState",
    "draw_detections",
]
