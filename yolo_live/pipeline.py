from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence, Union

import numpy as np

from .config import DetectionConfig
from .decode import OutputDecoder
from .errors import InferenceError, YoloLiveError
from .nms import select_topk, suppress
from .normalize import frame_is_ready, frame_to_tensor
from .types import Detection, RawOutput

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class FramePipeline:
    """
    Per-frame pipeline: normalize -> inference -> decode -> suppress.

    Each call is self-contained: nothing computed for one frame is kept for the
    next. Returned detections are in normalized model-input coordinates.
    """

    def __init__(
        self,
        infer_fn: Callable[[np.ndarray], Any],
        cfg: DetectionConfig = DetectionConfig(),
        *,
        backend: Optional[object] = None,
        backend_name: Optional[str] = None,
    ):
        self._infer_fn = infer_fn
        self.cfg = cfg
        self.backend = backend
        self.backend_name = backend_name
        self.decoder = OutputDecoder(cfg)

    def preprocess(self, frame: np.ndarray) -> np.ndarray:
        return frame_to_tensor(frame, self.cfg.input_size, channel_order=self.cfg.channel_order)

    def infer(self, blob: np.ndarray) -> RawOutput:
        # Engine output that is not array-like is an engine failure too.
        try:
            preds = self._infer_fn(blob)
            if isinstance(preds, RawOutput):
                return preds
            return RawOutput.from_array(preds)
        except YoloLiveError:
            raise
        except Exception as exc:
            raise InferenceError(f"Inference failed: {exc}") from exc

    def postprocess(self, raw: Union[RawOutput, np.ndarray]) -> List[Detection]:
        candidates = self.decoder.decode(raw)
        if self.cfg.apply_nms:
            detections = suppress(candidates, self.cfg.nms_config(), class_agnostic=self.cfg.class_agnostic_nms)
        else:
            detections = select_topk(candidates, self.cfg.max_detections)
        logger.debug("candidates=%d kept=%d", len(candidates), len(detections))
        return detections

    def __call__(self, frame: Optional[np.ndarray]) -> List[Detection]:
        if not frame_is_ready(frame):
            return []
        blob = self.preprocess(frame)
        raw = self.infer(blob)
        return self.postprocess(raw)


def resolve_model_path(path: PathLike, root: Optional[PathLike] = None) -> Path:
    """
    Absolute paths are returned as-is; relative ones resolve against `root`
    (or the current working directory).
    """
    p = Path(path)
    if p.is_absolute():
        return p
    base = Path(root).resolve() if root is not None else Path.cwd()
    return (base / p).resolve()


def load_pipeline(
    model_path: PathLike,
    cfg: DetectionConfig = DetectionConfig(),
    *,
    root: Optional[PathLike] = None,
    onnx_providers: Optional[Sequence[str]] = None,
    onnx_input_name: Optional[str] = None,
    onnx_output_name: Optional[str] = None,
    onnx_threads: int = 1,
) -> FramePipeline:
    """
    Create a pipeline for an ONNX model on disk.

        pipe = load_pipeline("models/yolo-single.onnx", DetectionConfig(input_size=320))
    """

    resolved = resolve_model_path(model_path, root=root)
    if resolved.suffix.lower() != ".onnx":
        raise ValueError(f"Expected an .onnx model, got '{resolved.suffix}'.")

    from .backends.onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig

    ort_backend = OnnxRuntimeBackend(
        resolved,
        OnnxRuntimeBackendConfig(
            providers=onnx_providers,
            input_name=onnx_input_name,
            output_name=onnx_output_name,
            intra_op_num_threads=onnx_threads,
        ),
    )
    logger.info("Loaded %s (providers=%s)", resolved.name, ", ".join(ort_backend.providers_in_use))
    return FramePipeline(ort_backend.infer, cfg, backend=ort_backend, backend_name="onnxruntime")
