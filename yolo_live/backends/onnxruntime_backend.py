from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Union

import numpy as np

from ..types import RawOutput

PathLike = Union[str, Path]


@dataclass(frozen=True)
class OnnxRuntimeBackendConfig:
    """
    Configuration for ONNX Runtime inference.

    - providers: ORT execution providers; None lets ORT pick (CPU by default)
    - input_name/output_name: override auto-selected I/O names if needed
    - intra_op_num_threads: 1 keeps inference single-threaded, matching the
      one-frame-at-a-time pipeline
    """

    providers: Optional[Sequence[str]] = None
    input_name: Optional[str] = None
    output_name: Optional[str] = None
    intra_op_num_threads: int = 1
    enable_mem_arena: bool = False


class OnnxRuntimeBackend:
    """
    Minimal ONNX Runtime backend.

    Expects the (1, 3, S, S) float32 blob from the frame normalizer and returns
    the primary output with its engine-reported shape.
    """

    def __init__(self, model_path: PathLike, cfg: OnnxRuntimeBackendConfig = OnnxRuntimeBackendConfig()):
        try:
            import onnxruntime as ort  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "onnxruntime is required for the ONNX backend. Install it with `pip install onnxruntime`."
            ) from e

        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))

        sess_opts = ort.SessionOptions()
        sess_opts.intra_op_num_threads = cfg.intra_op_num_threads
        sess_opts.enable_cpu_mem_arena = cfg.enable_mem_arena
        sess_opts.enable_mem_pattern = cfg.enable_mem_arena
        providers = list(cfg.providers) if cfg.providers is not None else None
        self.session = ort.InferenceSession(str(self.model_path), sess_options=sess_opts, providers=providers)

        self.input_name = cfg.input_name or self.session.get_inputs()[0].name
        self.output_name = cfg.output_name or self.session.get_outputs()[0].name

    @property
    def providers_in_use(self) -> Sequence[str]:
        return tuple(self.session.get_providers())

    def infer(self, blob: np.ndarray) -> RawOutput:
        outputs = self.session.run([self.output_name], {self.input_name: blob})
        return RawOutput.from_array(outputs[0])
