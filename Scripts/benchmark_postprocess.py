from __future__ import annotations

import argparse
import statistics
import time
from dataclasses import dataclass
from typing import List

import numpy as np

from yolo_live import DetectionConfig, OutputDecoder, RawOutput
from yolo_live.nms import select_topk, suppress


@dataclass(frozen=True)
class TimingSummary:
    n: int
    mean_ms: float
    p50_ms: float
    p95_ms: float


def _summarize_ms(values_s: List[float]) -> TimingSummary:
    ms = np.array(sorted(v * 1000.0 for v in values_s), dtype=np.float64)
    return TimingSummary(
        n=int(ms.size),
        mean_ms=float(statistics.fmean(ms)),
        p50_ms=float(np.percentile(ms, 50.0)),
        p95_ms=float(np.percentile(ms, 95.0)),
    )


def _format_summary(label: str, s: TimingSummary) -> str:
    return f"{label}: n={s.n} mean={s.mean_ms:.3f}ms p50={s.p50_ms:.3f}ms p95={s.p95_ms:.3f}ms"


def _synthetic_output(anchors: int, channels: int, size: int, channels_first: bool) -> RawOutput:
    """Center-form anchors with random scores, laid out as [1, C, A] or [1, A, C]."""
    rng = np.random.default_rng(0)
    rows = np.empty((anchors, channels), dtype=np.float32)
    rows[:, 0:2] = rng.uniform(0, size, size=(anchors, 2))
    rows[:, 2:4] = rng.uniform(4, size / 4, size=(anchors, 2))
    rows[:, 4:] = rng.uniform(0.0, 1.0, size=(anchors, channels - 4))
    arr = rows.T[None, ...] if channels_first else rows[None, ...]
    return RawOutput.from_array(np.ascontiguousarray(arr))


def main() -> int:
    parser = argparse.ArgumentParser(description="Benchmark decode + NMS vs decode + top-K on a synthetic output.")
    parser.add_argument("--anchors", type=int, default=2100, help="Anchor count (2100 for a 320px model).")
    parser.add_argument("--channels", type=int, default=6, help="Channels per anchor (>= 6, center form).")
    parser.add_argument("--imgsz", type=int, default=320, help="Square model input size.")
    parser.add_argument("--channels-last", action="store_true", help="Lay the tensor out as [1, A, C].")
    parser.add_argument("--conf", type=float, default=0.5, help="Confidence threshold.")
    parser.add_argument("--iou", type=float, default=0.4, help="IoU threshold for NMS.")
    parser.add_argument("--max-det", type=int, default=100, help="Max detections after NMS/top-K.")
    parser.add_argument("--warmup", type=int, default=10, help="Warmup iterations to run but not record.")
    parser.add_argument("--iters", type=int, default=200, help="Recorded iterations.")
    args = parser.parse_args()

    if args.channels < 6:
        raise ValueError("--channels must be >= 6")
    if args.iters < 1:
        raise ValueError("--iters must be >= 1")

    cfg = DetectionConfig(
        input_size=args.imgsz,
        conf_threshold=args.conf,
        iou_threshold=args.iou,
        max_detections=args.max_det,
        class_count=max(1, args.channels - 5),
    )
    decoder = OutputDecoder(cfg)
    raw = _synthetic_output(args.anchors, args.channels, args.imgsz, channels_first=not args.channels_last)

    t_decode: List[float] = []
    t_nms: List[float] = []
    t_topk: List[float] = []
    candidates = []
    for i in range(args.warmup + args.iters):
        t0 = time.perf_counter()
        candidates = decoder.decode(raw)
        t1 = time.perf_counter()
        suppress(candidates, cfg.nms_config())
        t2 = time.perf_counter()
        select_topk(candidates, cfg.max_detections)
        t3 = time.perf_counter()
        if i >= args.warmup:
            t_decode.append(t1 - t0)
            t_nms.append(t2 - t1)
            t_topk.append(t3 - t2)

    print(_format_summary("decode", _summarize_ms(t_decode)))
    print(_format_summary("nms", _summarize_ms(t_nms)))
    print(_format_summary("topk_no_nms", _summarize_ms(t_topk)))
    print(f"shape={raw.shape} candidates={len(candidates)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
