import argparse
import logging
from dataclasses import replace

import cv2

from yolo_live import DetectionConfig, DetectionLoop, draw_detections, load_detection_config, load_pipeline
from yolo_live.capture import OpenCVFrameSource, get_capture_info, open_capture


def main() -> int:
    parser = argparse.ArgumentParser(description="Live single-class YOLO detection with an OpenCV overlay.")
    src = parser.add_mutually_exclusive_group()
    src.add_argument("--video", default=None, help="Path to an input video file.")
    src.add_argument("--webcam", type=int, default=None, help="Webcam index (default 0).")
    parser.add_argument("--model", default="Models/yolomodel.onnx", help="Path to an ONNX model.")
    parser.add_argument("--config", default=None, help="Optional detection config JSON.")
    parser.add_argument("--imgsz", type=int, default=None, help="Square model input size.")
    parser.add_argument("--conf", type=float, default=None, help="Confidence threshold.")
    parser.add_argument("--iou", type=float, default=None, help="IoU threshold for NMS.")
    parser.add_argument("--max-det", type=int, default=None, help="Max detections per frame.")
    parser.add_argument("--label", default=None, help="Optional label drawn before the confidence.")
    parser.add_argument("--width", type=int, default=None, help="Preferred webcam frame width (default 640).")
    parser.add_argument("--height", type=int, default=None, help="Preferred webcam frame height (default 480).")
    parser.add_argument(
        "--onnx-providers",
        default=None,
        help='Comma-separated ORT providers, e.g. "CUDAExecutionProvider,CPUExecutionProvider".',
    )
    parser.add_argument("--max-frames", type=int, default=0, help="Stop after N frames (0 = no limit).")
    parser.add_argument("--no-show", action="store_true", help="Do not open a preview window.")
    parser.add_argument("--log-level", default="INFO", help="Logging level.")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    cfg = load_detection_config(args.config) if args.config else DetectionConfig()
    overrides = {
        "input_size": args.imgsz,
        "conf_threshold": args.conf,
        "iou_threshold": args.iou,
        "max_detections": args.max_det,
    }
    # OpenCV captures are BGR regardless of what the config file says.
    cfg = replace(cfg, channel_order="bgr", **{k: v for k, v in overrides.items() if v is not None})

    if args.max_frames < 0:
        raise ValueError("--max-frames must be >= 0")
    onnx_providers = None
    if args.onnx_providers:
        onnx_providers = [p.strip() for p in str(args.onnx_providers).split(",") if p.strip()]

    pipeline = load_pipeline(args.model, cfg, onnx_providers=onnx_providers)

    if args.video is not None:
        cap = open_capture(video=args.video)
    else:
        cap = open_capture(
            webcam=0 if args.webcam is None else args.webcam,
            width=640 if args.width is None else args.width,
            height=480 if args.height is None else args.height,
        )
    info = get_capture_info(cap)
    logging.getLogger(__name__).info("capture %sx%s @ %s fps", info.width, info.height, info.fps)

    source = OpenCVFrameSource(cap)
    loop = DetectionLoop(pipeline, source)

    def render(frame, detections):
        vis = draw_detections(frame, detections, label=args.label)
        state = loop.state
        if state.last_inference_ms is not None:
            fps = "--" if state.fps is None else f"{state.fps:.1f}"
            text = f"{state.last_inference_ms:.1f} ms  {fps} fps"
            cv2.putText(vis, text, (10, 25), cv2.FONT_HERSHEY_SIMPLEX, 0.7, (0, 255, 255), 2)
        if not args.no_show:
            cv2.imshow("detections", vis)
            key = cv2.waitKey(1) & 0xFF
            if key in (27, ord("q")):
                loop.stop()

    loop.renderer = render

    try:
        state = loop.run(max_frames=args.max_frames or None)
    finally:
        source.release()
        if not args.no_show:
            cv2.destroyAllWindows()

    print(
        f"frames_seen={state.frames_seen} processed={state.frames_processed} "
        f"not_ready={state.frames_not_ready} failed={state.frames_failed}"
    )
    if state.last_inference_ms is not None:
        fps = "n/a" if state.fps is None else f"{state.fps:.1f}"
        print(f"last_inference_ms={state.last_inference_ms:.2f} fps={fps}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
