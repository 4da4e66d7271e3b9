"""
Error taxonomy for the per-frame pipeline.

All of these are frame-scoped: the detection loop records them and moves on to
the next frame. A frame that is simply not ready yet is not an error at all.
"""


class YoloLiveError(Exception):
    """Base class for frame-scoped pipeline failures."""


class UnsupportedLayoutError(YoloLiveError, ValueError):
    """The output tensor shape cannot be interpreted as a detection layout."""

    def __init__(self, shape, reason: str):
        self.shape = tuple(shape) if shape is not None else None
        super().__init__(f"Unsupported output layout {self.shape}: {reason}")


class InferenceError(YoloLiveError, RuntimeError):
    """The external inference engine failed for this frame."""
