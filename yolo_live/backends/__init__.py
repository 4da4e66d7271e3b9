"""
Inference backends for yolo_live.

Kept in a separate module so the core pipeline (normalize/decode/suppress)
imports without an inference runtime installed.
"""

from __future__ import annotations

__all__ = []
