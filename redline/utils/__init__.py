"""
Модуль utils: вспомогательные утилиты.
"""

from redline.utils.geometry import (
    clamp_scale,
    zoom_in,
    zoom_out,
    rotate,
    to_document,
    to_display,
    clamp_point,
    inflate,
    union,
    flip_rect_y,
    flip_text_baseline,
)
from redline.utils.colors import hex_to_rgb, hex_to_rgba, parse_hex
from redline.utils.metrics import Timer, init_metrics, log_metric
from redline.utils.notices import setup_logging, NoticeHandler, attach_notices

__all__ = [
    # Geometry utilities
    "clamp_scale",
    "zoom_in",
    "zoom_out",
    "rotate",
    "to_document",
    "to_display",
    "clamp_point",
    "inflate",
    "union",
    "flip_rect_y",
    "flip_text_baseline",
    # Color utilities
    "hex_to_rgb",
    "hex_to_rgba",
    "parse_hex",
    # Metrics utilities
    "Timer",
    "init_metrics",
    "log_metric",
    # Logging utilities
    "setup_logging",
    "NoticeHandler",
    "attach_notices",
]
