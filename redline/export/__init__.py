"""
Модуль export: компоновка правок в итоговый PDF.
"""

from redline.export.compositor import compose, plan_document, plan_page, open_document
from redline.export.masking import mask_ops
from redline.export.raster import enhance_freehand

__all__ = [
    "compose",
    "plan_document",
    "plan_page",
    "open_document",
    "mask_ops",
    "enhance_freehand",
]
