"""
Модуль processing: ledger правок, извлечение текста и взаимодействие.
"""

from redline.processing.ledger import EditLedger, expand_for_deletion
from redline.processing.extraction import (
    RenderingSurface,
    PyMuPDFRenderingSurface,
    group_glyph_runs,
    extract_page,
)
from redline.processing.surface import FreehandSurface
from redline.processing.interaction import InteractionStateMachine, make_replacement
from redline.processing.visibility import OverlayVisibility, overlay_visibility

__all__ = [
    "EditLedger",
    "expand_for_deletion",
    "RenderingSurface",
    "PyMuPDFRenderingSurface",
    "group_glyph_runs",
    "extract_page",
    "FreehandSurface",
    "InteractionStateMachine",
    "make_replacement",
    "OverlayVisibility",
    "overlay_visibility",
]
