"""
Модуль core: базовые модели, типы и конфигурация.
"""

from redline.core.models import (
    Bounds,
    GlyphRun,
    TextInsertion,
    TextReplacement,
    TextDeletion,
    ExtractedTextItem,
    Tool,
    AnnotationRecord,
    RectOp,
    TextOp,
    ImageOp,
    DrawOp,
    new_id,
)
from redline.core.types import (
    ToolKind,
    InteractionMode,
    InteractionState,
    BlendMode,
    RGB,
)
from redline.core.config import (
    MIN_SCALE,
    MAX_SCALE,
    SUPABASE_URL,
    MAX_RETRIES,
    TIMEOUT,
)
from redline.core.exceptions import (
    RedlineError,
    InvalidDocumentError,
    EmbedFailure,
    StorageUnavailable,
    PageOutOfRangeWarning,
)

__all__ = [
    # Models
    "Bounds",
    "GlyphRun",
    "TextInsertion",
    "TextReplacement",
    "TextDeletion",
    "ExtractedTextItem",
    "Tool",
    "AnnotationRecord",
    "RectOp",
    "TextOp",
    "ImageOp",
    "DrawOp",
    "new_id",
    # Types
    "ToolKind",
    "InteractionMode",
    "InteractionState",
    "BlendMode",
    "RGB",
    # Config
    "MIN_SCALE",
    "MAX_SCALE",
    "SUPABASE_URL",
    "MAX_RETRIES",
    "TIMEOUT",
    # Exceptions
    "RedlineError",
    "InvalidDocumentError",
    "EmbedFailure",
    "StorageUnavailable",
    "PageOutOfRangeWarning",
]
