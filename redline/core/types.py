"""
Типы данных и enums для Redline.

Этот модуль содержит базовые типы и константы, используемые во всём движке.
"""

from __future__ import annotations
from enum import Enum


class ToolKind(str, Enum):
    """Инструменты разметки."""

    PEN = "pen"
    HIGHLIGHTER = "highlighter"
    RECTANGLE = "rectangle"
    CIRCLE = "circle"
    TEXT = "text"
    ERASER = "eraser"


FREEHAND_TOOLS = frozenset({ToolKind.PEN, ToolKind.HIGHLIGHTER, ToolKind.ERASER})
SHAPE_TOOLS = frozenset({ToolKind.RECTANGLE, ToolKind.CIRCLE})


class InteractionMode(str, Enum):
    """Режим работы текстового инструмента."""

    INSERT = "insert"
    EDIT = "edit"
    DELETE = "delete"


class InteractionState(str, Enum):
    """Состояния машины взаимодействия."""

    IDLE = "idle"
    DRAWING = "drawing"
    SHAPE_PREVIEW = "shape-preview"
    TEXT_INSERTING = "text-inserting"
    TEXT_DRAGGING = "text-dragging"
    TEXT_SELECTING = "text-selecting"
    TEXT_DELETING = "text-deleting"


class BlendMode(str, Enum):
    """Режимы наложения, поддерживаемые выходным PDF."""

    NORMAL = "Normal"
    MULTIPLY = "Multiply"


# Type aliases для улучшения читаемости
RGB = tuple[float, float, float]  # компоненты 0..1
Point = tuple[float, float]
