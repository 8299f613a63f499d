"""
Видимость слоя извлечённого текста поверх страницы.
"""

from __future__ import annotations
from dataclasses import dataclass

from redline.core.models import Tool
from redline.core.types import ToolKind
from redline.processing.ledger import EditLedger


@dataclass(frozen=True)
class OverlayVisibility:
    """
    Параметры отображения слоя текста.

    Attributes:
        opacity: Прозрачность слоя 0..1
        visible: Слой показывается
    """

    opacity: float
    visible: bool


def overlay_visibility(tool: Tool, extraction_complete: bool, ledger: EditLedger, page: int) -> OverlayVisibility:
    """
    Вычисляет видимость слоя текста для текущей страницы.

    Если на странице есть правки текста, слой скрыт, чтобы исходный
    текст не проступал поверх масок. Слой никогда не перехватывает
    события указателя: клики обрабатывает машина взаимодействия.

    Args:
        tool: Текущий инструмент
        extraction_complete: Извлечение текста страницы завершено
        ledger: Ledger правок
        page: Номер страницы

    Returns:
        Параметры отображения слоя
    """
    modified = ledger.page_has_text_modifications(page)

    if tool.kind == ToolKind.TEXT:
        if not extraction_complete:
            return OverlayVisibility(opacity=0.2, visible=True)
        if modified:
            return OverlayVisibility(opacity=0.0, visible=False)
        return OverlayVisibility(opacity=0.05, visible=True)

    if modified:
        return OverlayVisibility(opacity=0.0, visible=False)
    return OverlayVisibility(opacity=1.0, visible=True)
