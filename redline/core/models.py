"""
Модели данных для Redline.

Этот модуль содержит все dataclass модели ledger'а правок и операций
отрисовки. Все координаты ledger'а заданы в единицах документа
с началом в верхнем левом углу страницы.
"""

from __future__ import annotations
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

from redline.core.config import DEFAULT_TOOL_COLOR, DEFAULT_TOOL_SIZE
from redline.core.types import RGB, BlendMode, ToolKind


def new_id() -> str:
    """Генерирует уникальный идентификатор сущности ledger'а."""
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Bounds:
    """
    Прямоугольник в единицах документа (верхний левый угол + размеры).

    Attributes:
        x: Левая координата
        y: Верхняя координата (от верхнего края страницы)
        width: Ширина
        height: Высота
    """

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height


@dataclass(frozen=True)
class GlyphRun:
    """
    Отрисованный фрагмент текста, как его отдаёт поверхность отрисовки.

    Координаты в пикселях отображения (с учётом масштаба).

    Attributes:
        text: Текстовое содержимое фрагмента
        left: Левая граница
        top: Верхняя граница
        right: Правая граница
        bottom: Нижняя граница
        font_size: Размер шрифта в пикселях отображения
        font_family: Семейство шрифта
    """

    text: str
    left: float
    top: float
    right: float
    bottom: float
    font_size: float = 0.0
    font_family: str = ""

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top


@dataclass(frozen=True)
class TextInsertion:
    """
    Новый текст, добавленный пользователем поверх страницы.

    Attributes:
        id: Идентификатор вставки
        page: Номер страницы (1-based)
        x: Левая координата
        y: Верхняя координата
        width: Ширина поля ввода
        height: Высота поля ввода
        text: Текст вставки (пустой текст никогда не сохраняется)
        font_size: Размер шрифта
        color: Цвет в формате #RRGGBB
    """

    id: str
    page: int
    x: float
    y: float
    width: float
    height: float
    text: str
    font_size: float
    color: str


@dataclass(frozen=True)
class TextReplacement:
    """
    Замена существующего текста: маска по bounds + новый текст.

    Attributes:
        id: Идентификатор замены
        page: Номер страницы (1-based)
        bounds: Область маски, покрывающая исходный текст с отступом
        original_text: Исходный текст
        new_text: Новый текст (не пустой)
        font_size: Размер шрифта нового текста
        font_color: Цвет нового текста (#RRGGBB)
        background_color: Цвет фона (#RRGGBB)
    """

    id: str
    page: int
    bounds: Bounds
    original_text: str
    new_text: str
    font_size: float
    font_color: str
    background_color: str = "#FFFFFF"


@dataclass(frozen=True)
class TextDeletion:
    """Устаревший формат удаления текста: только маска по bounds."""

    id: str
    page: int
    bounds: Bounds
    deleted_text: str = ""


@dataclass(frozen=True)
class ExtractedTextItem:
    """
    Редактируемый элемент текста, сгруппированный из glyph runs страницы.

    Attributes:
        id: Идентификатор элемента
        page: Номер страницы (1-based)
        text: Исходный текст элемента
        bounds: Текущая область элемента (расширяется при удалении)
        font_size: Размер шрифта в единицах документа
        font_family: Семейство шрифта
        is_deleted: Элемент помечен удалённым
        is_edited: Элемент помечен изменённым
        edited_text: Новый текст (только для изменённых)
        source_bounds: Область, полученная при извлечении
    """

    id: str
    page: int
    text: str
    bounds: Bounds
    font_size: float
    font_family: str
    is_deleted: bool = False
    is_edited: bool = False
    edited_text: Optional[str] = None
    source_bounds: Optional[Bounds] = None

    @property
    def is_modified(self) -> bool:
        return self.is_deleted or self.is_edited

    @property
    def extracted_bounds(self) -> Bounds:
        return self.source_bounds if self.source_bounds is not None else self.bounds


@dataclass(frozen=True)
class Tool:
    """
    Неизменяемый снимок настроек инструмента.

    Снимок берётся в начале жеста; смена инструмента посреди жеста
    не влияет на уже начатый жест.
    """

    kind: ToolKind = ToolKind.PEN
    color: str = DEFAULT_TOOL_COLOR
    size: float = DEFAULT_TOOL_SIZE
    fill: bool = False
    fill_color: str = DEFAULT_TOOL_COLOR

    def as_dict(self) -> Dict[str, Any]:
        return {
            "type": self.kind.value,
            "color": self.color,
            "size": self.size,
            "fill": self.fill,
            "fillColor": self.fill_color,
        }


@dataclass
class AnnotationRecord:
    """
    Запись аннотации в хранилище.

    Attributes:
        document_id: Идентификатор документа
        user_id: Идентификатор пользователя
        page_number: Номер страницы (1-based)
        type: Тип аннотации (инструмент)
        data: Непрозрачные данные ({"imageData": ..., "tool": ...})
        id: Идентификатор записи (присваивает хранилище)
        created_at: Время создания (присваивает хранилище)
    """

    document_id: str
    user_id: str
    page_number: int
    type: str
    data: Dict[str, Any] = field(default_factory=dict)
    id: Optional[str] = None
    created_at: Optional[str] = None


# ============================================================================
# Операции отрисовки (в системе координат PDF, y снизу вверх)
# ============================================================================


@dataclass(frozen=True)
class RectOp:
    """Залитый прямоугольник маски."""

    x: float
    y: float
    width: float
    height: float
    color: RGB
    opacity: float = 1.0
    blend_mode: BlendMode = BlendMode.NORMAL


@dataclass(frozen=True)
class TextOp:
    """Строка текста; (x, y) задаёт точку базовой линии."""

    text: str
    x: float
    y: float
    font_size: float
    color: RGB


@dataclass(frozen=True)
class ImageOp:
    """Растровое изображение (PNG) поверх страницы."""

    data: bytes
    x: float
    y: float
    width: float
    height: float


DrawOp = Union[RectOp, TextOp, ImageOp]
