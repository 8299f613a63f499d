"""
Утилиты для геометрических расчётов.

Этот модуль содержит преобразования между пикселями отображения и
единицами документа, а также функции для работы с прямоугольниками.
Поворот отображения никогда не попадает в сохранённые координаты.
"""

from __future__ import annotations
from typing import Iterable

from redline.core.config import MIN_SCALE, MAX_SCALE, SCALE_STEP, ROTATION_STEP
from redline.core.models import Bounds
from redline.core.types import Point


def clamp_scale(scale: float) -> float:
    """
    Ограничивает масштаб допустимым диапазоном [MIN_SCALE, MAX_SCALE].

    Args:
        scale: Запрошенный масштаб

    Returns:
        Масштаб в допустимом диапазоне
    """
    return max(MIN_SCALE, min(MAX_SCALE, scale))


def zoom_in(scale: float) -> float:
    """Увеличивает масштаб на один шаг."""
    return clamp_scale(round(scale + SCALE_STEP, 6))


def zoom_out(scale: float) -> float:
    """Уменьшает масштаб на один шаг."""
    return clamp_scale(round(scale - SCALE_STEP, 6))


def rotate(rotation: int) -> int:
    """Поворачивает отображение на 90° по часовой стрелке."""
    return (rotation + ROTATION_STEP) % 360


def to_document(px: float, py: float, scale: float) -> Point:
    """
    Переводит точку из пикселей отображения в единицы документа.

    Args:
        px: X в пикселях отображения
        py: Y в пикселях отображения
        scale: Текущий масштаб отображения

    Returns:
        Точка (dx, dy) в единицах документа
    """
    return px / scale, py / scale


def to_display(dx: float, dy: float, scale: float) -> Point:
    """Переводит точку из единиц документа в пиксели отображения."""
    return dx * scale, dy * scale


def clamp_point(x: float, y: float) -> Point:
    """Обрезает точку до неотрицательных координат документа."""
    return max(0.0, x), max(0.0, y)


def inflate(b: Bounds, amount: float) -> Bounds:
    """
    Расширяет прямоугольник на amount во все стороны.

    Args:
        b: Исходный прямоугольник
        amount: Величина расширения

    Returns:
        Новый прямоугольник
    """
    return Bounds(b.x - amount, b.y - amount, b.width + amount * 2, b.height + amount * 2)


def union(boxes: Iterable[Bounds]) -> Bounds:
    """Объединяет прямоугольники в один охватывающий."""
    boxes = list(boxes)
    if not boxes:
        raise ValueError("Cannot build union of empty bounds")

    left = min(b.x for b in boxes)
    top = min(b.y for b in boxes)
    right = max(b.right for b in boxes)
    bottom = max(b.bottom for b in boxes)

    return Bounds(left, top, right - left, bottom - top)


def contains(b: Bounds, x: float, y: float) -> bool:
    """Проверяет, попадает ли точка в прямоугольник (границы включительно)."""
    return b.x <= x <= b.right and b.y <= y <= b.bottom


def flip_rect_y(b: Bounds, page_height: float) -> Bounds:
    """
    Переводит прямоугольник в систему PDF (y снизу вверх).

    y_bottom_up = page_height - y_top_down - height

    Args:
        b: Прямоугольник с началом в верхнем левом углу
        page_height: Высота страницы

    Returns:
        Прямоугольник, у которого y отсчитан от нижнего края
    """
    return Bounds(b.x, page_height - b.y - b.height, b.width, b.height)


def flip_text_baseline(y: float, font_size: float, page_height: float, offset: float = 0.0) -> float:
    """
    Вычисляет базовую линию текста в системе PDF.

    Args:
        y: Верхняя координата текста (от верхнего края)
        font_size: Размер шрифта
        page_height: Высота страницы
        offset: Дополнительный сдвиг вверх

    Returns:
        Y базовой линии, отсчитанный от нижнего края
    """
    return page_height - y - font_size + offset
