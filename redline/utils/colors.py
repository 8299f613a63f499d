"""
Утилиты для работы с цветом.
"""

from __future__ import annotations
import re
from typing import Optional

from redline.core.config import FALLBACK_COLOR
from redline.core.types import RGB

HEX_RE = re.compile(r"^#?([a-f\d]{2})([a-f\d]{2})([a-f\d]{2})$", re.IGNORECASE)


def parse_hex(color: str) -> Optional[tuple[int, int, int]]:
    """
    Разбирает цвет #RRGGBB в компоненты 0..255.

    Args:
        color: Строка цвета (с # или без)

    Returns:
        Кортеж (r, g, b) или None для некорректной строки
    """
    m = HEX_RE.match((color or "").strip())
    if not m:
        return None
    return tuple(int(part, 16) for part in m.groups())  # type: ignore[return-value]


def hex_to_rgb(color: str) -> RGB:
    """
    Переводит #RRGGBB в компоненты 0..1 для PDF.

    Некорректная строка даёт FALLBACK_COLOR (чёрный), а не ошибку.
    """
    rgb = parse_hex(color) or FALLBACK_COLOR
    return (rgb[0] / 255, rgb[1] / 255, rgb[2] / 255)


def hex_to_rgba(color: str, alpha: int = 255) -> tuple[int, int, int, int]:
    """Переводит #RRGGBB в RGBA 0..255 для растровой поверхности."""
    r, g, b = parse_hex(color) or FALLBACK_COLOR
    return (r, g, b, alpha)
