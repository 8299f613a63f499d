"""
Подготовка растрового слоя рисования к встраиванию в PDF.
"""

from __future__ import annotations
import io

from PIL import Image

from redline.core.config import FREEHAND_RGB_GAIN, FREEHAND_ALPHA_GAIN
from redline.core.exceptions import EmbedFailure


def _gain(factor: float):
    return lambda v: min(255, int(round(v * factor)))


def enhance_freehand(snapshot: bytes) -> tuple[bytes, int, int]:
    """
    Усиливает контраст и непрозрачность штрихов.

    Каналы RGB умножаются на FREEHAND_RGB_GAIN, альфа — на
    FREEHAND_ALPHA_GAIN, с обрезкой до 255. Тонкие штрихи остаются
    видимыми после пересжатия в PDF.

    Args:
        snapshot: PNG снимок слоя рисования

    Returns:
        (PNG байты, ширина, высота)

    Raises:
        EmbedFailure: Если снимок не является корректным изображением
    """
    try:
        with Image.open(io.BytesIO(snapshot)) as src:
            img = src.convert("RGBA")
    except Exception as e:
        raise EmbedFailure(f"Некорректный растровый снимок: {e}") from e

    if img.width == 0 or img.height == 0:
        raise EmbedFailure("Пустой растровый снимок")

    r, g, b, a = img.split()
    rgb_gain = _gain(FREEHAND_RGB_GAIN)
    enhanced = Image.merge(
        "RGBA",
        (r.point(rgb_gain), g.point(rgb_gain), b.point(rgb_gain), a.point(_gain(FREEHAND_ALPHA_GAIN))),
    )

    out = io.BytesIO()
    enhanced.save(out, format="PNG")
    return out.getvalue(), img.width, img.height
