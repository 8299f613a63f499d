"""
Растровая поверхность рисования текущей страницы.

Поверхность хранится в единицах документа, умноженных на RASTER_SCALE,
поэтому масштаб и поворот отображения на неё не влияют. Снимок
поверхности — PNG байты, которые попадают в ledger как слой рисования.
"""

from __future__ import annotations
import io
import math
from typing import Optional, Sequence

from PIL import Image, ImageChops, ImageDraw

from redline.core.config import HIGHLIGHTER_ALPHA, ERASER_WIDTH_FACTOR, RASTER_SCALE
from redline.core.models import Tool
from redline.core.types import Point, ToolKind
from redline.utils.colors import hex_to_rgba

TRANSPARENT = (0, 0, 0, 0)


class FreehandSurface:
    """
    RGBA поверхность страницы со штрихами пера, маркера, фигур и ластика.

    Attributes:
        page_width: Ширина страницы в единицах документа
        page_height: Высота страницы в единицах документа
        raster_scale: Пикселей растра на единицу документа
    """

    def __init__(self, page_width: float, page_height: float, raster_scale: float = RASTER_SCALE):
        self.page_width = page_width
        self.page_height = page_height
        self.raster_scale = raster_scale
        self.image = self._blank()

    @property
    def size(self) -> tuple[int, int]:
        return (
            max(1, int(math.ceil(self.page_width * self.raster_scale))),
            max(1, int(math.ceil(self.page_height * self.raster_scale))),
        )

    def _blank(self) -> Image.Image:
        return Image.new("RGBA", self.size, TRANSPARENT)

    def _px(self, p: Point) -> Point:
        return (p[0] * self.raster_scale, p[1] * self.raster_scale)

    # ------------------------------------------------------------------
    # Снимки
    # ------------------------------------------------------------------

    def snapshot(self) -> Optional[bytes]:
        """PNG снимок поверхности; None, если на ней ничего нет."""
        if self.is_blank():
            return None
        out = io.BytesIO()
        self.image.save(out, format="PNG")
        return out.getvalue()

    def restore(self, snapshot: Optional[bytes]) -> None:
        """Очищает поверхность и восстанавливает её из снимка (если есть)."""
        self.image = self._blank()
        if not snapshot:
            return
        with Image.open(io.BytesIO(snapshot)) as src:
            img = src.convert("RGBA")
        if img.size != self.image.size:
            img = img.resize(self.image.size)
        self.image = img

    def clear(self) -> None:
        self.image = self._blank()

    def is_blank(self) -> bool:
        return self.image.getchannel("A").getbbox() is None

    def copy(self) -> Image.Image:
        return self.image.copy()

    # ------------------------------------------------------------------
    # Рисование
    # ------------------------------------------------------------------

    def _stroke_mask(self, points: Sequence[Point], width: float) -> Image.Image:
        """Маска штриха с круглыми концами и стыками."""
        mask = Image.new("L", self.size, 0)
        draw = ImageDraw.Draw(mask)
        px = [self._px(p) for p in points]
        w = max(1.0, width * self.raster_scale)
        r = w / 2

        if len(px) > 1:
            draw.line(px, fill=255, width=int(round(w)))
        for x, y in px:
            draw.ellipse((x - r, y - r, x + r, y + r), fill=255)
        return mask

    def render_stroke(self, base: Image.Image, tool: Tool, points: Sequence[Point]) -> None:
        """
        Рисует весь штрих поверх base и делает результат текущим растром.

        Args:
            base: Растр на момент начала жеста
            tool: Снимок инструмента
            points: Точки штриха в единицах документа
        """
        if not points:
            self.image = base.copy()
            return

        if tool.kind == ToolKind.ERASER:
            mask = self._stroke_mask(points, tool.size * ERASER_WIDTH_FACTOR)
            self.image = erase(base, mask)
        elif tool.kind == ToolKind.HIGHLIGHTER:
            mask = self._stroke_mask(points, tool.size)
            self.image = multiply_paint(base, mask, hex_to_rgba(tool.color), HIGHLIGHTER_ALPHA)
        else:
            mask = self._stroke_mask(points, tool.size)
            layer = Image.new("RGBA", self.size, hex_to_rgba(tool.color))
            out = base.copy()
            out.paste(layer, (0, 0), mask)
            self.image = out

    def render_shape(self, base: Image.Image, tool: Tool, start: Point, end: Point) -> None:
        """
        Рисует прямоугольник или круг поверх base.

        Круг строится по центру отрезка start-end с радиусом в половину
        его длины.
        """
        out = base.copy()
        draw = ImageDraw.Draw(out)
        (x0, y0), (x1, y1) = self._px(start), self._px(end)
        width = max(1, int(round(tool.size * self.raster_scale)))
        fill = hex_to_rgba(tool.fill_color) if tool.fill else None
        outline = hex_to_rgba(tool.color)

        if tool.kind == ToolKind.CIRCLE:
            cx, cy = (x0 + x1) / 2, (y0 + y1) / 2
            r = math.hypot(x1 - x0, y1 - y0) / 2
            box = [cx - r, cy - r, cx + r, cy + r]
            draw.ellipse(box, fill=fill, outline=outline, width=width)
        else:
            box = [min(x0, x1), min(y0, y1), max(x0, x1), max(y0, y1)]
            draw.rectangle(box, fill=fill, outline=outline, width=width)

        self.image = out


def erase(base: Image.Image, mask: Image.Image) -> Image.Image:
    """Удаляет пиксели под маской (аналог destination-out)."""
    r, g, b, a = base.split()
    return Image.merge("RGBA", (r, g, b, ImageChops.subtract(a, mask)))


def multiply_paint(
    base: Image.Image,
    mask: Image.Image,
    color: tuple[int, int, int, int],
    alpha: float,
) -> Image.Image:
    """
    Рисует цвет под маской в режиме multiply с прозрачностью alpha.

    Над непрозрачными пикселями цвет перемножается с фоном, над
    прозрачными ложится как есть.
    """
    base_rgb = base.convert("RGB")
    base_a = base.getchannel("A")
    paint = Image.new("RGB", base.size, color[:3])

    opaque = base_a.point(lambda v: 255 if v else 0)
    painted = Image.composite(ImageChops.multiply(base_rgb, paint), paint, opaque)

    stroke_alpha = mask.point(lambda v: int(v * alpha))
    over_empty = ImageChops.multiply(mask, ImageChops.invert(opaque))
    rgb = Image.composite(painted, base_rgb, ImageChops.lighter(stroke_alpha, over_empty))

    out = rgb.convert("RGBA")
    out.putalpha(ImageChops.lighter(base_a, stroke_alpha))
    return out
