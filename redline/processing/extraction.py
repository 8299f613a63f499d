"""
Извлечение редактируемых текстовых элементов страницы.

Поверхность отрисовки отдаёт glyph runs (фрагменты текста с bbox в
пикселях отображения). Соседние фрагменты одной строки объединяются в
элементы, которые переводятся в единицы документа и становятся
кликабельными для правки и удаления.
"""

from __future__ import annotations
import asyncio
import logging
from typing import List, Optional, Protocol

try:
    import pymupdf
except ImportError:
    import fitz as pymupdf  # type: ignore

from redline.core.config import (
    GROUP_VERTICAL_TOLERANCE,
    GROUP_HORIZONTAL_GAP,
    DEFAULT_FONT_SIZE,
    DEFAULT_FONT_FAMILY,
    EXTRACTION_SETTLE_DELAY,
)
from redline.core.exceptions import InvalidDocumentError
from redline.core.models import Bounds, ExtractedTextItem, GlyphRun, new_id


class RenderingSurface(Protocol):
    """Поверхность, которая отрисовывает страницы и отдаёт их glyph runs."""

    page_count: int

    def page_size(self, page_number: int) -> tuple[float, float]:
        ...

    def glyph_runs(self, page_number: int, scale: float, rotation: int) -> List[GlyphRun]:
        ...

    def render_page(self, page_number: int, scale: float, rotation: int) -> bytes:
        ...


class _Group:
    """Накапливаемая группа фрагментов одной строки."""

    def __init__(self, run: GlyphRun):
        self.left = run.left
        self.top = run.top
        self.right = run.right
        self.bottom = run.bottom
        self.parts = [run.text]
        self.font_size = run.font_size
        self.font_family = run.font_family

    def accepts(self, run: GlyphRun) -> bool:
        return (
            abs(run.top - self.top) <= GROUP_VERTICAL_TOLERANCE
            and abs(run.bottom - self.bottom) <= GROUP_VERTICAL_TOLERANCE
            and run.left - self.right <= GROUP_HORIZONTAL_GAP
        )

    def add(self, run: GlyphRun) -> None:
        self.left = min(self.left, run.left)
        self.top = min(self.top, run.top)
        self.right = max(self.right, run.right)
        self.bottom = max(self.bottom, run.bottom)
        self.parts.append(run.text)


def group_glyph_runs(runs: List[GlyphRun], page: int, scale: float) -> List[ExtractedTextItem]:
    """
    Группирует glyph runs в редактируемые элементы.

    Фрагмент присоединяется к предыдущей группе, если верх и низ
    отличаются не больше чем на GROUP_VERTICAL_TOLERANCE, а
    горизонтальный зазор не больше GROUP_HORIZONTAL_GAP. Фрагменты с
    нулевой площадью или пустым текстом отбрасываются.

    Args:
        runs: Фрагменты в порядке отрисовки, в пикселях отображения
        page: Номер страницы (1-based)
        scale: Масштаб, при котором получены фрагменты

    Returns:
        Элементы в единицах документа
    """
    groups: List[_Group] = []

    for run in runs:
        if run.width <= 0 or run.height <= 0 or not run.text.strip():
            continue
        if groups and groups[-1].accepts(run):
            groups[-1].add(run)
        else:
            groups.append(_Group(run))

    items: List[ExtractedTextItem] = []
    for g in groups:
        text = "".join(g.parts).strip()
        if not text:
            continue
        font_size = g.font_size / scale if g.font_size > 0 else DEFAULT_FONT_SIZE
        items.append(
            ExtractedTextItem(
                id=new_id(),
                page=page,
                text=text,
                bounds=Bounds(
                    x=g.left / scale,
                    y=g.top / scale,
                    width=(g.right - g.left) / scale,
                    height=(g.bottom - g.top) / scale,
                ),
                font_size=font_size,
                font_family=g.font_family or DEFAULT_FONT_FAMILY,
            )
        )

    return items


class PyMuPDFRenderingSurface:
    """
    Поверхность отрисовки на PyMuPDF.

    Glyph runs строятся из spans get_text("dict") в системе страницы
    без поворота: поворот влияет только на отрисовку.
    """

    def __init__(self, data: bytes):
        try:
            self.doc = pymupdf.open(stream=data, filetype="pdf")
        except Exception as e:
            raise InvalidDocumentError(f"Не удалось открыть PDF: {e}") from e
        if self.doc.page_count == 0:
            self.doc.close()
            raise InvalidDocumentError("Документ не содержит страниц")

    @property
    def page_count(self) -> int:
        return self.doc.page_count

    def page_size(self, page_number: int) -> tuple[float, float]:
        rect = self.doc[page_number - 1].rect
        return rect.width, rect.height

    def glyph_runs(self, page_number: int, scale: float, rotation: int = 0) -> List[GlyphRun]:
        page = self.doc[page_number - 1]
        runs: List[GlyphRun] = []

        for block in page.get_text("dict")["blocks"]:
            if "lines" not in block:
                continue
            for line in block["lines"]:
                for span in line["spans"]:
                    x0, y0, x1, y1 = span["bbox"]
                    runs.append(
                        GlyphRun(
                            text=span["text"],
                            left=x0 * scale,
                            top=y0 * scale,
                            right=x1 * scale,
                            bottom=y1 * scale,
                            font_size=span["size"] * scale,
                            font_family=span["font"],
                        )
                    )

        return runs

    def render_page(self, page_number: int, scale: float, rotation: int = 0) -> bytes:
        """Отрисовывает страницу в PNG с учётом масштаба и поворота."""
        page = self.doc[page_number - 1]
        mat = pymupdf.Matrix(scale, scale).prerotate(rotation)
        pix = page.get_pixmap(matrix=mat)
        return pix.tobytes("png")

    def close(self) -> None:
        self.doc.close()


async def extract_page(
    surface: RenderingSurface,
    page: int,
    scale: float,
    rotation: int = 0,
    settle_delay: Optional[float] = None,
) -> List[ExtractedTextItem]:
    """
    Извлекает элементы страницы после задержки на отрисовку.

    Args:
        surface: Поверхность отрисовки
        page: Номер страницы (1-based)
        scale: Текущий масштаб
        rotation: Текущий поворот отображения
        settle_delay: Задержка перед чтением фрагментов (секунды)

    Returns:
        Элементы страницы; пустой список, если текста нет
    """
    delay = EXTRACTION_SETTLE_DELAY if settle_delay is None else settle_delay
    if delay > 0:
        await asyncio.sleep(delay)

    runs = await asyncio.to_thread(surface.glyph_runs, page, scale, rotation)
    items = group_glyph_runs(runs, page, scale)

    if not items:
        logging.info(f"Страница {page}: текст для правки не найден")
    else:
        logging.info(f"Страница {page}: извлечено {len(items)} элементов из {len(runs)} фрагментов")

    return items
