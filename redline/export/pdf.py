"""
Запись операций отрисовки в PDF через PyMuPDF.

Растровые слои встраиваются прямо в страницу. Маски и текст рисуются
на отдельной странице-накладке того же размера, которая затем
штампуется поверх исходной страницы как Form XObject. Так ресурсы
исходной страницы (шрифты, ExtGState, наследуемые /Resources) не
изменяются, а режим наложения Multiply задаётся собственным ExtGState
накладки.
"""

from __future__ import annotations
import logging
from typing import Dict, List, Optional, Set, Tuple

try:
    import pymupdf
except ImportError:
    import fitz as pymupdf  # type: ignore

from redline.core.config import OUTPUT_FONT
from redline.core.models import DrawOp, ImageOp, RectOp, TextOp
from redline.core.types import BlendMode


def _num(v: float) -> str:
    """Форматирует число для content stream."""
    s = f"{v:.4f}".rstrip("0").rstrip(".")
    return "0" if s in ("", "-0") else s


class PageOverlay:
    """
    Страница-накладка, в которую последовательно пишутся маски и текст.

    Подряд идущие маски собираются в один content stream; перед каждым
    текстом накопленные маски сбрасываются, чтобы сохранить порядок слоёв.
    """

    def __init__(self, width: float, height: float):
        self.doc = pymupdf.open()
        self.page = self.doc.new_page(width=width, height=height)
        self.width = width
        self.height = height
        self._states: Dict[Tuple[float, str], str] = {}
        self._written: Set[str] = set()
        self._pending: List[str] = []
        self.count = 0

    def _state_name(self, opacity: float, blend: BlendMode) -> str:
        key = (opacity, blend.value)
        if key not in self._states:
            self._states[key] = f"RL{len(self._states)}"
        return self._states[key]

    def add_rect(self, op: RectOp) -> None:
        gs = self._state_name(op.opacity, op.blend_mode)
        r, g, b = op.color
        self._pending.append(
            f"q /{gs} gs {_num(r)} {_num(g)} {_num(b)} rg "
            f"{_num(op.x)} {_num(op.y)} {_num(op.width)} {_num(op.height)} re f Q"
        )
        self.count += 1

    def add_text(self, op: TextOp) -> None:
        self.flush()
        # insert_text ждёт базовую линию в системе с началом сверху
        point = pymupdf.Point(op.x, self.height - op.y)
        self.page.insert_text(
            point,
            op.text,
            fontsize=op.font_size,
            fontname=OUTPUT_FONT,
            color=op.color,
        )
        self.count += 1

    def _resources_target(self) -> Tuple[int, str]:
        kind, value = self.doc.xref_get_key(self.page.xref, "Resources")
        if kind == "xref":
            return int(value.split()[0]), ""
        return self.page.xref, "Resources/"

    def _write_states(self) -> None:
        xref, prefix = self._resources_target()
        for (opacity, blend), name in self._states.items():
            if name in self._written:
                continue
            self.doc.xref_set_key(
                xref,
                f"{prefix}ExtGState/{name}",
                f"<</Type/ExtGState/CA {_num(opacity)}/ca {_num(opacity)}/BM/{blend}>>",
            )
            self._written.add(name)

    def flush(self) -> None:
        """Дописывает накопленные маски отдельным content stream."""
        if not self._pending:
            return

        self._write_states()
        data = ("\n".join(self._pending) + "\n").encode("ascii")
        self._pending = []

        xref = self.doc.get_new_xref()
        self.doc.update_object(xref, "<<>>")
        self.doc.update_stream(xref, data, new=True)

        refs = list(self.page.get_contents()) + [xref]
        self.doc.xref_set_key(
            self.page.xref, "Contents", "[" + " ".join(f"{x} 0 R" for x in refs) + "]"
        )

    def stamp(self, target) -> None:
        """Штампует накладку поверх целевой страницы."""
        self.flush()
        target.show_pdf_page(target.rect, self.doc, 0, overlay=True)

    def close(self) -> None:
        self.doc.close()


def _insert_image(page, op: ImageOp) -> None:
    # ImageOp задан в системе PDF; insert_image ждёт прямоугольник сверху
    top = page.rect.height - op.y - op.height
    rect = pymupdf.Rect(op.x, top, op.x + op.width, top + op.height)
    page.insert_image(rect, stream=op.data, keep_proportion=False, overlay=True)


def apply_page_ops(page, ops: List[DrawOp]) -> int:
    """
    Применяет операции отрисовки к странице в заданном порядке.

    Ошибка отдельной операции (растр или текст) пропускает только её.

    Args:
        page: Целевая страница
        ops: Операции в системе координат PDF

    Returns:
        Количество применённых операций
    """
    applied = 0
    overlay: Optional[PageOverlay] = None
    page_no = page.number + 1

    def stamp_overlay() -> None:
        nonlocal overlay, applied
        if overlay is None:
            return
        try:
            if overlay.count:
                overlay.stamp(page)
                applied += overlay.count
        except Exception as e:
            logging.warning(f"Страница {page_no}: накладка не применена ({e})")
        finally:
            overlay.close()
            overlay = None

    for op in ops:
        if isinstance(op, ImageOp):
            stamp_overlay()
            try:
                _insert_image(page, op)
                applied += 1
            except Exception as e:
                logging.warning(f"Страница {page_no}: растровый слой не встроен ({e})")
            continue

        if overlay is None:
            overlay = PageOverlay(page.rect.width, page.rect.height)

        if isinstance(op, RectOp):
            overlay.add_rect(op)
        elif isinstance(op, TextOp):
            try:
                overlay.add_text(op)
            except Exception as e:
                logging.warning(f"Страница {page_no}: текст '{op.text[:30]}' не нарисован ({e})")

    stamp_overlay()
    return applied
