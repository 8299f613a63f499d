"""
Компоновщик: применение ledger'а правок к исходному PDF.

Компоновка идёт в два шага:
- plan_document() строит для каждой страницы список операций отрисовки
  в системе координат PDF (y снизу вверх) — чистая функция;
- compose() открывает исходный документ, применяет план через
  redline.export.pdf и возвращает байты результата.

Порядок слоёв на странице фиксирован:
1. растровый слой рисования;
2. вставки текста (без маски);
3. замены текста (маска + текст);
4. извлечённые элементы (удалён — маска, изменён — маска + текст);
5. устаревшие удаления (маска).
"""

from __future__ import annotations
import logging
import warnings
from typing import Dict, List, Tuple

try:
    import pymupdf
except ImportError:
    import fitz as pymupdf  # type: ignore

from redline.core.config import TEXT_OFFSET
from redline.core.exceptions import EmbedFailure, InvalidDocumentError, PageOutOfRangeWarning
from redline.core.models import DrawOp, ImageOp, TextOp
from redline.export.masking import mask_ops
from redline.export.pdf import apply_page_ops
from redline.export.raster import enhance_freehand
from redline.processing.ledger import EditLedger
from redline.utils.colors import hex_to_rgb
from redline.utils.geometry import flip_text_baseline
from redline.utils.metrics import Timer, log_metric

BLACK = (0.0, 0.0, 0.0)

PageSize = Tuple[float, float]


def _freehand_op(snapshot: bytes, width: float, height: float) -> ImageOp:
    data, img_w, img_h = enhance_freehand(snapshot)
    # Растр масштабируется по ширине страницы и прижимается к верхнему краю
    drawn_h = img_h * (width / img_w)
    return ImageOp(data=data, x=0.0, y=height - drawn_h, width=width, height=drawn_h)


def plan_page(ledger: EditLedger, page: int, width: float, height: float) -> List[DrawOp]:
    """
    Строит операции отрисовки одной страницы.

    Args:
        ledger: Ledger правок (снимок)
        page: Номер страницы (1-based)
        width: Ширина страницы
        height: Высота страницы

    Returns:
        Операции в порядке слоёв
    """
    ops: List[DrawOp] = []

    # 1. Растровый слой рисования
    snapshot = ledger.freehand(page)
    if snapshot:
        try:
            ops.append(_freehand_op(snapshot, width, height))
        except EmbedFailure as e:
            logging.warning(f"Страница {page}: слой рисования пропущен ({e})")

    # 2. Вставки текста
    for ins in ledger.insertions(page):
        ops.append(
            TextOp(
                text=ins.text,
                x=ins.x,
                y=flip_text_baseline(ins.y, ins.font_size, height),
                font_size=ins.font_size,
                color=hex_to_rgb(ins.color),
            )
        )

    # 3. Замены текста
    for rep in ledger.replacements(page):
        ops.extend(mask_ops(rep.bounds, height))
        ops.append(
            TextOp(
                text=rep.new_text,
                x=rep.bounds.x + TEXT_OFFSET,
                y=flip_text_baseline(rep.bounds.y, rep.font_size, height, TEXT_OFFSET),
                font_size=rep.font_size,
                color=hex_to_rgb(rep.font_color),
            )
        )

    # 4. Извлечённые элементы: удаление имеет приоритет над изменением
    for item in ledger.extracted_items(page):
        if item.is_deleted:
            ops.extend(mask_ops(item.bounds, height))
        elif item.is_edited and item.edited_text:
            ops.extend(mask_ops(item.bounds, height))
            ops.append(
                TextOp(
                    text=item.edited_text,
                    x=item.bounds.x + TEXT_OFFSET,
                    y=flip_text_baseline(item.bounds.y, item.font_size, height, TEXT_OFFSET),
                    font_size=item.font_size,
                    color=BLACK,
                )
            )

    # 5. Устаревшие удаления
    for deletion in ledger.deletions(page):
        ops.extend(mask_ops(deletion.bounds, height))

    return ops


def plan_document(ledger: EditLedger, page_sizes: Dict[int, PageSize]) -> Dict[int, List[DrawOp]]:
    """
    Строит план отрисовки для всех страниц с правками.

    Страницы, отсутствующие в документе, пропускаются с
    PageOutOfRangeWarning.

    Args:
        ledger: Ledger правок (снимок)
        page_sizes: Размеры страниц документа {номер: (ширина, высота)}

    Returns:
        Словарь {номер страницы: операции}
    """
    plan: Dict[int, List[DrawOp]] = {}

    for page in ledger.pages():
        if page not in page_sizes:
            msg = f"Страница {page} вне документа ({len(page_sizes)} стр.), правки пропущены"
            logging.warning(msg)
            warnings.warn(msg, PageOutOfRangeWarning, stacklevel=2)
            continue

        width, height = page_sizes[page]
        ops = plan_page(ledger, page, width, height)
        if ops:
            plan[page] = ops

    return plan


def open_document(original: bytes) -> "pymupdf.Document":
    """
    Открывает исходный PDF из байтов.

    Raises:
        InvalidDocumentError: Если байты не являются корректным PDF
    """
    if not original:
        raise InvalidDocumentError("Пустой документ")

    try:
        doc = pymupdf.open(stream=original, filetype="pdf")
    except Exception as e:
        raise InvalidDocumentError(f"Не удалось открыть PDF: {e}") from e

    if not doc.is_pdf or doc.page_count == 0:
        doc.close()
        raise InvalidDocumentError("Документ не содержит страниц PDF")

    return doc


def page_sizes_of(doc: "pymupdf.Document") -> Dict[int, PageSize]:
    """Размеры всех страниц документа, 1-based."""
    return {i + 1: (p.rect.width, p.rect.height) for i, p in enumerate(doc)}


def compose(original: bytes, ledger: EditLedger) -> bytes:
    """
    Применяет все правки ledger'а к исходному документу.

    Функция чистая: одинаковые байты и ledger дают одинаковый результат.
    Без правок возвращаются исходные байты без изменений.

    Args:
        original: Байты исходного PDF
        ledger: Ledger правок; читается снимок на момент вызова

    Returns:
        Байты итогового PDF

    Raises:
        InvalidDocumentError: Если исходные байты не являются PDF
    """
    snapshot = ledger.snapshot()
    doc = open_document(original)

    try:
        if not snapshot.has_pending_changes():
            return original

        timer = Timer()
        plan = plan_document(snapshot, page_sizes_of(doc))
        log_metric("plan", duration_ms=timer.ms(), ops=sum(len(v) for v in plan.values()))

        for page_no, ops in plan.items():
            page_timer = Timer()
            applied = apply_page_ops(doc[page_no - 1], ops)
            log_metric("page", page=page_no, duration_ms=page_timer.ms(), ops=applied)
            logging.info(f"Страница {page_no}: применено {applied}/{len(ops)} операций")

        timer = Timer()
        data = doc.tobytes(garbage=3, deflate=True)
        log_metric("save", duration_ms=timer.ms(), size_bytes=len(data))
        return data

    finally:
        doc.close()
