"""
Машина состояний взаимодействия с открытой страницей.

Принимает события указателя в пикселях отображения, переводит их в
единицы документа и изменяет ledger правок. Инструмент фиксируется
снимком в начале жеста.

Состояния:
- idle: нет активного жеста
- drawing: штрих пера, маркера или ластика
- shape-preview: перетаскивание прямоугольника или круга
- text-inserting: ввод новой вставки текста
- text-dragging: перемещение существующей вставки
- text-selecting: выбран извлечённый элемент для правки
- text-deleting: удаление извлечённого элемента
"""

from __future__ import annotations
import logging
from dataclasses import replace
from typing import Callable, List, Optional

from redline.core.config import (
    DEFAULT_TOOL_COLOR,
    INSERTION_WIDTH,
    INSERTION_HEIGHT,
    INSERTION_FONT_SIZE,
    RASTER_SCALE,
    REPLACEMENT_MIN_WIDTH,
    REPLACEMENT_MIN_HEIGHT,
    REPLACEMENT_MIN_FONT_SIZE,
    REPLACEMENT_FONT_RATIO,
)
from redline.core.models import (
    Bounds,
    ExtractedTextItem,
    TextInsertion,
    TextReplacement,
    Tool,
    new_id,
)
from redline.core.types import (
    FREEHAND_TOOLS,
    SHAPE_TOOLS,
    InteractionMode,
    InteractionState,
    Point,
    ToolKind,
)
from redline.processing.ledger import EditLedger
from redline.processing.surface import FreehandSurface
from redline.utils.colors import parse_hex
from redline.utils.geometry import clamp_point, contains, to_document

# on_commit(page, tool, snapshot) вызывается после фиксации штриха или фигуры
CommitCallback = Callable[[int, Tool, bytes], None]


def safe_color(color: str) -> str:
    """Возвращает цвет #RRGGBB или цвет инструмента по умолчанию."""
    rgb = parse_hex(color)
    if rgb is None:
        logging.warning(f"Некорректный цвет '{color}', используется {DEFAULT_TOOL_COLOR}")
        return DEFAULT_TOOL_COLOR
    return "#{:02X}{:02X}{:02X}".format(*rgb)


def make_replacement(page: int, source: ExtractedTextItem, new_text: str, color: str) -> TextReplacement:
    """
    Создаёт замену текста по выбранному фрагменту.

    Область не меньше REPLACEMENT_MIN_WIDTH × REPLACEMENT_MIN_HEIGHT,
    размер шрифта пропорционален высоте фрагмента.

    Args:
        page: Номер страницы
        source: Выбранный фрагмент текста
        new_text: Новый текст
        color: Цвет нового текста

    Returns:
        Новая замена (ещё не сохранённая в ledger)
    """
    b = source.extracted_bounds
    return TextReplacement(
        id=new_id(),
        page=page,
        bounds=Bounds(
            x=b.x,
            y=b.y,
            width=max(b.width, REPLACEMENT_MIN_WIDTH),
            height=max(b.height, REPLACEMENT_MIN_HEIGHT),
        ),
        original_text=source.text,
        new_text=new_text,
        font_size=max(round(b.height * REPLACEMENT_FONT_RATIO), REPLACEMENT_MIN_FONT_SIZE),
        font_color=safe_color(color),
        background_color="#FFFFFF",
    )


class InteractionStateMachine:
    """
    Обработчик жестов одной сессии редактирования.

    Attributes:
        ledger: Ledger правок сессии
        page: Текущая страница (1-based)
        tool: Текущий инструмент
        mode: Режим текстового инструмента
        state: Текущее состояние
        surface: Растровая поверхность текущей страницы
        extraction_complete: Элементы текущей страницы доступны для кликов
    """

    def __init__(
        self,
        ledger: EditLedger,
        page_width: float,
        page_height: float,
        page: int = 1,
        tool: Optional[Tool] = None,
        on_commit: Optional[CommitCallback] = None,
        raster_scale: float = RASTER_SCALE,
    ):
        self.ledger = ledger
        self.page = page
        self.tool = tool or Tool()
        self.mode = InteractionMode.INSERT
        self.state = InteractionState.IDLE
        self.on_commit = on_commit
        self.extraction_complete = False
        self.raster_scale = raster_scale

        self.surface = FreehandSurface(page_width, page_height, raster_scale)
        self.surface.restore(ledger.freehand(page))

        # Состояние текущего жеста
        self._gesture_tool: Optional[Tool] = None
        self._points: List[Point] = []
        self._base = None
        self._start: Point = (0.0, 0.0)

        # Текстовые состояния
        self.draft: Optional[TextInsertion] = None
        self.selected_item_id: Optional[str] = None
        self._drag_id: Optional[str] = None
        self._drag_offset: Point = (0.0, 0.0)

    # ------------------------------------------------------------------
    # Инструмент и режим
    # ------------------------------------------------------------------

    def select_tool(self, tool: Tool) -> None:
        """Меняет инструмент; начатый жест продолжает старый снимок."""
        self.tool = replace(tool, color=safe_color(tool.color), fill_color=safe_color(tool.fill_color))
        if tool.kind != ToolKind.TEXT:
            self._reset_text_state()

    def set_mode(self, mode: InteractionMode) -> None:
        self.mode = InteractionMode(mode)
        self._reset_text_state()

    # ------------------------------------------------------------------
    # События указателя
    # ------------------------------------------------------------------

    def pointer_down(self, px: float, py: float, scale: float) -> None:
        """
        Начало жеста.

        Args:
            px: X в пикселях отображения
            py: Y в пикселях отображения
            scale: Текущий масштаб отображения
        """
        x, y = clamp_point(*to_document(px, py, scale))
        tool = self.tool

        if tool.kind in FREEHAND_TOOLS:
            self._begin_gesture(tool, x, y)
            self.state = InteractionState.DRAWING
            self.surface.render_stroke(self._base, tool, self._points)
        elif tool.kind in SHAPE_TOOLS:
            self._begin_gesture(tool, x, y)
            self.state = InteractionState.SHAPE_PREVIEW
        elif tool.kind == ToolKind.TEXT:
            self._text_pointer_down(x, y)

    def pointer_move(self, px: float, py: float, scale: float) -> None:
        x, y = clamp_point(*to_document(px, py, scale))

        if self.state == InteractionState.DRAWING:
            self._points.append((x, y))
            self.surface.render_stroke(self._base, self._gesture_tool, self._points)
        elif self.state == InteractionState.SHAPE_PREVIEW:
            # Предпросмотр всегда строится от последнего зафиксированного растра
            self.surface.render_shape(self._base, self._gesture_tool, self._start, (x, y))
        elif self.state == InteractionState.TEXT_DRAGGING:
            self.drag(x, y)

    def pointer_up(self, px: float, py: float, scale: float) -> None:
        if self.state == InteractionState.SHAPE_PREVIEW:
            x, y = clamp_point(*to_document(px, py, scale))
            self.surface.render_shape(self._base, self._gesture_tool, self._start, (x, y))
            self._commit_gesture()
        elif self.state == InteractionState.DRAWING:
            self._commit_gesture()
        elif self.state == InteractionState.TEXT_DRAGGING:
            self.end_drag()

    def _begin_gesture(self, tool: Tool, x: float, y: float) -> None:
        self._gesture_tool = tool
        self._start = (x, y)
        self._points = [(x, y)]
        self._base = self.surface.copy()

    def _commit_gesture(self) -> None:
        """Фиксирует растр страницы в ledger после штриха или фигуры."""
        tool = self._gesture_tool
        snapshot = self.surface.snapshot()
        self.ledger.set_freehand(self.page, snapshot)

        self._gesture_tool = None
        self._points = []
        self._base = None
        self.state = InteractionState.IDLE

        if snapshot and tool is not None and self.on_commit is not None:
            self.on_commit(self.page, tool, snapshot)

    # ------------------------------------------------------------------
    # Вставка текста
    # ------------------------------------------------------------------

    def _text_pointer_down(self, x: float, y: float) -> None:
        if self.state == InteractionState.TEXT_INSERTING:
            self.commit_text()

        if self.mode == InteractionMode.INSERT:
            hit = self.insertion_at(x, y)
            if hit is not None:
                self.begin_drag(hit.id, x, y)
            else:
                self.start_text(x, y)
        else:
            self.click_item(x, y)

    def start_text(self, x: float, y: float) -> TextInsertion:
        """Открывает поле ввода новой вставки в точке (x, y)."""
        x, y = clamp_point(x, y)
        self.draft = TextInsertion(
            id=new_id(),
            page=self.page,
            x=x,
            y=y,
            width=INSERTION_WIDTH,
            height=INSERTION_HEIGHT,
            text="",
            font_size=INSERTION_FONT_SIZE,
            color=safe_color(self.tool.color),
        )
        self.state = InteractionState.TEXT_INSERTING
        return self.draft

    def update_text(self, text: str) -> None:
        if self.draft is not None:
            self.draft = replace(self.draft, text=text)

    def commit_text(self) -> Optional[TextInsertion]:
        """Сохраняет вставку в ledger; пустой текст отбрасывается."""
        draft, self.draft = self.draft, None
        self.state = InteractionState.IDLE
        if draft is None:
            return None
        return self.ledger.upsert_insertion(draft)

    def cancel_text(self) -> None:
        self.draft = None
        self.state = InteractionState.IDLE

    def insertion_at(self, x: float, y: float) -> Optional[TextInsertion]:
        """Верхняя вставка под точкой (последняя добавленная)."""
        for ins in reversed(self.ledger.insertions(self.page)):
            if contains(Bounds(ins.x, ins.y, ins.width, ins.height), x, y):
                return ins
        return None

    def begin_drag(self, insertion_id: str, x: float, y: float) -> None:
        ins = self.ledger.insertion(self.page, insertion_id)
        if ins is None:
            return
        self._drag_id = insertion_id
        self._drag_offset = (x - ins.x, y - ins.y)
        self.state = InteractionState.TEXT_DRAGGING

    def drag(self, x: float, y: float) -> None:
        if self._drag_id is None:
            return
        ox, oy = self._drag_offset
        self.ledger.move_insertion(self.page, self._drag_id, x - ox, y - oy)

    def end_drag(self) -> None:
        self._drag_id = None
        self.state = InteractionState.IDLE

    # ------------------------------------------------------------------
    # Извлечённые элементы
    # ------------------------------------------------------------------

    def item_at(self, x: float, y: float) -> Optional[ExtractedTextItem]:
        if not self.extraction_complete:
            return None
        for item in self.ledger.extracted_items(self.page):
            if contains(item.bounds, x, y):
                return item
        return None

    def click_item(self, x: float, y: float) -> Optional[ExtractedTextItem]:
        """
        Клик по извлечённому элементу в режиме edit или delete.

        В режиме delete элемент сразу помечается удалённым; в режиме
        edit он становится выбранным до confirm_edit() или cancel_edit().

        Returns:
            Элемент под точкой или None
        """
        item = self.item_at(x, y)
        if item is None:
            return None

        if self.mode == InteractionMode.DELETE:
            self.state = InteractionState.TEXT_DELETING
            self.ledger.mark_deleted(self.page, item.id)
            logging.info(f"Страница {self.page}: удалён текст '{item.text[:30]}'")
            self.state = InteractionState.IDLE
        elif self.mode == InteractionMode.EDIT:
            self.selected_item_id = item.id
            self.state = InteractionState.TEXT_SELECTING

        return item

    def confirm_edit(self, new_text: str) -> None:
        if self.selected_item_id is not None:
            self.ledger.mark_edited(self.page, self.selected_item_id, new_text)
        self.cancel_edit()

    def cancel_edit(self) -> None:
        self.selected_item_id = None
        self.state = InteractionState.IDLE

    def restore_item(self, item_id: str) -> None:
        self.ledger.restore(self.page, item_id)

    def replace_selection(self, new_text: str) -> Optional[TextReplacement]:
        """Заменяет выбранный элемент отдельной заменой текста."""
        item_id, self.selected_item_id = self.selected_item_id, None
        self.state = InteractionState.IDLE
        if item_id is None or not new_text.strip():
            return None

        item = self.ledger.extracted_item(self.page, item_id)
        if item is None:
            return None
        return self.ledger.upsert_replacement(make_replacement(self.page, item, new_text, self.tool.color))

    # ------------------------------------------------------------------
    # Страницы
    # ------------------------------------------------------------------

    def flush(self) -> None:
        """Сохраняет снимок растра текущей страницы в ledger."""
        if self.state in (InteractionState.DRAWING, InteractionState.SHAPE_PREVIEW):
            self._commit_gesture()
        else:
            self.ledger.set_freehand(self.page, self.surface.snapshot())

    def switch_page(self, page: int, page_width: float, page_height: float) -> None:
        """
        Переходит на другую страницу.

        Снимок текущей страницы сохраняется, несохранённый ввод и выбор
        сбрасываются, режим возвращается к insert, растр новой страницы
        восстанавливается из ledger.
        """
        self.flush()
        self._reset_text_state()
        self.mode = InteractionMode.INSERT
        self.extraction_complete = False

        self.page = page
        self.surface = FreehandSurface(page_width, page_height, self.raster_scale)
        self.surface.restore(self.ledger.freehand(page))

    def reload_surface(self) -> None:
        """Перечитывает растр текущей страницы из ledger."""
        self.surface.restore(self.ledger.freehand(self.page))

    def _reset_text_state(self) -> None:
        self.draft = None
        self.selected_item_id = None
        self._drag_id = None
        if self.state not in (InteractionState.DRAWING, InteractionState.SHAPE_PREVIEW):
            self.state = InteractionState.IDLE
