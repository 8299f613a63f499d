"""
Асинхронная сессия редактирования документа.

Сессия связывает все части движка в одном event loop:
- загрузка документа (байты, URL или id в хранилище);
- навигация, масштаб и поворот отображения;
- машина взаимодействия и ledger правок;
- извлечение текста страницы в фоне;
- сохранение штрихов в хранилище и восстановление при открытии;
- экспорт и предпросмотр результата.

Блокирующие операции (хранилище, разбор PDF, компоновка) выполняются
через asyncio.to_thread.
"""

from __future__ import annotations
import asyncio
import base64
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Protocol, Set, Union

from redline.core.config import STRICT_EXTRACTION
from redline.core.exceptions import InvalidDocumentError, StorageUnavailable
from redline.core.models import AnnotationRecord, Tool
from redline.core.types import InteractionMode, ToolKind
from redline.export.compositor import compose, open_document
from redline.processing.extraction import PyMuPDFRenderingSurface, RenderingSurface, extract_page
from redline.processing.interaction import InteractionStateMachine
from redline.processing.ledger import EditLedger
from redline.processing.visibility import OverlayVisibility, overlay_visibility
from redline.api.storage import SupabaseStorage, is_url
from redline.utils.geometry import rotate, zoom_in, zoom_out

PNG_DATA_URL = "data:image/png;base64,"


class ExportSurface(Protocol):
    """Получатель готовых байтов (скачивание или предпросмотр)."""

    def deliver(self, data: bytes, filename: str, preview: bool) -> None:
        ...


@dataclass
class ExportResult:
    """
    Результат экспорта.

    Attributes:
        data: Байты итогового документа
        filename: Имя файла для сохранения
        fallback: True, если вместо результата отданы исходные байты
        error: Текст ошибки компоновки (при fallback)
    """

    data: bytes
    filename: str
    fallback: bool = False
    error: Optional[str] = None


def encode_image_data(snapshot: bytes) -> str:
    return PNG_DATA_URL + base64.b64encode(snapshot).decode("ascii")


def decode_image_data(value: str) -> bytes:
    """Разбирает data URL или голый base64 в байты PNG."""
    if value.startswith("data:"):
        value = value.split(",", 1)[1]
    return base64.b64decode(value)


class EditorSession:
    """
    Сессия редактирования одного документа.

    Attributes:
        ledger: Ledger правок
        machine: Машина взаимодействия (после load())
        page: Текущая страница
        scale: Масштаб отображения
        rotation: Поворот отображения
    """

    def __init__(
        self,
        storage: Optional[SupabaseStorage] = None,
        export_surface: Optional[ExportSurface] = None,
        strict_extraction: bool = STRICT_EXTRACTION,
        settle_delay: Optional[float] = None,
        surface_factory: Callable[[bytes], RenderingSurface] = PyMuPDFRenderingSurface,
    ):
        self.storage = storage
        self.export_surface = export_surface
        self.strict_extraction = strict_extraction
        self.settle_delay = settle_delay
        self.surface_factory = surface_factory

        self.ledger = EditLedger()
        self.machine: Optional[InteractionStateMachine] = None
        self.surface: Optional[RenderingSurface] = None
        self.original: Optional[bytes] = None
        self.document_id: Optional[str] = None
        self.user_id: Optional[str] = None
        self.name = "document.pdf"

        self.scale = 1.0
        self.rotation = 0

        self._extracted: Set[int] = set()
        self._inflight: Dict[int, int] = {}
        self._generation: Dict[int, int] = {}
        self._tasks: Set[asyncio.Task] = set()
        self._unsaved: List[AnnotationRecord] = []

    # ------------------------------------------------------------------
    # Загрузка
    # ------------------------------------------------------------------

    async def load(self, source: Union[bytes, str], name: Optional[str] = None) -> None:
        """
        Открывает документ.

        Args:
            source: Байты PDF, URL файла или id документа в хранилище
            name: Имя файла (для имени результата экспорта)

        Raises:
            InvalidDocumentError: Если байты не являются PDF
            StorageUnavailable: Если документ не удалось загрузить
        """
        if isinstance(source, bytes):
            data = source
        else:
            if self.storage is None:
                raise StorageUnavailable("Хранилище не настроено")
            data = await asyncio.to_thread(self.storage.load_document_bytes, source)
            if not is_url(source):
                self.document_id = source

        doc = await asyncio.to_thread(open_document, data)
        doc.close()

        self.original = data
        self.name = name or self.name
        self.surface = await asyncio.to_thread(self.surface_factory, data)

        if self.storage is not None:
            user = await asyncio.to_thread(self.storage.get_current_user)
            self.user_id = user.get("id") if user else None

        w, h = self.surface.page_size(1)
        self.machine = InteractionStateMachine(self.ledger, w, h, page=1, on_commit=self._on_commit)
        logging.info(f"Документ '{self.name}' открыт: {self.page_count} стр.")

        if self.document_id is not None:
            await self.restore_annotations()

    @property
    def page_count(self) -> int:
        return self.surface.page_count if self.surface is not None else 0

    @property
    def page(self) -> int:
        return self.machine.page if self.machine is not None else 1

    async def restore_annotations(self) -> int:
        """
        Восстанавливает слои рисования из сохранённых аннотаций.

        Каждая запись хранит полный растр страницы на момент штриха,
        поэтому для страницы берётся последняя запись.

        Returns:
            Количество восстановленных страниц
        """
        if self.storage is None or self.document_id is None:
            return 0

        records = await asyncio.to_thread(self.storage.list_annotations, self.document_id)
        latest: Dict[int, AnnotationRecord] = {}
        for record in records:
            if record.data.get("imageData"):
                latest[record.page_number] = record

        for page, record in latest.items():
            try:
                self.ledger.set_freehand(page, decode_image_data(record.data["imageData"]))
            except ValueError as e:
                logging.warning(f"Аннотация {record.id} пропущена: {e}")

        if self.machine is not None:
            self.machine.reload_surface()
        if latest:
            logging.info(f"Восстановлено слоёв рисования: {len(latest)}")
        return len(latest)

    # ------------------------------------------------------------------
    # Отображение и навигация
    # ------------------------------------------------------------------

    def zoom_in(self) -> float:
        self.scale = zoom_in(self.scale)
        return self.scale

    def zoom_out(self) -> float:
        self.scale = zoom_out(self.scale)
        return self.scale

    def rotate(self) -> int:
        self.rotation = rotate(self.rotation)
        return self.rotation

    def go_to_page(self, page: int) -> bool:
        """Переходит на страницу; номер вне документа игнорируется."""
        if self.machine is None or not 1 <= page <= self.page_count or page == self.page:
            return False

        old = self.page
        if self.strict_extraction and old in self._inflight:
            # Результат для покинутой страницы будет отброшен
            self._generation[old] = self._generation.get(old, 0) + 1
            self._inflight.pop(old, None)

        w, h = self.surface.page_size(page)
        self.machine.switch_page(page, w, h)
        self.machine.extraction_complete = page in self._extracted
        self._maybe_extract()
        return True

    def next_page(self) -> bool:
        return self.go_to_page(self.page + 1)

    def prev_page(self) -> bool:
        return self.go_to_page(self.page - 1)

    def render_page(self) -> bytes:
        return self.surface.render_page(self.page, self.scale, self.rotation)

    # ------------------------------------------------------------------
    # Инструменты и события указателя
    # ------------------------------------------------------------------

    def select_tool(self, tool: Tool) -> None:
        self.machine.select_tool(tool)
        self._maybe_extract()

    def set_mode(self, mode: InteractionMode) -> None:
        self.machine.set_mode(mode)

    def pointer_down(self, px: float, py: float) -> None:
        self.machine.pointer_down(px, py, self.scale)

    def pointer_move(self, px: float, py: float) -> None:
        self.machine.pointer_move(px, py, self.scale)

    def pointer_up(self, px: float, py: float) -> None:
        self.machine.pointer_up(px, py, self.scale)

    @property
    def visibility(self) -> OverlayVisibility:
        return overlay_visibility(self.machine.tool, self.page in self._extracted, self.ledger, self.page)

    # ------------------------------------------------------------------
    # Извлечение текста
    # ------------------------------------------------------------------

    def _schedule(self, coro) -> Optional[asyncio.Task]:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            return None
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _maybe_extract(self) -> Optional[asyncio.Task]:
        if self.machine is None or self.machine.tool.kind != ToolKind.TEXT:
            return None
        page = self.page
        if page in self._extracted or page in self._inflight:
            return None
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return None
        return self._schedule(self._run_extraction(page, self._begin_extraction(page)))

    def _begin_extraction(self, page: int) -> int:
        gen = self._generation.get(page, 0) + 1
        self._generation[page] = gen
        self._inflight[page] = gen
        return gen

    async def _run_extraction(self, page: int, gen: int) -> None:
        try:
            items = await extract_page(self.surface, page, self.scale, self.rotation, self.settle_delay)
        except Exception as e:
            logging.warning(f"Страница {page}: извлечение текста не выполнено ({e})")
            return
        finally:
            if self._inflight.get(page) == gen:
                del self._inflight[page]

        if self.strict_extraction and self._generation.get(page) != gen:
            logging.info(f"Страница {page}: устаревший результат извлечения отброшен")
            return

        # Поздний результат сливается по номеру страницы
        if not self.ledger.has_extracted_items(page):
            self.ledger.set_extracted_items(page, items)
        self._extracted.add(page)
        if self.machine is not None and self.machine.page == page:
            self.machine.extraction_complete = True

    async def extract_current_page(self) -> None:
        """Запускает извлечение текущей страницы (если нужно) и ждёт его."""
        if self.page in self._extracted:
            return
        if self.page in self._inflight:
            await self.drain()
        else:
            await self._run_extraction(self.page, self._begin_extraction(self.page))

    def is_extracted(self, page: int) -> bool:
        return page in self._extracted

    async def drain(self) -> None:
        """Ждёт завершения всех фоновых задач сессии."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Сохранение аннотаций
    # ------------------------------------------------------------------

    def _on_commit(self, page: int, tool: Tool, snapshot: bytes) -> None:
        if self.storage is None or self.document_id is None or self.user_id is None:
            return
        self._unsaved.append(
            AnnotationRecord(
                document_id=self.document_id,
                user_id=self.user_id,
                page_number=page,
                type=tool.kind.value,
                data={"imageData": encode_image_data(snapshot), "tool": tool.as_dict()},
            )
        )
        self._schedule(self.save_pending())

    async def save_pending(self) -> int:
        """
        Сохраняет накопленные аннотации.

        Ошибка хранилища выводится уведомлением и не прерывает сессию.

        Returns:
            Количество сохранённых записей
        """
        saved = 0
        while self._unsaved:
            record = self._unsaved.pop(0)
            try:
                await asyncio.to_thread(self.storage.save_annotation, record)
                saved += 1
            except StorageUnavailable as e:
                logging.error(f"Аннотация не сохранена: {e}")
        return saved

    async def delete_document(self) -> bool:
        """Удаляет документ из хранилища; False при ошибке."""
        if self.storage is None or self.document_id is None:
            return False
        try:
            await asyncio.to_thread(self.storage.delete_document, self.document_id)
        except StorageUnavailable as e:
            logging.error(f"Документ не удалён: {e}")
            return False
        return True

    # ------------------------------------------------------------------
    # Правки
    # ------------------------------------------------------------------

    def clear_page(self) -> None:
        self.ledger.clear_page(self.page)
        self.machine.reload_surface()

    def clear_all(self) -> None:
        self.ledger.clear_all()
        self.machine.reload_surface()

    @property
    def has_unsaved_changes(self) -> bool:
        return self.ledger.has_pending_changes()

    # ------------------------------------------------------------------
    # Экспорт
    # ------------------------------------------------------------------

    async def export(self, preview: bool = False) -> ExportResult:
        """
        Строит итоговый документ и передаёт его поверхности экспорта.

        Растр текущей страницы сохраняется в ledger до снимка. Ошибка
        компоновки не прерывает сессию: отдаются исходные байты.

        Args:
            preview: Передать результат в режиме предпросмотра

        Returns:
            Результат экспорта
        """
        if self.original is None:
            raise InvalidDocumentError("Документ не загружен")

        self.machine.flush()
        snapshot = self.ledger.snapshot()
        filename = f"edited_{self.name}"

        try:
            data = await asyncio.to_thread(compose, self.original, snapshot)
            result = ExportResult(data=data, filename=filename)
        except InvalidDocumentError as e:
            logging.error(f"Экспорт не выполнен, отдаётся исходный документ: {e}")
            result = ExportResult(data=self.original, filename=self.name, fallback=True, error=str(e))

        if self.export_surface is not None:
            await asyncio.to_thread(self.export_surface.deliver, result.data, result.filename, preview)
        return result

    async def preview(self) -> ExportResult:
        return await self.export(preview=True)

    def close(self) -> None:
        close = getattr(self.surface, "close", None)
        if close is not None:
            close()
