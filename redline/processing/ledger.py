"""
Ledger правок документа.

Этот модуль хранит все ожидающие применения правки по страницам:
растровый слой рисования, вставки текста, замены текста, удаления
текста и флаги извлечённых текстовых элементов.

Все коллекции — словари "номер страницы → коллекция"; страницы без
правок не имеют ключа. Все мутации синхронные и тотальные: неизвестный
id — это no-op, а не ошибка.
"""

from __future__ import annotations
import base64
import json
import logging
from dataclasses import asdict, replace
from typing import Any, Callable, Dict, List, Optional, Set, TypeVar

from redline.core.config import (
    DELETE_PAD_LEFT,
    DELETE_PAD_TOP,
    DELETE_PAD_WIDTH,
    DELETE_PAD_HEIGHT,
    DELETE_MIN_HEIGHT,
    DEFAULT_FONT_SIZE,
    DEFAULT_FONT_FAMILY,
)
from redline.core.models import (
    Bounds,
    ExtractedTextItem,
    TextDeletion,
    TextInsertion,
    TextReplacement,
)

BLOB_VERSION = 1

T = TypeVar("T")


def expand_for_deletion(b: Bounds) -> Bounds:
    """
    Расширяет область извлечённого элемента для полного закрытия глифов.

    Отступ асимметричный: больше слева и сверху, высота не меньше
    DELETE_MIN_HEIGHT.

    Args:
        b: Область, полученная при извлечении

    Returns:
        Расширенная область
    """
    return Bounds(
        x=max(0.0, b.x - DELETE_PAD_LEFT),
        y=max(0.0, b.y - DELETE_PAD_TOP),
        width=b.width + DELETE_PAD_WIDTH,
        height=max(b.height + DELETE_PAD_HEIGHT, DELETE_MIN_HEIGHT),
    )


class EditLedger:
    """
    Авторитетный реестр правок одной сессии редактирования.

    Внешний код не изменяет сущности напрямую: все сущности неизменяемы,
    а изменения выполняются только методами ledger'а.
    """

    def __init__(self) -> None:
        self._freehand: Dict[int, bytes] = {}
        self._insertions: Dict[int, List[TextInsertion]] = {}
        self._replacements: Dict[int, List[TextReplacement]] = {}
        self._deletions: Dict[int, List[TextDeletion]] = {}
        self._items: Dict[int, List[ExtractedTextItem]] = {}

    # ------------------------------------------------------------------
    # Общие помощники
    # ------------------------------------------------------------------

    @staticmethod
    def _store(collection: Dict[int, List[T]], page: int, entries: List[T]) -> None:
        if entries:
            collection[page] = entries
        else:
            collection.pop(page, None)

    @staticmethod
    def _remove(collection: Dict[int, List[T]], page: int, entity_id: str) -> None:
        entries = collection.get(page)
        if not entries:
            return
        EditLedger._store(collection, page, [e for e in entries if e.id != entity_id])

    # ------------------------------------------------------------------
    # Растровый слой рисования
    # ------------------------------------------------------------------

    def set_freehand(self, page: int, snapshot: Optional[bytes]) -> None:
        """Заменяет снимок слоя рисования страницы целиком (None — очистка)."""
        if snapshot:
            self._freehand[page] = snapshot
        else:
            self._freehand.pop(page, None)

    def freehand(self, page: int) -> Optional[bytes]:
        return self._freehand.get(page)

    def clear_freehand(self, page: int) -> None:
        self._freehand.pop(page, None)

    # ------------------------------------------------------------------
    # Вставки текста
    # ------------------------------------------------------------------

    def upsert_insertion(self, insertion: TextInsertion) -> Optional[TextInsertion]:
        """
        Добавляет или заменяет вставку по id.

        Вставка с пустым текстом отбрасывается (и удаляет ранее
        сохранённую версию с тем же id).

        Returns:
            Сохранённая вставка или None, если она отброшена
        """
        page = insertion.page
        if not insertion.text.strip():
            self._remove(self._insertions, page, insertion.id)
            return None

        entries = list(self._insertions.get(page, []))
        for i, e in enumerate(entries):
            if e.id == insertion.id:
                entries[i] = insertion
                break
        else:
            entries.append(insertion)

        self._store(self._insertions, page, entries)
        return insertion

    def insertions(self, page: int) -> List[TextInsertion]:
        return list(self._insertions.get(page, []))

    def insertion(self, page: int, insertion_id: str) -> Optional[TextInsertion]:
        return next((e for e in self._insertions.get(page, []) if e.id == insertion_id), None)

    def move_insertion(self, page: int, insertion_id: str, x: float, y: float) -> None:
        """Перемещает вставку; координаты обрезаются до неотрицательных."""
        current = self.insertion(page, insertion_id)
        if current is None:
            return
        self.upsert_insertion(replace(current, x=max(0.0, x), y=max(0.0, y)))

    def delete_insertion(self, page: int, insertion_id: str) -> None:
        self._remove(self._insertions, page, insertion_id)

    def clear_insertions(self, page: int) -> None:
        self._insertions.pop(page, None)

    # ------------------------------------------------------------------
    # Замены текста
    # ------------------------------------------------------------------

    def upsert_replacement(self, replacement: TextReplacement) -> Optional[TextReplacement]:
        """Добавляет или заменяет замену по id; пустой new_text отбрасывается."""
        page = replacement.page
        if not replacement.new_text.strip():
            self._remove(self._replacements, page, replacement.id)
            return None

        entries = list(self._replacements.get(page, []))
        for i, e in enumerate(entries):
            if e.id == replacement.id:
                entries[i] = replacement
                break
        else:
            entries.append(replacement)

        self._store(self._replacements, page, entries)
        return replacement

    def replacements(self, page: int) -> List[TextReplacement]:
        return list(self._replacements.get(page, []))

    def delete_replacement(self, page: int, replacement_id: str) -> None:
        self._remove(self._replacements, page, replacement_id)

    def clear_replacements(self, page: int) -> None:
        self._replacements.pop(page, None)

    # ------------------------------------------------------------------
    # Удаления текста (устаревший формат)
    # ------------------------------------------------------------------

    def add_deletion(self, deletion: TextDeletion) -> TextDeletion:
        entries = [e for e in self._deletions.get(deletion.page, []) if e.id != deletion.id]
        entries.append(deletion)
        self._store(self._deletions, deletion.page, entries)
        return deletion

    def deletions(self, page: int) -> List[TextDeletion]:
        return list(self._deletions.get(page, []))

    def delete_deletion(self, page: int, deletion_id: str) -> None:
        self._remove(self._deletions, page, deletion_id)

    def clear_deletions(self, page: int) -> None:
        self._deletions.pop(page, None)

    def migrate_legacy_deletions(self) -> int:
        """
        Переносит устаревшие удаления в модель извлечённых элементов.

        Область удаления уже расширена, поэтому переносится как есть.

        Returns:
            Количество перенесённых удалений
        """
        migrated = 0
        for page in sorted(self._deletions):
            items = list(self._items.get(page, []))
            for d in self._deletions[page]:
                items.append(
                    ExtractedTextItem(
                        id=d.id,
                        page=page,
                        text=d.deleted_text,
                        bounds=d.bounds,
                        font_size=DEFAULT_FONT_SIZE,
                        font_family=DEFAULT_FONT_FAMILY,
                        is_deleted=True,
                        source_bounds=d.bounds,
                    )
                )
                migrated += 1
            self._store(self._items, page, items)

        self._deletions.clear()
        if migrated:
            logging.info(f"Перенесено устаревших удалений: {migrated}")
        return migrated

    # ------------------------------------------------------------------
    # Извлечённые текстовые элементы
    # ------------------------------------------------------------------

    def set_extracted_items(self, page: int, items: List[ExtractedTextItem]) -> None:
        """Заменяет набор извлечённых элементов страницы."""
        self._store(self._items, page, list(items))

    def has_extracted_items(self, page: int) -> bool:
        return page in self._items

    def extracted_items(self, page: int) -> List[ExtractedTextItem]:
        return list(self._items.get(page, []))

    def extracted_item(self, page: int, item_id: str) -> Optional[ExtractedTextItem]:
        return next((i for i in self._items.get(page, []) if i.id == item_id), None)

    def _update_item(
        self,
        page: int,
        item_id: str,
        fn: Callable[[ExtractedTextItem], ExtractedTextItem],
    ) -> None:
        items = self._items.get(page)
        if not items:
            return
        self._items[page] = [fn(i) if i.id == item_id else i for i in items]

    def mark_deleted(self, page: int, item_id: str) -> None:
        """
        Помечает элемент удалённым и расширяет его область.

        Повторный вызов не меняет состояние: расширение считается от
        области извлечения, а уже удалённый элемент пропускается.
        """

        def apply(item: ExtractedTextItem) -> ExtractedTextItem:
            if item.is_deleted:
                return item
            source = item.extracted_bounds
            return replace(
                item,
                is_deleted=True,
                is_edited=False,
                edited_text=None,
                bounds=expand_for_deletion(source),
                source_bounds=source,
            )

        self._update_item(page, item_id, apply)

    def mark_edited(self, page: int, item_id: str, new_text: str) -> None:
        """Помечает элемент изменённым; пустой текст игнорируется."""
        if not new_text or not new_text.strip():
            return

        def apply(item: ExtractedTextItem) -> ExtractedTextItem:
            return replace(
                item,
                is_deleted=False,
                is_edited=True,
                edited_text=new_text,
                bounds=item.extracted_bounds,
                source_bounds=item.extracted_bounds,
            )

        self._update_item(page, item_id, apply)

    def restore(self, page: int, item_id: str) -> None:
        """Снимает флаги удаления/изменения и возвращает исходную область."""

        def apply(item: ExtractedTextItem) -> ExtractedTextItem:
            return replace(
                item,
                is_deleted=False,
                is_edited=False,
                edited_text=None,
                bounds=item.extracted_bounds,
            )

        self._update_item(page, item_id, apply)

    # ------------------------------------------------------------------
    # Запросы
    # ------------------------------------------------------------------

    def _has_modified_items(self, page: Optional[int] = None) -> bool:
        pages = [page] if page is not None else list(self._items)
        return any(i.is_modified for p in pages for i in self._items.get(p, []))

    def has_pending_changes(self) -> bool:
        """Есть ли хоть одна правка в любом из пяти источников."""
        return bool(
            self._freehand
            or self._insertions
            or self._replacements
            or self._deletions
            or self._has_modified_items()
        )

    def page_has_text_modifications(self, page: int) -> bool:
        """Есть ли на странице правки текста (без учёта слоя рисования)."""
        return bool(
            page in self._insertions
            or page in self._replacements
            or page in self._deletions
            or self._has_modified_items(page)
        )

    def page_has_changes(self, page: int) -> bool:
        return page in self._freehand or self.page_has_text_modifications(page)

    def pages(self) -> List[int]:
        """Отсортированный список страниц, на которых есть правки."""
        pages: Set[int] = set(self._freehand)
        pages.update(self._insertions, self._replacements, self._deletions)
        pages.update(p for p in self._items if self._has_modified_items(p))
        return sorted(pages)

    # ------------------------------------------------------------------
    # Массовые операции
    # ------------------------------------------------------------------

    def clear_page(self, page: int) -> None:
        """Удаляет все правки страницы; извлечённые элементы восстанавливаются."""
        self._freehand.pop(page, None)
        self._insertions.pop(page, None)
        self._replacements.pop(page, None)
        self._deletions.pop(page, None)
        for item in self.extracted_items(page):
            if item.is_modified:
                self.restore(page, item.id)

    def clear_all(self) -> None:
        for page in list(self._items):
            self.clear_page(page)
        self._freehand.clear()
        self._insertions.clear()
        self._replacements.clear()
        self._deletions.clear()

    def snapshot(self) -> "EditLedger":
        """
        Возвращает независимую копию ledger'а.

        Сущности неизменяемы, поэтому достаточно скопировать словари
        и списки.
        """
        copy = EditLedger()
        copy._freehand = dict(self._freehand)
        copy._insertions = {p: list(v) for p, v in self._insertions.items()}
        copy._replacements = {p: list(v) for p, v in self._replacements.items()}
        copy._deletions = {p: list(v) for p, v in self._deletions.items()}
        copy._items = {p: list(v) for p, v in self._items.items()}
        return copy

    # ------------------------------------------------------------------
    # Сериализация в непрозрачный blob
    # ------------------------------------------------------------------

    def to_blob(self) -> bytes:
        """Сериализует ledger в JSON для передачи хранилищу."""
        payload: Dict[str, Any] = {
            "version": BLOB_VERSION,
            "freehand": {
                str(p): base64.b64encode(v).decode("ascii") for p, v in self._freehand.items()
            },
            "insertions": [asdict(e) for v in self._insertions.values() for e in v],
            "replacements": [asdict(e) for v in self._replacements.values() for e in v],
            "deletions": [asdict(e) for v in self._deletions.values() for e in v],
            "items": [asdict(e) for v in self._items.values() for e in v],
        }
        return json.dumps(payload, ensure_ascii=False).encode("utf-8")

    @classmethod
    def from_blob(cls, blob: bytes) -> "EditLedger":
        """
        Восстанавливает ledger из JSON, созданного to_blob().

        Raises:
            ValueError: Если blob не является сериализованным ledger'ом
        """
        try:
            payload = json.loads(blob.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ValueError(f"Invalid ledger blob: {e}") from e

        if not isinstance(payload, dict) or payload.get("version") != BLOB_VERSION:
            raise ValueError("Unsupported ledger blob version")

        def bounds(d: Optional[Dict[str, float]]) -> Optional[Bounds]:
            return Bounds(**d) if d else None

        ledger = cls()
        try:
            for page, data in payload.get("freehand", {}).items():
                ledger.set_freehand(int(page), base64.b64decode(data))
            for d in payload.get("insertions", []):
                ledger.upsert_insertion(TextInsertion(**d))
            for d in payload.get("replacements", []):
                ledger.upsert_replacement(TextReplacement(**{**d, "bounds": bounds(d["bounds"])}))
            for d in payload.get("deletions", []):
                ledger.add_deletion(TextDeletion(**{**d, "bounds": bounds(d["bounds"])}))

            items: Dict[int, List[ExtractedTextItem]] = {}
            for d in payload.get("items", []):
                item = ExtractedTextItem(
                    **{
                        **d,
                        "bounds": bounds(d["bounds"]),
                        "source_bounds": bounds(d.get("source_bounds")),
                    }
                )
                items.setdefault(item.page, []).append(item)
        except (TypeError, KeyError, AttributeError) as e:
            raise ValueError(f"Invalid ledger blob: {e}") from e

        for page, page_items in items.items():
            ledger.set_extracted_items(page, page_items)

        return ledger
