"""
Клиент хранилища документов и аннотаций (Supabase REST).

Этот модуль реализует внешний коллаборатор хранения: текущий
пользователь, загрузка байтов документа, список и сохранение аннотаций,
удаление документа. Все вызовы блокирующие; сессия редактирования
выполняет их через asyncio.to_thread.
"""

from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

import requests

from redline.core.config import (
    SUPABASE_URL,
    SUPABASE_ANON_KEY,
    SUPABASE_DOCUMENTS_BUCKET,
    SUPABASE_ANNOTATIONS_TABLE,
    SUPABASE_DOCUMENTS_TABLE,
    TIMEOUT,
)
from redline.core.exceptions import StorageUnavailable
from redline.core.models import AnnotationRecord
from redline.api.base import get_http_session


def is_url(ref: str) -> bool:
    return ref.startswith(("http://", "https://"))


class SupabaseStorage:
    """
    Хранилище на Supabase: PostgREST для таблиц и Storage API для файлов.

    Attributes:
        base_url: Базовый URL проекта Supabase
        api_key: Публичный ключ проекта
        access_token: JWT пользователя (если выполнен вход)
    """

    def __init__(
        self,
        base_url: str = SUPABASE_URL,
        api_key: str = SUPABASE_ANON_KEY,
        access_token: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: int = TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.access_token = access_token
        self.http = session or get_http_session()
        self.timeout = timeout

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.access_token or self.api_key}",
        }
        if extra:
            headers.update(extra)
        return headers

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        """
        Выполняет запрос к Supabase.

        Raises:
            StorageUnavailable: Сетевая ошибка или ответ с кодом >= 400
        """
        url = path if is_url(path) else f"{self.base_url}{path}"
        headers = self._headers(kwargs.pop("headers", None))

        try:
            r = self.http.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise StorageUnavailable(f"{method} {path}: {e}") from e

        if r.status_code >= 400:
            raise StorageUnavailable(f"{method} {path}: HTTP {r.status_code} {r.text[:200]}", r.status_code)

        return r

    # ------------------------------------------------------------------
    # Пользователь
    # ------------------------------------------------------------------

    def get_current_user(self) -> Optional[Dict[str, Any]]:
        """Текущий пользователь или None, если вход не выполнен."""
        if not self.access_token:
            return None
        try:
            return self._request("GET", "/auth/v1/user").json()
        except StorageUnavailable as e:
            logging.warning(f"Не удалось получить пользователя: {e}")
            return None

    # ------------------------------------------------------------------
    # Документы
    # ------------------------------------------------------------------

    def get_document(self, document_id: str) -> Dict[str, Any]:
        """
        Запись документа по id.

        Raises:
            StorageUnavailable: Если документ не найден или хранилище недоступно
        """
        r = self._request(
            "GET",
            f"/rest/v1/{SUPABASE_DOCUMENTS_TABLE}",
            params={"id": f"eq.{document_id}", "select": "*"},
        )
        rows = r.json()
        if not rows:
            raise StorageUnavailable(f"Документ {document_id} не найден", 404)
        return rows[0]

    def load_document_bytes(self, ref: str) -> bytes:
        """
        Загружает байты документа.

        Args:
            ref: URL файла или id документа

        Returns:
            Байты PDF
        """
        if is_url(ref):
            return self._request("GET", ref).content

        doc = self.get_document(ref)
        path = f"/storage/v1/object/{SUPABASE_DOCUMENTS_BUCKET}/{doc['file_path']}"
        data = self._request("GET", path).content
        logging.info(f"Документ {ref} загружен: {len(data)} байт")
        return data

    def delete_document(self, document_id: str) -> None:
        """
        Удаляет файл документа и его запись.

        Raises:
            StorageUnavailable: Если удаление не выполнено
        """
        doc = self.get_document(document_id)
        self._request(
            "DELETE",
            f"/storage/v1/object/{SUPABASE_DOCUMENTS_BUCKET}",
            json={"prefixes": [doc["file_path"]]},
        )
        self._request(
            "DELETE",
            f"/rest/v1/{SUPABASE_DOCUMENTS_TABLE}",
            params={"id": f"eq.{document_id}"},
        )
        logging.info(f"Документ {document_id} удалён")

    # ------------------------------------------------------------------
    # Аннотации
    # ------------------------------------------------------------------

    def list_annotations(self, document_id: str) -> List[AnnotationRecord]:
        """
        Аннотации документа в порядке создания.

        Недоступное хранилище даёт пустой список.
        """
        try:
            r = self._request(
                "GET",
                f"/rest/v1/{SUPABASE_ANNOTATIONS_TABLE}",
                params={
                    "document_id": f"eq.{document_id}",
                    "select": "*",
                    "order": "created_at.asc",
                },
            )
            rows = r.json()
        except (StorageUnavailable, ValueError) as e:
            logging.warning(f"Аннотации документа {document_id} недоступны: {e}")
            return []

        return [
            AnnotationRecord(
                document_id=row.get("document_id", document_id),
                user_id=row.get("user_id", ""),
                page_number=int(row.get("page_number", 1)),
                type=row.get("type", ""),
                data=row.get("data") or {},
                id=row.get("id"),
                created_at=row.get("created_at"),
            )
            for row in rows
        ]

    def save_annotation(self, record: AnnotationRecord) -> AnnotationRecord:
        """
        Сохраняет аннотацию.

        Returns:
            Запись с id и created_at от хранилища (если они вернулись)

        Raises:
            StorageUnavailable: Если запись не сохранена
        """
        payload = {
            "document_id": record.document_id,
            "user_id": record.user_id,
            "page_number": record.page_number,
            "type": record.type,
            "data": record.data,
        }
        r = self._request(
            "POST",
            f"/rest/v1/{SUPABASE_ANNOTATIONS_TABLE}",
            json=[payload],
            headers={"Prefer": "return=representation"},
        )

        try:
            rows = r.json()
        except ValueError:
            rows = []
        if rows:
            record.id = rows[0].get("id", record.id)
            record.created_at = rows[0].get("created_at", record.created_at)
        return record
