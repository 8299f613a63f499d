"""
HTTP сессия для клиента хранилища.

Повторные попытки выполняются только на транспортном уровне (urllib3
Retry) и только для идемпотентных методов. Сам движок правок ничего
не повторяет: ошибка сохранения или удаления доходит до пользователя.
"""

from __future__ import annotations
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from redline.core.config import MAX_RETRIES, BACKOFF_FACTOR, RETRY_STATUSES, RETRY_METHODS


def get_http_session(
    total: int = MAX_RETRIES,
    backoff: float = BACKOFF_FACTOR,
) -> requests.Session:
    """
    Создаёт HTTP сессию для запросов к Supabase.

    Повтор запроса допускается только при ответах из RETRY_STATUSES и
    только для методов из RETRY_METHODS. POST сохранения аннотации в
    этот список не входит, чтобы повтор не создал дубликат записи.
    Других автоматических повторов в движке нет.

    Args:
        total: Максимальное количество повторных попыток
        backoff: Коэффициент экспоненциальной задержки между попытками

    Returns:
        requests.Session с retry адаптером на http:// и https://
    """
    retry = Retry(
        total=total,
        backoff_factor=backoff,
        status_forcelist=list(RETRY_STATUSES),
        allowed_methods=RETRY_METHODS,
        raise_on_status=False,
    )

    session = requests.Session()
    for prefix in ("http://", "https://"):
        session.mount(prefix, HTTPAdapter(max_retries=retry))

    return session
