"""
Настройка логирования и передача уведомлений во внешний UI.
"""

from __future__ import annotations
import logging
import sys
from typing import Callable

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: int = logging.INFO) -> None:
    """Настройка логирования."""
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )


class NoticeHandler(logging.Handler):
    """
    Logging handler that forwards warnings and errors to a UI callback.

    Внешний UI получает терминальные уведомления (ошибка экспорта,
    недоступное хранилище) без прямой зависимости движка от UI.
    """

    def __init__(self, notify: Callable[[str, str], None], level: int = logging.WARNING):
        """
        Инициализация handler.

        Args:
            notify: Функция notify(level_name, message)
            level: Минимальный уровень пересылаемых записей
        """
        super().__init__(level)
        self.notify = notify

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.notify(record.levelname, self.format(record))
        except Exception:
            self.handleError(record)


def attach_notices(notify: Callable[[str, str], None]) -> NoticeHandler:
    """Подключает NoticeHandler к корневому логгеру и возвращает его."""
    handler = NoticeHandler(notify)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logging.getLogger().addHandler(handler)
    return handler


def detach_notices(handler: NoticeHandler) -> None:
    """Отключает ранее подключённый NoticeHandler."""
    logging.getLogger().removeHandler(handler)
