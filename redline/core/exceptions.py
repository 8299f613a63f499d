"""
Кастомные исключения для Redline.

Этот модуль содержит специфичные для движка исключения и предупреждения.
"""


class RedlineError(Exception):
    """Базовое исключение для всех ошибок Redline."""

    pass


class InvalidDocumentError(RedlineError):
    """Исходные байты не являются корректным PDF документом."""

    pass


class EmbedFailure(RedlineError):
    """Не удалось встроить отдельный слой (растр или текст)."""

    pass


class StorageUnavailable(RedlineError):
    """Хранилище недоступно или вернуло ошибку."""

    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.status_code = status_code


class PageOutOfRangeWarning(UserWarning):
    """Ledger ссылается на страницу за пределами документа."""

    pass
