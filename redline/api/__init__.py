"""
Модуль api: клиенты внешних сервисов.
"""

from redline.api.base import get_http_session
from redline.api.storage import SupabaseStorage

__all__ = [
    # Base
    "get_http_session",
    # Storage
    "SupabaseStorage",
]
