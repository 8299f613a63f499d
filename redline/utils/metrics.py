"""
Метрики экспорта.

Замеры времени компоновки страниц пишутся в CSV рядом с выходным файлом,
если метрики включены через init_metrics().
"""

from __future__ import annotations
import csv
import os
import time
from typing import Optional

from redline.core import config

METRICS_HEADER = ["ts", "stage", "page", "duration_ms", "ops", "size_bytes", "info"]


class Timer:
    """
    Таймер для замера длительности этапа.

    Example:
        timer = Timer()
        # ... компоновка страницы ...
        log_metric("page", page=3, duration_ms=timer.ms())
    """

    def __init__(self) -> None:
        self.t0 = time.perf_counter()

    def ms(self) -> int:
        return int((time.perf_counter() - self.t0) * 1000)


def init_metrics(out_pdf: str) -> str:
    """
    Включает запись метрик для экспорта в out_pdf.

    Создаёт файл {base}.metrics.csv и записывает заголовок.

    Args:
        out_pdf: Путь к выходному PDF

    Returns:
        Путь к файлу метрик
    """
    base, _ = os.path.splitext(out_pdf)
    config.METRICS_PATH = f"{base}.metrics.csv"

    with open(config.METRICS_PATH, "w", newline="", encoding="utf-8") as f:
        csv.writer(f).writerow(METRICS_HEADER)

    return config.METRICS_PATH


def disable_metrics() -> None:
    """Выключает запись метрик."""
    config.METRICS_PATH = None


def log_metric(
    stage: str,
    page: Optional[int] = None,
    duration_ms: Optional[int] = None,
    ops: Optional[int] = None,
    size_bytes: Optional[int] = None,
    info: str = "",
) -> None:
    """
    Дописывает строку метрики, если метрики включены.

    Args:
        stage: Этап ("plan", "page", "save")
        page: Номер страницы
        duration_ms: Длительность в миллисекундах
        ops: Количество операций отрисовки
        size_bytes: Размер результата в байтах
        info: Дополнительная информация
    """
    if not config.METRICS_PATH:
        return

    row = [
        time.strftime("%Y-%m-%d %H:%M:%S"),
        stage,
        "" if page is None else page,
        "" if duration_ms is None else duration_ms,
        "" if ops is None else ops,
        "" if size_bytes is None else size_bytes,
        info,
    ]
    with open(config.METRICS_PATH, "a", newline="", encoding="utf-8") as f:
        csv.writer(f).writerow(row)
