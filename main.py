"""
Точка входа для Redline.

Применяет сохранённый ledger правок (JSON blob) к исходному PDF и
записывает результат.
"""

from __future__ import annotations
import argparse
import logging
import sys

from redline.core.exceptions import InvalidDocumentError
from redline.export.compositor import compose
from redline.processing.ledger import EditLedger
from redline.utils.metrics import init_metrics
from redline.utils.notices import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Применение правок Redline к PDF")
    parser.add_argument("input", help="Исходный PDF")
    parser.add_argument("ledger", help="Ledger правок (JSON blob)")
    parser.add_argument("-o", "--output", required=True, help="Путь итогового PDF")
    parser.add_argument("--migrate", action="store_true", help="Перенести устаревшие удаления")
    parser.add_argument("--metrics", action="store_true", help="Писать метрики в {output}.metrics.csv")
    return parser


def main(argv=None) -> int:
    """Главная функция запуска."""
    setup_logging()
    args = build_parser().parse_args(argv)

    try:
        with open(args.input, "rb") as f:
            original = f.read()
        with open(args.ledger, "rb") as f:
            ledger = EditLedger.from_blob(f.read())
    except (OSError, ValueError) as e:
        logging.error(f"Не удалось прочитать входные файлы: {e}")
        return 1

    if args.migrate:
        ledger.migrate_legacy_deletions()
    if args.metrics:
        logging.info(f"Метрики: {init_metrics(args.output)}")

    try:
        data = compose(original, ledger)
    except InvalidDocumentError as e:
        logging.error(f"Ошибка компоновки: {e}")
        return 1

    with open(args.output, "wb") as f:
        f.write(data)

    logging.info(f"Готово: {args.output} ({len(data)} байт)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
