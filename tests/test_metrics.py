"""Tests for export metrics."""

import csv

from redline.core import config
from redline.export.compositor import compose
from redline.processing.ledger import EditLedger
from redline.core.models import TextInsertion
from redline.utils.metrics import METRICS_HEADER, Timer, disable_metrics, init_metrics, log_metric


class TestMetrics:
    def test_disabled_by_default(self, tmp_path):
        disable_metrics()
        log_metric("plan", duration_ms=1)
        assert config.METRICS_PATH is None

    def test_init_writes_header(self, tmp_path):
        path = init_metrics(str(tmp_path / "out.pdf"))
        try:
            assert path.endswith("out.metrics.csv")
            with open(path, newline="", encoding="utf-8") as f:
                assert next(csv.reader(f)) == METRICS_HEADER
        finally:
            disable_metrics()

    def test_compose_logs_stages(self, tmp_path, blank_pdf):
        path = init_metrics(str(tmp_path / "out.pdf"))
        ledger = EditLedger()
        ledger.upsert_insertion(
            TextInsertion(id="i", page=1, x=10, y=10, width=100, height=30, text="Hi", font_size=12, color="#000000")
        )
        try:
            compose(blank_pdf, ledger)
        finally:
            disable_metrics()
        with open(path, newline="", encoding="utf-8") as f:
            stages = [row[1] for row in csv.reader(f)][1:]
        assert stages == ["plan", "page", "save"]

    def test_timer_non_negative(self):
        assert Timer().ms() >= 0
