"""Tests for glyph-run grouping and page extraction."""

import asyncio

import pytest

from redline.core.models import Bounds, GlyphRun
from redline.processing.extraction import PyMuPDFRenderingSurface, extract_page, group_glyph_runs
from redline.core.exceptions import InvalidDocumentError


def run(text, left, top, right, bottom, size=24.0, family="Helvetica"):
    return GlyphRun(text=text, left=left, top=top, right=right, bottom=bottom, font_size=size, font_family=family)


class FakeSurface:
    page_count = 1

    def __init__(self, runs):
        self.runs = runs
        self.calls = []

    def page_size(self, page_number):
        return (612.0, 792.0)

    def glyph_runs(self, page_number, scale, rotation):
        self.calls.append((page_number, scale, rotation))
        return self.runs

    def render_page(self, page_number, scale, rotation):
        return b""


class TestGrouping:
    def test_adjacent_runs_merge(self):
        runs = [run("Hello ", 10, 10, 60, 24), run("world", 65, 11, 110, 25)]
        items = group_glyph_runs(runs, page=1, scale=1.0)
        assert len(items) == 1
        assert items[0].text == "Hello world"
        assert items[0].bounds == Bounds(10, 10, 100, 15)

    def test_gap_splits_groups(self):
        runs = [run("A", 10, 10, 20, 20), run("B", 31, 10, 40, 20)]
        assert [i.text for i in group_glyph_runs(runs, 1, 1.0)] == ["A", "B"]

    def test_vertical_tolerance_splits_lines(self):
        runs = [run("Top", 10, 10, 40, 20), run("Low", 42, 16, 70, 26)]
        assert len(group_glyph_runs(runs, 1, 1.0)) == 2

    def test_merge_only_with_previous_group(self):
        runs = [run("A", 10, 10, 20, 20), run("B", 10, 100, 20, 110), run("C", 22, 10, 30, 20)]
        assert [i.text for i in group_glyph_runs(runs, 1, 1.0)] == ["A", "B", "C"]

    def test_discards_empty_runs(self):
        runs = [run("   ", 0, 0, 10, 10), run("x", 5, 5, 5, 15), run("ok", 0, 0, 10, 10)]
        assert [i.text for i in group_glyph_runs(runs, 1, 1.0)] == ["ok"]

    def test_converts_to_document_units(self):
        items = group_glyph_runs([run("Scaled", 20, 40, 120, 64, size=24)], 3, scale=2.0)
        item = items[0]
        assert item.page == 3
        assert item.bounds == Bounds(10, 20, 50, 12)
        assert item.font_size == 12

    def test_missing_font_size_defaults(self):
        items = group_glyph_runs([run("x", 0, 0, 10, 10, size=0, family="")], 1, 1.0)
        assert items[0].font_size == 12.0
        assert items[0].font_family == "Helvetica"

    def test_deterministic(self):
        runs = [run("a", 0, 0, 10, 10), run("b", 12, 0, 20, 10), run("c", 0, 50, 10, 60)]
        first = group_glyph_runs(runs, 1, 1.5)
        second = group_glyph_runs(runs, 1, 1.5)
        assert [(i.text, i.bounds) for i in first] == [(i.text, i.bounds) for i in second]

    def test_no_runs(self):
        assert group_glyph_runs([], 1, 1.0) == []


class TestExtractPage:
    def test_reads_runs_after_delay(self):
        surface = FakeSurface([run("Hi", 0, 0, 20, 10)])
        items = asyncio.run(extract_page(surface, 1, 1.0, 90, settle_delay=0))
        assert [i.text for i in items] == ["Hi"]
        assert surface.calls == [(1, 1.0, 90)]

    def test_empty_page_gives_empty_list(self):
        assert asyncio.run(extract_page(FakeSurface([]), 1, 1.0, settle_delay=0)) == []


class TestPyMuPDFSurface:
    def test_glyph_runs_scaled(self, text_pdf):
        surface = PyMuPDFRenderingSurface(text_pdf)
        try:
            base = surface.glyph_runs(1, 1.0)
            scaled = surface.glyph_runs(1, 2.0)
        finally:
            surface.close()
        assert any("Hello" in r.text for r in base)
        assert scaled[0].left == pytest.approx(base[0].left * 2)
        assert scaled[0].font_size == pytest.approx(base[0].font_size * 2)

    def test_items_in_document_units(self, text_pdf):
        surface = PyMuPDFRenderingSurface(text_pdf)
        try:
            at_1 = group_glyph_runs(surface.glyph_runs(1, 1.0), 1, 1.0)
            at_2 = group_glyph_runs(surface.glyph_runs(1, 2.0), 1, 2.0)
        finally:
            surface.close()
        assert [i.text for i in at_1] == ["Hello world", "Second line"]
        assert at_1[0].bounds.x == pytest.approx(at_2[0].bounds.x)
        assert at_1[0].font_size == pytest.approx(12)

    def test_render_page_png(self, text_pdf):
        surface = PyMuPDFRenderingSurface(text_pdf)
        try:
            data = surface.render_page(1, 1.0, 90)
        finally:
            surface.close()
        assert data.startswith(b"\x89PNG")

    def test_invalid_bytes(self):
        with pytest.raises(InvalidDocumentError):
            PyMuPDFRenderingSurface(b"garbage")
