"""Tests for coordinate mapping and rectangle helpers."""

import pytest

from redline.core.models import Bounds
from redline.utils.geometry import (
    clamp_point,
    clamp_scale,
    contains,
    flip_rect_y,
    flip_text_baseline,
    inflate,
    rotate,
    to_display,
    to_document,
    union,
    zoom_in,
    zoom_out,
)


class TestScale:
    def test_clamp_scale_bounds(self):
        assert clamp_scale(0.1) == 0.5
        assert clamp_scale(5) == 3.0
        assert clamp_scale(1.3) == 1.3

    def test_zoom_steps(self):
        assert zoom_in(1.0) == 1.2
        assert zoom_out(1.0) == 0.8

    def test_zoom_clamped(self):
        assert zoom_in(3.0) == 3.0
        assert zoom_out(0.5) == 0.5
        assert zoom_in(2.9) == 3.0

    def test_rotate_wraps(self):
        assert rotate(0) == 90
        assert rotate(270) == 0


class TestMapping:
    def test_to_document_divides_by_scale(self):
        assert to_document(200, 100, 2.0) == (100, 50)

    def test_round_trip(self):
        dx, dy = to_document(*to_display(37.5, 12.25, 1.4), 1.4)
        assert dx == pytest.approx(37.5)
        assert dy == pytest.approx(12.25)

    def test_clamp_point_non_negative(self):
        assert clamp_point(-3, 4) == (0.0, 4)
        assert clamp_point(5, -1) == (5, 0.0)


class TestRects:
    def test_inflate(self):
        assert inflate(Bounds(10, 10, 20, 5), 3) == Bounds(7, 7, 26, 11)

    def test_union(self):
        u = union([Bounds(0, 0, 10, 10), Bounds(20, 5, 5, 20)])
        assert u == Bounds(0, 0, 25, 25)

    def test_union_empty_raises(self):
        with pytest.raises(ValueError):
            union([])

    def test_contains_inclusive(self):
        b = Bounds(0, 0, 10, 10)
        assert contains(b, 10, 10)
        assert not contains(b, 10.1, 5)

    def test_flip_rect_y(self):
        assert flip_rect_y(Bounds(100, 200, 80, 20), 792) == Bounds(100, 572, 80, 20)

    def test_flip_text_baseline(self):
        assert flip_text_baseline(50, 16, 792) == 792 - 50 - 16
        assert flip_text_baseline(200, 16, 792, 2) == 792 - 200 - 16 + 2
