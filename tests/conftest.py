"""Общие фикстуры тестов Redline."""

import io

import pytest
from PIL import Image

try:
    import pymupdf
except ImportError:
    import fitz as pymupdf  # type: ignore


def make_pdf(pages=1, width=612, height=792, text=None):
    """Создаёт PDF в памяти; text — список (x, y_baseline, строка) для первой страницы."""
    doc = pymupdf.open()
    for i in range(pages):
        page = doc.new_page(width=width, height=height)
        if i == 0 and text:
            for x, y, s in text:
                page.insert_text((x, y), s, fontsize=12, fontname="helv")
    data = doc.tobytes()
    doc.close()
    return data


def make_png(width=20, height=10, color=(255, 0, 0, 255)):
    out = io.BytesIO()
    Image.new("RGBA", (width, height), color).save(out, format="PNG")
    return out.getvalue()


def render(data, page=1, zoom=1.0):
    """Отрисовывает страницу PDF в Pixmap (RGB, без альфы)."""
    doc = pymupdf.open(stream=data, filetype="pdf")
    try:
        return doc[page - 1].get_pixmap(matrix=pymupdf.Matrix(zoom, zoom), alpha=False)
    finally:
        doc.close()


@pytest.fixture
def blank_pdf():
    return make_pdf(pages=2)


@pytest.fixture
def text_pdf():
    return make_pdf(pages=1, text=[(72, 100, "Hello world"), (72, 200, "Second line")])
