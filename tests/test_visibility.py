"""Tests for the extracted-text overlay visibility."""

from dataclasses import fields

import pytest

from redline.core.models import TextInsertion, Tool
from redline.core.types import ToolKind
from redline.processing.ledger import EditLedger
from redline.processing.visibility import OverlayVisibility, overlay_visibility
from tests.conftest import make_png

TEXT = Tool(kind=ToolKind.TEXT)
PEN = Tool(kind=ToolKind.PEN)


def modified_ledger():
    ledger = EditLedger()
    ledger.upsert_insertion(
        TextInsertion(id="i", page=1, x=0, y=0, width=10, height=10, text="x", font_size=12, color="#000000")
    )
    return ledger


class TestOverlayVisibility:
    @pytest.mark.parametrize(
        "tool, complete, ledger, expected",
        [
            (TEXT, False, EditLedger(), OverlayVisibility(0.2, True)),
            (TEXT, False, modified_ledger(), OverlayVisibility(0.2, True)),
            (TEXT, True, EditLedger(), OverlayVisibility(0.05, True)),
            (TEXT, True, modified_ledger(), OverlayVisibility(0.0, False)),
            (PEN, True, EditLedger(), OverlayVisibility(1.0, True)),
            (PEN, False, modified_ledger(), OverlayVisibility(0.0, False)),
        ],
    )
    def test_derivation(self, tool, complete, ledger, expected):
        assert overlay_visibility(tool, complete, ledger, 1) == expected

    def test_freehand_alone_keeps_overlay(self):
        ledger = EditLedger()
        ledger.set_freehand(1, make_png())
        assert overlay_visibility(PEN, True, ledger, 1).visible

    def test_other_page_modifications_ignored(self):
        assert overlay_visibility(PEN, True, modified_ledger(), 2).visible

    def test_carries_only_opacity_and_visibility(self):
        assert [f.name for f in fields(OverlayVisibility)] == ["opacity", "visible"]
