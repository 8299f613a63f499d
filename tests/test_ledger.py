"""Tests for the edit ledger."""

import pytest

from redline.core.models import (
    Bounds,
    ExtractedTextItem,
    TextDeletion,
    TextInsertion,
    TextReplacement,
)
from redline.processing.ledger import EditLedger, expand_for_deletion
from tests.conftest import make_png


def insertion(id="i1", page=1, text="Hello", x=50, y=50):
    return TextInsertion(id=id, page=page, x=x, y=y, width=200, height=30, text=text, font_size=16, color="#000000")


def replacement(id="r1", page=1, new_text="New"):
    return TextReplacement(
        id=id,
        page=page,
        bounds=Bounds(100, 200, 80, 20),
        original_text="Old",
        new_text=new_text,
        font_size=16,
        font_color="#000000",
    )


def item(id="t1", page=1, bounds=Bounds(10, 10, 50, 12)):
    return ExtractedTextItem(id=id, page=page, text="Sample", bounds=bounds, font_size=12, font_family="Helvetica")


class TestExpandForDeletion:
    def test_asymmetric_padding(self):
        assert expand_for_deletion(Bounds(10, 10, 50, 12)) == Bounds(6, 7, 58, 20)

    def test_clamped_at_origin(self):
        b = expand_for_deletion(Bounds(1, 2, 10, 30))
        assert (b.x, b.y) == (0.0, 0.0)
        assert b.height == 36


class TestInsertions:
    def test_blank_text_discarded(self):
        ledger = EditLedger()
        assert ledger.upsert_insertion(insertion(text="   ")) is None
        assert ledger.insertions(1) == []
        assert not ledger.has_pending_changes()

    def test_upsert_replaces_by_id(self):
        ledger = EditLedger()
        ledger.upsert_insertion(insertion(text="a"))
        ledger.upsert_insertion(insertion(text="b"))
        assert [i.text for i in ledger.insertions(1)] == ["b"]

    def test_blank_update_removes_existing(self):
        ledger = EditLedger()
        ledger.upsert_insertion(insertion(text="a"))
        ledger.upsert_insertion(insertion(text=""))
        assert ledger.insertions(1) == []
        assert ledger.pages() == []

    def test_move_clamps_at_zero(self):
        ledger = EditLedger()
        ledger.upsert_insertion(insertion())
        ledger.move_insertion(1, "i1", -20, 30)
        moved = ledger.insertion(1, "i1")
        assert (moved.x, moved.y) == (0.0, 30)

    def test_unknown_id_is_noop(self):
        ledger = EditLedger()
        ledger.delete_insertion(3, "missing")
        ledger.move_insertion(3, "missing", 1, 1)
        assert not ledger.has_pending_changes()


class TestExtractedItems:
    def test_mark_deleted_expands_bounds(self):
        ledger = EditLedger()
        ledger.set_extracted_items(1, [item()])
        ledger.mark_deleted(1, "t1")
        deleted = ledger.extracted_item(1, "t1")
        assert deleted.is_deleted
        assert deleted.bounds == Bounds(6, 7, 58, 20)

    def test_mark_deleted_idempotent(self):
        ledger = EditLedger()
        ledger.set_extracted_items(1, [item()])
        ledger.mark_deleted(1, "t1")
        first = ledger.extracted_item(1, "t1")
        ledger.mark_deleted(1, "t1")
        assert ledger.extracted_item(1, "t1") == first

    def test_restore_resets_flags_and_bounds(self):
        ledger = EditLedger()
        ledger.set_extracted_items(1, [item()])
        ledger.mark_deleted(1, "t1")
        ledger.restore(1, "t1")
        restored = ledger.extracted_item(1, "t1")
        assert not restored.is_deleted and not restored.is_edited
        assert restored.edited_text is None
        assert restored.bounds == Bounds(10, 10, 50, 12)
        assert not ledger.has_pending_changes()

    def test_mark_edited_after_delete_uses_source_bounds(self):
        ledger = EditLedger()
        ledger.set_extracted_items(1, [item()])
        ledger.mark_deleted(1, "t1")
        ledger.mark_edited(1, "t1", "Changed")
        edited = ledger.extracted_item(1, "t1")
        assert edited.is_edited and not edited.is_deleted
        assert edited.edited_text == "Changed"
        assert edited.bounds == Bounds(10, 10, 50, 12)

    def test_mark_edited_blank_ignored(self):
        ledger = EditLedger()
        ledger.set_extracted_items(1, [item()])
        ledger.mark_edited(1, "t1", "  ")
        assert not ledger.extracted_item(1, "t1").is_edited

    def test_unmodified_items_are_not_changes(self):
        ledger = EditLedger()
        ledger.set_extracted_items(2, [item(page=2)])
        assert ledger.has_extracted_items(2)
        assert not ledger.has_pending_changes()
        assert ledger.pages() == []


class TestPendingChanges:
    @pytest.mark.parametrize(
        "mutate",
        [
            lambda l: l.set_freehand(1, make_png()),
            lambda l: l.upsert_insertion(insertion()),
            lambda l: l.upsert_replacement(replacement()),
            lambda l: l.add_deletion(TextDeletion(id="d1", page=1, bounds=Bounds(0, 0, 5, 5))),
        ],
    )
    def test_each_source_counts(self, mutate):
        ledger = EditLedger()
        mutate(ledger)
        assert ledger.has_pending_changes()
        assert ledger.pages() == [1]

    def test_removal_clears_page_key(self):
        ledger = EditLedger()
        ledger.upsert_replacement(replacement())
        ledger.delete_replacement(1, "r1")
        assert not ledger.has_pending_changes()

    def test_text_modifications_exclude_freehand(self):
        ledger = EditLedger()
        ledger.set_freehand(1, make_png())
        assert ledger.page_has_changes(1)
        assert not ledger.page_has_text_modifications(1)


class TestBulkOperations:
    def test_clear_page_restores_items(self):
        ledger = EditLedger()
        ledger.set_extracted_items(1, [item()])
        ledger.mark_deleted(1, "t1")
        ledger.upsert_insertion(insertion())
        ledger.set_freehand(1, make_png())
        ledger.clear_page(1)
        assert not ledger.has_pending_changes()
        assert ledger.extracted_items(1)[0].bounds == Bounds(10, 10, 50, 12)

    def test_clear_all(self):
        ledger = EditLedger()
        ledger.upsert_insertion(insertion(page=1))
        ledger.upsert_replacement(replacement(page=3))
        ledger.clear_all()
        assert not ledger.has_pending_changes()

    def test_snapshot_is_independent(self):
        ledger = EditLedger()
        ledger.upsert_insertion(insertion())
        snap = ledger.snapshot()
        ledger.delete_insertion(1, "i1")
        assert len(snap.insertions(1)) == 1


class TestLegacyDeletions:
    def test_migrate_folds_into_items(self):
        ledger = EditLedger()
        ledger.add_deletion(TextDeletion(id="d1", page=2, bounds=Bounds(6, 7, 58, 20), deleted_text="x"))
        assert ledger.migrate_legacy_deletions() == 1
        assert ledger.deletions(2) == []
        migrated = ledger.extracted_item(2, "d1")
        assert migrated.is_deleted
        assert migrated.bounds == Bounds(6, 7, 58, 20)
        assert ledger.pages() == [2]


class TestBlob:
    def test_round_trip_preserves_state(self):
        ledger = EditLedger()
        png = make_png()
        ledger.set_freehand(2, png)
        ledger.upsert_insertion(insertion())
        ledger.upsert_replacement(replacement())
        ledger.set_extracted_items(1, [item()])
        ledger.mark_deleted(1, "t1")

        restored = EditLedger.from_blob(ledger.to_blob())
        assert restored.freehand(2) == png
        assert restored.insertions(1) == ledger.insertions(1)
        assert restored.replacements(1) == ledger.replacements(1)
        assert restored.extracted_item(1, "t1") == ledger.extracted_item(1, "t1")

    def test_invalid_blob_raises(self):
        with pytest.raises(ValueError):
            EditLedger.from_blob(b"not json")
        with pytest.raises(ValueError):
            EditLedger.from_blob(b'{"version": 99}')

    @pytest.mark.parametrize(
        "payload",
        [
            b'{"version": 1, "insertions": [{"id": "x"}]}',
            b'{"version": 1, "replacements": [{"id": "r", "page": 1}]}',
            b'{"version": 1, "items": [{"id": "t", "page": 1, "text": "a", "extra": 1}]}',
        ],
    )
    def test_malformed_entities_raise_value_error(self, payload):
        with pytest.raises(ValueError):
            EditLedger.from_blob(payload)
