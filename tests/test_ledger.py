import pytest

from shopadmin.models.draft import DraftError, ProductDraft, Scope, parse_tags
from shopadmin.models.image import ImageRef, LocalFile
from shopadmin.models.ledger import ImageLedger, LedgerError


def _images():
    return [
        ImageRef(url="https://cdn/a.jpg", position=0, identifier="img-a"),
        ImageRef(url="https://cdn/b.jpg", position=1, identifier="img-b"),
        ImageRef(url="https://cdn/c.jpg", position=2, identifier="img-c"),
    ]


@pytest.mark.parametrize("index", [0, 1, 2])
def test_delete_then_undo_restores_images(index):
    ledger = ImageLedger(_images())
    before = [img.url for img in ledger.images]

    pending = ledger.mark_for_deletion(index)
    assert pending is not None
    assert len(ledger.images) == 2
    assert ledger.deletions == [pending]

    restored = ledger.undo_deletion(0)
    assert restored.url == pending.url
    assert [img.url for img in ledger.images] == before
    assert ledger.deletions == []


def test_undo_in_any_order_restores_original_order():
    ledger = ImageLedger(_images())
    ledger.mark_for_deletion(2)
    ledger.mark_for_deletion(0)
    ledger.undo_deletion(1)
    assert [img.url for img in ledger.images] == ["https://cdn/a.jpg", "https://cdn/b.jpg"]
    ledger.undo_deletion(0)
    assert [img.url for img in ledger.images] == ["https://cdn/a.jpg", "https://cdn/b.jpg", "https://cdn/c.jpg"]


def test_deleting_unpersisted_image_records_nothing():
    ledger = ImageLedger([ImageRef(url="blob:local")])
    assert ledger.mark_for_deletion(0) is None
    assert ledger.images == []
    assert ledger.deletions == []


def test_undo_without_original_returns_none():
    ledger = ImageLedger(_images())
    ledger.mark_for_deletion(1)
    ledger.originals = []
    assert ledger.undo_deletion(0) is None
    assert ledger.deletions == []
    assert len(ledger.images) == 2


def test_cancel_upload_removes_only_that_entry():
    ledger = ImageLedger()
    ledger.mark_for_upload(LocalFile("one.png", b"1"))
    ledger.mark_for_upload(LocalFile("two.png", b"22"), alt_text="second")
    removed = ledger.cancel_upload(0)
    assert removed.file.filename == "one.png"
    assert [p.file.filename for p in ledger.uploads] == ["two.png"]
    assert ledger.uploads[0].alt_text == "second"


@pytest.mark.parametrize("op", ["mark_for_deletion", "cancel_upload", "undo_deletion"])
def test_bad_index_raises(op):
    ledger = ImageLedger(_images())
    with pytest.raises(LedgerError):
        getattr(ledger, op)(5)
    with pytest.raises(LedgerError):
        getattr(ledger, op)(-1)


def test_clear_pending_keeps_accepted_images():
    ledger = ImageLedger(_images())
    ledger.mark_for_deletion(0)
    ledger.mark_for_upload(LocalFile("x.png", b"x"))
    assert ledger.has_pending
    ledger.clear_pending()
    assert not ledger.has_pending
    assert len(ledger.images) == 2


def test_parse_tags():
    assert parse_tags(" summer, , sale,summer ,new ") == ["summer", "sale", "new"]
    assert parse_tags("") == []


def test_new_draft_starts_with_one_variant():
    draft = ProductDraft()
    assert len(draft.variants) == 1
    with pytest.raises(DraftError):
        draft.remove_variant(0)


def test_draft_from_server_splits_product_and_variant_images():
    draft = ProductDraft.from_server(
        {
            "uuid": "p1",
            "title": "Mug",
            "status": "active",
            "tags": ["kitchen", "gift"],
            "images": [
                {"uuid": "i1", "url": "https://cdn/1.jpg", "position": 0},
                {"uuid": "i2", "url": "https://cdn/2.jpg", "position": 1, "variant_id": "v1"},
            ],
            "variants": [
                {
                    "uuid": "v1",
                    "title": "Blue",
                    "sku": "MUG-B",
                    "inventory_quantity": 4,
                    "images": [{"uuid": "i2", "url": "https://cdn/2.jpg", "position": 0}],
                }
            ],
        }
    )
    assert draft.identifier == "p1"
    assert draft.tags_input == "kitchen, gift"
    assert [img.identifier for img in draft.images] == ["i1"]
    assert draft.variants[0].available == 4
    assert draft.ledger_for(Scope.variant(0)).images[0].identifier == "i2"
    with pytest.raises(LedgerError):
        draft.ledger_for(Scope.variant(3))
