"""Tests for invoice change diffs."""

import uuid
from decimal import Decimal

from roomledger.core import diff
from roomledger.core.models import ItemType, LineItem


def _item(item_type, label, amount, **kwargs):
    return LineItem(type=item_type, label=label, amount=Decimal(amount), **kwargs)


def test_diff_items_detects_added_removed_and_updated():
    reading_id = uuid.uuid4()
    old = [
        _item(ItemType.RENT, "Room rent", "3000000"),
        _item(ItemType.ELECTRIC, "Electricity", "175000", reading_id=reading_id),
        _item(ItemType.OTHER, "Repair", "50000", description="door"),
    ]
    new = [
        _item(ItemType.RENT, "Room rent", "2800000"),
        _item(ItemType.ELECTRIC, "Electricity", "175000.00", reading_id=reading_id),
        _item(ItemType.OTHER, "Cleaning", "30000"),
    ]

    result = diff.diff_items(old, new)

    assert [row["label"] for row in result["added"]] == ["Cleaning"]
    assert [row["label"] for row in result["removed"]] == ["Repair"]
    assert len(result["updated"]) == 1
    change = result["updated"][0]
    assert change["key"] == "rent:Room rent"
    assert change["changes"]["amount"] == {"before": "3000000", "after": "2800000"}


def test_diff_meta_and_is_empty():
    meta = diff.diff_meta(
        {"discount_amount": Decimal("0"), "note": None},
        {"discount_amount": Decimal("100"), "note": None},
    )
    assert meta == {"discount_amount": {"before": "0", "after": "100"}}
    assert not diff.is_empty({"added": [], "removed": [], "updated": []}, meta)
    assert diff.is_empty({"added": [], "removed": [], "updated": []}, {})
