"""Diffs between two versions of an invoice, kept in its change history."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from roomledger.core.models import ItemType, LineItem

_ITEM_FIELDS = ("quantity", "unit_price", "amount", "label")


def item_key(item: LineItem) -> str:
    """
    Identifies an item across versions.

    Rent and service lines are unique per type, utility lines are keyed by
    their reading and other lines by label and description.
    """
    if item.type in (ItemType.RENT, ItemType.SERVICE):
        return f"{item.type.value}:{item.label}"
    if item.type in (ItemType.ELECTRIC, ItemType.WATER):
        return f"{item.type.value}:{item.reading_id or ''}"
    return f"other:{item.label}:{item.description or ''}"


def _compare(before: Any, after: Any) -> dict[str, Any] | None:
    if before == after or str(before) == str(after):
        return None
    return {"before": str(before), "after": str(after)}


def diff_items(
    old_items: Iterable[LineItem], new_items: Iterable[LineItem]
) -> dict[str, list[dict[str, Any]]]:
    old = {item_key(item): item for item in old_items}
    new = {item_key(item): item for item in new_items}

    updated = []
    for key in old.keys() & new.keys():
        changes = {}
        for field in _ITEM_FIELDS:
            change = _compare(getattr(old[key], field), getattr(new[key], field))
            if change:
                changes[field] = change
        if changes:
            updated.append({"key": key, "type": new[key].type.value, "changes": changes})

    return {
        "added": [new[k].model_dump(mode="json") for k in new.keys() - old.keys()],
        "removed": [old[k].model_dump(mode="json") for k in old.keys() - new.keys()],
        "updated": sorted(updated, key=lambda row: row["key"]),
    }


def diff_meta(
    before: Mapping[str, Any], after: Mapping[str, Any]
) -> dict[str, dict[str, Any]]:
    changes = {}
    for field, old_value in before.items():
        if field not in after:
            continue
        change = _compare(old_value, after[field])
        if change:
            changes[field] = change
    return changes


def is_empty(items_diff: Mapping[str, list], meta_diff: Mapping[str, Any]) -> bool:
    return not any(items_diff.values()) and not meta_diff
