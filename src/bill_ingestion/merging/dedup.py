"""Group same-meter (or same-address) items and merge them into one record."""
from __future__ import annotations

import structlog

from ..models.confidence import (
    DEFAULT_AUTO_APPROVE_THRESHOLD,
    completeness_score,
    evaluate_confidence,
)
from ..models.items import ITEM_FIELDS, ExtractedItem, MergedItem, Vendor, is_present
from ..normalization.address import normalize_address
from ..normalization.values import normalize_meter
from ..utils.hashing import compute_string_hash

logger = structlog.get_logger(__name__)


def group_key(item: ExtractedItem) -> str | None:
    """``M::<meter>`` when a meter id is present, else ``A::<address>``.

    Items with neither have no key and are never merged with anything.
    """
    meter = normalize_meter(item.meter_no)
    if meter:
        return f"M::{meter}"
    address = normalize_address(item.service_address)
    if address:
        return f"A::{address}"
    return None


def merge_two(a: ExtractedItem, b: ExtractedItem) -> ExtractedItem:
    """Field-wise merge taking *a*'s value when present, else *b*'s."""
    update = {}
    for name in ITEM_FIELDS:
        av = getattr(a, name)
        update[name] = av if is_present(av) else getattr(b, name)
    update["hints"] = [*a.hints, *b.hints]
    update["source_file"] = a.source_file or b.source_file
    update["vendor"] = a.vendor if a.vendor != Vendor.UNKNOWN else b.vendor
    return a.model_copy(update=update)


def _rank_key(item: ExtractedItem) -> tuple[int, str, tuple[str, ...]]:
    # Most complete first; equal completeness falls back to a canonical
    # serialisation so input order never decides the result.
    return (-completeness_score(item), compute_string_hash(item.canonical_key()), tuple(item.hints))


def merge_group(group: list[ExtractedItem]) -> ExtractedItem:
    ranked = sorted(group, key=_rank_key)
    acc = ranked[0]
    for other in ranked[1:]:
        acc = merge_two(acc, other)
    return acc


def dedupe_and_merge(
    items: list[ExtractedItem],
    threshold: int = DEFAULT_AUTO_APPROVE_THRESHOLD,
) -> list[MergedItem]:
    """Merge items sharing a group key and score every resulting record.

    Groups are emitted in first-seen order. Items are expected to be
    normalized already; nothing is rescaled here.
    """
    buckets: dict[str, list[ExtractedItem]] = {}
    order: list[str | int] = []
    singles: dict[int, ExtractedItem] = {}
    for i, item in enumerate(items):
        key = group_key(item)
        if key is None:
            singles[i] = item
            order.append(i)
            continue
        if key not in buckets:
            buckets[key] = []
            order.append(key)
        buckets[key].append(item)

    merged: list[MergedItem] = []
    for key in order:
        if isinstance(key, int):
            base = singles[key]
            size = getattr(base, "merged_from", 1)
        else:
            base = merge_group(buckets[key])
            size = sum(getattr(it, "merged_from", 1) for it in buckets[key])
        result = evaluate_confidence(base, threshold)
        merged.append(MergedItem(
            **base.model_dump(include=set(ExtractedItem.model_fields)),
            merged_from=size,
            confidence=result.score,
            auto_approved=result.auto_approved,
        ))

    logger.info("items_merged", received=len(items), merged=len(merged))
    return merged
