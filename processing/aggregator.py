"""
Item aggregation across invoices.

Line items from every invoice of a run are merged into one entry per product
(see MergeKey), then bucketed by Schedule B code and US / Non-US origin.
"""

import logging
from typing import Dict, List, Iterable, Sequence

from .models import (
    LineItem, MergedItem, MergeKey, GroupKey,
    US_BUCKET, NON_US_BUCKET, UNKNOWN_SCHEDULE
)


logger = logging.getLogger(__name__)


def merge_line_items(item_lists: Iterable[Sequence[LineItem]]) -> List[MergedItem]:
    """
    Merge identical products across all invoices.

    Quantity and total price are summed; descriptive fields keep the values
    of the first line item seen. Output order is first-seen order.
    """
    merged: Dict[MergeKey, MergedItem] = {}
    line_count = 0

    for items in item_lists:
        for item in items:
            line_count += 1
            key = item.merge_key()
            existing = merged.get(key)
            if existing is None:
                merged[key] = MergedItem.from_line_item(item)
            else:
                existing.quantity += item.quantity
                existing.total_price += item.total_price
                existing.source_count += 1

    logger.info(f"Merged {line_count} line items into {len(merged)} products")
    return list(merged.values())


def group_merged_items(merged: Iterable[MergedItem]) -> Dict[GroupKey, List[MergedItem]]:
    """
    Bucket merged items by (schedule code, origin bucket).

    Items without a schedule code are grouped under UNKNOWN. Every item lands
    in exactly one group.
    """
    groups: Dict[GroupKey, List[MergedItem]] = {}
    for item in merged:
        schedule = item.schedule_code or UNKNOWN_SCHEDULE
        groups.setdefault((schedule, item.origin_bucket), []).append(item)

    logger.debug(f"Built {len(groups)} schedule/origin groups")
    return groups


def ordered_group_keys(groups: Dict[GroupKey, List[MergedItem]]) -> List[GroupKey]:
    """Document order: all US groups, then all Non-US groups, each by schedule code."""
    us_keys = sorted(key for key in groups if key[1] == US_BUCKET)
    foreign_keys = sorted(key for key in groups if key[1] == NON_US_BUCKET)
    return us_keys + foreign_keys


class ItemAggregator:
    """Merge then group the line items of one run."""

    def merge(self, item_lists: Iterable[Sequence[LineItem]]) -> List[MergedItem]:
        return merge_line_items(item_lists)

    def group(self, merged: Iterable[MergedItem]) -> Dict[GroupKey, List[MergedItem]]:
        return group_merged_items(merged)

    def aggregate(self, item_lists: Iterable[Sequence[LineItem]]) -> Dict[GroupKey, List[MergedItem]]:
        return self.group(self.merge(item_lists))
