#!/usr/bin/env python3
"""
HEALCTL PROGRESS AGGREGATOR
---------------------------
Folds batches of per-item heal results into an AggregateState.

Each item costs O(1) and nothing about it is kept afterwards, so a heal run
over billions of objects uses the same memory as one over ten. The fold is
commutative: batches folded in any order give the same totals.

Author: HealCtl Team
Date: 2026-10-18
"""

from typing import Iterable, Optional

from healctl.core.models import ItemResult
from healctl.healing.context import AggregateState, HEALTH_CLASSES, UNKNOWN_HEALTH


def classify_health(online_drives: int, data_blocks: int, parity_blocks: int) -> str:
    """
    Maps a post-heal drive count onto a health class.

    surplus = online - data is how many more drives could be lost before the
    object becomes unreadable. All parity left is green, none left is red,
    fewer online drives than data blocks is black (lost).
    """
    if data_blocks < 1 or parity_blocks < 1 or online_drives < 0:
        return UNKNOWN_HEALTH
    surplus = online_drives - data_blocks
    if surplus > parity_blocks:
        # More copies than the layout allows for: the counts are inconsistent
        return UNKNOWN_HEALTH
    if surplus < 0:
        return "black"
    if surplus == parity_blocks:
        return "green"
    if surplus == 0:
        return "red"
    if surplus * 2 >= parity_blocks:
        return "yellow"
    return "red"


def normalize_class(label: Optional[str]) -> str:
    """
    Known classes are case-folded. Any other non-empty label is counted under
    its own name; a missing, empty or non-string label lands in 'unknown'.
    """
    if not isinstance(label, str) or not label.strip():
        return UNKNOWN_HEALTH
    label = label.strip()
    folded = label.lower()
    return folded if folded in HEALTH_CLASSES else label


def fold_item(state: AggregateState, item: ItemResult) -> None:
    state.items_scanned += 1
    size = item.object_size if isinstance(item.object_size, int) and item.object_size > 0 else 0
    state.bytes_scanned += size

    if item.success:
        drives = item.online_drive_count
        state.objects_by_online_drives[drives] = state.objects_by_online_drives.get(drives, 0) + 1
    else:
        state.items_failed += 1

    health = normalize_class(item.classification)
    state.items_by_health[health] = state.items_by_health.get(health, 0) + 1
    state.last_item = item.name


def fold(state: AggregateState, batch: Iterable[ItemResult]) -> AggregateState:
    """Folds every item of the batch into state and returns it."""
    for item in batch:
        fold_item(state, item)
    return state


class ProgressAggregator:
    """
    Owns the AggregateState of one poll loop.
    """

    def __init__(self, state: Optional[AggregateState] = None):
        self.state = state if state is not None else AggregateState()
        self.batches_folded = 0

    def fold(self, batch: Iterable[ItemResult]) -> AggregateState:
        fold(self.state, batch)
        self.batches_folded += 1
        return self.state
