#!/usr/bin/env python3
"""
HEALCTL DECODER - Reading the Server's Replies
----------------------------------------------
Turns the admin API's JSON bodies into model objects. The decoder is lenient
with per-item data: a field it cannot make sense of becomes a
neutral default, so one odd item never aborts a heal run.

Author: HealCtl Team
Date: 2026-10-18
"""

import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from healctl.core.models import BackgroundSummary, ItemResult, SequenceHandle, SequenceStatus
from healctl.healing.aggregator import classify_health

# Go trims trailing zeros and emits up to nanoseconds; fromisoformat wants exactly six digits
_FRACTION = re.compile(r"\.(\d+)")
_GO_ZERO_YEAR = 1


def parse_timestamp(value: Any) -> Optional[datetime]:
    if not isinstance(value, str) or not value:
        return None
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), value.strip(), count=1)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        stamp = datetime.fromisoformat(text)
    except ValueError:
        return None
    if stamp.year == _GO_ZERO_YEAR:
        return None
    if stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=timezone.utc)
    return stamp


def _as_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _drives(section: Any) -> Optional[List[Dict[str, Any]]]:
    if not isinstance(section, dict):
        return None
    drives = section.get("drives")
    return drives if isinstance(drives, list) else None


def decode_item(raw: Any, index: int = 0) -> ItemResult:
    """
    One HealResultItem. An item succeeded when the server reported the drive
    states after healing and no error; its online drive count is the number
    of those drives in state 'ok'.
    """
    if not isinstance(raw, dict):
        return ItemResult(index=index, item_type="unknown", success=False, classification="unknown")

    after = _drives(raw.get("after"))
    error = str(raw.get("error") or "")
    online = sum(1 for d in after if isinstance(d, dict) and d.get("state") == "ok") if after else 0
    success = after is not None and not error

    label = raw.get("health") or raw.get("color")
    if not label:
        if success:
            label = classify_health(online, _as_int(raw.get("dataBlocks")), _as_int(raw.get("parityBlocks")))
        else:
            label = "unknown"

    return ItemResult(
        index=_as_int(raw.get("resultId"), index),
        item_type=str(raw.get("type") or "object"),
        bucket=str(raw.get("bucket") or ""),
        object=str(raw.get("object") or ""),
        success=success,
        classification=str(label),
        online_drive_count=online,
        object_size=max(_as_int(raw.get("objectSize")), 0),
        detail=error or str(raw.get("detail") or ""),
    )


def decode_start(raw: Dict[str, Any]) -> SequenceHandle:
    return SequenceHandle(
        client_token=str(raw.get("clientToken") or ""),
        client_address=str(raw.get("clientAddress") or ""),
        start_time=parse_timestamp(raw.get("startTime")),
    )


def decode_status(raw: Dict[str, Any]) -> SequenceStatus:
    items = raw.get("Items") or raw.get("items") or []
    if not isinstance(items, list):
        items = []
    return SequenceStatus(
        summary=str(raw.get("Summary") or raw.get("summary") or "running"),
        failure_detail=str(raw.get("FailureDetail") or raw.get("detail") or ""),
        start_time=parse_timestamp(raw.get("StartTime") or raw.get("startTime")),
        items=[decode_item(item, i) for i, item in enumerate(items)],
        client_token=str(raw.get("ClientToken") or ""),
        raw=raw,
    )


def decode_background(raw: Dict[str, Any]) -> BackgroundSummary:
    return BackgroundSummary(
        scanned_items_count=_as_int(raw.get("ScannedItemsCount")),
        last_heal_activity=parse_timestamp(raw.get("LastHealActivity")),
    )
