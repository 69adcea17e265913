#!/usr/bin/env python3
"""
HEALCTL AGGREGATE STATE
-----------------------
The running record of one poll loop. Its size depends only on the number of
distinct drive counts and health classes, never on how many items were healed.

Author: HealCtl Team
Date: 2026-10-18
"""

from dataclasses import dataclass, field
from typing import Any, Dict

HEALTH_CLASSES = ("green", "yellow", "red", "black")
UNKNOWN_HEALTH = "unknown"


@dataclass
class AggregateState:
    """
    Counters only ever go up. Mutated by healctl.healing.aggregator alone.
    """
    objects_by_online_drives: Dict[int, int] = field(default_factory=dict)
    items_by_health: Dict[str, int] = field(default_factory=dict)
    items_scanned: int = 0
    items_failed: int = 0
    bytes_scanned: int = 0
    last_item: str = ""              # display only, not part of the totals

    def totals(self) -> Dict[str, Any]:
        """The order-independent part of the state, used for comparisons."""
        return {
            "objects_by_online_drives": dict(self.objects_by_online_drives),
            "items_by_health": dict(self.items_by_health),
            "items_scanned": self.items_scanned,
            "items_failed": self.items_failed,
            "bytes_scanned": self.bytes_scanned,
        }

    def to_dict(self) -> Dict[str, Any]:
        health = {name: self.items_by_health.get(name, 0) for name in HEALTH_CLASSES + (UNKNOWN_HEALTH,)}
        # Keep anything unexpected too; keys are stable for known classes
        for name, count in self.items_by_health.items():
            health.setdefault(name, count)
        return {
            "itemsScanned": self.items_scanned,
            "itemsFailed": self.items_failed,
            "bytesScanned": self.bytes_scanned,
            "healthClasses": health,
            "objectsByOnlineDrives": {
                str(drives): count
                for drives, count in sorted(self.objects_by_online_drives.items())
            },
        }
