#!/usr/bin/env python3
"""
HEALCTL CORE MODELS
-------------------
Defines the fundamental data structures exchanged between the admin client,
the sequence controller and the progress aggregator.
These models describe what the cluster tells us, never how it heals.

Author: HealCtl Team
Date: 2026-10-18
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class ScanMode(Enum):
    """Scan intensity requested from the server (madmin wire values)."""
    NORMAL = 1
    DEEP = 2

    @classmethod
    def parse(cls, text: str) -> "ScanMode":
        """Maps 'normal'/'deep' (any case) to a ScanMode. Raises ValueError otherwise."""
        lookup = {"normal": cls.NORMAL, "deep": cls.DEEP}
        try:
            return lookup[text.strip().lower()]
        except (KeyError, AttributeError):
            raise ValueError(f"unknown scan mode '{text}'")


@dataclass(frozen=True)
class HealScope:
    """
    The bucket/prefix a heal sequence is keyed by.
    An empty bucket means the whole cluster.
    """
    bucket: str = ""
    prefix: str = ""

    def __post_init__(self):
        if not self.bucket and self.prefix:
            raise ValueError("a prefix requires a bucket")

    @property
    def is_cluster_wide(self) -> bool:
        return self.bucket == ""

    @property
    def path(self) -> str:
        """The 'bucket/prefix' path segment used by the admin API."""
        if not self.bucket:
            return ""
        return f"{self.bucket}/{self.prefix}"


@dataclass(frozen=True)
class HealOptions:
    """Options selected once per invocation and forwarded verbatim to the server."""
    scan_mode: ScanMode = ScanMode.NORMAL
    recursive: bool = False
    dry_run: bool = False
    remove: bool = False

    def to_wire(self) -> Dict[str, Any]:
        return {
            "recursive": self.recursive,
            "dryRun": self.dry_run,
            "remove": self.remove,
            "scanMode": self.scan_mode.value,
        }


@dataclass
class SequenceHandle:
    """
    Returned by a successful start call. The client token must be sent
    unchanged on every poll for the same sequence.
    """
    client_token: str
    client_address: str = ""
    start_time: Optional[datetime] = None


@dataclass
class ItemResult:
    """
    The outcome of healing a single object, bucket or metadata item.
    Consumed by the aggregator straight away and never stored.
    """
    index: int = 0
    item_type: str = "object"       # object | bucket | metadata
    bucket: str = ""
    object: str = ""
    success: bool = True
    classification: str = "unknown"  # green | yellow | red | black | unknown
    online_drive_count: int = 0      # drives holding a valid copy after healing
    object_size: int = 0
    detail: str = ""

    @property
    def name(self) -> str:
        if self.object:
            return f"{self.bucket}/{self.object}"
        return self.bucket or self.item_type


@dataclass
class SequenceStatus:
    """One poll reply for a running heal sequence."""
    summary: str = "running"         # not started | running | finished | stopped
    failure_detail: str = ""
    start_time: Optional[datetime] = None
    items: List[ItemResult] = field(default_factory=list)
    client_token: str = ""           # only set when the server echoes one back
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_finished(self) -> bool:
        return self.summary == "finished"

    @property
    def is_stopped(self) -> bool:
        return self.summary == "stopped"


@dataclass
class HealReply:
    """
    What a single heal() call produced. A start call fills `handle`,
    a poll call fills `status`; either may carry the other in the future.
    """
    handle: Optional[SequenceHandle] = None
    status: Optional[SequenceStatus] = None

    @property
    def items(self) -> List[ItemResult]:
        return self.status.items if self.status else []


@dataclass
class BackgroundSummary:
    """Snapshot of the cluster's always-on background healer."""
    scanned_items_count: int = 0
    last_heal_activity: Optional[datetime] = None
