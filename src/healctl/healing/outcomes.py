#!/usr/bin/env python3
"""
HEALCTL OUTCOMES
----------------
Every way an invocation can end, as a tagged union. Each variant knows how
to describe itself to a person (rich markup, styles from the renderer's
theme) and to a program (a dict with stable field names).

Author: HealCtl Team
Date: 2026-10-18
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from rich.markup import escape

from healctl.core.errors import HealError
from healctl.core.models import BackgroundSummary
from healctl.core.units import humanize_bytes, humanize_duration
from healctl.healing.context import AggregateState, HEALTH_CLASSES, UNKNOWN_HEALTH


def _aggregate_lines(aggregate: AggregateState) -> str:
    lines = [
        f"  Items scanned:  [heal.value]{aggregate.items_scanned}[/heal.value]"
        f" ({humanize_bytes(aggregate.bytes_scanned)})",
        f"  Items failed:   [heal.value]{aggregate.items_failed}[/heal.value]",
    ]
    reserved = HEALTH_CLASSES + (UNKNOWN_HEALTH,)
    health = "  ".join(
        f"[health.{name}]{name}[/health.{name}] {aggregate.items_by_health.get(name, 0)}"
        for name in reserved
    )
    other = sorted(name for name in aggregate.items_by_health if name not in reserved)
    if other:
        health += "  " + "  ".join(f"{escape(name)} {aggregate.items_by_health[name]}" for name in other)
    lines.append(f"  Health:         {health}")
    if aggregate.objects_by_online_drives:
        lines.append("  Objects by online drive count:")
        for drives, count in sorted(aggregate.objects_by_online_drives.items(), reverse=True):
            lines.append(f"    {drives:>3} drives: {count}")
    return "\n".join(lines)


@dataclass
class Completed:
    tag = "completed"
    target: str
    aggregate: AggregateState

    def human(self) -> str:
        return (
            f"[heal]Heal completed at `{escape(self.target)}`.[/heal]\n"
            + _aggregate_lines(self.aggregate)
        )

    def structured(self) -> Dict[str, Any]:
        return {"status": "success", "alias": self.target, "summary": self.aggregate.to_dict()}


@dataclass
class Stopped:
    tag = "stopped"
    target: str

    def human(self) -> str:
        return f"[heal.stopped]Heal stopped successfully at `{escape(self.target)}`.[/heal.stopped]"

    def structured(self) -> Dict[str, Any]:
        return {"status": "success", "alias": self.target}


@dataclass
class Failed:
    """
    A heal that could not finish. `detail` is the server's own failure text
    when it gave one; `payload` is the raw status it was reported in.
    """
    tag = "failed"
    target: str
    error: HealError
    aggregate: Optional[AggregateState] = None
    detail: str = ""
    payload: Dict[str, Any] = field(default_factory=dict)

    def human(self) -> str:
        text = f"[error]{escape(self.error.message)}[/error]"
        for line in self.error.context:
            text += f"\n  [dim]{escape(line)}[/dim]"
        if self.aggregate is not None and self.aggregate.items_scanned:
            text += "\n[heal.update]Partial results before failure:[/heal.update]\n"
            text += _aggregate_lines(self.aggregate)
        return text

    def structured(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"status": "error", "alias": self.target, "error": self.error.to_dict()}
        if self.detail:
            data["failureDetail"] = self.detail
        if self.aggregate is not None:
            data["summary"] = self.aggregate.to_dict()
        return data


@dataclass
class BackgroundReport:
    tag = "background"
    target: str
    summary: BackgroundSummary
    now: Optional[datetime] = None

    def _since(self) -> str:
        last = self.summary.last_heal_activity
        if last is None:
            return "never"
        now = self.now or datetime.now(timezone.utc)
        if last.tzinfo is None:
            last = last.replace(tzinfo=timezone.utc)
        return humanize_duration(now - last) + " ago"

    def human(self) -> str:
        return (
            "[heal.background.title]Background healing status:[/heal.background.title]\n"
            f"  Total items scanned: [heal.background]{self.summary.scanned_items_count}[/heal.background]\n"
            f"  Last background heal check: [heal.background]{self._since()}[/heal.background]"
        )

    def structured(self) -> Dict[str, Any]:
        last = self.summary.last_heal_activity
        return {
            "status": "success",
            "healInfo": {
                "scannedItemsCount": self.summary.scanned_items_count,
                "lastHealActivity": last.isoformat() if last else None,
            },
        }
