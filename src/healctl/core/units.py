#!/usr/bin/env python3
"""
HEALCTL UNITS - Human-readable sizes and durations.

Author: HealCtl Team
Date: 2026-10-18
"""

from datetime import timedelta

import humanize


def humanize_bytes(size: int) -> str:
    return humanize.naturalsize(max(size, 0), binary=True)


def humanize_duration(delta: timedelta) -> str:
    """
    0:00:42         -> '42 seconds'
    0:03:05         -> '3 minutes and 5 seconds'
    2 days, 1:00:00 -> '2 days and 1 hour'

    Whole seconds only. Negative durations (clock skew with the server)
    render as zero.
    """
    whole = timedelta(seconds=max(int(delta.total_seconds()), 0))
    return humanize.precisedelta(whole, minimum_unit="seconds")
