#!/usr/bin/env python3
"""
HEALCTL SCOPE RESOLVER
----------------------
Splits a target locator of the form alias[/bucket[/prefix]] into the alias
and the HealScope the server keys its heal sequences by.

Author: HealCtl Team
Date: 2026-10-18
"""

from typing import List, Tuple

from healctl.core.models import HealScope


def split_str(path: str, sep: str, n: int) -> List[str]:
    """Splits at most n-1 times and pads the result with '' up to n parts."""
    parts = path.split(sep, n - 1)
    return parts + [""] * (n - len(parts))


def parse_target(locator: str) -> Tuple[str, HealScope]:
    """
    'myminio'                -> ('myminio', HealScope('', ''))
    'myminio/bucket/dir/'    -> ('myminio', HealScope('bucket', 'dir/'))

    Raises ValueError on an empty alias.
    """
    # Windows users may type backslashes
    normalized = locator.replace("\\", "/")
    alias, bucket, prefix = split_str(normalized, "/", 3)
    if not alias:
        raise ValueError(f"target '{locator}' has no alias")
    if not bucket:
        # 'alias//prefix' has no meaningful scope
        prefix = ""
    return alias, HealScope(bucket=bucket, prefix=prefix)
