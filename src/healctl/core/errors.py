#!/usr/bin/env python3
"""
HEALCTL ERRORS
--------------
Structured error values. A HealError is passed around by value and only
inspected at the CLI boundary, where its kind decides the exit status.
The two exception types below exist for the seams that talk to the outside
world (HTTP and the alias config file).

Author: HealCtl Team
Date: 2026-10-18
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class ErrorKind(Enum):
    SYNTAX = "syntax"
    TRANSPORT = "transport"
    SEQUENCE = "sequence"


@dataclass(frozen=True)
class HealError:
    """
    kind    - which class of failure this is
    message - one line for the operator
    context - ordered trace lines (target locator, server payload, ...)
    """
    kind: ErrorKind
    message: str
    context: Tuple[str, ...] = field(default_factory=tuple)

    def trace(self, *lines: str) -> "HealError":
        """Returns a copy with extra context lines appended."""
        extra = tuple(line for line in lines if line)
        return replace(self, context=self.context + extra)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "context": list(self.context),
        }


class AdminClientError(Exception):
    """Raised by the admin client for any failed control-plane call."""

    def __init__(self, message: str, code: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code

    def __str__(self) -> str:
        if self.code:
            return f"{self.message} ({self.code})"
        return self.message


class ConfigError(Exception):
    """Raised when an alias cannot be resolved into a usable endpoint."""
