#!/usr/bin/env python3
"""
HEALCTL SEQUENCE CONTROLLER - The Orchestrator
----------------------------------------------
Decides which control call to make for an invocation and drives a heal
sequence to a terminal outcome:

    IDLE -> BACKGROUND                      (no bucket, not recursive, no force flag)
    IDLE -> STOPPED                         (force-stop)
    IDLE -> STARTING -> POLLING -> COMPLETED | FAILED

The admin client call is the only place the loop waits. Failures end the
loop at once and are never retried here; the outcome always carries the
aggregate collected so far.

Author: HealCtl Team
Date: 2026-10-18
"""

import json
import logging
from enum import Enum
from typing import Any, Callable, List, Optional, Union

from healctl.core.errors import AdminClientError, ErrorKind, HealError
from healctl.core.models import HealOptions, HealScope, ItemResult, ScanMode, SequenceHandle, SequenceStatus
from healctl.healing.aggregator import ProgressAggregator
from healctl.healing.context import AggregateState
from healctl.healing.outcomes import BackgroundReport, Completed, Failed, Stopped

logger = logging.getLogger("healctl.controller")

# Server error codes meaning our client token no longer names a live sequence
SUPERSEDED_CODES = ("XMinioHealInvalidClientToken", "XMinioHealNoSuchProcess")

Outcome = Union[Completed, Stopped, Failed, BackgroundReport]
ProgressCallback = Callable[[AggregateState, List[ItemResult]], None]


class ControllerState(Enum):
    IDLE = "idle"
    BACKGROUND = "background"
    STARTING = "starting"
    POLLING = "polling"
    COMPLETED = "completed"
    STOPPED = "stopped"
    FAILED = "failed"


class SequenceController:
    """
    Owns one heal invocation. `client` needs two methods:
        heal(bucket, prefix, opts, client_token, force_start, force_stop) -> HealReply
        background_heal_status() -> BackgroundSummary
    Both raise AdminClientError on failure.
    """

    def __init__(self, client: Any, on_progress: Optional[ProgressCallback] = None,
                 aggregator: Optional[ProgressAggregator] = None):
        self.client = client
        self.on_progress = on_progress
        self.aggregator = aggregator or ProgressAggregator()
        self.state = ControllerState.IDLE
        self.handle: Optional[SequenceHandle] = None
        self.polls = 0

    def _enter(self, state: ControllerState):
        logger.debug(f"Controller state {self.state.value} -> {state.value}")
        self.state = state

    def run(self, scope: HealScope, options: HealOptions, force_start: bool = False,
            force_stop: bool = False, target: str = "") -> Outcome:
        """Runs the invocation to completion and returns how it ended."""
        if self.state is not ControllerState.IDLE:
            raise RuntimeError("a SequenceController runs exactly one invocation")

        if force_stop:
            return self._stop(scope, options, force_start, target)

        if scope.is_cluster_wide and not options.recursive and not force_start:
            return self._background(options, target)

        return self._start_and_follow(scope, options, force_start, target)

    # --- IDLE -> BACKGROUND ---
    def _background(self, options: HealOptions, target: str) -> Outcome:
        self._enter(ControllerState.BACKGROUND)
        ignored = []
        if options.scan_mode is not ScanMode.NORMAL:
            ignored.append("--scan")
        if options.dry_run:
            ignored.append("--dry-run")
        if options.remove:
            ignored.append("--remove")
        if ignored:
            logger.warning(
                f"{', '.join(ignored)} ignored: without a bucket or --recursive only "
                f"the background heal status is shown."
            )

        try:
            summary = self.client.background_heal_status()
        except AdminClientError as e:
            return self._fail(target, HealError(
                ErrorKind.TRANSPORT, "Failed to get the status of the background heal.", (str(e),)
            ))
        return BackgroundReport(target=target, summary=summary)

    # --- IDLE -> STOPPED ---
    def _stop(self, scope: HealScope, options: HealOptions, force_start: bool, target: str) -> Outcome:
        if force_start:
            logger.warning("--force-start ignored: --force-stop takes precedence.")
        try:
            self.client.heal(scope.bucket, scope.prefix, options, "", force_start, True)
        except AdminClientError as e:
            return self._fail(target, HealError(
                ErrorKind.TRANSPORT, "Failed to stop heal sequence.", (str(e),)
            ))
        self._enter(ControllerState.STOPPED)
        return Stopped(target=target)

    # --- IDLE -> STARTING -> POLLING -> terminal ---
    def _start_and_follow(self, scope: HealScope, options: HealOptions,
                          force_start: bool, target: str) -> Outcome:
        self._enter(ControllerState.STARTING)
        try:
            reply = self.client.heal(scope.bucket, scope.prefix, options, "", force_start, False)
        except AdminClientError as e:
            return self._fail(target, HealError(
                ErrorKind.TRANSPORT, "Failed to start heal sequence.", (str(e),)
            ))

        if reply.handle is None or not reply.handle.client_token:
            return self._fail(target, HealError(
                ErrorKind.SEQUENCE, "Server did not return a client token for the heal sequence."
            ))
        self.handle = reply.handle
        logger.debug(f"Heal sequence started, client token {self.handle.client_token}")

        self._enter(ControllerState.POLLING)
        # Items may arrive with the start reply; fold them before the first poll
        if reply.status is not None:
            outcome = self._absorb(reply.status, target)
            if outcome is not None:
                return outcome

        while True:
            self.polls += 1
            try:
                reply = self.client.heal(
                    scope.bucket, scope.prefix, options, self.handle.client_token, False, False
                )
            except AdminClientError as e:
                return self._poll_error(e, target)

            if reply.status is None:
                continue
            outcome = self._absorb(reply.status, target)
            if outcome is not None:
                return outcome

    def _absorb(self, status: SequenceStatus, target: str) -> Optional[Outcome]:
        """Folds one reply; returns an outcome when the sequence is over."""
        if status.client_token and status.client_token != self.handle.client_token:
            return self._fail(target, HealError(
                ErrorKind.SEQUENCE, "Heal sequence was superseded by another client.",
                (f"expected client token {self.handle.client_token}, got {status.client_token}",)
            ))

        state = self.aggregator.fold(status.items)
        if self.on_progress is not None:
            self.on_progress(state, status.items)

        if status.is_finished and not status.failure_detail:
            self._enter(ControllerState.COMPLETED)
            return Completed(target=target, aggregate=state)

        if status.is_stopped or status.failure_detail:
            payload = json.dumps(status.raw, indent=1, default=str) if status.raw else ""
            error = HealError(
                ErrorKind.SEQUENCE,
                f"Heal had an error - {status.failure_detail or 'sequence stopped by the server'}",
            ).trace(payload)
            return self._fail(target, error, detail=status.failure_detail, payload=status.raw)

        return None

    def _poll_error(self, e: AdminClientError, target: str) -> Outcome:
        if e.code in SUPERSEDED_CODES:
            error = HealError(
                ErrorKind.SEQUENCE,
                "Heal sequence is no longer running; another client may have force-started a new one.",
                (str(e),),
            )
            return self._fail(target, error, detail=e.message)
        return self._fail(target, HealError(
            ErrorKind.TRANSPORT, "Unable to display heal status.", (str(e),)
        ))

    def _fail(self, target: str, error: HealError, detail: str = "", payload: Optional[dict] = None) -> Failed:
        self._enter(ControllerState.FAILED)
        logger.debug(f"Heal failed: {error.message}")
        # Only a started sequence has partial results to report
        aggregate = self.aggregator.state if self.handle is not None else None
        return Failed(
            target=target,
            error=error.trace(target),
            aggregate=aggregate,
            detail=detail,
            payload=payload or {},
        )
