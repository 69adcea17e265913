#!/usr/bin/env python3
"""
HEALCTL CONTROLLER SUITE
------------------------
Drives the SequenceController against a scripted admin client:
1. Background-status shortcut
2. Force-stop precedence
3. Start / poll / complete with token threading
4. Sequence-level vs transport failures, partial state retention

Author: HealCtl Team
Date: 2026-10-18
"""

import pytest

from healctl.core.errors import AdminClientError, ErrorKind
from healctl.core.models import HealOptions, HealReply, HealScope, ScanMode, SequenceStatus
from healctl.healing.controller import ControllerState, SequenceController
from healctl.healing.outcomes import BackgroundReport, Completed, Failed, Stopped

from fakes import FakeAdminClient, finished, item, running, started

CLUSTER = HealScope()
DIR_SCOPE = HealScope("bucket", "dir/")


def test_cluster_scope_without_recursion_reads_background_status(fake_client):
    controller = SequenceController(fake_client)
    outcome = controller.run(CLUSTER, HealOptions(), target="myminio")

    assert isinstance(outcome, BackgroundReport)
    assert fake_client.background_calls == 1
    assert fake_client.heal_calls == []
    assert controller.state is ControllerState.BACKGROUND


def test_background_mode_ignores_heal_flags_with_warning(fake_client, caplog):
    controller = SequenceController(fake_client)
    with caplog.at_level("WARNING", logger="healctl.controller"):
        outcome = controller.run(
            CLUSTER, HealOptions(scan_mode=ScanMode.DEEP, dry_run=True), target="myminio"
        )
    assert isinstance(outcome, BackgroundReport)
    assert fake_client.heal_calls == []
    assert "--scan" in caplog.text and "--dry-run" in caplog.text


def test_background_transport_failure():
    client = FakeAdminClient(background_error=AdminClientError("connection refused", code="ConnectionError"))
    outcome = SequenceController(client).run(CLUSTER, HealOptions(), target="myminio")
    assert isinstance(outcome, Failed)
    assert outcome.error.kind is ErrorKind.TRANSPORT
    assert outcome.aggregate is None
    assert "myminio" in outcome.error.context


@pytest.mark.parametrize("force_start", [False, True])
def test_force_stop_is_a_single_call(force_start):
    client = FakeAdminClient(replies=[HealReply()])
    controller = SequenceController(client)
    outcome = controller.run(DIR_SCOPE, HealOptions(), force_start=force_start, force_stop=True,
                             target="myminio/bucket/dir/")

    assert isinstance(outcome, Stopped)
    assert len(client.heal_calls) == 1
    call = client.heal_calls[0]
    assert call["force_stop"] is True
    assert call["force_start"] is force_start
    assert call["client_token"] == ""
    assert controller.state is ControllerState.STOPPED
    assert controller.polls == 0


def test_force_stop_on_bare_alias_skips_background(fake_client):
    fake_client.replies = [HealReply()]
    outcome = SequenceController(fake_client).run(CLUSTER, HealOptions(), force_stop=True, target="myminio")
    assert isinstance(outcome, Stopped)
    assert fake_client.background_calls == 0


def test_force_stop_failure_is_reported():
    client = FakeAdminClient(replies=[AdminClientError("no heal running", code="XMinioHealNoSuchProcess")])
    outcome = SequenceController(client).run(DIR_SCOPE, HealOptions(), force_stop=True, target="t")
    assert isinstance(outcome, Failed)
    assert outcome.error.message == "Failed to stop heal sequence."


def test_deep_recursive_heal_follows_until_finished():
    batches = [[item(), item("yellow", 3)], [], [item("red", 2)], [item(), item(), item()]]
    client = FakeAdminClient(replies=[
        started("tok"),
        running(batches[0]),
        running(batches[1]),
        running(batches[2]),
        finished(batches[3]),
    ])
    options = HealOptions(scan_mode=ScanMode.DEEP, recursive=True)
    controller = SequenceController(client)
    outcome = controller.run(DIR_SCOPE, options, target="myminio/bucket/dir/")

    assert isinstance(outcome, Completed)
    assert controller.state is ControllerState.COMPLETED
    start = client.heal_calls[0]
    assert start["opts"].scan_mode is ScanMode.DEEP and start["opts"].recursive is True
    assert start["client_token"] == ""
    # Every poll threads the same token and never forces anything
    for call in client.heal_calls[1:]:
        assert call["client_token"] == "tok"
        assert call["force_start"] is False and call["force_stop"] is False
        assert call["opts"] == options
        assert (call["bucket"], call["prefix"]) == ("bucket", "dir/")
    assert outcome.aggregate.items_scanned == sum(len(b) for b in batches)
    assert outcome.aggregate.objects_by_online_drives == {4: 4, 3: 1, 2: 1}


def test_items_in_start_reply_are_folded_before_polling():
    first = started("tok")
    first.status = SequenceStatus(summary="running", items=[item(), item()])
    client = FakeAdminClient(replies=[first, finished([item()])])
    outcome = SequenceController(client).run(DIR_SCOPE, HealOptions(recursive=True), target="t")
    assert outcome.aggregate.items_scanned == 3


def test_dry_run_counts_like_a_real_run():
    def run(dry_run):
        client = FakeAdminClient(replies=[started(), running([item(), item("red", 2)]), finished([item()])])
        outcome = SequenceController(client).run(
            CLUSTER, HealOptions(recursive=True, dry_run=dry_run), target="myminio"
        )
        return client, outcome

    dry_client, dry = run(True)
    _, real = run(False)
    assert dry_client.heal_calls[0]["opts"].dry_run is True
    assert isinstance(dry, Completed)
    assert dry.aggregate.totals() == real.aggregate.totals()


def test_force_start_is_forwarded_on_start_only():
    client = FakeAdminClient(replies=[started(), finished()])
    SequenceController(client).run(DIR_SCOPE, HealOptions(), force_start=True, target="t")
    assert client.heal_calls[0]["force_start"] is True
    assert client.heal_calls[1]["force_start"] is False


def test_force_start_on_bare_alias_starts_a_sequence(fake_client):
    fake_client.replies = [started(), finished()]
    outcome = SequenceController(fake_client).run(CLUSTER, HealOptions(), force_start=True, target="myminio")
    assert isinstance(outcome, Completed)
    assert fake_client.background_calls == 0


def test_progress_callback_sees_every_batch():
    seen = []
    client = FakeAdminClient(replies=[started(), running([item()]), running([item(), item()]), finished()])
    controller = SequenceController(client, on_progress=lambda state, batch: seen.append((state.items_scanned, len(batch))))
    controller.run(DIR_SCOPE, HealOptions(), target="t")
    assert seen == [(1, 1), (3, 2), (3, 0)]


def test_start_failure_is_a_transport_error():
    client = FakeAdminClient(replies=[AdminClientError("Access Denied.", code="AccessDenied", status_code=403)])
    outcome = SequenceController(client).run(DIR_SCOPE, HealOptions(), target="myminio/bucket/dir/")
    assert isinstance(outcome, Failed)
    assert outcome.error.kind is ErrorKind.TRANSPORT
    assert outcome.error.message == "Failed to start heal sequence."
    assert outcome.aggregate is None


def test_missing_client_token_fails_the_sequence():
    client = FakeAdminClient(replies=[started("")])
    outcome = SequenceController(client).run(DIR_SCOPE, HealOptions(), target="t")
    assert isinstance(outcome, Failed)
    assert outcome.error.kind is ErrorKind.SEQUENCE


def test_server_stopped_sequence_keeps_failure_detail_and_partial_state():
    stopped = HealReply(status=SequenceStatus(
        summary="stopped",
        failure_detail="drive /data3 is offline",
        items=[item()],
        raw={"Summary": "stopped", "FailureDetail": "drive /data3 is offline"},
    ))
    client = FakeAdminClient(replies=[started(), running([item(), item()]), stopped])
    controller = SequenceController(client)
    outcome = controller.run(DIR_SCOPE, HealOptions(recursive=True), target="myminio/bucket/dir/")

    assert isinstance(outcome, Failed)
    assert controller.state is ControllerState.FAILED
    assert outcome.error.kind is ErrorKind.SEQUENCE
    assert outcome.detail == "drive /data3 is offline"
    assert outcome.payload["FailureDetail"] == "drive /data3 is offline"
    assert outcome.aggregate.items_scanned == 3
    assert "myminio/bucket/dir/" in outcome.error.context
    assert any("FailureDetail" in line for line in outcome.error.context)


def test_transport_error_while_polling_keeps_partial_state():
    client = FakeAdminClient(replies=[
        started(), running([item(), item()]), AdminClientError("read timeout", code="ConnectionError"),
    ])
    outcome = SequenceController(client).run(DIR_SCOPE, HealOptions(), target="t")
    assert isinstance(outcome, Failed)
    assert outcome.error.kind is ErrorKind.TRANSPORT
    assert outcome.detail == ""
    assert outcome.aggregate.items_scanned == 2
    # Not retried
    assert len(client.heal_calls) == 3


def test_invalid_token_while_polling_means_superseded():
    client = FakeAdminClient(replies=[
        started(), AdminClientError("Client token mismatch", code="XMinioHealInvalidClientToken", status_code=400),
    ])
    outcome = SequenceController(client).run(DIR_SCOPE, HealOptions(), target="t")
    assert isinstance(outcome, Failed)
    assert outcome.error.kind is ErrorKind.SEQUENCE
    assert outcome.detail == "Client token mismatch"
    assert outcome.aggregate is not None


def test_token_change_while_polling_means_superseded():
    client = FakeAdminClient(replies=[started("tok-a"), running([item()], token="tok-b")])
    outcome = SequenceController(client).run(DIR_SCOPE, HealOptions(), target="t")
    assert isinstance(outcome, Failed)
    assert outcome.error.kind is ErrorKind.SEQUENCE
    assert "superseded" in outcome.error.message


def test_controller_runs_once(fake_client):
    controller = SequenceController(fake_client)
    controller.run(CLUSTER, HealOptions(), target="myminio")
    with pytest.raises(RuntimeError):
        controller.run(CLUSTER, HealOptions(), target="myminio")
