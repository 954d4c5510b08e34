import threading

import pytest

from fieldjobs.errors import InvalidStateError
from fieldjobs.ledger.models import JobStatus
from fieldjobs.lifecycle.gate import DenialReason


def _check_tools(lifecycle, job_id):
    lifecycle.set_tool_checked(job_id, "A", True)
    lifecycle.set_tool_checked(job_id, "B", True)
    lifecycle.complete_tools_check(job_id)


def test_denial_does_not_mutate_or_emit(lifecycle, publisher, claimed_job):
    before = lifecycle.get_job(claimed_job.job_id)
    emitted = len(publisher.events)
    decision = lifecycle.request_completion(claimed_job.job_id)
    assert decision.allowed is False
    after = lifecycle.get_job(claimed_job.job_id)
    assert after.status == JobStatus.IN_PROGRESS
    assert after.etag == before.etag
    assert len(publisher.events) == emitted


def test_start_stop_start_then_complete_is_denied(lifecycle, claimed_job, clock):
    job_id = claimed_job.job_id
    _check_tools(lifecycle, job_id)
    lifecycle.capture_signature(job_id, "sig", "customer")
    lifecycle.start_timer(job_id)
    clock.advance(10)
    lifecycle.stop_timer(job_id)
    lifecycle.start_timer(job_id)

    decision = lifecycle.request_completion(job_id)
    assert decision.reasons == (DenialReason.TIMER_ACTIVE,)
    assert lifecycle.get_job(job_id).status == JobStatus.IN_PROGRESS


def test_start_stop_start_without_tools_or_signature_is_denied(lifecycle, publisher, claimed_job, clock):
    job_id = claimed_job.job_id
    lifecycle.start_timer(job_id)
    clock.advance(10)
    lifecycle.stop_timer(job_id)
    lifecycle.start_timer(job_id)
    emitted = len(publisher.events)

    decision = lifecycle.request_completion(job_id)
    assert decision.reasons == (
        DenialReason.TIMER_ACTIVE,
        DenialReason.TOOLS_INCOMPLETE,
        DenialReason.SIGNATURE_MISSING,
    )
    assert lifecycle.get_job(job_id).status == JobStatus.IN_PROGRESS
    assert len(publisher.events) == emitted


def test_completion_when_all_conditions_met(lifecycle, publisher, claimed_job, clock):
    job_id = claimed_job.job_id
    _check_tools(lifecycle, job_id)
    lifecycle.start_timer(job_id)
    clock.advance(25)
    lifecycle.stop_timer(job_id)
    lifecycle.capture_signature(job_id, "sig", "customer")

    decision = lifecycle.request_completion(job_id)
    assert decision.allowed is True
    job = lifecycle.get_job(job_id)
    assert job.status == JobStatus.COMPLETED
    assert job.completed_at == clock.now
    assert job.completed_by == "tech-1"
    event = publisher.events[-1]
    assert event.event_type == "job_completed"
    assert event.details["total_minutes"] == 25


def test_completed_job_is_terminal(lifecycle, claimed_job):
    job_id = claimed_job.job_id
    _check_tools(lifecycle, job_id)
    lifecycle.start_timer(job_id)
    lifecycle.stop_timer(job_id)
    lifecycle.capture_signature(job_id, "sig", "customer")
    lifecycle.request_completion(job_id, actor_id="dispatcher")

    assert lifecycle.get_job(job_id).completed_by == "dispatcher"
    with pytest.raises(InvalidStateError):
        lifecycle.request_completion(job_id)
    with pytest.raises(InvalidStateError):
        lifecycle.start_timer(job_id)
    with pytest.raises(InvalidStateError):
        lifecycle.set_tool_checked(job_id, "A", False)
    with pytest.raises(InvalidStateError):
        lifecycle.claim_job(job_id, "tech-2")


def test_completion_requires_claim(lifecycle):
    job = lifecycle.create_job("oil_change")
    with pytest.raises(InvalidStateError):
        lifecycle.request_completion(job.job_id)


def test_racing_completions_have_one_winner(lifecycle, publisher, claimed_job):
    job_id = claimed_job.job_id
    _check_tools(lifecycle, job_id)
    lifecycle.start_timer(job_id)
    lifecycle.stop_timer(job_id)
    lifecycle.capture_signature(job_id, "sig", "customer")

    barrier = threading.Barrier(2)
    results = []

    def worker():
        barrier.wait()
        try:
            results.append(lifecycle.request_completion(job_id).allowed)
        except InvalidStateError:
            results.append("rejected")

    threads = [threading.Thread(target=worker) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(results, key=str) == [True, "rejected"]
    assert publisher.types().count("job_completed") == 1
