"""Status transitions of a job.

pending <-> quoted -> (claim) -> accepted | in_progress -> completed

Only pending and quoted may move back and forth; everything else is forward
only, and completed is terminal.
"""

from datetime import datetime
from typing import Optional, Sequence

from fieldjobs.errors import InvalidStateError
from fieldjobs.ledger.models import Job, JobStatus, ToolSpec, UNCLAIMED_STATUSES

from .gate import CompletionDecision, evaluate


def require_active(job: Job, action: str) -> None:
    if job.is_completed:
        raise InvalidStateError(f"cannot {action}: job is completed", job_id=job.job_id)
    if not job.is_claimed:
        raise InvalidStateError(
            f"cannot {action}: job has not been claimed", job_id=job.job_id, status=job.status.value
        )


def mark_quoted(job: Job, now: datetime) -> bool:
    if job.status == JobStatus.QUOTED:
        return False
    if job.status != JobStatus.PENDING:
        raise InvalidStateError("only pending jobs can be quoted", job_id=job.job_id, status=job.status.value)
    job.status = JobStatus.QUOTED
    job.updated_at = now
    return True


def withdraw_quote(job: Job, now: datetime) -> bool:
    if job.status == JobStatus.PENDING:
        return False
    if job.status != JobStatus.QUOTED:
        raise InvalidStateError(
            "quote can only be withdrawn before the job is claimed", job_id=job.job_id, status=job.status.value
        )
    job.status = JobStatus.PENDING
    job.updated_at = now
    return True


def claim(
    job: Job,
    technician_id: str,
    tools: Sequence[ToolSpec],
    now: datetime,
    start_work: bool = True,
) -> bool:
    """Assign the job and freeze its tool list. Returns False for a repeat claim by the same technician."""
    if job.is_completed:
        raise InvalidStateError("job is already completed", job_id=job.job_id)
    if job.status not in UNCLAIMED_STATUSES:
        if job.assigned_technician_id == technician_id:
            return False
        raise InvalidStateError(
            "job is already claimed by another technician",
            job_id=job.job_id,
            assigned_technician_id=job.assigned_technician_id,
        )
    job.assigned_technician_id = technician_id
    job.claimed_at = now
    job.required_tools = tuple(tools)
    job.status = JobStatus.IN_PROGRESS if start_work else JobStatus.ACCEPTED
    job.updated_at = now
    return True


def complete(job: Job, now: datetime, actor_id: Optional[str] = None) -> CompletionDecision:
    """Terminal transition; only applied when the completion gate allows it."""
    require_active(job, "complete job")
    decision = evaluate(job)
    if not decision.allowed:
        return decision
    job.status = JobStatus.COMPLETED
    job.completed_at = now
    job.completed_by = actor_id or job.assigned_technician_id
    job.updated_at = now
    return decision
