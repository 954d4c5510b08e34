from datetime import datetime
from typing import Optional

from fieldjobs.errors import ConflictError, NotFoundError
from fieldjobs.ledger.models import Job, JobStatus, WorkSession

from .transitions import require_active


def active_session(job: Job) -> Optional[WorkSession]:
    return next((session for session in reversed(job.work_sessions) if session.is_open), None)


def total_minutes(job: Job) -> float:
    # Open sessions count only once stopped.
    return sum(session.minutes for session in job.work_sessions if not session.is_open)


def start(job: Job, session_id: str, now: datetime, technician_id: Optional[str] = None) -> WorkSession:
    require_active(job, "start work timer")
    current = active_session(job)
    if current is not None:
        raise ConflictError(
            "a work timer is already running for this job",
            job_id=job.job_id,
            session_id=current.session_id,
        )
    session = WorkSession(
        session_id=session_id,
        started_at=now,
        technician_id=technician_id or job.assigned_technician_id,
    )
    job.work_sessions.append(session)
    if job.status == JobStatus.ACCEPTED:
        job.status = JobStatus.IN_PROGRESS
    job.updated_at = now
    return session


def stop(job: Job, now: datetime, notes: Optional[str] = None) -> WorkSession:
    session = active_session(job)
    if session is None:
        raise NotFoundError("no running work timer for this job", job_id=job.job_id)
    session.ended_at = max(now, session.started_at)
    session.notes = (notes or "").strip() or None
    job.updated_at = now
    return session
