from datetime import datetime

from fieldjobs.errors import InvalidStateError, ValidationError
from fieldjobs.ledger.models import Job, Signature


def capture(job: Job, artifact: str, captured_by: str, now: datetime) -> Signature:
    """Record the customer signature. Overwrites an earlier one until the job completes."""
    if job.is_completed:
        raise InvalidStateError("signature is immutable once the job is completed", job_id=job.job_id)
    if not artifact or not artifact.strip():
        raise ValidationError("signature artifact is required", job_id=job.job_id)
    if not captured_by or not captured_by.strip():
        raise ValidationError("signature must record who captured it", job_id=job.job_id)
    signature = Signature(artifact=artifact, captured_at=now, captured_by=captured_by)
    job.signature = signature
    job.updated_at = now
    return signature
