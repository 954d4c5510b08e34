from copy import deepcopy
from dataclasses import replace
import threading
from typing import Dict, List, Optional

from fieldjobs.errors import ConflictError

from .interfaces import JobsStore
from .models import Job, JobStatus


class MemoryJobsStore(JobsStore):
    """In-process store. Callers always get a private copy of the stored job."""

    def __init__(self) -> None:
        self._by_job_id: Dict[str, Job] = {}
        self._guard = threading.Lock()

    def create_job(self, job: Job) -> Job:
        job = replace(deepcopy(job), etag="1")
        with self._guard:
            if job.job_id in self._by_job_id:
                raise ConflictError("job already exists", job_id=job.job_id)
            self._by_job_id[job.job_id] = job
        return deepcopy(job)

    def get_job(self, job_id: str) -> Optional[Job]:
        with self._guard:
            job = self._by_job_id.get(job_id)
            return deepcopy(job) if job is not None else None

    def update_job(self, job: Job, etag: str) -> Job:
        with self._guard:
            current = self._by_job_id.get(job.job_id)
            if current is None or current.etag != etag:
                raise ConflictError("etag mismatch", job_id=job.job_id)
            next_etag = str(int(etag) + 1)
            updated = replace(deepcopy(job), etag=next_etag)
            self._by_job_id[job.job_id] = updated
        return deepcopy(updated)

    def list_jobs(self, status: Optional[JobStatus] = None) -> List[Job]:
        with self._guard:
            jobs = [deepcopy(job) for job in self._by_job_id.values()]
        if status is not None:
            jobs = [job for job in jobs if job.status == status]
        return sorted(jobs, key=lambda job: job.created_at)
