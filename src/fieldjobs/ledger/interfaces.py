from typing import List, Optional, Protocol

from .models import Job, JobStatus


class JobsStore(Protocol):
    def create_job(self, job: Job) -> Job:
        ...

    def get_job(self, job_id: str) -> Optional[Job]:
        ...

    def update_job(self, job: Job, etag: str) -> Job:
        ...

    def list_jobs(self, status: Optional[JobStatus] = None) -> List[Job]:
        ...
