import json
from typing import Any, Dict, List, Optional

from azure.core import MatchConditions
from azure.core.exceptions import ResourceExistsError, ResourceModifiedError, ResourceNotFoundError
from azure.data.tables import TableServiceClient, UpdateMode

from fieldjobs.errors import ConflictError

from .interfaces import JobsStore
from .models import Job, JobStatus
from .serialization import job_from_dict, job_to_dict

JOB_ROW_KEY = "job"

# Columns holding nested structures; Table Storage only has flat scalar properties.
_JSON_COLUMNS = ("vehicle", "required_tools", "tools_checked", "work_sessions", "signature")


def _job_entity(job: Job) -> Dict[str, Any]:
    entity: Dict[str, Any] = {"PartitionKey": job.job_id, "RowKey": JOB_ROW_KEY}
    for key, value in job_to_dict(job).items():
        if key in _JSON_COLUMNS:
            entity[key] = json.dumps(value, sort_keys=True)
        elif value is not None:
            entity[key] = value
    return entity


def _job_from_entity(entity: Dict[str, Any]) -> Job:
    data = {key: value for key, value in entity.items() if key not in {"PartitionKey", "RowKey"}}
    data["job_id"] = entity["PartitionKey"]
    for key in _JSON_COLUMNS:
        raw = entity.get(key)
        data[key] = json.loads(raw) if raw else None
    data["required_tools"] = data["required_tools"] or []
    data["work_sessions"] = data["work_sessions"] or []
    metadata = getattr(entity, "metadata", None) or {}
    return job_from_dict(data, etag=metadata.get("etag"))


class TableJobsStore(JobsStore):
    def __init__(self, service_client: TableServiceClient, table_name: str) -> None:
        self._table = service_client.get_table_client(table_name)

    def create_job(self, job: Job) -> Job:
        try:
            metadata = self._table.create_entity(_job_entity(job))
        except ResourceExistsError as exc:
            raise ConflictError("job already exists", job_id=job.job_id) from exc
        created = job_from_dict(job_to_dict(job), etag=metadata.get("etag"))
        return created

    def get_job(self, job_id: str) -> Optional[Job]:
        try:
            entity = self._table.get_entity(partition_key=job_id, row_key=JOB_ROW_KEY)
        except ResourceNotFoundError:
            return None
        return _job_from_entity(entity)

    def update_job(self, job: Job, etag: str) -> Job:
        try:
            metadata = self._table.update_entity(
                _job_entity(job),
                mode=UpdateMode.REPLACE,
                etag=etag,
                match_condition=MatchConditions.IfNotModified,
            )
        except (ResourceModifiedError, ResourceNotFoundError) as exc:
            raise ConflictError("etag mismatch", job_id=job.job_id) from exc
        return job_from_dict(job_to_dict(job), etag=metadata.get("etag"))

    def list_jobs(self, status: Optional[JobStatus] = None) -> List[Job]:
        if status is None:
            entities = self._table.query_entities(
                "RowKey eq @row_key", parameters={"row_key": JOB_ROW_KEY}
            )
        else:
            entities = self._table.query_entities(
                "RowKey eq @row_key and status eq @status",
                parameters={"row_key": JOB_ROW_KEY, "status": status.value},
            )
        jobs = [_job_from_entity(entity) for entity in entities]
        return sorted(jobs, key=lambda job: job.created_at)
