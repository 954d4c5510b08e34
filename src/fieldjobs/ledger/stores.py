from fieldjobs.config.settings import AppSettings

from .interfaces import JobsStore
from .memory_store import MemoryJobsStore


def build_jobs_store(settings: AppSettings) -> JobsStore:
    if settings.storage_backend == "memory":
        return MemoryJobsStore()

    if settings.storage_backend != "table":
        raise RuntimeError(f"Unsupported storage backend: {settings.storage_backend}")

    if not settings.table_connection_string:
        raise RuntimeError("FIELDJOBS_TABLE_CONNECTION is required for table storage")

    from azure.data.tables import TableServiceClient

    from .table_storage import TableJobsStore

    service_client = TableServiceClient.from_connection_string(settings.table_connection_string)
    service_client.create_table_if_not_exists(settings.jobs_table)
    return TableJobsStore(service_client, settings.jobs_table)
