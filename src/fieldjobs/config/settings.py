from dataclasses import dataclass
import os
from typing import Optional


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class AppSettings:
    storage_backend: str = "memory"
    table_connection_string: Optional[str] = None
    jobs_table: str = "jobs"
    claim_starts_work: bool = True
    events_backend: str = "log"
    service_bus_connection: Optional[str] = None
    events_topic: str = "job-audit"
    events_send_timeout_seconds: float = 10.0
    assistant_url: Optional[str] = None
    assistant_api_key: Optional[str] = None
    assistant_agent_id: str = "mechanic-assistant"
    assistant_timeout_seconds: float = 30.0
    service_catalog_path: Optional[str] = None
    knowledge_base_path: Optional[str] = None

    @classmethod
    def from_env(cls) -> "AppSettings":
        return cls(
            storage_backend=os.getenv("FIELDJOBS_STORAGE_BACKEND", "memory"),
            table_connection_string=os.getenv("FIELDJOBS_TABLE_CONNECTION"),
            jobs_table=os.getenv("FIELDJOBS_JOBS_TABLE", "jobs"),
            claim_starts_work=_flag("FIELDJOBS_CLAIM_STARTS_WORK", "true"),
            events_backend=os.getenv("FIELDJOBS_EVENTS_BACKEND", "log"),
            service_bus_connection=os.getenv("FIELDJOBS_SERVICEBUS_CONNECTION"),
            events_topic=os.getenv("FIELDJOBS_EVENTS_TOPIC", "job-audit"),
            events_send_timeout_seconds=float(os.getenv("FIELDJOBS_EVENTS_SEND_TIMEOUT", "10.0")),
            assistant_url=os.getenv("FIELDJOBS_ASSISTANT_URL"),
            assistant_api_key=os.getenv("FIELDJOBS_ASSISTANT_API_KEY"),
            assistant_agent_id=os.getenv("FIELDJOBS_ASSISTANT_AGENT_ID", "mechanic-assistant"),
            assistant_timeout_seconds=float(os.getenv("FIELDJOBS_ASSISTANT_TIMEOUT", "30.0")),
            service_catalog_path=os.getenv("FIELDJOBS_SERVICE_CATALOG_PATH"),
            knowledge_base_path=os.getenv("FIELDJOBS_KNOWLEDGE_BASE_PATH"),
        )
