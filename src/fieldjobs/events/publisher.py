import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

from azure.servicebus import ServiceBusClient, ServiceBusMessage

from fieldjobs.config.settings import AppSettings
from fieldjobs.shared.logging import get_logger, log_event


@dataclass(frozen=True)
class AuditEvent:
    event_type: str
    job_id: str
    actor_id: Optional[str]
    occurred_at: datetime
    details: Dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "type": self.event_type,
            "job_id": self.job_id,
            "actor_id": self.actor_id,
            "timestamp": self.occurred_at.isoformat(),
            "details": self.details,
        }


class Publisher(Protocol):
    def publish(self, event: AuditEvent) -> None:
        ...


@dataclass
class NoopPublisher:
    def publish(self, event: AuditEvent) -> None:
        return None


@dataclass
class MemoryPublisher:
    events: List[AuditEvent] = field(default_factory=list)

    def publish(self, event: AuditEvent) -> None:
        self.events.append(event)

    def types(self) -> List[str]:
        return [event.event_type for event in self.events]


class LoggingPublisher:
    def __init__(self) -> None:
        self._logger = get_logger("fieldjobs.audit")

    def publish(self, event: AuditEvent) -> None:
        log_event(self._logger, f"audit.{event.event_type}", **event.to_payload())


@dataclass
class ServiceBusPublisher:
    connection_string: str
    topic: str
    send_timeout_seconds: float = 10.0

    def publish(self, event: AuditEvent) -> None:
        message = ServiceBusMessage(json.dumps(event.to_payload(), sort_keys=True, default=str))
        message.message_id = f"{event.job_id}:{event.event_type}:{event.occurred_at.isoformat()}"
        message.subject = event.event_type
        with ServiceBusClient.from_connection_string(self.connection_string) as client:
            sender = client.get_topic_sender(topic_name=self.topic)
            with sender:
                sender.send_messages(message, timeout=self.send_timeout_seconds)


def build_publisher(settings: AppSettings) -> Publisher:
    backend = settings.events_backend.lower()
    if backend == "none":
        return NoopPublisher()
    if backend == "log":
        return LoggingPublisher()
    if backend == "servicebus":
        if not settings.service_bus_connection:
            raise RuntimeError("FIELDJOBS_SERVICEBUS_CONNECTION is required for the servicebus events backend")
        return ServiceBusPublisher(
            settings.service_bus_connection,
            settings.events_topic,
            send_timeout_seconds=settings.events_send_timeout_seconds,
        )
    raise RuntimeError(f"Unsupported events backend: {settings.events_backend}")
