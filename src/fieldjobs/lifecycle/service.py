import logging
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional, Tuple, TypeVar
from uuid import uuid4

from fieldjobs.config.catalog import ServiceCatalog
from fieldjobs.diagnostics.context import DiagnosticContext, build_context
from fieldjobs.diagnostics.knowledge_base import EngineKnowledgeBase, default_knowledge_base
from fieldjobs.errors import NotFoundError, ValidationError
from fieldjobs.events.publisher import AuditEvent, NoopPublisher, Publisher
from fieldjobs.ledger.interfaces import JobsStore
from fieldjobs.ledger.locks import JobLocks
from fieldjobs.ledger.models import Job, JobStatus, ServiceCategory, Signature, VehicleInfo, WorkSession
from fieldjobs.shared.logging import get_logger, log_event

from . import signature as signatures
from . import tools_checklist, transitions, work_timer
from .gate import CompletionDecision
from .tools_checklist import ToolsStatus

T = TypeVar("T")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class JobLifecycle:
    """Inbound operations on a job.

    Each mutation re-reads the job under its per-job lock, applies the change,
    writes it back with the etag it read, and only then publishes one audit event.
    """

    def __init__(
        self,
        store: JobsStore,
        catalog: Optional[ServiceCatalog] = None,
        publisher: Optional[Publisher] = None,
        knowledge_base: Optional[EngineKnowledgeBase] = None,
        clock: Callable[[], datetime] = _utc_now,
        claim_starts_work: bool = True,
        locks: Optional[JobLocks] = None,
    ) -> None:
        self._store = store
        self._catalog = catalog or ServiceCatalog()
        self._publisher = publisher or NoopPublisher()
        self._knowledge_base = knowledge_base
        self._clock = clock
        self._claim_starts_work = claim_starts_work
        self._locks = locks if locks is not None else JobLocks()
        self._logger = get_logger("fieldjobs.lifecycle")

    # reads

    def get_job(self, job_id: str) -> Job:
        job = self._store.get_job(job_id)
        if job is None:
            raise NotFoundError("job not found", job_id=job_id)
        return job

    def list_jobs(self, status: Optional[JobStatus] = None) -> List[Job]:
        return self._store.list_jobs(status)

    def tools_status(self, job_id: str) -> ToolsStatus:
        return tools_checklist.tools_status(self.get_job(job_id))

    def active_session(self, job_id: str) -> Optional[WorkSession]:
        return work_timer.active_session(self.get_job(job_id))

    def total_minutes(self, job_id: str) -> float:
        return work_timer.total_minutes(self.get_job(job_id))

    def list_sessions(self, job_id: str) -> List[WorkSession]:
        return list(self.get_job(job_id).work_sessions)

    # creation and quoting

    def create_job(
        self,
        service_category,
        description: str = "",
        customer_id: Optional[str] = None,
        vehicle: Optional[VehicleInfo] = None,
    ) -> Job:
        try:
            category = ServiceCategory(service_category)
        except ValueError as exc:
            raise ValidationError("unknown service category", service_category=service_category) from exc
        now = self._clock()
        job = Job(
            job_id=uuid4().hex,
            service_category=category,
            status=JobStatus.PENDING,
            created_at=now,
            updated_at=now,
            description=description or "",
            customer_id=customer_id,
            vehicle=vehicle or VehicleInfo(),
        )
        job = self._store.create_job(job)
        log_event(self._logger, "job.created", job_id=job.job_id, service_category=category)
        self._emit("job_created", job, customer_id, service_category=category.value)
        return job

    def mark_quoted(self, job_id: str, actor_id: Optional[str] = None) -> Job:
        job, changed = self._mutate(job_id, lambda job, now: transitions.mark_quoted(job, now), write=bool)
        if changed:
            log_event(self._logger, "job.quoted", job_id=job_id)
            self._emit("job_quoted", job, actor_id)
        return job

    def withdraw_quote(self, job_id: str, actor_id: Optional[str] = None) -> Job:
        job, changed = self._mutate(job_id, lambda job, now: transitions.withdraw_quote(job, now), write=bool)
        if changed:
            log_event(self._logger, "job.quote_withdrawn", job_id=job_id)
            self._emit("job_quote_withdrawn", job, actor_id)
        return job

    # claim and completion

    def claim_job(self, job_id: str, technician_id: str) -> Job:
        if not technician_id:
            raise ValidationError("technician id is required", job_id=job_id)

        def apply(job: Job, now: datetime) -> bool:
            tools = self._catalog.tools_for(job.service_category)
            return transitions.claim(job, technician_id, tools, now, start_work=self._claim_starts_work)

        job, changed = self._mutate(job_id, apply, write=bool)
        if changed:
            log_event(
                self._logger,
                "job.claimed",
                job_id=job_id,
                technician_id=technician_id,
                status=job.status,
                tool_count=len(job.required_tools),
            )
            self._emit("job_claimed", job, technician_id, required_tools=job.required_tool_ids)
        return job

    def request_completion(self, job_id: str, actor_id: Optional[str] = None) -> CompletionDecision:
        job, decision = self._mutate(
            job_id,
            lambda job, now: transitions.complete(job, now, actor_id),
            write=lambda decision: decision.allowed,
        )
        if not decision.allowed:
            log_event(
                self._logger,
                "completion.denied",
                job_id=job_id,
                reasons=[reason.value for reason in decision.reasons],
            )
            return decision
        minutes = work_timer.total_minutes(job)
        log_event(self._logger, "job.completed", job_id=job_id, total_minutes=minutes)
        self._emit("job_completed", job, job.completed_by, total_minutes=minutes)
        return decision

    # tools checklist

    def set_tool_checked(self, job_id: str, tool_id: str, checked: bool, actor_id: Optional[str] = None) -> Job:
        job, _ = self._mutate(
            job_id, lambda job, now: tools_checklist.set_tool_checked(job, tool_id, checked, now)
        )
        log_event(self._logger, "tools.updated", job_id=job_id, tool_id=tool_id, checked=bool(checked))
        self._emit("tool_check_updated", job, actor_id, tool_id=tool_id, checked=bool(checked))
        return job

    def complete_tools_check(self, job_id: str, notes: Optional[str] = None, actor_id: Optional[str] = None) -> Job:
        job, changed = self._mutate(
            job_id,
            lambda job, now: tools_checklist.complete_tools_check(job, now, notes),
            write=bool,
        )
        if changed:
            log_event(self._logger, "tools.completed", job_id=job_id)
            self._emit("tools_check_completed", job, actor_id, tools_checked=dict(job.tools_checked))
        return job

    # work timer

    def start_timer(self, job_id: str, technician_id: Optional[str] = None) -> WorkSession:
        job, session = self._mutate(
            job_id, lambda job, now: work_timer.start(job, uuid4().hex, now, technician_id)
        )
        log_event(self._logger, "timer.started", job_id=job_id, session_id=session.session_id)
        self._emit("work_timer_started", job, session.technician_id, session_id=session.session_id)
        return session

    def stop_timer(
        self, job_id: str, technician_id: Optional[str] = None, notes: Optional[str] = None
    ) -> WorkSession:
        job, session = self._mutate(job_id, lambda job, now: work_timer.stop(job, now, notes))
        log_event(
            self._logger,
            "timer.stopped",
            job_id=job_id,
            session_id=session.session_id,
            minutes=session.minutes,
        )
        self._emit(
            "work_timer_stopped",
            job,
            technician_id or session.technician_id,
            session_id=session.session_id,
            minutes=session.minutes,
            notes=session.notes,
        )
        return session

    # signature

    def capture_signature(self, job_id: str, artifact: str, captured_by: str) -> Signature:
        job, signature = self._mutate(
            job_id, lambda job, now: signatures.capture(job, artifact, captured_by, now)
        )
        log_event(self._logger, "signature.captured", job_id=job_id, captured_by=captured_by)
        self._emit("signature_captured", job, captured_by)
        return signature

    # diagnostics

    def build_diagnostic_context(
        self,
        job_id: str,
        codes: Iterable[str] = (),
        symptoms: Iterable[str] = (),
        vehicle: Optional[VehicleInfo] = None,
    ) -> DiagnosticContext:
        job = self.get_job(job_id)
        merged = job.vehicle
        if vehicle is not None:
            merged = VehicleInfo(
                make=vehicle.make or merged.make,
                model=vehicle.model or merged.model,
                year=vehicle.year or merged.year,
                vin=vehicle.vin or merged.vin,
            )
        kb = self._knowledge_base or default_knowledge_base()
        return build_context(merged, codes, symptoms, kb)

    def _mutate(
        self,
        job_id: str,
        apply: Callable[[Job, datetime], T],
        write: Callable[[T], bool] = lambda result: True,
    ) -> Tuple[Job, T]:
        with self._locks.hold(job_id):
            job = self.get_job(job_id)
            result = apply(job, self._clock())
            if not write(result):
                return job, result
            job = self._store.update_job(job, job.etag or "")
        return job, result

    def _emit(self, event_type: str, job: Job, actor_id: Optional[str], **details) -> None:
        # The job is already committed; a failed publish is logged, not raised.
        event = AuditEvent(
            event_type=event_type,
            job_id=job.job_id,
            actor_id=actor_id,
            occurred_at=job.updated_at,
            details=details,
        )
        try:
            self._publisher.publish(event)
        except Exception as exc:
            log_event(
                self._logger,
                "audit.publish_failed",
                level=logging.ERROR,
                event_type=event_type,
                job_id=job.job_id,
                error=str(exc),
            )
