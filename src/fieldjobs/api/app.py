from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from fieldjobs.assistant.client import AssistantError, build_assistant
from fieldjobs.config.catalog import ServiceCatalog
from fieldjobs.config.settings import AppSettings
from fieldjobs.diagnostics.context import build_context
from fieldjobs.diagnostics.knowledge_base import EngineKnowledgeBase, default_knowledge_base
from fieldjobs.errors import ConflictError, FieldJobsError, InvalidStateError, NotFoundError, ValidationError
from fieldjobs.events.publisher import build_publisher
from fieldjobs.ledger.models import JobStatus, VehicleInfo
from fieldjobs.ledger.serialization import job_to_dict, session_to_dict, signature_to_dict
from fieldjobs.ledger.stores import build_jobs_store
from fieldjobs.lifecycle import tools_checklist, work_timer
from fieldjobs.lifecycle.service import JobLifecycle
from fieldjobs.shared.logging import get_logger, log_event
from fieldjobs.validation.validator import SchemaValidator

_STATUS_CODES = {
    ValidationError: 422,
    ConflictError: 409,
    InvalidStateError: 409,
    NotFoundError: 404,
}


def _status_code(exc: FieldJobsError) -> int:
    for error_type, status_code in _STATUS_CODES.items():
        if isinstance(exc, error_type):
            return status_code
    return 500


def _vehicle(data: Optional[Dict[str, Any]]) -> Optional[VehicleInfo]:
    if not data:
        return None
    return VehicleInfo(make=data.get("make"), model=data.get("model"), year=data.get("year"), vin=data.get("vin"))


def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    app = FastAPI(title="Field Jobs")
    logger = get_logger("fieldjobs.api")

    settings = settings or AppSettings.from_env()
    validator = SchemaValidator()
    catalog = ServiceCatalog(
        Path(settings.service_catalog_path) if settings.service_catalog_path else None,
        validator=validator,
    )
    if settings.knowledge_base_path:
        knowledge_base = EngineKnowledgeBase(Path(settings.knowledge_base_path), validator=validator)
    else:
        knowledge_base = default_knowledge_base()
    jobs_store = build_jobs_store(settings)
    publisher = build_publisher(settings)
    lifecycle = JobLifecycle(
        jobs_store,
        catalog=catalog,
        publisher=publisher,
        knowledge_base=knowledge_base,
        claim_starts_work=settings.claim_starts_work,
    )
    app.state.settings = settings
    app.state.jobs_store = jobs_store
    app.state.publisher = publisher
    app.state.catalog = catalog
    app.state.knowledge_base = knowledge_base
    app.state.lifecycle = lifecycle
    app.state.validator = validator
    app.state.assistant = build_assistant(settings)

    @app.exception_handler(FieldJobsError)
    async def handle_domain_error(request: Request, exc: FieldJobsError):
        status_code = _status_code(exc)
        log_event(
            logger,
            "request.rejected",
            path=request.url.path,
            code=exc.code,
            status_code=status_code,
            detail=exc.message,
        )
        return JSONResponse(
            status_code=status_code,
            content=jsonable_encoder(
                {"detail": exc.message, "code": exc.code, "retryable": exc.retryable, "details": exc.details}
            ),
        )

    @app.exception_handler(AssistantError)
    async def handle_assistant_error(request: Request, exc: AssistantError):
        log_event(logger, "assistant.failed", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=502, content={"detail": str(exc), "code": "assistant_unavailable"})

    @app.get("/v1/catalog")
    async def list_catalog():
        return {
            "categories": [
                {
                    "id": offering.category.value,
                    "title": offering.title,
                    "description": offering.description,
                    "estimated_time": offering.estimated_time,
                    "base_price": offering.base_price,
                    "required_tools": [tool.tool_id for tool in offering.required_tools],
                }
                for offering in catalog.offerings()
            ]
        }

    @app.post("/v1/jobs")
    async def create_job(payload: Dict[str, Any]):
        validator.validate_request(payload, "create-job.v1.schema.json")
        job = lifecycle.create_job(
            payload["service_category"],
            description=payload.get("description", ""),
            customer_id=payload.get("customer_id"),
            vehicle=_vehicle(payload.get("vehicle")),
        )
        return JSONResponse(status_code=201, content=job_to_dict(job))

    @app.get("/v1/jobs")
    async def list_jobs(status: Optional[str] = None):
        try:
            status_filter = JobStatus(status) if status else None
        except ValueError as exc:
            raise HTTPException(status_code=400, detail="unknown status") from exc
        return {"jobs": [job_to_dict(job) for job in lifecycle.list_jobs(status_filter)]}

    @app.get("/v1/jobs/{job_id}")
    async def get_job(job_id: str):
        job = lifecycle.get_job(job_id)
        body = job_to_dict(job)
        body["tools_status"] = tools_checklist.tools_status(job).to_dict()
        body["total_minutes"] = work_timer.total_minutes(job)
        return body

    @app.post("/v1/jobs/{job_id}:quote")
    async def quote_job(job_id: str, payload: Optional[Dict[str, Any]] = Body(default=None)):
        payload = validator.validate_request(payload or {}, "actor.v1.schema.json")
        return job_to_dict(lifecycle.mark_quoted(job_id, payload.get("actor_id")))

    @app.post("/v1/jobs/{job_id}:withdraw-quote")
    async def withdraw_quote(job_id: str, payload: Optional[Dict[str, Any]] = Body(default=None)):
        payload = validator.validate_request(payload or {}, "actor.v1.schema.json")
        return job_to_dict(lifecycle.withdraw_quote(job_id, payload.get("actor_id")))

    @app.post("/v1/jobs/{job_id}:claim")
    async def claim_job(job_id: str, payload: Dict[str, Any]):
        validator.validate_request(payload, "claim.v1.schema.json")
        return job_to_dict(lifecycle.claim_job(job_id, payload["technician_id"]))

    @app.get("/v1/jobs/{job_id}/tools")
    async def get_tools(job_id: str):
        job = lifecycle.get_job(job_id)
        return {
            "tools": [
                {
                    "id": tool.tool_id,
                    "name": tool.name,
                    "category": tool.category.value,
                    "required": tool.required,
                    "checked": bool(job.tools_checked.get(tool.tool_id)),
                }
                for tool in job.required_tools
            ],
            "completed_at": job.tools_check_completed_at.isoformat() if job.tools_check_completed_at else None,
            "status": tools_checklist.tools_status(job).to_dict(),
        }

    @app.put("/v1/jobs/{job_id}/tools/{tool_id}")
    async def set_tool_checked(job_id: str, tool_id: str, payload: Dict[str, Any]):
        validator.validate_request(payload, "tool-check.v1.schema.json")
        lifecycle.set_tool_checked(job_id, tool_id, payload["checked"], payload.get("actor_id"))
        return lifecycle.tools_status(job_id).to_dict()

    @app.post("/v1/jobs/{job_id}/tools:complete")
    async def complete_tools_check(job_id: str, payload: Optional[Dict[str, Any]] = Body(default=None)):
        payload = validator.validate_request(payload or {}, "tools-complete.v1.schema.json")
        job = lifecycle.complete_tools_check(job_id, payload.get("notes"), payload.get("actor_id"))
        return {
            "completed_at": job.tools_check_completed_at.isoformat(),
            "notes": job.tools_notes,
        }

    @app.get("/v1/jobs/{job_id}/timer")
    async def get_timer(job_id: str):
        job = lifecycle.get_job(job_id)
        active = work_timer.active_session(job)
        return {
            "active": session_to_dict(active) if active else None,
            "sessions": [session_to_dict(session) for session in job.work_sessions],
            "total_minutes": work_timer.total_minutes(job),
        }

    @app.post("/v1/jobs/{job_id}/timer:start")
    async def start_timer(job_id: str, payload: Optional[Dict[str, Any]] = Body(default=None)):
        payload = validator.validate_request(payload or {}, "timer.v1.schema.json")
        session = lifecycle.start_timer(job_id, payload.get("technician_id"))
        return JSONResponse(status_code=201, content=session_to_dict(session))

    @app.post("/v1/jobs/{job_id}/timer:stop")
    async def stop_timer(job_id: str, payload: Optional[Dict[str, Any]] = Body(default=None)):
        payload = validator.validate_request(payload or {}, "timer.v1.schema.json")
        return session_to_dict(lifecycle.stop_timer(job_id, payload.get("technician_id"), payload.get("notes")))

    @app.post("/v1/jobs/{job_id}/signature")
    async def capture_signature(job_id: str, payload: Dict[str, Any]):
        validator.validate_request(payload, "signature.v1.schema.json")
        signature = lifecycle.capture_signature(job_id, payload["artifact"], payload["captured_by"])
        return signature_to_dict(signature)

    @app.post("/v1/jobs/{job_id}:complete")
    async def complete_job(job_id: str, payload: Optional[Dict[str, Any]] = Body(default=None)):
        payload = validator.validate_request(payload or {}, "actor.v1.schema.json")
        decision = lifecycle.request_completion(job_id, payload.get("actor_id"))
        return {"completed": decision.allowed, "reasons": [reason.value for reason in decision.reasons]}

    @app.post("/v1/jobs/{job_id}/diagnostics")
    async def job_diagnostics(job_id: str, payload: Optional[Dict[str, Any]] = Body(default=None)):
        payload = validator.validate_request(payload or {}, "diagnostics.v1.schema.json")
        context = lifecycle.build_diagnostic_context(
            job_id,
            codes=payload.get("codes", []),
            symptoms=payload.get("symptoms", []),
            vehicle=_vehicle(payload.get("vehicle")),
        )
        return {"context": context.to_dict(), "summary": context.render()}

    @app.post("/v1/diagnostics/context")
    async def diagnostics_context(payload: Dict[str, Any]):
        validator.validate_request(payload, "diagnostics.v1.schema.json")
        context = build_context(
            _vehicle(payload.get("vehicle")),
            codes=payload.get("codes", []),
            symptoms=payload.get("symptoms", []),
            knowledge_base=knowledge_base,
        )
        return {"context": context.to_dict(), "summary": context.render()}

    @app.post("/v1/jobs/{job_id}/assistant")
    async def ask_assistant(job_id: str, payload: Dict[str, Any]):
        validator.validate_request(payload, "assistant.v1.schema.json")
        assistant = app.state.assistant
        if assistant is None:
            raise HTTPException(status_code=503, detail="assistant is not configured")
        context = lifecycle.build_diagnostic_context(
            job_id,
            codes=payload.get("codes", []),
            symptoms=payload.get("symptoms", []),
        )
        reply = await assistant.ask(
            payload["message"],
            context,
            session_id=payload.get("session_id"),
            user_id=payload.get("user_id"),
            job_id=job_id,
        )
        log_event(logger, "assistant.answered", job_id=job_id, session_id=reply.session_id)
        return reply.to_dict()

    return app
