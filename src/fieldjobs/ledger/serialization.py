from datetime import datetime
from typing import Any, Dict, Optional

from .models import (
    Job,
    JobStatus,
    ServiceCategory,
    Signature,
    ToolCategory,
    ToolSpec,
    VehicleInfo,
    WorkSession,
)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def tool_to_dict(tool: ToolSpec) -> Dict[str, Any]:
    return {
        "tool_id": tool.tool_id,
        "name": tool.name,
        "category": tool.category.value,
        "required": tool.required,
        "description": tool.description,
    }


def tool_from_dict(data: Dict[str, Any]) -> ToolSpec:
    return ToolSpec(
        tool_id=data["tool_id"],
        name=data["name"],
        category=ToolCategory(data["category"]),
        required=bool(data["required"]),
        description=data.get("description", ""),
    )


def session_to_dict(session: WorkSession) -> Dict[str, Any]:
    return {
        "session_id": session.session_id,
        "started_at": _iso(session.started_at),
        "ended_at": _iso(session.ended_at),
        "technician_id": session.technician_id,
        "notes": session.notes,
        "minutes": round(session.minutes, 2),
    }


def session_from_dict(data: Dict[str, Any]) -> WorkSession:
    return WorkSession(
        session_id=data["session_id"],
        started_at=_parse(data["started_at"]),
        ended_at=_parse(data.get("ended_at")),
        technician_id=data.get("technician_id"),
        notes=data.get("notes"),
    )


def signature_to_dict(signature: Optional[Signature]) -> Optional[Dict[str, Any]]:
    if signature is None:
        return None
    return {
        "artifact": signature.artifact,
        "captured_at": _iso(signature.captured_at),
        "captured_by": signature.captured_by,
    }


def signature_from_dict(data: Optional[Dict[str, Any]]) -> Optional[Signature]:
    if not data:
        return None
    return Signature(
        artifact=data["artifact"],
        captured_at=_parse(data["captured_at"]),
        captured_by=data["captured_by"],
    )


def vehicle_to_dict(vehicle: VehicleInfo) -> Dict[str, Any]:
    return {"make": vehicle.make, "model": vehicle.model, "year": vehicle.year, "vin": vehicle.vin}


def vehicle_from_dict(data: Optional[Dict[str, Any]]) -> VehicleInfo:
    data = data or {}
    return VehicleInfo(
        make=data.get("make"),
        model=data.get("model"),
        year=data.get("year"),
        vin=data.get("vin"),
    )


def job_to_dict(job: Job) -> Dict[str, Any]:
    return {
        "job_id": job.job_id,
        "service_category": job.service_category.value,
        "status": job.status.value,
        "description": job.description,
        "customer_id": job.customer_id,
        "vehicle": vehicle_to_dict(job.vehicle),
        "assigned_technician_id": job.assigned_technician_id,
        "claimed_at": _iso(job.claimed_at),
        "required_tools": [tool_to_dict(tool) for tool in job.required_tools],
        "tools_checked": dict(job.tools_checked),
        "tools_check_completed_at": _iso(job.tools_check_completed_at),
        "tools_notes": job.tools_notes,
        "work_sessions": [session_to_dict(session) for session in job.work_sessions],
        "signature": signature_to_dict(job.signature),
        "completed_at": _iso(job.completed_at),
        "completed_by": job.completed_by,
        "created_at": _iso(job.created_at),
        "updated_at": _iso(job.updated_at),
    }


def job_from_dict(data: Dict[str, Any], etag: Optional[str] = None) -> Job:
    return Job(
        job_id=data["job_id"],
        service_category=ServiceCategory(data["service_category"]),
        status=JobStatus(data["status"]),
        created_at=_parse(data["created_at"]),
        updated_at=_parse(data["updated_at"]),
        description=data.get("description") or "",
        customer_id=data.get("customer_id"),
        vehicle=vehicle_from_dict(data.get("vehicle")),
        assigned_technician_id=data.get("assigned_technician_id"),
        claimed_at=_parse(data.get("claimed_at")),
        required_tools=tuple(tool_from_dict(item) for item in data.get("required_tools", [])),
        tools_checked={key: bool(value) for key, value in (data.get("tools_checked") or {}).items()},
        tools_check_completed_at=_parse(data.get("tools_check_completed_at")),
        tools_notes=data.get("tools_notes"),
        work_sessions=[session_from_dict(item) for item in data.get("work_sessions", [])],
        signature=signature_from_dict(data.get("signature")),
        completed_at=_parse(data.get("completed_at")),
        completed_by=data.get("completed_by"),
        etag=etag,
    )
