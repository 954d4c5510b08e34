from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple

from fieldjobs.errors import ValidationError
from fieldjobs.ledger.models import Job

from .transitions import require_active


@dataclass(frozen=True)
class ToolsStatus:
    total_required: int
    total_checked: int
    all_required_satisfied: bool
    missing_required: Tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "total_required": self.total_required,
            "total_checked": self.total_checked,
            "all_required_satisfied": self.all_required_satisfied,
            "missing_required": list(self.missing_required),
        }


def missing_required_tools(job: Job) -> List[str]:
    return [tool.tool_id for tool in job.required_tools if tool.required and not job.tools_checked.get(tool.tool_id)]


def tools_status(job: Job) -> ToolsStatus:
    missing = missing_required_tools(job)
    # Ids outside the job's frozen tool list are ignored.
    checked = sum(1 for tool in job.required_tools if job.tools_checked.get(tool.tool_id))
    return ToolsStatus(
        total_required=sum(1 for tool in job.required_tools if tool.required),
        total_checked=checked,
        all_required_satisfied=not missing,
        missing_required=tuple(missing),
    )


def set_tool_checked(job: Job, tool_id: str, checked: bool, now: datetime) -> None:
    if not tool_id:
        raise ValidationError("tool id is required", job_id=job.job_id)
    require_active(job, "update tools checklist")
    job.tools_checked[tool_id] = bool(checked)
    job.updated_at = now


def complete_tools_check(job: Job, now: datetime, notes: Optional[str] = None) -> bool:
    """Stamp the tools check once. Returns False when it was already stamped."""
    require_active(job, "complete tools check")
    if job.tools_check_completed_at is not None:
        return False
    missing = missing_required_tools(job)
    if missing:
        raise ValidationError("required tools are not checked", job_id=job.job_id, missing_required=missing)
    job.tools_check_completed_at = now
    job.tools_notes = notes
    job.updated_at = now
    return True
