from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple


class ServiceCategory(str, Enum):
    OIL_CHANGE = "oil_change"
    BRAKE_SERVICE = "brake_service"
    TIRE_SERVICE = "tire_service"
    BATTERY_SERVICE = "battery_service"
    ENGINE_DIAGNOSTIC = "engine_diagnostic"
    TRANSMISSION = "transmission"
    AC_SERVICE = "ac_service"
    GENERAL_REPAIR = "general_repair"
    EMERGENCY_ROADSIDE = "emergency_roadside"


class JobStatus(str, Enum):
    PENDING = "pending"
    QUOTED = "quoted"
    ACCEPTED = "accepted"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


UNCLAIMED_STATUSES = frozenset({JobStatus.PENDING, JobStatus.QUOTED})
CLAIMED_STATUSES = frozenset({JobStatus.ACCEPTED, JobStatus.IN_PROGRESS})


class ToolCategory(str, Enum):
    BASIC = "basic"
    SAFETY = "safety"
    SPECIALIZED = "specialized"
    DIAGNOSTIC = "diagnostic"


@dataclass(frozen=True)
class ToolSpec:
    tool_id: str
    name: str
    category: ToolCategory
    required: bool
    description: str = ""


@dataclass
class VehicleInfo:
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    vin: Optional[str] = None


@dataclass
class WorkSession:
    session_id: str
    started_at: datetime
    ended_at: Optional[datetime] = None
    technician_id: Optional[str] = None
    notes: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.ended_at is None

    @property
    def minutes(self) -> float:
        if self.ended_at is None:
            return 0.0
        return (self.ended_at - self.started_at).total_seconds() / 60.0


@dataclass
class Signature:
    artifact: str
    captured_at: datetime
    captured_by: str


@dataclass
class Job:
    job_id: str
    service_category: ServiceCategory
    status: JobStatus
    created_at: datetime
    updated_at: datetime
    description: str = ""
    customer_id: Optional[str] = None
    vehicle: VehicleInfo = field(default_factory=VehicleInfo)
    assigned_technician_id: Optional[str] = None
    claimed_at: Optional[datetime] = None
    required_tools: Tuple[ToolSpec, ...] = ()
    tools_checked: Dict[str, bool] = field(default_factory=dict)
    tools_check_completed_at: Optional[datetime] = None
    tools_notes: Optional[str] = None
    work_sessions: List[WorkSession] = field(default_factory=list)
    signature: Optional[Signature] = None
    completed_at: Optional[datetime] = None
    completed_by: Optional[str] = None
    etag: Optional[str] = None

    @property
    def required_tool_ids(self) -> List[str]:
        return [tool.tool_id for tool in self.required_tools]

    @property
    def is_claimed(self) -> bool:
        return self.status in CLAIMED_STATUSES

    @property
    def is_completed(self) -> bool:
        return self.status == JobStatus.COMPLETED
