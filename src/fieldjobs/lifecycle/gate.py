from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple

from fieldjobs.ledger.models import Job


class DenialReason(str, Enum):
    NO_WORK_LOGGED = "no_work_logged"
    TIMER_ACTIVE = "timer_active"
    TOOLS_INCOMPLETE = "tools_incomplete"
    SIGNATURE_MISSING = "signature_missing"


@dataclass(frozen=True)
class CompletionDecision:
    reasons: Tuple[DenialReason, ...] = ()

    @property
    def allowed(self) -> bool:
        return not self.reasons

    def to_dict(self) -> dict:
        return {"allowed": self.allowed, "reasons": [reason.value for reason in self.reasons]}


def evaluate(job: Job) -> CompletionDecision:
    """Check every completion condition; all unmet ones are reported together."""
    reasons: List[DenialReason] = []
    if not job.work_sessions:
        reasons.append(DenialReason.NO_WORK_LOGGED)
    if any(session.is_open for session in job.work_sessions):
        reasons.append(DenialReason.TIMER_ACTIVE)
    if job.tools_check_completed_at is None:
        reasons.append(DenialReason.TOOLS_INCOMPLETE)
    if job.signature is None:
        reasons.append(DenialReason.SIGNATURE_MISSING)
    return CompletionDecision(reasons=tuple(reasons))
