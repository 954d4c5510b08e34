"""Diagnostic context handed to the remote assistant.

The context is derived on every request from the vehicle, trouble codes and
symptoms plus the static knowledge base. Missing knowledge never fails the
build; the affected section is simply left empty.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from fieldjobs.ledger.models import VehicleInfo
from fieldjobs.shared.logging import get_logger, log_event

from .classifier import classify_symptoms, explain_code, normalize_code
from .knowledge_base import EngineKnowledgeBase, WorkflowCategory, default_knowledge_base
from .vin import parse_vin

logger = get_logger("fieldjobs.diagnostics")


@dataclass(frozen=True)
class VehicleDescriptor:
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    vin: Optional[str] = None
    engine_family: Optional[str] = None
    engine_designation: Optional[str] = None


@dataclass(frozen=True)
class CodeExplanation:
    code: str
    explanation: str


@dataclass(frozen=True)
class DiagnosticContext:
    vehicle: VehicleDescriptor
    known_issues: Tuple[str, ...] = ()
    diagnostic_priority: Tuple[str, ...] = ()
    code_explanations: Tuple[CodeExplanation, ...] = ()
    symptoms: Tuple[str, ...] = ()
    workflow_category: Optional[WorkflowCategory] = None
    symptom_workflow: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "vehicle": {
                "make": self.vehicle.make,
                "model": self.vehicle.model,
                "year": self.vehicle.year,
                "vin": self.vehicle.vin,
                "engine_family": self.vehicle.engine_family,
                "engine_designation": self.vehicle.engine_designation,
            },
            "known_issues": list(self.known_issues),
            "diagnostic_priority": list(self.diagnostic_priority),
            "code_explanations": [
                {"code": item.code, "explanation": item.explanation} for item in self.code_explanations
            ],
            "symptoms": list(self.symptoms),
            "workflow_category": self.workflow_category.value if self.workflow_category else None,
            "symptom_workflow": list(self.symptom_workflow),
        }

    def render(self) -> str:
        lines: List[str] = []
        vehicle = self.vehicle
        title = " ".join(str(part) for part in (vehicle.year, vehicle.make, vehicle.model) if part)
        if title:
            lines.append(f"VEHICLE: {title}")
        if vehicle.vin:
            lines.append(f"VIN: {vehicle.vin}")
        if vehicle.engine_family:
            engine = vehicle.engine_family
            if vehicle.engine_designation:
                engine = f"{engine} ({vehicle.engine_designation})"
            lines.append(f"ENGINE: {engine}")
        if self.known_issues:
            lines.append(f"KNOWN ISSUES: {', '.join(self.known_issues)}")
        if self.diagnostic_priority:
            lines.append(f"DIAGNOSTIC PRIORITY: {' → '.join(self.diagnostic_priority)}")
        if self.code_explanations:
            lines.append("")
            lines.append("DTC CODES:")
            lines.extend(f"• {item.explanation}" for item in self.code_explanations)
        if self.symptoms:
            lines.append("")
            lines.append(f"SYMPTOMS: {', '.join(self.symptoms)}")
            if self.symptom_workflow:
                lines.append(f"SUGGESTED PATH: {' → '.join(self.symptom_workflow)}")
        return "\n".join(lines)


def _unique_codes(codes: Iterable[str]) -> List[str]:
    seen = set()
    ordered = []
    for code in codes:
        normalized = normalize_code(code)
        if normalized and normalized not in seen:
            seen.add(normalized)
            ordered.append(normalized)
    return ordered


def build_context(
    vehicle: Optional[VehicleInfo] = None,
    codes: Iterable[str] = (),
    symptoms: Iterable[str] = (),
    knowledge_base: Optional[EngineKnowledgeBase] = None,
) -> DiagnosticContext:
    kb = knowledge_base or default_knowledge_base()
    vehicle = vehicle or VehicleInfo()

    vin = None
    engine_family = None
    profile = None
    if vehicle.vin:
        parsed = parse_vin(vehicle.vin, kb)
        if parsed.valid:
            vin = parsed.vin
            engine_family = parsed.engine_family
            profile = kb.engine(engine_family)
        else:
            log_event(logger, "diagnostics.vin_rejected", vin_length=len(vehicle.vin))

    explanations = tuple(CodeExplanation(code=code, explanation=explain_code(code, kb)) for code in _unique_codes(codes))

    cleaned_symptoms = tuple(symptom.strip() for symptom in symptoms if symptom and symptom.strip())
    category = None
    workflow: Tuple[str, ...] = ()
    if cleaned_symptoms:
        category = classify_symptoms(cleaned_symptoms)
        workflow = kb.workflow(category)

    return DiagnosticContext(
        vehicle=VehicleDescriptor(
            make=vehicle.make,
            model=vehicle.model,
            year=vehicle.year,
            vin=vin,
            engine_family=engine_family,
            engine_designation=profile.designation if profile else None,
        ),
        known_issues=profile.known_issues if profile else (),
        diagnostic_priority=profile.diagnostic_priority if profile else (),
        code_explanations=explanations,
        symptoms=cleaned_symptoms,
        workflow_category=category,
        symptom_workflow=workflow,
    )
