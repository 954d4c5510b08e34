from typing import Iterable, Optional, Tuple

from .knowledge_base import EngineKnowledgeBase, WorkflowCategory, default_knowledge_base

# Checked in this order; the first category with a hit wins.
SYMPTOM_KEYWORDS: Tuple[Tuple[WorkflowCategory, Tuple[str, ...]], ...] = (
    (WorkflowCategory.ELECTRICAL, ("code", "sensor", "light")),
    (WorkflowCategory.MECHANICAL, ("noise", "vibration", "rough")),
    (WorkflowCategory.PERFORMANCE, ("power", "fuel", "mpg")),
)
DEFAULT_WORKFLOW = WorkflowCategory.ELECTRICAL


def normalize_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


def explain_code(code: str, knowledge_base: Optional[EngineKnowledgeBase] = None) -> str:
    kb = knowledge_base or default_knowledge_base()
    code = normalize_code(code)
    entry = kb.dtc(code)
    if entry is None:
        return f"{code} - Code not in knowledge base. Check service manual for specific diagnostic steps."
    return f"{code} = {entry.mechanic_action}"


def classify_symptoms(symptoms: Iterable[str]) -> WorkflowCategory:
    lowered = [symptom.lower() for symptom in symptoms if symptom]
    for category, keywords in SYMPTOM_KEYWORDS:
        if any(keyword in symptom for symptom in lowered for keyword in keywords):
            return category
    return DEFAULT_WORKFLOW


def diagnostic_path(symptoms: Iterable[str], knowledge_base: Optional[EngineKnowledgeBase] = None) -> Tuple[str, ...]:
    kb = knowledge_base or default_knowledge_base()
    return kb.workflow(classify_symptoms(symptoms))
