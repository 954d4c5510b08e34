"""Static engine knowledge: known issues, VIN rules, DTC actions and workflows.

Everything is loaded once from ``data/engine-knowledge.v1.json`` and checked
against its schema. Lookups never raise; a miss is ``None`` or an empty tuple.
"""

import json
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional, Tuple

import jsonschema

from fieldjobs.config.paths import data_root
from fieldjobs.validation.validator import SchemaValidator

UNKNOWN_ENGINE_FAMILY = "unknown"


class KnowledgeBaseError(RuntimeError):
    pass


class WorkflowCategory(str, Enum):
    ELECTRICAL = "electrical"
    MECHANICAL = "mechanical"
    PERFORMANCE = "performance"


@dataclass(frozen=True)
class EngineProfile:
    code: str
    designation: str
    known_issues: Tuple[str, ...]
    diagnostic_priority: Tuple[str, ...]


@dataclass(frozen=True)
class DtcEntry:
    code: str
    description: str
    mechanic_action: str
    priority: str = "medium"


@dataclass(frozen=True)
class VinRule:
    name: str
    manufacturer_prefixes: Tuple[str, ...]
    engine_position: int
    engine_codes: Dict[str, str]

    def matches(self, vin: str) -> bool:
        return any(vin.startswith(prefix) for prefix in self.manufacturer_prefixes)

    def engine_code(self, vin: str) -> Optional[str]:
        return self.engine_codes.get(vin[self.engine_position - 1])


class EngineKnowledgeBase:
    def __init__(self, path: Optional[Path] = None, validator: Optional[SchemaValidator] = None):
        self.path = path or (data_root() / "engine-knowledge.v1.json")
        self._validator = validator or SchemaValidator()
        self._engines: Dict[str, EngineProfile] = {}
        self._codes: Dict[str, DtcEntry] = {}
        self._workflows: Dict[WorkflowCategory, Tuple[str, ...]] = {}
        self._vin_rules: Tuple[VinRule, ...] = ()
        self._load()

    def engine(self, family: Optional[str]) -> Optional[EngineProfile]:
        if not family:
            return None
        return self._engines.get(family)

    def engine_family_for_vin(self, vin: str) -> str:
        """Pattern-based guess from a normalised 17 character VIN, not a full decode."""
        for rule in self._vin_rules:
            if rule.matches(vin):
                return rule.engine_code(vin) or UNKNOWN_ENGINE_FAMILY
        return UNKNOWN_ENGINE_FAMILY

    def dtc(self, code: str) -> Optional[DtcEntry]:
        return self._codes.get(code)

    def workflow(self, category: WorkflowCategory) -> Tuple[str, ...]:
        return self._workflows.get(category, ())

    def _load(self) -> None:
        with self.path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
        try:
            self._validator.validate(data, "engine-knowledge.v1.schema.json")
        except jsonschema.ValidationError as exc:
            raise KnowledgeBaseError(f"{self.path}: {exc.message}") from exc

        for code, engine in data["engines"].items():
            self._engines[code] = EngineProfile(
                code=code,
                designation=engine["designation"],
                known_issues=tuple(engine["known_issues"]),
                diagnostic_priority=tuple(engine["diagnostic_priority"]),
            )

        rules = []
        for rule in data["vin_rules"]:
            unknown = sorted(set(rule["engine_codes"].values()) - set(self._engines))
            if unknown:
                raise KnowledgeBaseError(f"vin rule {rule['name']} maps to unknown engines: {unknown}")
            rules.append(
                VinRule(
                    name=rule["name"],
                    manufacturer_prefixes=tuple(rule["manufacturer_prefixes"]),
                    engine_position=rule["engine_position"],
                    engine_codes=dict(rule["engine_codes"]),
                )
            )
        self._vin_rules = tuple(rules)

        for code, entry in data["dtc_codes"].items():
            self._codes[code] = DtcEntry(
                code=code,
                description=entry["description"],
                mechanic_action=entry["mechanic_action"],
                priority=entry.get("priority", "medium"),
            )

        for name, steps in data["workflows"].items():
            self._workflows[WorkflowCategory(name)] = tuple(steps)


@lru_cache(maxsize=1)
def default_knowledge_base() -> EngineKnowledgeBase:
    return EngineKnowledgeBase()
