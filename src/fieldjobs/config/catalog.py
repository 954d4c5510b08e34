import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import jsonschema

from fieldjobs.config.paths import data_root
from fieldjobs.ledger.models import ServiceCategory, ToolCategory, ToolSpec
from fieldjobs.validation.validator import SchemaValidator


class CatalogError(RuntimeError):
    pass


@dataclass(frozen=True)
class ServiceOffering:
    category: ServiceCategory
    title: str
    description: str
    estimated_time: str
    base_price: float
    tools: Tuple[ToolSpec, ...]

    @property
    def required_tools(self) -> Tuple[ToolSpec, ...]:
        return tuple(tool for tool in self.tools if tool.required)


class ServiceCatalog:
    """Tool lists per service category, checked against the schema when loaded."""

    def __init__(self, catalog_path: Optional[Path] = None, validator: Optional[SchemaValidator] = None):
        self.catalog_path = catalog_path or (data_root() / "service-tools.v1.json")
        self._validator = validator or SchemaValidator()
        self._by_category: Dict[ServiceCategory, ServiceOffering] = {}
        self._load()

    def offering(self, category: ServiceCategory) -> ServiceOffering:
        return self._by_category[category]

    def offerings(self) -> List[ServiceOffering]:
        return [self._by_category[category] for category in ServiceCategory]

    def tools_for(self, category: ServiceCategory) -> Tuple[ToolSpec, ...]:
        return self._by_category[category].tools

    def required_tools_for(self, category: ServiceCategory) -> Tuple[ToolSpec, ...]:
        return self._by_category[category].required_tools

    def _load(self) -> None:
        with self.catalog_path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
        try:
            self._validator.validate(data, "service-tools.v1.schema.json")
        except jsonschema.ValidationError as exc:
            raise CatalogError(f"{self.catalog_path}: {exc.message}") from exc

        for entry in data["categories"]:
            try:
                category = ServiceCategory(entry["id"])
            except ValueError as exc:
                raise CatalogError(f"unknown service category: {entry['id']}") from exc
            if category in self._by_category:
                raise CatalogError(f"duplicate service category: {category.value}")

            seen = set()
            tools = []
            for tool in entry["tools"]:
                if tool["id"] in seen:
                    raise CatalogError(f"duplicate tool id {tool['id']} in {category.value}")
                seen.add(tool["id"])
                tools.append(
                    ToolSpec(
                        tool_id=tool["id"],
                        name=tool["name"],
                        category=ToolCategory(tool["category"]),
                        required=tool["required"],
                        description=tool.get("description", ""),
                    )
                )
            self._by_category[category] = ServiceOffering(
                category=category,
                title=entry["title"],
                description=entry.get("description", ""),
                estimated_time=entry.get("estimated_time", ""),
                base_price=float(entry.get("base_price", 0)),
                tools=tuple(tools),
            )

        missing = [category.value for category in ServiceCategory if category not in self._by_category]
        if missing:
            raise CatalogError(f"catalog has no entry for: {', '.join(missing)}")
