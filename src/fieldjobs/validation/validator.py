import json
from pathlib import Path
from typing import Any, Dict, Optional

import jsonschema

from fieldjobs.config.paths import contracts_root
from fieldjobs.errors import ValidationError


class SchemaValidator:
    def __init__(self, contracts_dir: Optional[Path] = None):
        self.contracts_dir = contracts_dir or contracts_root()
        self._cache: Dict[str, Dict[str, Any]] = {}

    def validate(self, instance: Any, schema_name: str) -> None:
        """Raises ``jsonschema.ValidationError`` when ``instance`` does not match."""
        schema = self._load_schema(self.contracts_dir / schema_name)
        jsonschema.validate(instance=instance, schema=schema)

    def validate_request(self, payload: Any, schema_name: str) -> Dict[str, Any]:
        try:
            self.validate(payload, schema_name)
        except jsonschema.ValidationError as exc:
            location = "/".join(str(part) for part in exc.absolute_path)
            raise ValidationError(exc.message, field=location or None) from exc
        return payload

    def _load_schema(self, path: Path) -> Dict[str, Any]:
        cache_key = str(path)
        if cache_key in self._cache:
            return self._cache[cache_key]
        with path.open("r", encoding="utf-8") as handle:
            schema = json.load(handle)
        self._cache[cache_key] = schema
        return schema
