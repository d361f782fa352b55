"""JSON Schema validation for plan documents.

The controller only sees a `validate(body) -> bool` predicate; this module
builds that predicate from a schema document. The bundled schema lives at
`plan_service/schemas/plan.schema.json` and can be replaced through
configuration.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from jsonschema import Draft202012Validator
from jsonschema.exceptions import SchemaError

logger = logging.getLogger(__name__)

DEFAULT_SCHEMA_PATH = Path(__file__).resolve().parent.parent / "schemas" / "plan.schema.json"


def load_plan_schema(path: Optional[str | Path] = None) -> Dict[str, Any]:
    """Read and check a JSON Schema document.

    Raises OSError / json.JSONDecodeError for unreadable files and
    jsonschema's SchemaError for an invalid schema, so a bad deployment
    fails at startup rather than on the first request.
    """
    schema_path = Path(path) if path else DEFAULT_SCHEMA_PATH
    schema = json.loads(schema_path.read_text(encoding="utf-8"))
    try:
        Draft202012Validator.check_schema(schema)
    except SchemaError:
        logger.error("plan_schema_invalid path=%s", schema_path)
        raise
    logger.info("plan_schema_loaded path=%s", schema_path)
    return schema


class PlanSchemaValidator:
    """Callable predicate: True when a body conforms to the plan schema."""

    def __init__(self, schema: Optional[Dict[str, Any]] = None) -> None:
        self.schema = schema if schema is not None else load_plan_schema()
        self._validator = Draft202012Validator(self.schema)

    def errors(self, body: Any) -> list[str]:
        return [
            f"{'/'.join(str(p) for p in err.absolute_path) or '$'}: {err.message}"
            for err in sorted(self._validator.iter_errors(body), key=lambda e: [str(p) for p in e.absolute_path])
        ]

    def __call__(self, body: Any) -> bool:
        problems = self.errors(body)
        if problems:
            logger.warning("plan_validation_failed", extra={"errors": problems[:10]})
            return False
        return True


__all__ = ["PlanSchemaValidator", "load_plan_schema", "DEFAULT_SCHEMA_PATH"]
