"""JSON-schema shape checks for decision and risk documents."""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List

from jsonschema import Draft202012Validator

from .ids import Kind
from .records import read_json

SCHEMAS_DIR = Path(__file__).resolve().parent / "schemas"

SCHEMA_FILES = {
    Kind.DECISION: "decision.schema.json",
    Kind.RISK: "risk.schema.json",
}


@dataclass
class ShapeViolation:
    field: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)


def schema_path(kind: Kind) -> Path:
    return SCHEMAS_DIR / SCHEMA_FILES[kind]


@lru_cache(maxsize=None)
def _validator(kind: Kind) -> Draft202012Validator:
    schema = read_json(schema_path(kind))
    Draft202012Validator.check_schema(schema)
    return Draft202012Validator(schema, format_checker=Draft202012Validator.FORMAT_CHECKER)


def check_shape(doc: Any, kind: Kind) -> List[ShapeViolation]:
    """Return one violation per failed schema constraint, ordered by location."""
    errors = sorted(_validator(kind).iter_errors(doc), key=lambda e: [str(x) for x in e.path])
    violations = []
    for e in errors:
        loc = "/".join(str(x) for x in e.path) if e.path else "<root>"
        violations.append(ShapeViolation(
            field=loc,
            message=e.message,
            details={
                "path": loc,
                "validator": e.validator,
                "validator_value": e.validator_value,
                "schema_path": "/".join(str(x) for x in e.schema_path),
                "message": e.message,
            },
        ))
    return violations
