"""
Validator — schema, identity and reference checks over a whole record store.

Findings are classified, not judged: every problem is an error or a warning,
``valid`` is False as soon as there is one error, and warnings never change
it. Whether errors fail the run is the caller's business (see ``exit_code``).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

from . import ids
from .config import MODE_FAIL, ProvenanceConfig
from .ids import Kind
from .records import LEGACY_SCHEMA_TAGS, SCHEMA_TAGS, RecordFile, RecordStore
from .schema_check import check_shape

log = logging.getLogger(__name__)

RECOMMENDED_FIELDS = {
    Kind.DECISION: ("consequences",),
    Kind.RISK: (),
}


@dataclass
class Finding:
    file: Path
    message: str
    details: Optional[Dict[str, Any]] = None

    def to_dict(self, root: Optional[Path] = None) -> Dict[str, Any]:
        path = self.file
        if root is not None:
            try:
                path = Path(self.file).relative_to(root)
            except ValueError:
                pass
        doc: Dict[str, Any] = {"file": Path(path).as_posix(), "message": self.message}
        if self.details:
            doc["details"] = self.details
        return doc


@dataclass
class ValidationResult:
    valid: bool = True
    errors: List[Finding] = field(default_factory=list)
    warnings: List[Finding] = field(default_factory=list)
    decision_count: int = 0
    risk_count: int = 0

    def error(self, path: Path, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        self.errors.append(Finding(file=path, message=message, details=details))
        self.valid = False

    def warning(self, path: Path, message: str) -> None:
        self.warnings.append(Finding(file=path, message=message))

    def to_dict(self, root: Optional[Path] = None) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "decisions": self.decision_count,
            "risks": self.risk_count,
            "errors": [f.to_dict(root) for f in self.errors],
            "warnings": [f.to_dict(root) for f in self.warnings],
        }


# ---------------------------------------------------------------------------
# Per-record checks
# ---------------------------------------------------------------------------


def _check_schema_tag(kind: Kind, rf: RecordFile, result: ValidationResult) -> None:
    tag = rf.doc.get("schema")
    current = SCHEMA_TAGS[kind]
    if tag == current:
        return
    if tag == LEGACY_SCHEMA_TAGS[kind]:
        result.warning(rf.path, f"Legacy schema identifier '{tag}'; should be '{current}' (v2.0 standard)")
        return
    result.error(rf.path, f"Unknown schema identifier {tag!r}; expected '{current}'")


def _is_legacy(kind: Kind, record_id: Any) -> bool:
    if kind is Kind.DECISION:
        return ids.is_legacy_decision_id(record_id)
    return ids.is_legacy_risk_id(record_id)


def _check_record(kind: Kind, rf: RecordFile, result: ValidationResult) -> None:
    for violation in check_shape(rf.doc, kind):
        result.error(rf.path, f"Schema validation failed: {violation.field}: {violation.message}", violation.details)

    if not isinstance(rf.doc, dict):
        return

    record_id = rf.doc.get(kind.id_field)
    if record_id is not None and not ids.is_current_id(kind, record_id):
        result.error(rf.path, f"Invalid {kind.id_field} format: {record_id}")
        if _is_legacy(kind, record_id):
            result.warning(rf.path, f"Legacy {kind.value} id '{record_id}'; run: prvc migrate")

    if isinstance(record_id, str) and record_id and rf.path.stem != record_id:
        result.warning(rf.path, f"Filename '{rf.path.name}' does not match {kind.id_field} '{record_id}'")

    if "schema" in rf.doc:
        _check_schema_tag(kind, rf, result)

    for name in RECOMMENDED_FIELDS[kind]:
        if not rf.doc.get(name):
            result.warning(rf.path, f'Recommended field "{name}" is missing')

    if kind is Kind.RISK:
        linked = rf.doc.get("linked_decisions")
        if isinstance(linked, list):
            for dec_id in linked:
                if not ids.is_current_decision_id(dec_id):
                    result.error(rf.path, f"Invalid linked decision ID format: {dec_id}")


# ---------------------------------------------------------------------------
# Store-wide checks
# ---------------------------------------------------------------------------


def _check_duplicates(kind: Kind, files: List[RecordFile], result: ValidationResult) -> None:
    seen: Dict[str, Path] = {}
    for rf in files:
        if not rf.ok or not isinstance(rf.doc, dict):
            continue
        record_id = rf.doc.get(kind.id_field)
        if not isinstance(record_id, str) or not record_id:
            continue
        if record_id in seen:
            result.error(rf.path, f"Duplicate {kind.id_field} '{record_id}' (also in {seen[record_id].name})")
        else:
            seen[record_id] = rf.path


def _decision_references(doc: Dict[str, Any]) -> List[str]:
    refs = []
    links = doc.get("links")
    if isinstance(links, list):
        for link in links:
            if isinstance(link, dict) and link.get("type") == "decision" and isinstance(link.get("url"), str):
                refs.append(link["url"])
    return refs


def check_references(decisions: List[RecordFile], risks: List[RecordFile], result: ValidationResult) -> None:
    """Every decision a record points at must exist in the store."""
    known: Set[str] = {
        rf.doc["decision_id"]
        for rf in decisions
        if rf.ok and isinstance(rf.doc, dict) and isinstance(rf.doc.get("decision_id"), str)
    }

    for rf in decisions:
        if not rf.ok or not isinstance(rf.doc, dict):
            continue
        for ref in _decision_references(rf.doc):
            if ref not in known:
                result.error(rf.path, f"Linked decision not found: {ref}")

    for rf in risks:
        if not rf.ok or not isinstance(rf.doc, dict):
            continue
        linked = rf.doc.get("linked_decisions")
        if not isinstance(linked, list):
            continue
        for ref in linked:
            if isinstance(ref, str) and ids.is_current_decision_id(ref) and ref not in known:
                result.error(rf.path, f"Linked decision not found: {ref}")


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def validate(root: Path, config: ProvenanceConfig, check_refs: Optional[bool] = None) -> ValidationResult:
    """Validate every decision and risk record under ``root``.

    ``check_refs`` overrides ``config.check_references`` when given.
    """
    store = RecordStore(Path(root), config)
    result = ValidationResult()
    files: Dict[Kind, List[RecordFile]] = {}

    for kind in (Kind.DECISION, Kind.RISK):
        files[kind] = store.read(kind)
        for rf in files[kind]:
            if not rf.ok:
                result.error(rf.path, rf.error)
                continue
            _check_record(kind, rf, result)
        _check_duplicates(kind, files[kind], result)

    result.decision_count = len(files[Kind.DECISION])
    result.risk_count = len(files[Kind.RISK])

    enabled = config.check_references if check_refs is None else check_refs
    if enabled:
        check_references(files[Kind.DECISION], files[Kind.RISK], result)

    log.debug(
        "validated %d decision(s), %d risk(s): %d error(s), %d warning(s)",
        result.decision_count, result.risk_count, len(result.errors), len(result.warnings),
    )
    return result


def exit_code(result: ValidationResult, mode: str) -> int:
    """``fail`` mode turns errors into a non-zero exit; ``warn`` never does."""
    if mode == MODE_FAIL and not result.valid:
        return 1
    return 0
