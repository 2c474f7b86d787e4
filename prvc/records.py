"""
Record Store — one JSON document per decision or risk.

Layout (relative to the repository root, configurable):

    provenance/decisions/<decision_id>.json
    provenance/risks/<risk_id>.json

``TEMPLATE.json`` in either directory is reserved and never enumerated.
Reading never raises for bad content: unreadable or malformed files come back
as entries carrying an error so the caller can report or skip them.
"""

from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from .config import ProvenanceConfig
from .errors import RecordError
from .ids import Kind, kind_of

log = logging.getLogger(__name__)

TEMPLATE_FILENAME = "TEMPLATE.json"

DECISION_SCHEMA_TAG = "provenancecode.decision.v2"
RISK_SCHEMA_TAG = "provenancecode.risk.v2"
LEGACY_DECISION_SCHEMA_TAG = "https://provenancecode.org/schemas/decision.g2.schema.json"
LEGACY_RISK_SCHEMA_TAG = "https://provenancecode.org/schemas/risk.g2.schema.json"

SCHEMA_TAGS = {Kind.DECISION: DECISION_SCHEMA_TAG, Kind.RISK: RISK_SCHEMA_TAG}
LEGACY_SCHEMA_TAGS = {Kind.DECISION: LEGACY_DECISION_SCHEMA_TAG, Kind.RISK: LEGACY_RISK_SCHEMA_TAG}

DECISION_STATUSES = ("draft", "proposed", "accepted", "rejected", "deprecated", "superseded")
RISK_STATUSES = ("open", "monitoring", "mitigated", "accepted", "closed")
RISK_SEVERITIES = ("low", "medium", "high", "critical")
RISK_PROBABILITIES = ("low", "medium", "high")
LINK_TYPES = ("pr", "issue", "doc", "decision", "risk", "other")


# ---------------------------------------------------------------------------
# JSON helpers
# ---------------------------------------------------------------------------


def read_json(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
        f.write("\n")


def dedupe(values: List[str]) -> List[str]:
    seen = set()
    result = []
    for v in values:
        if v not in seen:
            seen.add(v)
            result.append(v)
    return result


# ---------------------------------------------------------------------------
# Typed records
# ---------------------------------------------------------------------------


def _required_str(doc: Dict[str, Any], key: str) -> str:
    value = doc.get(key)
    if not isinstance(value, str) or not value:
        raise RecordError(f"missing/invalid '{key}'")
    return value


def _optional_str(doc: Dict[str, Any], key: str) -> Optional[str]:
    value = doc.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise RecordError(f"'{key}' must be a string")
    return value


def _enum(doc: Dict[str, Any], key: str, allowed: tuple, required: bool = True) -> Optional[str]:
    value = _required_str(doc, key) if required else _optional_str(doc, key)
    if value is not None and value not in allowed:
        raise RecordError(f"'{key}' must be one of {', '.join(allowed)} (got '{value}')")
    return value


def _str_list(doc: Dict[str, Any], key: str) -> List[str]:
    value = doc.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(x, str) for x in value):
        raise RecordError(f"'{key}' must be a list of strings")
    return list(value)


@dataclass
class Link:
    type: str
    url: str
    title: Optional[str] = None

    @classmethod
    def from_dict(cls, doc: Any) -> "Link":
        if not isinstance(doc, dict):
            raise RecordError("links[] entries must be objects")
        return cls(
            type=_enum(doc, "type", LINK_TYPES),
            url=_required_str(doc, "url"),
            title=_optional_str(doc, "title"),
        )

    def to_dict(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {"type": self.type, "url": self.url}
        if self.title:
            doc["title"] = self.title
        return doc


@dataclass
class DecisionRecord:
    schema: str
    decision_id: str
    title: str
    status: str
    context: str
    decision: str
    consequences: Optional[str] = None
    risk: Optional[str] = None
    links: List[Link] = field(default_factory=list)
    date_created: Optional[str] = None
    date_updated: Optional[str] = None
    authors: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)

    kind = Kind.DECISION

    @property
    def record_id(self) -> str:
        return self.decision_id

    @property
    def linked_decision_ids(self) -> List[str]:
        return [link.url for link in self.links if link.type == "decision"]

    @classmethod
    def from_dict(cls, doc: Any) -> "DecisionRecord":
        if not isinstance(doc, dict):
            raise RecordError("decision record must be a JSON object")
        links = doc.get("links") or []
        if not isinstance(links, list):
            raise RecordError("'links' must be a list")
        known = {f for f in cls.__dataclass_fields__ if f != "extra"}
        return cls(
            schema=_required_str(doc, "schema"),
            decision_id=_required_str(doc, "decision_id"),
            title=_required_str(doc, "title"),
            status=_enum(doc, "status", DECISION_STATUSES),
            context=_required_str(doc, "context"),
            decision=_required_str(doc, "decision"),
            consequences=_optional_str(doc, "consequences"),
            risk=_optional_str(doc, "risk"),
            links=[Link.from_dict(x) for x in links],
            date_created=_optional_str(doc, "date_created"),
            date_updated=_optional_str(doc, "date_updated"),
            authors=_str_list(doc, "authors"),
            tags=dedupe(_str_list(doc, "tags")),
            extra={k: copy.deepcopy(v) for k, v in doc.items() if k not in known},
        )

    def to_dict(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {
            "schema": self.schema,
            "decision_id": self.decision_id,
            "title": self.title,
            "status": self.status,
            "context": self.context,
            "decision": self.decision,
        }
        for key in ("consequences", "risk"):
            if getattr(self, key):
                doc[key] = getattr(self, key)
        if self.links:
            doc["links"] = [link.to_dict() for link in self.links]
        for key in ("date_created", "date_updated"):
            if getattr(self, key):
                doc[key] = getattr(self, key)
        if self.authors:
            doc["authors"] = list(self.authors)
        if self.tags:
            doc["tags"] = dedupe(self.tags)
        doc.update(copy.deepcopy(self.extra))
        return doc


@dataclass
class RiskRecord:
    schema: str
    risk_id: str
    title: str
    description: str
    severity: str
    status: str
    linked_decisions: List[str] = field(default_factory=list)
    mitigation: Optional[str] = None
    impact: Optional[str] = None
    probability: Optional[str] = None
    owner: Optional[str] = None
    date_created: Optional[str] = None
    date_updated: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)

    kind = Kind.RISK

    @property
    def record_id(self) -> str:
        return self.risk_id

    @classmethod
    def from_dict(cls, doc: Any) -> "RiskRecord":
        if not isinstance(doc, dict):
            raise RecordError("risk record must be a JSON object")
        known = {f for f in cls.__dataclass_fields__ if f != "extra"}
        return cls(
            schema=_required_str(doc, "schema"),
            risk_id=_required_str(doc, "risk_id"),
            title=_required_str(doc, "title"),
            description=_required_str(doc, "description"),
            severity=_enum(doc, "severity", RISK_SEVERITIES),
            status=_enum(doc, "status", RISK_STATUSES),
            linked_decisions=_str_list(doc, "linked_decisions"),
            mitigation=_optional_str(doc, "mitigation"),
            impact=_optional_str(doc, "impact"),
            probability=_enum(doc, "probability", RISK_PROBABILITIES, required=False),
            owner=_optional_str(doc, "owner"),
            date_created=_optional_str(doc, "date_created"),
            date_updated=_optional_str(doc, "date_updated"),
            tags=dedupe(_str_list(doc, "tags")),
            extra={k: copy.deepcopy(v) for k, v in doc.items() if k not in known},
        )

    def to_dict(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {
            "schema": self.schema,
            "risk_id": self.risk_id,
            "title": self.title,
            "description": self.description,
            "severity": self.severity,
            "status": self.status,
        }
        if self.linked_decisions:
            doc["linked_decisions"] = list(self.linked_decisions)
        for key in ("mitigation", "impact", "probability", "owner", "date_created", "date_updated"):
            if getattr(self, key):
                doc[key] = getattr(self, key)
        if self.tags:
            doc["tags"] = dedupe(self.tags)
        doc.update(copy.deepcopy(self.extra))
        return doc


Record = Union[DecisionRecord, RiskRecord]

RECORD_TYPES = {Kind.DECISION: DecisionRecord, Kind.RISK: RiskRecord}


def parse_record(kind: Kind, doc: Any) -> Record:
    return RECORD_TYPES[kind].from_dict(doc)


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


@dataclass
class RecordFile:
    """A record file as read from disk: either ``doc`` or ``error`` is set."""
    path: Path
    doc: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class SkippedFile:
    path: Path
    reason: str


@dataclass
class LoadResult:
    records: List[Record] = field(default_factory=list)
    skipped: List[SkippedFile] = field(default_factory=list)


class RecordStore:
    """Decision and risk directories of one repository."""

    def __init__(self, root: Path, config: ProvenanceConfig) -> None:
        self.root = Path(root)
        self.config = config

    @property
    def decisions_dir(self) -> Path:
        return self.root / self.config.decisions_path

    @property
    def risks_dir(self) -> Path:
        return self.root / self.config.risks_path

    def directory(self, kind: Kind) -> Path:
        return self.decisions_dir if kind is Kind.DECISION else self.risks_dir

    def path_for(self, kind: Kind, record_id: str) -> Path:
        return self.directory(kind) / f"{record_id}.json"

    def relative(self, path: Path) -> str:
        try:
            return Path(path).relative_to(self.root).as_posix()
        except ValueError:
            return str(path)

    def list_files(self, kind: Kind) -> List[Path]:
        folder = self.directory(kind)
        if not folder.is_dir():
            return []
        return sorted(p for p in folder.glob("*.json") if p.name != TEMPLATE_FILENAME and p.is_file())

    def read(self, kind: Kind) -> List[RecordFile]:
        """Read every record file of ``kind``. Malformed JSON is returned, not raised."""
        results = []
        for path in self.list_files(kind):
            try:
                results.append(RecordFile(path=path, doc=read_json(path)))
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                log.debug("unparsable record file %s: %s", path, e)
                results.append(RecordFile(path=path, error=f"Failed to parse JSON: {e}"))
        return results

    def iter_docs(self, kind: Kind) -> Iterator[RecordFile]:
        for rf in self.read(kind):
            if rf.ok:
                yield rf

    def load(self, kind: Kind) -> LoadResult:
        """Read and parse every record of ``kind`` into typed records."""
        result = LoadResult()
        for rf in self.read(kind):
            if not rf.ok:
                result.skipped.append(SkippedFile(path=rf.path, reason=rf.error))
                continue
            try:
                result.records.append(parse_record(kind, rf.doc))
            except RecordError as e:
                log.debug("skipping %s: %s", rf.path, e)
                result.skipped.append(SkippedFile(path=rf.path, reason=str(e)))
        return result

    def decisions(self) -> List[DecisionRecord]:
        return self.load(Kind.DECISION).records

    def risks(self) -> List[RiskRecord]:
        return self.load(Kind.RISK).records

    def find(self, record_id: str) -> Optional[Record]:
        """Locate a record by id in the directory its prefix points at."""
        guessed = kind_of(record_id)
        for kind in (guessed,) if guessed else (Kind.DECISION, Kind.RISK):
            for record in self.load(kind).records:
                if record.record_id == record_id:
                    return record
        return None

    def write(self, record: Record) -> Path:
        path = self.path_for(record.kind, record.record_id)
        write_json(path, record.to_dict())
        return path
