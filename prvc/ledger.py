"""Creating new decision and risk records with freshly allocated ids."""

from __future__ import annotations

import datetime
from pathlib import Path
from typing import Iterable, List, Optional

from . import sequence
from .config import ProvenanceConfig, normalize_code
from .errors import RecordExistsError
from .ids import Kind
from .records import (
    DECISION_SCHEMA_TAG,
    RISK_SCHEMA_TAG,
    DecisionRecord,
    Link,
    RecordStore,
    RiskRecord,
    dedupe,
)


def now_timestamp() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def _scope(config: ProvenanceConfig, project: Optional[str], area: Optional[str]):
    return (
        normalize_code(project or config.default_project, "project"),
        normalize_code(area or config.default_area, "area"),
    )


def _write_new(store: RecordStore, record) -> Path:
    path = store.path_for(record.kind, record.record_id)
    if path.exists():
        raise RecordExistsError(path)
    return store.write(record)


def add_decision(
    root: Path,
    config: ProvenanceConfig,
    title: str,
    context: Optional[str] = None,
    decision: Optional[str] = None,
    consequences: Optional[str] = None,
    status: str = "draft",
    project: Optional[str] = None,
    area: Optional[str] = None,
    tags: Iterable[str] = (),
    links: Iterable[Link] = (),
    authors: Iterable[str] = (),
) -> DecisionRecord:
    store = RecordStore(Path(root), config)
    project, area = _scope(config, project, area)

    record = DecisionRecord(
        schema=DECISION_SCHEMA_TAG,
        decision_id=sequence.reserve(store, Kind.DECISION, project, area),
        title=title,
        status=status,
        context=context or "Added via prvc",
        decision=decision or title,
        consequences=consequences,
        links=list(links),
        date_created=now_timestamp(),
        authors=list(authors),
        tags=dedupe(list(tags)),
    )
    _write_new(store, record)
    return record


def add_risk(
    root: Path,
    config: ProvenanceConfig,
    title: str,
    description: Optional[str] = None,
    severity: str = "medium",
    status: str = "open",
    linked_decisions: Iterable[str] = (),
    mitigation: Optional[str] = None,
    owner: Optional[str] = None,
    project: Optional[str] = None,
    area: Optional[str] = None,
    tags: Iterable[str] = (),
) -> RiskRecord:
    store = RecordStore(Path(root), config)
    project, area = _scope(config, project, area)

    linked: List[str] = dedupe(list(linked_decisions))
    record = RiskRecord(
        schema=RISK_SCHEMA_TAG,
        risk_id=sequence.reserve(store, Kind.RISK, project, area),
        title=title,
        description=description or title,
        severity=severity,
        status=status,
        linked_decisions=linked,
        mitigation=mitigation,
        owner=owner,
        date_created=now_timestamp(),
        tags=dedupe(list(tags)),
    )
    _write_new(store, record)
    return record
