"""
Identifier grammars for decision and risk records.

Current scheme (v2):
    DEC-{PROJECT}-{AREA}-{SEQ6}
    RA-{PROJECT}-{AREA}-{SEQ6}

Legacy scheme (v1):
    DEC-{SEQ6}
    RSK-{SEQ6} / RA-{SEQ6}
    RSK-{PROJECT}-{AREA}-{SEQ6}

PROJECT and AREA are 2-4 upper-case alphanumerics. Every module that needs to
know whether an id is well-formed asks this one.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

SEQUENCE_WIDTH = 6


class Kind(str, Enum):
    DECISION = "decision"
    RISK = "risk"

    @property
    def prefix(self) -> str:
        return "DEC" if self is Kind.DECISION else "RA"

    @property
    def id_field(self) -> str:
        return "decision_id" if self is Kind.DECISION else "risk_id"


CODE_RE = re.compile(r"^[A-Z0-9]{2,4}$")

DECISION_ID_RE = re.compile(r"^DEC-([A-Z0-9]{2,4})-([A-Z0-9]{2,4})-([0-9]{6})$")
RISK_ID_RE = re.compile(r"^RA-([A-Z0-9]{2,4})-([A-Z0-9]{2,4})-([0-9]{6})$")

LEGACY_DECISION_ID_RE = re.compile(r"^DEC-([0-9]{6})$")
LEGACY_RISK_QUALIFIED_RE = re.compile(r"^RSK-([A-Z0-9]{2,4})-([A-Z0-9]{2,4})-([0-9]{6})$")
LEGACY_RISK_SEQUENCE_RE = re.compile(r"^(RSK|RA)-([0-9]{6})$")


@dataclass(frozen=True)
class ParsedId:
    kind: Kind
    project: str
    area: str
    sequence: int

    @property
    def scope(self) -> str:
        return f"{self.kind.prefix}-{self.project}-{self.area}"


def is_valid_code(code: Any) -> bool:
    return isinstance(code, str) and bool(CODE_RE.match(code))


def is_current_decision_id(value: Any) -> bool:
    return isinstance(value, str) and bool(DECISION_ID_RE.match(value))


def is_current_risk_id(value: Any) -> bool:
    return isinstance(value, str) and bool(RISK_ID_RE.match(value))


def is_current_id(kind: Kind, value: Any) -> bool:
    if kind is Kind.DECISION:
        return is_current_decision_id(value)
    return is_current_risk_id(value)


def is_legacy_decision_id(value: Any) -> bool:
    return isinstance(value, str) and bool(LEGACY_DECISION_ID_RE.match(value))


def is_legacy_risk_id(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    return bool(LEGACY_RISK_QUALIFIED_RE.match(value) or LEGACY_RISK_SEQUENCE_RE.match(value))


def parse_id(value: Any) -> Optional[ParsedId]:
    """Split a current-scheme id into its parts; None for anything else."""
    if not isinstance(value, str):
        return None
    for kind, pattern in ((Kind.DECISION, DECISION_ID_RE), (Kind.RISK, RISK_ID_RE)):
        m = pattern.match(value)
        if m:
            return ParsedId(kind=kind, project=m.group(1), area=m.group(2), sequence=int(m.group(3)))
    return None


def scope_prefix(kind: Kind, project: str, area: str) -> str:
    return f"{kind.prefix}-{project}-{area}-"


def format_sequence(sequence: int) -> str:
    return str(sequence).zfill(SEQUENCE_WIDTH)


def format_id(kind: Kind, project: str, area: str, sequence: Any) -> str:
    """Build a current-scheme id. ``sequence`` may be an int or a digit string."""
    return f"{scope_prefix(kind, project, area)}{format_sequence(int(sequence))}"


def normalize_decision_id(record_id: Any, project: str, area: str) -> Any:
    """Upgrade a legacy ``DEC-000042`` id to the current scheme.

    Current ids and unrecognized forms are returned unchanged; unknown
    formats are left for manual review.
    """
    if not isinstance(record_id, str) or not record_id:
        return record_id
    if is_current_decision_id(record_id):
        return record_id

    m = LEGACY_DECISION_ID_RE.match(record_id)
    if m:
        return format_id(Kind.DECISION, project, area, m.group(1))

    return record_id


def normalize_risk_id(record_id: Any, project: str, area: str) -> Any:
    """Upgrade a legacy ``RSK-...`` / ``RA-000005`` id to the current ``RA-`` scheme."""
    if not isinstance(record_id, str) or not record_id:
        return record_id
    if is_current_risk_id(record_id):
        return record_id

    m = LEGACY_RISK_QUALIFIED_RE.match(record_id)
    if m:
        return format_id(Kind.RISK, m.group(1), m.group(2), m.group(3))

    m = LEGACY_RISK_SEQUENCE_RE.match(record_id)
    if m:
        return format_id(Kind.RISK, project, area, m.group(2))

    return record_id


def normalize_id(kind: Kind, record_id: Any, project: str, area: str) -> Any:
    if kind is Kind.DECISION:
        return normalize_decision_id(record_id, project, area)
    return normalize_risk_id(record_id, project, area)


def kind_of(record_id: str) -> Optional[Kind]:
    """Guess the record kind from an id's prefix, current or legacy."""
    if record_id.startswith("DEC-"):
        return Kind.DECISION
    if record_id.startswith(("RA-", "RSK-")):
        return Kind.RISK
    return None
